"""
Narrative Integrity Analyzer Service.

Aggregates pass/fail validation results of generated trade narratives.

Metrics:
    failureRate   failed / total
    category rates, each category_count / totalValidations (the total, not
    the failure count), counted over the violation codes of failed entries:
        incompleteDriverSetRate  code == 'INCOMPLETE_DRIVER_SET'
        illegalNumberRate        'illegal_number' in code
        invalidDriverRate        'invalid_driver' in code
        bannedPatternRate        'banned_pattern' in code
    dailyFailureRates  per UTC calendar date, ascending

Alerts:
    failureRate >= 0.03 critical (fall back to template narratives),
    failureRate >= 0.01 warning.
"""

import logging
from datetime import timezone
from typing import Callable, Dict, List, Sequence

import pandas as pd

from model_quality.models.schemas import DailyFailureRate, NarrativeMetrics, NarrativeValidationEntry
from model_quality.services.alerts import narrative_alerts
from model_quality.services.stats import round_metric, safe_rate

logger = logging.getLogger(__name__)


# Rate field -> predicate over one violation code
VIOLATION_CATEGORIES: Dict[str, Callable[[str], bool]] = {
    'incompleteDriverSetRate': lambda code: code == 'INCOMPLETE_DRIVER_SET',
    'illegalNumberRate': lambda code: 'illegal_number' in code,
    'invalidDriverRate': lambda code: 'invalid_driver' in code,
    'bannedPatternRate': lambda code: 'banned_pattern' in code,
}


def count_violation_categories(entries: Sequence[NarrativeValidationEntry]) -> Dict[str, int]:
    """Count matching violation codes of failed entries per category."""
    counts = {category: 0 for category in VIOLATION_CATEGORIES}
    for entry in entries:
        if entry.valid:
            continue
        for code in entry.violations:
            for category, matches in VIOLATION_CATEGORIES.items():
                if matches(code):
                    counts[category] += 1
    return counts


def compute_daily_failure_rates(entries: Sequence[NarrativeValidationEntry]) -> List[DailyFailureRate]:
    """Failure rate per UTC calendar date, oldest first."""
    if len(entries) == 0:
        return []

    df = pd.DataFrame({
        'createdAt': pd.to_datetime([e.createdAt for e in entries], utc=True),
        'failed': [not e.valid for e in entries],
    })
    df['date'] = df['createdAt'].dt.tz_convert(timezone.utc).dt.date

    daily = (
        df.groupby('date', sort=True)['failed']
        .agg(['sum', 'count'])
        .reset_index()
    )

    return [
        DailyFailureRate(
            date=row['date'],
            rate=round_metric(row['sum'] / row['count']),
            count=int(row['count']),
        )
        for _, row in daily.iterrows()
    ]


def analyze_narrative(entries: Sequence[NarrativeValidationEntry]) -> NarrativeMetrics:
    """
    Run the Narrative Integrity Analyzer over one window of validation logs.

    An empty log yields zero rates, an empty daily series and no alerts.
    """
    total = len(entries)
    failures = sum(1 for e in entries if not e.valid)
    failure_rate = round_metric(safe_rate(failures, total))

    category_rates = {
        category: round_metric(safe_rate(count, total))
        for category, count in count_violation_categories(entries).items()
    }

    metrics = NarrativeMetrics(
        totalValidations=total,
        failureRate=failure_rate,
        dailyFailureRates=compute_daily_failure_rates(entries),
        alerts=narrative_alerts(failure_rate),
        **category_rates,
    )

    logger.info(
        f"Narrative integrity: {failures}/{total} failed "
        f"({failure_rate * 100:.1f}%), {len(metrics.alerts)} alerts"
    )

    return metrics
