"""
Ranking Quality Analyzer Service.

Measures how well acceptProb orders accepted trades above rejected ones,
independent of absolute calibration.

Metrics:
    AUC         Mann-Whitney estimator: for every accepted probability, count
                rejected probabilities strictly below it (wins) and exactly
                equal to it (ties); AUC = (wins + 0.5 * ties) / (nPos * nNeg).
                None when either class has fewer than 30 samples.
    Top-K       For k in {5, 10, 20} percent, the acceptance fraction among
                the ceil(N * k / 100) highest-probability records.
    Lift chart  The probability-sorted population (descending) cut into 10
                deciles at floor(i * N / 10); lift = decileRate / baseRate.
                Empty below 10 records.

Alerts:
    AUC < 0.62 with >= 50 paired samples is critical.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from model_quality.models.schemas import LiftChartPoint, PairedRecord, RankingMetrics, TopKHitRate
from model_quality.services.alerts import AUC_MIN_CLASS_SIZE, LIFT_MIN_RECORDS, ranking_alert
from model_quality.services.stats import round_metric, safe_rate

logger = logging.getLogger(__name__)


# Top-K slice sizes, in percent of the population
TOP_K_PERCENTS = (5, 10, 20)

DECILE_COUNT: int = 10


def _sort_descending(records: Sequence[PairedRecord]) -> List[PairedRecord]:
    # Stable: records with equal probability keep their input order
    return sorted(records, key=lambda r: r.predictedProbability, reverse=True)


def compute_auc(records: Sequence[PairedRecord]) -> Optional[float]:
    """
    Rank-based AUC, or None when either class is smaller than 30.

    Example:
        A perfectly separating predictor (p=1 for every accepted trade, p=0
        for every rejected one) scores 1.0.
    """
    positives = np.sort(np.array([r.predictedProbability for r in records if r.observedOutcome], dtype=float))
    negatives = np.sort(np.array([r.predictedProbability for r in records if not r.observedOutcome], dtype=float))

    n_pos, n_neg = len(positives), len(negatives)
    if n_pos < AUC_MIN_CLASS_SIZE or n_neg < AUC_MIN_CLASS_SIZE:
        return None

    # For each positive: negatives strictly below, and negatives equal to it
    below = np.searchsorted(negatives, positives, side='left')
    below_or_equal = np.searchsorted(negatives, positives, side='right')

    wins = float(np.sum(below))
    ties = float(np.sum(below_or_equal - below))

    return round_metric((wins + 0.5 * ties) / (n_pos * n_neg))


def compute_top_k_hit_rates(records: Sequence[PairedRecord]) -> List[TopKHitRate]:
    """Hit rate of each top-K slice; empty for an empty population."""
    total = len(records)
    if total == 0:
        return []

    ranked = _sort_descending(records)
    hit_rates = []
    for k in TOP_K_PERCENTS:
        size = math.ceil(total * k / 100)
        top = ranked[:size]
        hits = sum(1 for r in top if r.observedOutcome)
        hit_rates.append(TopKHitRate(k=k, hitRate=round_metric(hits / len(top)), count=len(top)))

    return hit_rates


def compute_lift_chart(records: Sequence[PairedRecord]) -> List[LiftChartPoint]:
    """Decile lift chart; empty below 10 records."""
    total = len(records)
    if total < LIFT_MIN_RECORDS:
        return []

    ranked = _sort_descending(records)
    base_rate = sum(1 for r in records if r.observedOutcome) / total

    chart = []
    for i in range(DECILE_COUNT):
        start = (i * total) // DECILE_COUNT
        end = ((i + 1) * total) // DECILE_COUNT
        decile = ranked[start:end]
        decile_rate = safe_rate(sum(1 for r in decile if r.observedOutcome), len(decile))
        chart.append(LiftChartPoint(
            decile=i + 1,
            lift=round_metric(safe_rate(decile_rate, base_rate)),
            baseRate=round_metric(base_rate),
            decileRate=round_metric(decile_rate),
        ))

    return chart


def analyze_ranking(records: Sequence[PairedRecord]) -> RankingMetrics:
    """Run the Ranking Quality Analyzer over one paired-record population."""
    auc = compute_auc(records)

    alerts = []
    alert = ranking_alert(auc, len(records))
    if alert is not None:
        alerts.append(alert)

    if auc is None:
        logger.info(f"Ranking: AUC not computed, insufficient class sizes in {len(records)} paired")
    else:
        logger.info(f"Ranking: AUC={auc:.4f} over {len(records)} paired")

    return RankingMetrics(
        auc=auc,
        topKHitRates=compute_top_k_hit_rates(records),
        liftChart=compute_lift_chart(records),
        totalPaired=len(records),
        alerts=alerts,
    )
