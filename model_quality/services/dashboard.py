"""
Dashboard Aggregator Service.

Orchestrates the five model quality analyzers for one analysis window and
derives everything the admin dashboard renders from their results.

Operations:
    compute_full_dashboard       one concurrent fetch, then all five
                                 analyzers as independent concurrent tasks
    compute_filtered_dashboard   calibration recomputed on the population
                                 filtered by mode and/or segment token; the
                                 other four analyzers stay unfiltered
    compute_drilldown            calibration, feature drift and a raw-offer
                                 sample scoped to one segment value
    compute_summary_cards        pure derivation of one status card per
                                 metric family (no data access)

Concurrency:
    The analyzers share no state; each runs in a worker thread via
    asyncio.to_thread and the results are joined with asyncio.gather.
    Fetch and analyzer failures propagate: there is no partial dashboard.

Filtered Dashboard Limitation:
    Only the calibration family honours the filters. Segment drift, feature
    drift, ranking and narrative integrity are always global views of the
    window, and consumers rely on that. A filtered population smaller than
    FILTERED_ECE_MIN_SAMPLES raises no ECE alert.

Feature Drift Source:
    Dashboards measure drift over the feature snapshot of every offer issued
    in the window, resolved or not. A drill-down uses the paired records of
    its segment.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from model_quality.core.config import get_settings
from model_quality.models.enums import (
    AlertSeverity,
    CardStatus,
    MetricFamily,
    QueueFormat,
    SegmentFilterToken,
    SegmentKey,
)
from model_quality.models.schemas import (
    DashboardFilters,
    DashboardMetrics,
    DateRange,
    DrilldownData,
    NarrativeValidationEntry,
    OfferFeatureSnapshot,
    PairedRecord,
    SummaryCard,
)
from model_quality.services.alerts import (
    FILTERED_ECE_MIN_SAMPLES,
    SEGMENT_WATCH_ECE,
    feature_drift_severity,
    narrative_severity,
    ranking_is_critical,
    segment_is_critical,
)
from model_quality.services.calibration import analyze_calibration, compute_ece, compute_reliability_curve
from model_quality.services.data_access import fetch_dashboard_inputs, load_paired_records, load_segment_sample_offers
from model_quality.services.feature_drift import analyze_feature_drift, compute_feature_stats
from model_quality.services.narrative import analyze_narrative
from model_quality.services.ranking import analyze_ranking
from model_quality.services.segment_drift import analyze_segment_drift

logger = logging.getLogger(__name__)


# =============================================================================
# Filters
# =============================================================================


def parse_segment_key(raw_key: str) -> SegmentKey:
    """
    Resolve a segment key name case-insensitively.

    Raises:
        ValueError: If the name is not one of format, leagueFormat,
            scoringType or mode.
    """
    for key in SegmentKey:
        if key.value.lower() == raw_key.strip().lower():
            return key
    raise ValueError(
        f"Unknown segment key '{raw_key}'. "
        f"Expected one of: {', '.join(k.value for k in SegmentKey)}"
    )


def matches_segment_value(record: PairedRecord, segment_key: SegmentKey, segment_value: str) -> bool:
    """
    Whether a record belongs to one heatmap group.

    leagueFormat and scoringType compare case-insensitively, format and mode
    exactly.
    """
    tag = record.segmentTags.value_for(segment_key)
    if segment_key in (SegmentKey.LEAGUE_FORMAT, SegmentKey.SCORING_TYPE):
        return tag.lower() == segment_value.lower()
    return tag == segment_value


def matches_filter_token(record: PairedRecord, token: SegmentFilterToken) -> bool:
    tags = record.segmentTags
    if token == SegmentFilterToken.SF:
        return tags.queueFormat == QueueFormat.SUPERFLEX
    if token == SegmentFilterToken.ONE_QB:
        return tags.queueFormat == QueueFormat.ONE_QB
    if token in (SegmentFilterToken.DYNASTY, SegmentFilterToken.REDRAFT):
        return tags.leagueFormat.lower() == token.value
    if token == SegmentFilterToken.TEP:
        return tags.scoringType.upper() in ('TEP', 'TE_PREMIUM')
    return tags.scoringType.upper() == 'PPR'


def filter_paired_records(
    records: Sequence[PairedRecord],
    filters: DashboardFilters,
) -> List[PairedRecord]:
    """
    Apply mode (exact) and segment token (case-insensitive) filters.

    An unrecognised segment token leaves the population unfiltered.
    """
    filtered = list(records)

    if filters.mode:
        filtered = [r for r in filtered if r.mode == filters.mode]

    if filters.segment:
        try:
            token = SegmentFilterToken(filters.segment.strip().lower())
        except ValueError:
            logger.warning(f"Unknown segment filter '{filters.segment}', segment filter ignored")
        else:
            filtered = [r for r in filtered if matches_filter_token(r, token)]

    return filtered


# =============================================================================
# Dashboards
# =============================================================================


def _date_range(days_back: int, now: datetime) -> DateRange:
    return DateRange(from_=(now - timedelta(days=days_back)).date(), to=now.date())


async def _run_analyzers(
    days_back: int,
    now: datetime,
    calibration_records: Sequence[PairedRecord],
    calibration_probabilities: Sequence[float],
    paired: Sequence[PairedRecord],
    features: Sequence[OfferFeatureSnapshot],
    logs: Sequence[NarrativeValidationEntry],
    calibration_min_samples: int = 0,
) -> DashboardMetrics:
    calibration, segment_drift, feature_drift, ranking, narrative = await asyncio.gather(
        asyncio.to_thread(
            analyze_calibration, calibration_records, calibration_probabilities, calibration_min_samples,
        ),
        asyncio.to_thread(analyze_segment_drift, paired),
        asyncio.to_thread(analyze_feature_drift, features, days_back, now),
        asyncio.to_thread(analyze_ranking, paired),
        asyncio.to_thread(analyze_narrative, logs),
    )

    return DashboardMetrics(
        calibration=calibration,
        segmentDrift=segment_drift,
        featureDrift=feature_drift,
        ranking=ranking,
        narrative=narrative,
        dateRange=_date_range(days_back, now),
        generatedAt=now,
    )


async def compute_full_dashboard(days_back: int) -> DashboardMetrics:
    """
    Compute every metric family for a days_back window.

    Raises:
        ValueError: If days_back is not positive.
        asyncpg.PostgresError: If any of the window queries fails.
    """
    now = datetime.now(timezone.utc)
    paired, issued, features, logs = await fetch_dashboard_inputs(days_back, now)

    dashboard = await _run_analyzers(days_back, now, paired, issued, paired, features, logs)

    total_alerts = sum(
        len(family.alerts) for family in (
            dashboard.calibration, dashboard.segmentDrift, dashboard.featureDrift,
            dashboard.ranking, dashboard.narrative,
        )
    )
    logger.info(f"Dashboard computed for {days_back}-day window: {len(paired)} paired, {total_alerts} alerts")

    return dashboard


async def compute_filtered_dashboard(days_back: int, filters: DashboardFilters) -> DashboardMetrics:
    """
    Compute the dashboard with calibration restricted to filtered records.

    Without any filter this is exactly compute_full_dashboard. With filters,
    the calibration family (including its prediction-mass histogram) is
    computed from the filtered paired records only, and the remaining four
    families are computed unfiltered over the full window.
    """
    if filters.is_empty:
        return await compute_full_dashboard(days_back)

    now = datetime.now(timezone.utc)
    paired, _issued, features, logs = await fetch_dashboard_inputs(days_back, now)

    filtered = filter_paired_records(paired, filters)
    logger.info(
        f"Filtered dashboard (mode={filters.mode}, segment={filters.segment}): "
        f"{len(filtered)}/{len(paired)} paired records kept"
    )

    return await _run_analyzers(
        days_back,
        now,
        filtered,
        [r.predictedProbability for r in filtered],
        paired,
        features,
        logs,
        calibration_min_samples=FILTERED_ECE_MIN_SAMPLES,
    )


# =============================================================================
# Drill-down
# =============================================================================


async def compute_drilldown(
    days_back: int,
    segment_key: str,
    segment_value: str,
    sample_limit: Optional[int] = None,
) -> DrilldownData:
    """
    Scope calibration and feature drift to one heatmap group.

    The group is selected by the same tag derivation the heatmap uses, so
    sampleSize equals the heatmap count for (segment_key, segment_value).

    Args:
        days_back: Window length in days.
        segment_key: format, leagueFormat, scoringType or mode
            (case-insensitive).
        segment_value: Group value, e.g. 'SuperFlex' or 'dynasty'.
        sample_limit: Raw offers to return; defaults to the
            drilldown_sample_limit setting.

    Raises:
        ValueError: If segment_key is unknown or days_back is not positive.
    """
    key = parse_segment_key(segment_key)
    limit = sample_limit if sample_limit is not None else get_settings().drilldown_sample_limit
    now = datetime.now(timezone.utc)

    paired, sample_offers = await asyncio.gather(
        load_paired_records(days_back, now),
        load_segment_sample_offers(days_back, key, segment_value, limit, now),
    )

    scoped = [r for r in paired if matches_segment_value(r, key, segment_value)]
    if not scoped:
        logger.warning(f"Drill-down {key.value}={segment_value} matched no paired records")

    return DrilldownData(
        segmentKey=key,
        segmentValue=segment_value,
        reliabilityCurve=compute_reliability_curve(scoped),
        ece=compute_ece(scoped),
        featureDrift=compute_feature_stats(scoped, days_back, now),
        sampleOffers=sample_offers,
        sampleSize=len(scoped),
    )


# =============================================================================
# Summary Cards
# =============================================================================


def _status_for(severity: Optional[AlertSeverity]) -> CardStatus:
    if severity == AlertSeverity.CRITICAL:
        return CardStatus.CRITICAL
    if severity == AlertSeverity.WARNING:
        return CardStatus.WATCH
    return CardStatus.GOOD


def compute_summary_cards(dashboard: DashboardMetrics) -> List[SummaryCard]:
    """
    Derive one status card per metric family from computed metrics.

    Uses the same predicates as the analyzers' alerts and never queries data.
    Cards are returned in the order: calibration, worstSegment, featureDrift,
    ranking, narrative.
    """
    cards: List[SummaryCard] = []

    # Calibration: follows the emitted ECE alert, which may be sample-gated
    calibration = dashboard.calibration
    ece_severity = next((a.severity for a in calibration.alerts if a.metric == 'ece'), None)
    cards.append(SummaryCard(
        id=MetricFamily.CALIBRATION.value,
        label='Calibration',
        status=_status_for(ece_severity),
        detail=f"ECE: {calibration.ece * 100:.1f}% | Brier: {calibration.brierScore:.3f}",
    ))

    # Worst segment
    worst = dashboard.segmentDrift.worstSegments[0] if dashboard.segmentDrift.worstSegments else None
    if worst is None:
        worst_status = CardStatus.GOOD
        worst_detail = 'All segments healthy'
    else:
        if segment_is_critical(worst.ece, worst.count):
            worst_status = CardStatus.CRITICAL
        elif worst.ece >= SEGMENT_WATCH_ECE:
            worst_status = CardStatus.WATCH
        else:
            worst_status = CardStatus.GOOD
        worst_detail = (
            f"{worst.segmentKey.value} {worst.segmentValue}: "
            f"ECE {worst.ece * 100:.1f}% (n={worst.count})"
        )
    cards.append(SummaryCard(
        id=MetricFamily.WORST_SEGMENT.value,
        label='Worst Segment',
        status=worst_status,
        detail=worst_detail,
    ))

    # Feature drift
    drifted = [f for f in dashboard.featureDrift.features if f.drifted]
    if not drifted:
        drift_status = CardStatus.GOOD
    elif any(feature_drift_severity(f.psi, f.zDrift) == AlertSeverity.CRITICAL for f in drifted):
        drift_status = CardStatus.CRITICAL
    else:
        drift_status = CardStatus.WATCH
    cards.append(SummaryCard(
        id=MetricFamily.FEATURE_DRIFT.value,
        label='Feature Drift',
        status=drift_status,
        detail=f"Unstable: {', '.join(f.feature for f in drifted)}" if drifted else 'All features stable',
    ))

    # Ranking
    ranking = dashboard.ranking
    if ranking.auc is None:
        ranking_status = CardStatus.GOOD
        ranking_detail = 'Insufficient data for AUC'
    else:
        ranking_status = (
            CardStatus.CRITICAL if ranking_is_critical(ranking.auc, ranking.totalPaired) else CardStatus.GOOD
        )
        ranking_detail = f"AUC: {ranking.auc:.3f} (n={ranking.totalPaired})"
    cards.append(SummaryCard(
        id=MetricFamily.RANKING.value,
        label='Ranking Quality',
        status=ranking_status,
        detail=ranking_detail,
    ))

    # Narrative
    narrative = dashboard.narrative
    narrative_status = _status_for(narrative_severity(narrative.failureRate))
    cards.append(SummaryCard(
        id=MetricFamily.NARRATIVE.value,
        label='Narrative Integrity',
        status=narrative_status,
        detail=(
            'OK' if narrative_status == CardStatus.GOOD
            else f"Failure rate: {narrative.failureRate * 100:.1f}%"
        ),
    ))

    return cards
