"""
Test suite for the Dashboard Aggregator.

The Data Access Port is patched where dashboard.py imports it, so every test
runs the real analyzers over synthetic records without a database.

The tests verify:
1. The full dashboard carries all five families and the window's date range
2. Feature drift reads every issued offer, not only resolved ones
3. Filters only change the calibration family; small filtered populations
   raise no ECE alert
4. Unknown segment tokens are ignored; no filters means the full dashboard
5. Drill-down scoping matches the heatmap groups
6. Summary card statuses, details and ordering
7. Fetch failures propagate (no partial dashboard)
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from model_quality.models import (
    CardStatus,
    DashboardFilters,
    DashboardMetrics,
    OfferFeatureSnapshot,
    SegmentKey,
)
from model_quality.services.dashboard import (
    compute_drilldown,
    compute_filtered_dashboard,
    compute_full_dashboard,
    compute_summary_cards,
    filter_paired_records,
    matches_segment_value,
    parse_segment_key,
)
from model_quality.services.segment_drift import analyze_segment_drift
from model_quality.tests.conftest import assert_close, build_dashboard, make_log, make_record


DASHBOARD = 'model_quality.services.dashboard'


def _mixed_population():
    """200 badly calibrated 'standard' offers and 100 calibrated 'aggressive' ones."""
    standard = [
        make_record(0.9, False, is_superflex=True, league_format='dynasty', record_id=f"std-{i}")
        for i in range(200)
    ]
    aggressive = [
        make_record(0.5, i % 2 == 0, mode='aggressive', league_format='redraft', record_id=f"agg-{i}")
        for i in range(100)
    ]
    return standard + aggressive


def _patch_inputs(paired, issued=None, logs=None, features=None):
    issued = issued if issued is not None else [r.predictedProbability for r in paired]
    if features is None:
        features = [OfferFeatureSnapshot(featureSnapshot=r.featureSnapshot, createdAt=r.createdAt) for r in paired]
    return patch(
        f"{DASHBOARD}.fetch_dashboard_inputs",
        new=AsyncMock(return_value=(paired, issued, features, logs or [])),
    )


# =============================================================================
# Filters
# =============================================================================


class TestFilters:
    """Tests for key parsing and record filtering."""

    @pytest.mark.parametrize("raw,expected", [
        ('format', SegmentKey.FORMAT),
        ('LEAGUEFORMAT', SegmentKey.LEAGUE_FORMAT),
        (' scoringType ', SegmentKey.SCORING_TYPE),
        ('Mode', SegmentKey.MODE),
    ])
    def test_parse_segment_key(self, raw: str, expected: SegmentKey) -> None:
        assert parse_segment_key(raw) == expected

    def test_parse_unknown_key(self) -> None:
        with pytest.raises(ValueError):
            parse_segment_key('region')

    def test_matches_segment_value(self) -> None:
        record = make_record(0.5, True, league_format='Dynasty', mode='standard')
        assert matches_segment_value(record, SegmentKey.LEAGUE_FORMAT, 'dynasty')
        assert matches_segment_value(record, SegmentKey.MODE, 'standard')
        assert not matches_segment_value(record, SegmentKey.MODE, 'Standard')

    def test_mode_and_token_filters(self) -> None:
        records = _mixed_population()

        assert len(filter_paired_records(records, DashboardFilters(mode='aggressive'))) == 100
        assert len(filter_paired_records(records, DashboardFilters(segment='SF'))) == 200
        assert len(filter_paired_records(records, DashboardFilters(segment='1qb'))) == 100
        assert len(filter_paired_records(records, DashboardFilters(mode='standard', segment='redraft'))) == 0

    def test_null_superflex_is_one_qb(self) -> None:
        records = [make_record(0.5, True, is_superflex=None)]
        assert len(filter_paired_records(records, DashboardFilters(segment='1qb'))) == 1

    def test_scoring_tokens(self) -> None:
        records = [
            make_record(0.5, True, scoring_type='ppr'),
            make_record(0.5, True, scoring_type='TE_PREMIUM'),
            make_record(0.5, True, scoring_type='tep'),
            make_record(0.5, True, scoring_type=None),
        ]
        assert len(filter_paired_records(records, DashboardFilters(segment='tep'))) == 2
        assert len(filter_paired_records(records, DashboardFilters(segment='ppr'))) == 1

    def test_unknown_token_is_ignored(self) -> None:
        records = _mixed_population()
        assert len(filter_paired_records(records, DashboardFilters(segment='auction'))) == 300


# =============================================================================
# Dashboards
# =============================================================================


class TestFullDashboard:
    """Tests for compute_full_dashboard."""

    @pytest.mark.asyncio
    async def test_all_families_present(self) -> None:
        paired = _mixed_population()
        logs = [make_log(True) for _ in range(99)] + [make_log(False, ['illegal_number:3'])]

        with _patch_inputs(paired, logs=logs):
            dashboard = await compute_full_dashboard(30)

        assert isinstance(dashboard, DashboardMetrics)
        assert dashboard.calibration.totalPaired == 300
        assert sum(b.count for b in dashboard.calibration.predictionDistribution) == 300
        assert dashboard.ranking.totalPaired == 300
        assert dashboard.narrative.totalValidations == 100
        assert len(dashboard.featureDrift.features) == 4
        assert (dashboard.dateRange.to - dashboard.dateRange.from_).days == 30

    @pytest.mark.asyncio
    async def test_date_range_serializes_with_from(self) -> None:
        with _patch_inputs([]):
            dashboard = await compute_full_dashboard(7)

        payload = dashboard.model_dump(by_alias=True, mode='json')
        assert set(payload['dateRange']) == {'from', 'to'}

    @pytest.mark.asyncio
    async def test_empty_window(self) -> None:
        with _patch_inputs([]):
            dashboard = await compute_full_dashboard(30)

        assert dashboard.calibration.ece == 0.0
        assert dashboard.calibration.alerts == []
        assert dashboard.segmentDrift.heatmap == []
        assert dashboard.ranking.auc is None
        assert dashboard.narrative.failureRate == 0.0

    @pytest.mark.asyncio
    async def test_prediction_mass_uses_issued_probabilities(self) -> None:
        paired = [make_record(0.5, True) for _ in range(10)]
        issued = [0.95] * 40

        with _patch_inputs(paired, issued=issued):
            dashboard = await compute_full_dashboard(30)

        assert dashboard.calibration.predictionDistribution[-1].count == 40
        assert 'highBucketPct' in {a.metric for a in dashboard.calibration.alerts}

    @pytest.mark.asyncio
    async def test_feature_drift_counts_unresolved_offers(self) -> None:
        now = datetime.now(timezone.utc)
        paired = [
            make_record(0.5, i % 2 == 0, features={'vorpScore': 0.0}, created_at=now - timedelta(days=20))
            for i in range(20)
        ]
        unresolved = [
            OfferFeatureSnapshot(featureSnapshot={'vorpScore': 1.8}, createdAt=now - timedelta(days=1))
            for _ in range(20)
        ]
        resolved = [OfferFeatureSnapshot(featureSnapshot=r.featureSnapshot, createdAt=r.createdAt) for r in paired]

        with _patch_inputs(paired):
            paired_only = await compute_full_dashboard(30)
        with _patch_inputs(paired, features=resolved + unresolved):
            dashboard = await compute_full_dashboard(30)

        assert not any(f.drifted for f in paired_only.featureDrift.features)
        vorp = next(f for f in dashboard.featureDrift.features if f.feature == 'vorp')
        assert vorp.drifted
        assert vorp.currentMean == 1.8
        assert vorp.previousMean == 0.0
        assert 'feature_drift_vorp' in {a.metric for a in dashboard.featureDrift.alerts}

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self) -> None:
        failing = AsyncMock(side_effect=OSError('database unavailable'))
        with patch(f"{DASHBOARD}.fetch_dashboard_inputs", new=failing):
            with pytest.raises(OSError):
                await compute_full_dashboard(30)


class TestFilteredDashboard:
    """Tests for compute_filtered_dashboard."""

    @pytest.mark.asyncio
    async def test_only_calibration_is_filtered(self) -> None:
        paired = _mixed_population()

        with _patch_inputs(paired):
            full = await compute_full_dashboard(30)
        with _patch_inputs(paired):
            filtered = await compute_filtered_dashboard(30, DashboardFilters(mode='aggressive'))

        assert filtered.calibration.totalPaired == 100
        assert filtered.calibration.ece == 0.0
        assert sum(b.count for b in filtered.calibration.predictionDistribution) == 100
        assert full.calibration.ece > filtered.calibration.ece

        assert filtered.segmentDrift == full.segmentDrift
        assert filtered.ranking == full.ranking
        assert filtered.narrative == full.narrative

    @pytest.mark.asyncio
    async def test_no_filters_is_full_dashboard(self) -> None:
        paired = _mixed_population()

        with _patch_inputs(paired):
            dashboard = await compute_filtered_dashboard(30, DashboardFilters())

        assert dashboard.calibration.totalPaired == 300

    @pytest.mark.asyncio
    async def test_unknown_segment_token_keeps_population(self) -> None:
        paired = _mixed_population()

        with _patch_inputs(paired):
            dashboard = await compute_filtered_dashboard(30, DashboardFilters(segment='bestball'))

        assert dashboard.calibration.totalPaired == 300

    @pytest.mark.asyncio
    async def test_small_filtered_population_raises_no_ece_alert(self) -> None:
        tiny = [make_record(0.5, True, mode='tiny', record_id=f"tiny-{i}") for i in range(5)]
        paired = _mixed_population()[:200] + tiny

        with _patch_inputs(paired):
            dashboard = await compute_filtered_dashboard(30, DashboardFilters(mode='tiny'))

        assert dashboard.calibration.totalPaired == 5
        assert dashboard.calibration.ece == 0.5
        assert dashboard.calibration.alerts == []
        cards = {c.id: c for c in compute_summary_cards(dashboard)}
        assert cards['calibration'].status == CardStatus.GOOD

    @pytest.mark.asyncio
    async def test_full_dashboard_ece_alert_is_not_sample_gated(self) -> None:
        paired = [make_record(0.5, True, record_id=f"few-{i}") for i in range(5)]

        with _patch_inputs(paired):
            dashboard = await compute_full_dashboard(30)

        assert [a.metric for a in dashboard.calibration.alerts] == ['ece']


# =============================================================================
# Drill-down
# =============================================================================


class TestDrilldown:
    """Tests for compute_drilldown."""

    @pytest.mark.asyncio
    async def test_sample_size_matches_heatmap(self, mock_settings) -> None:
        paired = _mixed_population()
        heatmap = analyze_segment_drift(paired).heatmap
        expected = next(
            m.count for m in heatmap
            if m.segmentKey == SegmentKey.LEAGUE_FORMAT and m.segmentValue == 'redraft'
        )
        sample_loader = AsyncMock(return_value=[])

        with patch(f"{DASHBOARD}.load_paired_records", new=AsyncMock(return_value=paired)), \
             patch(f"{DASHBOARD}.load_segment_sample_offers", new=sample_loader):
            drilldown = await compute_drilldown(30, 'leagueformat', 'REDRAFT')

        assert drilldown.segmentKey == SegmentKey.LEAGUE_FORMAT
        assert drilldown.segmentValue == 'REDRAFT'
        assert drilldown.sampleSize == expected == 100
        assert drilldown.ece == 0.0
        assert sum(b.count for b in drilldown.reliabilityCurve) == 100
        assert [f.feature for f in drilldown.featureDrift] == ['lineupImpact', 'vorp', 'market', 'behavior']

        args = sample_loader.call_args.args
        assert args[1] == SegmentKey.LEAGUE_FORMAT
        assert args[3] == mock_settings.drilldown_sample_limit

    @pytest.mark.asyncio
    async def test_format_drilldown(self, mock_settings) -> None:
        paired = _mixed_population()

        with patch(f"{DASHBOARD}.load_paired_records", new=AsyncMock(return_value=paired)), \
             patch(f"{DASHBOARD}.load_segment_sample_offers", new=AsyncMock(return_value=[])):
            drilldown = await compute_drilldown(30, 'format', 'SuperFlex', sample_limit=5)

        assert drilldown.sampleSize == 200
        assert_close(drilldown.ece, 0.9)

    @pytest.mark.asyncio
    async def test_no_matching_records(self, mock_settings) -> None:
        with patch(f"{DASHBOARD}.load_paired_records", new=AsyncMock(return_value=_mixed_population())), \
             patch(f"{DASHBOARD}.load_segment_sample_offers", new=AsyncMock(return_value=[])):
            drilldown = await compute_drilldown(30, 'mode', 'conservative')

        assert drilldown.sampleSize == 0
        assert drilldown.ece == 0.0
        assert all(b.count == 0 for b in drilldown.reliabilityCurve)

    @pytest.mark.asyncio
    async def test_unknown_key(self, mock_settings) -> None:
        with pytest.raises(ValueError):
            await compute_drilldown(30, 'region', 'EU')


# =============================================================================
# Summary Cards
# =============================================================================


class TestSummaryCards:
    """Tests for compute_summary_cards."""

    def test_card_order(self, separated_records) -> None:
        cards = compute_summary_cards(build_dashboard(separated_records))
        assert [c.id for c in cards] == ['calibration', 'worstSegment', 'featureDrift', 'ranking', 'narrative']

    def test_separated_population(self, separated_records) -> None:
        cards = {c.id: c for c in compute_summary_cards(build_dashboard(separated_records))}

        # Every bucket is off by 0.1: ECE 10% is a warning
        assert cards['calibration'].status == CardStatus.WATCH
        assert cards['calibration'].detail == 'ECE: 10.0% | Brier: 0.010'

        # Worst segment is at the watch level but below the sample gate
        assert cards['worstSegment'].status == CardStatus.WATCH
        assert cards['worstSegment'].detail == 'format 1QB: ECE 10.0% (n=100)'

        assert cards['featureDrift'].status == CardStatus.GOOD
        assert cards['featureDrift'].detail == 'All features stable'

        assert cards['ranking'].status == CardStatus.GOOD
        assert cards['ranking'].detail == 'AUC: 1.000 (n=100)'

        assert cards['narrative'].status == CardStatus.GOOD
        assert cards['narrative'].detail == 'OK'

    def test_empty_window(self) -> None:
        cards = {c.id: c for c in compute_summary_cards(build_dashboard([]))}

        assert all(c.status == CardStatus.GOOD for c in cards.values())
        assert cards['worstSegment'].detail == 'All segments healthy'
        assert cards['ranking'].detail == 'Insufficient data for AUC'

    def test_critical_segment_and_narrative(self) -> None:
        paired = _mixed_population()
        logs = [make_log(True) for _ in range(95)] + [make_log(False) for _ in range(5)]
        cards = {c.id: c for c in compute_summary_cards(build_dashboard(paired, logs))}

        assert cards['worstSegment'].status == CardStatus.CRITICAL
        assert cards['worstSegment'].detail.endswith('ECE 90.0% (n=200)')
        assert cards['narrative'].status == CardStatus.CRITICAL
        assert cards['narrative'].detail == 'Failure rate: 5.0%'

    def test_degraded_ranking(self, random_records) -> None:
        cards = {c.id: c for c in compute_summary_cards(build_dashboard(random_records))}
        assert cards['ranking'].status == CardStatus.CRITICAL

    def test_cards_agree_with_alerts(self) -> None:
        dashboard = build_dashboard(_mixed_population())
        cards = {c.id: c for c in compute_summary_cards(dashboard)}

        has_critical_segment_alert = any(a.severity == 'critical' for a in dashboard.segmentDrift.alerts)
        assert has_critical_segment_alert == (cards['worstSegment'].status == CardStatus.CRITICAL)
