"""
Model Quality Services Module

This module contains the analysis services of the Model Quality Monitor.
Analyzers are pure functions over in-memory records; only data_access talks
to the database.

Services:
- alerts: Shared threshold policy and alert construction
- calibration: Reliability curve, ECE, Brier score, prediction mass
- segment_drift: Calibration sliced by segment tags, worst segments
- feature_drift: PSI and z-drift between window halves
- ranking: Rank-based AUC, top-K hit rates, decile lift
- narrative: Narrative validation failure and category rates
- data_access: asyncpg loaders for paired records, predictions and logs
- dashboard: Full/filtered dashboard, drill-down, summary cards

All services are designed to be consumed by the API layer (model_quality/api/).
"""

# =============================================================================
# Alert Policy Exports
# =============================================================================

from model_quality.services.alerts import (
    build_alert,
    calibration_alerts,
    segment_alert,
    feature_drift_alert,
    ranking_alert,
    narrative_alerts,
)

# =============================================================================
# Analyzer Exports
# Pure functions of the records passed to them; safe to run concurrently
# =============================================================================

from model_quality.services.calibration import (
    analyze_calibration,
    compute_reliability_curve,
    compute_ece,
    compute_brier_score,
    compute_prediction_distribution,
)

from model_quality.services.segment_drift import (
    analyze_segment_drift,
    group_by_segment,
)

from model_quality.services.feature_drift import (
    analyze_feature_drift,
    compute_feature_stats,
    compute_psi,
    compute_z_drift,
    extract_feature,
    split_window,
    FEATURE_KEYS,
)

from model_quality.services.ranking import (
    analyze_ranking,
    compute_auc,
    compute_top_k_hit_rates,
    compute_lift_chart,
)

from model_quality.services.narrative import (
    analyze_narrative,
    compute_daily_failure_rates,
)

# =============================================================================
# Data Access Port Exports
# =============================================================================

from model_quality.services.data_access import (
    load_paired_records,
    load_issued_probabilities,
    load_offer_features,
    load_narrative_logs,
    load_segment_sample_offers,
    fetch_dashboard_inputs,
)

# =============================================================================
# Dashboard Aggregator Exports
# =============================================================================

from model_quality.services.dashboard import (
    compute_full_dashboard,
    compute_filtered_dashboard,
    compute_drilldown,
    compute_summary_cards,
    filter_paired_records,
    parse_segment_key,
)

__all__ = [
    # Alert policy
    'build_alert',
    'calibration_alerts',
    'segment_alert',
    'feature_drift_alert',
    'ranking_alert',
    'narrative_alerts',
    # Calibration
    'analyze_calibration',
    'compute_reliability_curve',
    'compute_ece',
    'compute_brier_score',
    'compute_prediction_distribution',
    # Segment drift
    'analyze_segment_drift',
    'group_by_segment',
    # Feature drift
    'analyze_feature_drift',
    'compute_feature_stats',
    'compute_psi',
    'compute_z_drift',
    'extract_feature',
    'split_window',
    'FEATURE_KEYS',
    # Ranking
    'analyze_ranking',
    'compute_auc',
    'compute_top_k_hit_rates',
    'compute_lift_chart',
    # Narrative
    'analyze_narrative',
    'compute_daily_failure_rates',
    # Data access
    'load_paired_records',
    'load_issued_probabilities',
    'load_offer_features',
    'load_narrative_logs',
    'load_segment_sample_offers',
    'fetch_dashboard_inputs',
    # Dashboard
    'compute_full_dashboard',
    'compute_filtered_dashboard',
    'compute_drilldown',
    'compute_summary_cards',
    'filter_paired_records',
    'parse_segment_key',
]
