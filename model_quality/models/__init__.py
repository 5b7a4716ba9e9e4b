"""
Package initialization file for Model Quality Monitor models.

This module exports all Pydantic schemas and enumerations from schemas.py and
enums.py, making them importable from model_quality.models directly.

Usage:
    from model_quality.models import (
        PairedRecord,
        CalibrationHealthMetrics,
        DashboardMetrics,
        AlertSeverity,
        # ... etc
    )
"""

# =============================================================================
# Enums - Import and re-export all enumerations from enums.py
# =============================================================================

from model_quality.models.enums import (
    AlertSeverity,
    CardStatus,
    TradeOutcome,
    QueueFormat,
    SegmentKey,
    SegmentFilterToken,
    MetricFamily,
)

# =============================================================================
# Schemas - Import and re-export all Pydantic models from schemas.py
# =============================================================================

from model_quality.models.schemas import (
    # Alerts
    Alert,
    # Input records
    SegmentTags,
    PairedRecord,
    OfferFeatureSnapshot,
    NarrativeValidationEntry,
    # Calibration
    CalibrationBucket,
    PredictionMassBucket,
    CalibrationHealthMetrics,
    # Segment drift
    SegmentMetric,
    SegmentDriftMetrics,
    # Feature drift
    FeatureStat,
    FeatureDriftMetrics,
    # Ranking
    TopKHitRate,
    LiftChartPoint,
    RankingMetrics,
    # Narrative
    DailyFailureRate,
    NarrativeMetrics,
    # Dashboard
    DateRange,
    DashboardFilters,
    DashboardMetrics,
    SummaryCard,
    DashboardSummaryResponse,
    # Drill-down
    NarrativeDriver,
    DrilldownOffer,
    DrilldownData,
)

__all__ = [
    # Enums
    'AlertSeverity',
    'CardStatus',
    'TradeOutcome',
    'QueueFormat',
    'SegmentKey',
    'SegmentFilterToken',
    'MetricFamily',
    # Alerts
    'Alert',
    # Input records
    'SegmentTags',
    'PairedRecord',
    'OfferFeatureSnapshot',
    'NarrativeValidationEntry',
    # Calibration
    'CalibrationBucket',
    'PredictionMassBucket',
    'CalibrationHealthMetrics',
    # Segment drift
    'SegmentMetric',
    'SegmentDriftMetrics',
    # Feature drift
    'FeatureStat',
    'FeatureDriftMetrics',
    # Ranking
    'TopKHitRate',
    'LiftChartPoint',
    'RankingMetrics',
    # Narrative
    'DailyFailureRate',
    'NarrativeMetrics',
    # Dashboard
    'DateRange',
    'DashboardFilters',
    'DashboardMetrics',
    'SummaryCard',
    'DashboardSummaryResponse',
    # Drill-down
    'NarrativeDriver',
    'DrilldownOffer',
    'DrilldownData',
]
