"""
Pydantic models for the Model Quality Monitor backend.

This module provides type-safe data validation and serialization for:
- Input records read through the Data Access Port (paired prediction/outcome
  records, offer feature snapshots, narrative validation log entries,
  drill-down sample offers)
- Per-analyzer result shapes (calibration, segment drift, feature drift,
  ranking quality, narrative integrity)
- Dashboard aggregates, summary cards and drill-down responses

Field names are camelCase because they are the JSON contract of the admin
dashboard. Every model is built fresh per analysis run and never mutated;
input records are frozen.

All models use Pydantic v2 syntax.
"""

from datetime import datetime, date as DateType
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict, computed_field

from model_quality.models.enums import (
    AlertSeverity,
    CardStatus,
    QueueFormat,
    SegmentKey,
)


# =============================================================================
# Alerts
# =============================================================================


class Alert(BaseModel):
    """
    Threshold finding emitted by an analyzer.

    Always derived, never persisted. `value` and `threshold` carry the literal
    comparison so operators can act without recomputing anything.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "severity": "critical",
                "message": "ECE 0.1350 exceeds critical threshold 0.12",
                "metric": "ece",
                "value": 0.135,
                "threshold": 0.12
            }
        }
    )

    severity: AlertSeverity = Field(
        ...,
        description="Alert severity level"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the finding"
    )
    metric: str = Field(
        ...,
        description="Name of the metric that crossed its threshold"
    )
    value: float = Field(
        ...,
        description="Observed metric value"
    )
    threshold: float = Field(
        ...,
        description="Threshold the value was compared against"
    )


# =============================================================================
# Input Records (Data Access Port)
# =============================================================================


class SegmentTags(BaseModel):
    """
    Categorical tags of a paired record used for segment slicing.
    """
    model_config = ConfigDict(frozen=True)

    queueFormat: QueueFormat = Field(
        ...,
        description="SuperFlex or 1QB (unknown flag counts as 1QB)"
    )
    leagueFormat: str = Field(
        ...,
        description="League format (dynasty, redraft, ...) or 'unknown'"
    )
    scoringType: str = Field(
        ...,
        description="Scoring type (PPR, TEP, ...) or 'unknown'"
    )
    generationMode: str = Field(
        ...,
        description="Offer generation mode"
    )

    def value_for(self, key: SegmentKey) -> str:
        """Return the tag value for one segment key."""
        if key == SegmentKey.FORMAT:
            return self.queueFormat.value
        if key == SegmentKey.LEAGUE_FORMAT:
            return self.leagueFormat
        if key == SegmentKey.SCORING_TYPE:
            return self.scoringType
        return self.generationMode


class PairedRecord(BaseModel):
    """
    One resolved prediction: the predicted acceptance probability of a trade
    offer together with its observed outcome and the feature snapshot the
    prediction was made from.

    Immutable once fetched; lives only for the duration of one analysis run.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        description="Trade offer event identifier"
    )
    predictedProbability: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Model acceptProb for the offer"
    )
    observedOutcome: bool = Field(
        ...,
        description="True when the offer was accepted"
    )
    featureSnapshot: Dict[str, Any] = Field(
        default_factory=dict,
        description="Raw feature blob stored with the offer"
    )
    isSuperFlex: Optional[bool] = Field(
        default=None,
        description="Superflex flag of the league, if known"
    )
    leagueFormat: Optional[str] = Field(
        default=None,
        description="League format, if known"
    )
    scoringType: Optional[str] = Field(
        default=None,
        description="Scoring type, if known"
    )
    mode: str = Field(
        ...,
        description="Offer generation mode"
    )
    createdAt: datetime = Field(
        ...,
        description="When the offer (and its prediction) was created"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def segmentTags(self) -> SegmentTags:
        return SegmentTags(
            queueFormat=QueueFormat.SUPERFLEX if self.isSuperFlex else QueueFormat.ONE_QB,
            leagueFormat=self.leagueFormat or 'unknown',
            scoringType=self.scoringType or 'unknown',
            generationMode=self.mode,
        )


class OfferFeatureSnapshot(BaseModel):
    """
    Feature blob of one issued offer, resolved or not, as read for feature drift.
    """
    model_config = ConfigDict(frozen=True)

    featureSnapshot: Dict[str, Any] = Field(
        default_factory=dict,
        description="Raw feature blob stored with the offer"
    )
    createdAt: datetime = Field(
        ...,
        description="When the offer was created"
    )


class NarrativeValidationEntry(BaseModel):
    """
    One narrative-generation validation attempt.
    """
    model_config = ConfigDict(frozen=True)

    valid: bool = Field(
        ...,
        description="Whether the generated narrative passed validation"
    )
    violations: List[str] = Field(
        default_factory=list,
        description="Violation codes raised when invalid"
    )
    createdAt: datetime = Field(
        ...,
        description="When the validation ran"
    )


# =============================================================================
# Calibration
# =============================================================================


class CalibrationBucket(BaseModel):
    """
    One of the 10 fixed-width reliability-curve buckets partitioning [0, 1].
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "rangeMin": 0.6,
                "rangeMax": 0.7,
                "label": "60-70%",
                "predictedMean": 0.6512,
                "observedRate": 0.6204,
                "count": 412
            }
        }
    )

    rangeMin: float = Field(..., description="Inclusive lower bound")
    rangeMax: float = Field(..., description="Upper bound (inclusive for the last bucket)")
    label: str = Field(..., description="Display label, e.g. '60-70%'")
    predictedMean: float = Field(
        ...,
        description="Mean predicted probability in bucket (midpoint when empty)"
    )
    observedRate: float = Field(
        ...,
        description="Fraction of accepted outcomes in bucket (0 when empty)"
    )
    count: int = Field(..., ge=0, description="Paired records in bucket")


class PredictionMassBucket(BaseModel):
    """
    Count of issued predictions (resolved or not) in one probability bucket.
    """
    bucket: str = Field(..., description="Bucket label, e.g. '90-100%'")
    count: int = Field(..., ge=0, description="Issued predictions in bucket")


class CalibrationHealthMetrics(BaseModel):
    """
    Output of the Calibration Analyzer.
    """
    reliabilityCurve: List[CalibrationBucket] = Field(
        ...,
        description="10 reliability buckets"
    )
    ece: float = Field(..., ge=0.0, description="Expected Calibration Error")
    brierScore: float = Field(..., ge=0.0, description="Mean squared error")
    predictionDistribution: List[PredictionMassBucket] = Field(
        ...,
        description="Prediction-mass histogram over all issued predictions"
    )
    totalPaired: int = Field(..., ge=0, description="Paired records analyzed")
    alerts: List[Alert] = Field(default_factory=list)


# =============================================================================
# Segment Drift
# =============================================================================


class SegmentMetric(BaseModel):
    """
    Calibration metrics for one (segment key, segment value) group.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "segmentKey": "leagueFormat",
                "segmentValue": "dynasty",
                "ece": 0.0731,
                "brierScore": 0.1822,
                "count": 1840
            }
        }
    )

    segmentKey: SegmentKey = Field(..., description="Segment dimension")
    segmentValue: str = Field(..., description="Value within the dimension")
    ece: float = Field(..., ge=0.0)
    brierScore: float = Field(..., ge=0.0)
    count: int = Field(..., ge=0)


class SegmentDriftMetrics(BaseModel):
    """
    Output of the Segment Drift Analyzer.
    """
    heatmap: List[SegmentMetric] = Field(
        ...,
        description="Every observed (key, value) group"
    )
    worstSegments: List[SegmentMetric] = Field(
        ...,
        description="Top 10 groups by ECE, descending"
    )
    alerts: List[Alert] = Field(default_factory=list)


# =============================================================================
# Feature Drift
# =============================================================================


class FeatureStat(BaseModel):
    """
    Recent-vs-older comparison of one numeric feature.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "feature": "vorp",
                "currentMean": 0.4215,
                "currentStd": 0.8112,
                "previousMean": 0.4021,
                "previousStd": 0.7954,
                "psi": 0.0123,
                "zDrift": 0.0241,
                "drifted": False
            }
        }
    )

    feature: str = Field(..., description="Canonical feature name")
    currentMean: float
    currentStd: float
    previousMean: float
    previousStd: float
    psi: float = Field(..., description="Population Stability Index")
    zDrift: float = Field(..., description="Standardized mean shift")
    drifted: bool = Field(..., description="PSI > 0.25 or |zDrift| > 3")


class FeatureDriftMetrics(BaseModel):
    """
    Output of the Feature Drift Analyzer.
    """
    features: List[FeatureStat]
    alerts: List[Alert] = Field(default_factory=list)


# =============================================================================
# Ranking Quality
# =============================================================================


class TopKHitRate(BaseModel):
    k: int = Field(..., description="Top-K slice size in percent")
    hitRate: float = Field(..., ge=0.0, le=1.0)
    count: int = Field(..., ge=0, description="Records in the slice")


class LiftChartPoint(BaseModel):
    decile: int = Field(..., ge=1, le=10, description="1 = highest predicted")
    lift: float = Field(..., ge=0.0)
    baseRate: float = Field(..., ge=0.0, le=1.0)
    decileRate: float = Field(..., ge=0.0, le=1.0)


class RankingMetrics(BaseModel):
    """
    Output of the Ranking Quality Analyzer.

    `auc` is None when either class has fewer than 30 samples; `liftChart` is
    empty below 10 records.
    """
    auc: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Rank-based AUC, None when not computed"
    )
    topKHitRates: List[TopKHitRate] = Field(default_factory=list)
    liftChart: List[LiftChartPoint] = Field(default_factory=list)
    totalPaired: int = Field(..., ge=0)
    alerts: List[Alert] = Field(default_factory=list)


# =============================================================================
# Narrative Integrity
# =============================================================================


class DailyFailureRate(BaseModel):
    date: DateType = Field(..., description="UTC calendar date")
    rate: float = Field(..., ge=0.0, le=1.0)
    count: int = Field(..., ge=0, description="Validations on that date")


class NarrativeMetrics(BaseModel):
    """
    Output of the Narrative Integrity Analyzer.

    Category rates are divided by the total validation count, not by the
    failure count.
    """
    totalValidations: int = Field(..., ge=0)
    failureRate: float = Field(..., ge=0.0, le=1.0)
    incompleteDriverSetRate: float = Field(..., ge=0.0)
    illegalNumberRate: float = Field(..., ge=0.0)
    invalidDriverRate: float = Field(..., ge=0.0)
    bannedPatternRate: float = Field(..., ge=0.0)
    dailyFailureRates: List[DailyFailureRate] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)


# =============================================================================
# Dashboard
# =============================================================================


class DateRange(BaseModel):
    """
    Calendar span of an analysis window, serialized as {"from": ..., "to": ...}.
    """
    model_config = ConfigDict(populate_by_name=True)

    from_: DateType = Field(..., alias='from')
    to: DateType


class DashboardFilters(BaseModel):
    """
    Optional filters for the filtered dashboard.
    """
    mode: Optional[str] = Field(
        default=None,
        description="Exact generation mode to keep"
    )
    segment: Optional[str] = Field(
        default=None,
        description="Named segment token: sf, 1qb, dynasty, redraft, tep, ppr"
    )

    @property
    def is_empty(self) -> bool:
        return not self.mode and not self.segment


class DashboardMetrics(BaseModel):
    """
    Aggregate of all five analyzer outputs for one window.
    """
    calibration: CalibrationHealthMetrics
    segmentDrift: SegmentDriftMetrics
    featureDrift: FeatureDriftMetrics
    ranking: RankingMetrics
    narrative: NarrativeMetrics
    dateRange: DateRange
    generatedAt: datetime


class SummaryCard(BaseModel):
    """
    Compact status for one metric family, derived from computed metrics only.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "calibration",
                "label": "Calibration",
                "status": "watch",
                "detail": "ECE: 9.1% | Brier: 0.187"
            }
        }
    )

    id: str
    label: str
    status: CardStatus
    detail: str


class DashboardSummaryResponse(BaseModel):
    """
    Dashboard plus its summary cards, as served to the admin UI.
    """
    dashboard: DashboardMetrics
    cards: List[SummaryCard]


# =============================================================================
# Drill-down
# =============================================================================


class NarrativeDriver(BaseModel):
    """
    One narrative driver stored with an offer.
    """
    id: str = ''
    direction: str = ''
    strength: str = ''
    value: float = 0.0


class DrilldownOffer(BaseModel):
    """
    Raw offer shown for manual audit in a drill-down.
    """
    id: str
    acceptProb: Optional[float] = Field(
        default=None,
        description="Predicted probability, None when no prediction was stored"
    )
    accepted: Optional[bool] = Field(
        default=None,
        description="Observed outcome, None while unresolved"
    )
    mode: str
    isSuperFlex: Optional[bool] = None
    leagueFormat: Optional[str] = None
    scoringType: Optional[str] = None
    drivers: List[NarrativeDriver] = Field(
        default_factory=list,
        description="First five stored narrative drivers"
    )
    createdAt: datetime


class DrilldownData(BaseModel):
    """
    Metrics and a bounded raw-offer sample scoped to one segment value.
    """
    segmentKey: SegmentKey
    segmentValue: str
    reliabilityCurve: List[CalibrationBucket]
    ece: float = Field(..., ge=0.0)
    featureDrift: List[FeatureStat]
    sampleOffers: List[DrilldownOffer] = Field(
        default_factory=list,
        description="Up to 20 most recent offers in the segment"
    )
    sampleSize: int = Field(..., ge=0, description="Paired records in the segment")
