"""
Enumeration definitions for the Model Quality Monitor backend.

All enums inherit from both `str` and `Enum` so that Pydantic models serialize
them as their plain string values in API responses.
"""

from enum import Enum


class AlertSeverity(str, Enum):
    """
    Severity levels for monitoring alerts.

    - warning: Metric has crossed its watch threshold
    - critical: Metric has crossed its action threshold
    """
    WARNING = "warning"
    CRITICAL = "critical"


class CardStatus(str, Enum):
    """
    Traffic-light status of a dashboard summary card.

    - good: No alert threshold crossed
    - watch: Warning threshold crossed
    - critical: Critical threshold crossed
    """
    GOOD = "good"
    WATCH = "watch"
    CRITICAL = "critical"


class TradeOutcome(str, Enum):
    """
    Resolution of a trade offer.

    Only these two outcomes pair an offer with an observed label; any other
    resolution state (expired, withdrawn, countered) is ignored.
    """
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class QueueFormat(str, Enum):
    """
    Binary roster format of the league an offer was generated for.

    An offer with an unknown superflex flag is grouped with 1QB.
    """
    SUPERFLEX = "SuperFlex"
    ONE_QB = "1QB"


class SegmentKey(str, Enum):
    """
    Categorical keys the population is sliced by for segment drift.

    The values are the names used in heatmap entries, drill-down requests and
    alert metric names.
    """
    FORMAT = "format"
    LEAGUE_FORMAT = "leagueFormat"
    SCORING_TYPE = "scoringType"
    MODE = "mode"


class SegmentFilterToken(str, Enum):
    """
    Named segment tokens accepted by the filtered dashboard.

    - sf / 1qb: queue format
    - dynasty / redraft: league format
    - tep / ppr: scoring type (tep also matches TE_PREMIUM)
    """
    SF = "sf"
    ONE_QB = "1qb"
    DYNASTY = "dynasty"
    REDRAFT = "redraft"
    TEP = "tep"
    PPR = "ppr"


class MetricFamily(str, Enum):
    """
    Top-level metric families, one summary card each.
    """
    CALIBRATION = "calibration"
    WORST_SEGMENT = "worstSegment"
    FEATURE_DRIFT = "featureDrift"
    RANKING = "ranking"
    NARRATIVE = "narrative"
