"""
Feature Drift Analyzer Service.

Compares the distribution of each named model input feature in the recent
half of the analysis window against the older half.

Algorithm Overview:
    The window [now - daysBack, now) is split at now - daysBack // 2 days.
    Records created at or after the split form the "current" sample, records
    between the window start and the split form the "previous" sample.

    Per feature:
        currentMean/currentStd, previousMean/previousStd
            sample standard deviation (n - 1), 0 below two values
        PSI = sum_i (a_i - e_i) * ln(a_i / e_i)
            over 8 bins with edges [-2, -1.5, -1, -0.5, 0, 0.5, 1, 1.5, 2];
            values outside the range clamp to the nearest edge, the last bin
            is closed on the right, and each relative frequency is floored at
            1e-6. PSI is 0 when either sample is empty.
        zDrift = |currentMean - previousMean| / pooledStd
            pooledStd = sqrt((currentStd^2 + previousStd^2) / 2), replaced by
            1 when it is 0 so constant features never produce infinite drift

    A feature is drifted when PSI > 0.25 or |zDrift| > 3, critical when
    PSI > 0.5 or |zDrift| > 5.

Feature Extraction:
    Each feature has two accepted spellings in the stored feature blob, tried
    in order. Zero is a valid value. A missing, null, boolean or non-numeric
    value falls through to the next spelling; a feature with no usable
    spelling is absent for that record and excluded from its statistics.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from model_quality.models.schemas import (
    FeatureDriftMetrics,
    FeatureStat,
    OfferFeatureSnapshot,
    PairedRecord,
)
from model_quality.services.alerts import feature_drift_alert, feature_is_drifted
from model_quality.services.stats import mean, round_metric, sample_std

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Canonical feature name -> accepted blob keys, in resolution order
FEATURE_KEYS: Dict[str, Tuple[str, ...]] = {
    'lineupImpact': ('lineupImpactScore', 'lineupImpact'),
    'vorp': ('vorpScore', 'vorp'),
    'market': ('marketScore', 'market'),
    'behavior': ('behaviorScore', 'behavior'),
}

PSI_BIN_EDGES: Tuple[float, ...] = (-2.0, -1.5, -1.0, -0.5, 0.0, 0.5, 1.0, 1.5, 2.0)

# Floor applied to every relative bin frequency so log() stays finite
PSI_EPSILON: float = 1e-6

# Anything carrying featureSnapshot and createdAt
FeatureSource = Union[OfferFeatureSnapshot, PairedRecord]


# =============================================================================
# Extraction
# =============================================================================


def extract_feature(snapshot: Optional[Mapping[str, Any]], feature: str) -> Optional[float]:
    """
    Resolve one feature from a stored feature blob.

    Returns:
        The first usable numeric value among the feature's accepted keys, or
        None when no spelling carries one.

    Example:
        >>> extract_feature({'vorpScore': None, 'vorp': 0}, 'vorp')
        0.0
    """
    if not snapshot:
        return None

    for key in FEATURE_KEYS[feature]:
        value = snapshot.get(key)
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, (int, float)) and math.isfinite(value):
            return float(value)

    return None


def extract_values(records: Sequence[FeatureSource], feature: str) -> List[float]:
    """All present values of one feature across records."""
    values = []
    for record in records:
        value = extract_feature(record.featureSnapshot, feature)
        if value is not None:
            values.append(value)
    return values


# =============================================================================
# Window Split
# =============================================================================


def split_window(
    records: Sequence[FeatureSource],
    days_back: int,
    now: Optional[datetime] = None,
) -> Tuple[List[FeatureSource], List[FeatureSource]]:
    """
    Split records into (current, previous) halves of the window by createdAt.

    Records created before the window start belong to neither half.
    """
    now = now or datetime.now(timezone.utc)
    recent_cutoff = now - timedelta(days=days_back // 2)
    older_cutoff = now - timedelta(days=days_back)

    current: List[FeatureSource] = []
    previous: List[FeatureSource] = []
    for record in records:
        created = record.createdAt
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if created >= recent_cutoff:
            current.append(record)
        elif created >= older_cutoff:
            previous.append(record)

    return current, previous


# =============================================================================
# Drift Statistics
# =============================================================================


def compute_psi(
    current: Sequence[float],
    previous: Sequence[float],
    edges: Sequence[float] = PSI_BIN_EDGES,
) -> float:
    """
    Population Stability Index of current against previous.

    Returns 0.0 when either sample is empty and for identical samples.
    """
    if len(current) == 0 or len(previous) == 0:
        return 0.0

    bin_edges = np.asarray(edges, dtype=float)
    low, high = bin_edges[0], bin_edges[-1]

    # np.histogram closes the last bin on the right, matching the edge policy
    actual, _ = np.histogram(np.clip(np.asarray(current, dtype=float), low, high), bins=bin_edges)
    expected, _ = np.histogram(np.clip(np.asarray(previous, dtype=float), low, high), bins=bin_edges)

    actual_pct = np.maximum(actual / len(current), PSI_EPSILON)
    expected_pct = np.maximum(expected / len(previous), PSI_EPSILON)

    return float(np.sum((actual_pct - expected_pct) * np.log(actual_pct / expected_pct)))


def compute_z_drift(
    current_mean: float,
    current_std: float,
    previous_mean: float,
    previous_std: float,
) -> float:
    pooled_std = math.sqrt((current_std ** 2 + previous_std ** 2) / 2)
    if pooled_std == 0:
        pooled_std = 1.0
    return abs(current_mean - previous_mean) / pooled_std


def compute_feature_stat(
    feature: str,
    current_values: Sequence[float],
    previous_values: Sequence[float],
) -> FeatureStat:
    current_mean = mean(current_values)
    current_std = sample_std(current_values)
    previous_mean = mean(previous_values)
    previous_std = sample_std(previous_values)

    psi = round_metric(compute_psi(current_values, previous_values))
    z_drift = round_metric(compute_z_drift(current_mean, current_std, previous_mean, previous_std))

    return FeatureStat(
        feature=feature,
        currentMean=round_metric(current_mean),
        currentStd=round_metric(current_std),
        previousMean=round_metric(previous_mean),
        previousStd=round_metric(previous_std),
        psi=psi,
        zDrift=z_drift,
        drifted=feature_is_drifted(psi, z_drift),
    )


# =============================================================================
# Analyzer Entry Points
# =============================================================================


def compute_feature_stats(
    records: Sequence[FeatureSource],
    days_back: int,
    now: Optional[datetime] = None,
) -> List[FeatureStat]:
    """One FeatureStat per catalogued feature, in catalogue order."""
    current, previous = split_window(records, days_back, now)
    return [
        compute_feature_stat(
            feature,
            extract_values(current, feature),
            extract_values(previous, feature),
        )
        for feature in FEATURE_KEYS
    ]


def analyze_feature_drift(
    records: Sequence[FeatureSource],
    days_back: int,
    now: Optional[datetime] = None,
) -> FeatureDriftMetrics:
    """
    Run the Feature Drift Analyzer over one window of feature snapshots.

    Args:
        records: Offer feature snapshots (the dashboard passes every issued
            offer; a drill-down passes the segment's paired records).
        days_back: Window length in days; halves are split at days_back // 2.
        now: Window end; defaults to the current UTC time.
    """
    features = compute_feature_stats(records, days_back, now)

    alerts = []
    for stat in features:
        alert = feature_drift_alert(stat.feature, stat.psi, stat.zDrift)
        if alert is not None:
            alerts.append(alert)

    drifted = [stat.feature for stat in features if stat.drifted]
    if drifted:
        logger.info(f"Feature drift detected in: {', '.join(drifted)}")
    logger.info(f"Feature drift: {len(features)} features, {len(alerts)} alerts")

    return FeatureDriftMetrics(features=features, alerts=alerts)
