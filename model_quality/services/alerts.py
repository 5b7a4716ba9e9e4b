"""
Alert policy shared by every model quality analyzer.

Each analyzer embeds its threshold rules by calling into this module, and the
summary cards reuse the same predicates, so a metric family's card status can
never disagree with the alerts its analyzer emitted.

Thresholds are module constants rather than settings: the metrics and alerts
computed for a given window never depend on deployment configuration.

Threshold Summary:
    Calibration:  ECE >= 0.12 critical, >= 0.08 warning; a top or bottom
                  bucket holding > 30% of issued predictions warns
                  (a filtered population below 50 paired records raises
                  no ECE alert)
    Segment:      ECE > 0.15 with >= 200 samples is critical
    Feature:      drifted when PSI > 0.25 or |z| > 3; critical when
                  PSI > 0.5 or |z| > 5
    Ranking:      AUC < 0.62 with >= 50 paired samples is critical
    Narrative:    failure rate >= 0.03 critical, >= 0.01 warning

Every rule compares the rounded metric that is reported to the consumer.
"""

from typing import List, Optional, Sequence

from model_quality.models.enums import AlertSeverity
from model_quality.models.schemas import Alert


# =============================================================================
# Threshold Constants
# =============================================================================

# Calibration (Expected Calibration Error)
ECE_WARNING_THRESHOLD: float = 0.08
ECE_CRITICAL_THRESHOLD: float = 0.12

# Minimum paired records before a filtered population raises ECE alerts
FILTERED_ECE_MIN_SAMPLES: int = 50

# Share of issued predictions allowed in the extreme buckets
BUCKET_MASS_THRESHOLD: float = 0.3

# Segment drift
SEGMENT_ECE_THRESHOLD: float = 0.15
SEGMENT_MIN_SAMPLES: int = 200
SEGMENT_WATCH_ECE: float = 0.10

# Feature drift
PSI_DRIFT_THRESHOLD: float = 0.25
PSI_CRITICAL_THRESHOLD: float = 0.5
Z_DRIFT_THRESHOLD: float = 3.0
Z_CRITICAL_THRESHOLD: float = 5.0

# Ranking quality
AUC_THRESHOLD: float = 0.62
AUC_MIN_SAMPLES: int = 50
AUC_MIN_CLASS_SIZE: int = 30
LIFT_MIN_RECORDS: int = 10

# Narrative integrity
NARRATIVE_WARNING_RATE: float = 0.01
NARRATIVE_CRITICAL_RATE: float = 0.03


# =============================================================================
# Construction
# =============================================================================


def build_alert(
    severity: AlertSeverity,
    message: str,
    metric: str,
    value: float,
    threshold: float,
) -> Alert:
    return Alert(
        severity=severity,
        message=message,
        metric=metric,
        value=value,
        threshold=threshold,
    )


# =============================================================================
# Calibration
# =============================================================================


def calibration_severity(ece: float) -> Optional[AlertSeverity]:
    """Severity of a window-level ECE, or None when healthy."""
    if ece >= ECE_CRITICAL_THRESHOLD:
        return AlertSeverity.CRITICAL
    if ece >= ECE_WARNING_THRESHOLD:
        return AlertSeverity.WARNING
    return None


def calibration_alerts(
    ece: float,
    mass_counts: Sequence[int],
    sample_count: int = 0,
    min_samples: int = 0,
) -> List[Alert]:
    """
    Alerts for ECE and for predictor output concentrated in an extreme bucket.

    Args:
        ece: Rounded Expected Calibration Error of the paired set.
        mass_counts: Prediction-mass bucket counts over all issued predictions.
        sample_count: Paired records the ECE was computed from.
        min_samples: ECE alerts are suppressed below this many paired
            records. 0 (the full window) never suppresses.

    Returns:
        Zero, one or more alerts. Bucket-mass alerts are never sample-gated.
    """
    alerts: List[Alert] = []

    severity = calibration_severity(ece) if sample_count >= min_samples else None
    if severity == AlertSeverity.CRITICAL:
        alerts.append(build_alert(
            AlertSeverity.CRITICAL,
            f"ECE {ece:.4f} exceeds critical threshold {ECE_CRITICAL_THRESHOLD}",
            'ece', ece, ECE_CRITICAL_THRESHOLD,
        ))
    elif severity == AlertSeverity.WARNING:
        alerts.append(build_alert(
            AlertSeverity.WARNING,
            f"ECE {ece:.4f} exceeds warning threshold {ECE_WARNING_THRESHOLD}",
            'ece', ece, ECE_WARNING_THRESHOLD,
        ))

    total = sum(mass_counts)
    if total > 0:
        high_share = round(mass_counts[-1] / total, 4)
        low_share = round(mass_counts[0] / total, 4)
        if high_share > BUCKET_MASS_THRESHOLD:
            alerts.append(build_alert(
                AlertSeverity.WARNING,
                "Over 30% of predictions in 90-100% bucket: possible overconfidence",
                'highBucketPct', high_share, BUCKET_MASS_THRESHOLD,
            ))
        if low_share > BUCKET_MASS_THRESHOLD:
            alerts.append(build_alert(
                AlertSeverity.WARNING,
                "Over 30% of predictions in 0-10% bucket: possible underconfidence",
                'lowBucketPct', low_share, BUCKET_MASS_THRESHOLD,
            ))

    return alerts


# =============================================================================
# Segment Drift
# =============================================================================


def segment_is_critical(ece: float, count: int) -> bool:
    """Segments below the sample gate never alert, whatever their ECE."""
    return ece > SEGMENT_ECE_THRESHOLD and count >= SEGMENT_MIN_SAMPLES


def segment_alert(segment_key: str, segment_value: str, ece: float, count: int) -> Optional[Alert]:
    if not segment_is_critical(ece, count):
        return None
    return build_alert(
        AlertSeverity.CRITICAL,
        f"Segment {segment_key}={segment_value} has ECE {ece:.3f} with {count} samples",
        f"segment_ece_{segment_key}_{segment_value}",
        ece,
        SEGMENT_ECE_THRESHOLD,
    )


# =============================================================================
# Feature Drift
# =============================================================================


def feature_is_drifted(psi: float, z_drift: float) -> bool:
    return psi > PSI_DRIFT_THRESHOLD or abs(z_drift) > Z_DRIFT_THRESHOLD


def feature_drift_severity(psi: float, z_drift: float) -> AlertSeverity:
    """Severity of an already-drifted feature."""
    if psi > PSI_CRITICAL_THRESHOLD or abs(z_drift) > Z_CRITICAL_THRESHOLD:
        return AlertSeverity.CRITICAL
    return AlertSeverity.WARNING


def feature_drift_alert(feature: str, psi: float, z_drift: float) -> Optional[Alert]:
    if not feature_is_drifted(psi, z_drift):
        return None
    return build_alert(
        feature_drift_severity(psi, z_drift),
        f"Feature {feature} shows drift: PSI={psi:.3f}, z={z_drift:.2f}",
        f"feature_drift_{feature}",
        psi,
        PSI_DRIFT_THRESHOLD,
    )


# =============================================================================
# Ranking Quality
# =============================================================================


def ranking_is_critical(auc: Optional[float], total_paired: int) -> bool:
    return auc is not None and total_paired >= AUC_MIN_SAMPLES and auc < AUC_THRESHOLD


def ranking_alert(auc: Optional[float], total_paired: int) -> Optional[Alert]:
    if not ranking_is_critical(auc, total_paired):
        return None
    return build_alert(
        AlertSeverity.CRITICAL,
        f"AUC dropped to {auc:.3f}",
        'auc',
        auc,
        AUC_THRESHOLD,
    )


# =============================================================================
# Narrative Integrity
# =============================================================================


def narrative_severity(failure_rate: float) -> Optional[AlertSeverity]:
    if failure_rate >= NARRATIVE_CRITICAL_RATE:
        return AlertSeverity.CRITICAL
    if failure_rate >= NARRATIVE_WARNING_RATE:
        return AlertSeverity.WARNING
    return None


def narrative_alerts(failure_rate: float) -> List[Alert]:
    severity = narrative_severity(failure_rate)
    if severity == AlertSeverity.CRITICAL:
        return [build_alert(
            AlertSeverity.CRITICAL,
            f"Narrative failure rate {failure_rate * 100:.1f}% exceeds 3%: "
            f"consider falling back to template-based narratives",
            'failureRate', failure_rate, NARRATIVE_CRITICAL_RATE,
        )]
    if severity == AlertSeverity.WARNING:
        return [build_alert(
            AlertSeverity.WARNING,
            f"Narrative failure rate {failure_rate * 100:.1f}% exceeds 1%",
            'failureRate', failure_rate, NARRATIVE_WARNING_RATE,
        )]
    return []
