"""
Calibration Analyzer Service.

Measures how well the trade-acceptance predictor's probabilities match the
acceptance rates actually observed.

Algorithm Overview:
    Paired records are assigned to 10 fixed-width buckets by predicted
    probability (floor(p * 10), clamped so p == 1.0 lands in the last bucket).
    Per bucket the reliability curve reports the mean prediction (the bucket
    midpoint when empty), the observed acceptance rate (0 when empty) and the
    count.

    ECE   = sum_b (count_b / N) * |observedRate_b - predictedMean_b|
    Brier = mean((p - y)^2), y in {0, 1}

    Both are 0 for an empty set. The prediction-mass histogram applies the
    same bucketing to every issued prediction, resolved or not, and so
    describes the predictor's output shape rather than its accuracy.

Alerts:
    ECE >= 0.12 critical, ECE >= 0.08 warning, plus a warning when the top or
    bottom bucket holds more than 30% of issued predictions
    (see model_quality.services.alerts).

Usage:
    from model_quality.services.calibration import analyze_calibration

    metrics = analyze_calibration(paired_records, issued_probabilities)
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np

from model_quality.models.schemas import (
    CalibrationBucket,
    CalibrationHealthMetrics,
    PairedRecord,
    PredictionMassBucket,
)
from model_quality.services.alerts import calibration_alerts
from model_quality.services.stats import (
    BUCKET_COUNT,
    bucket_bounds,
    bucket_counts,
    bucket_index,
    bucket_label,
    round_metric,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Bucket Accumulation
# =============================================================================


def _accumulate_buckets(records: Sequence[PairedRecord]) -> List[Tuple[int, float, float]]:
    """Per-bucket (count, sum of predictions, sum of outcomes)."""
    counts = np.zeros(BUCKET_COUNT, dtype=int)
    sum_p = np.zeros(BUCKET_COUNT, dtype=float)
    sum_y = np.zeros(BUCKET_COUNT, dtype=float)

    for record in records:
        index = bucket_index(record.predictedProbability)
        counts[index] += 1
        sum_p[index] += record.predictedProbability
        sum_y[index] += 1.0 if record.observedOutcome else 0.0

    return [(int(counts[i]), float(sum_p[i]), float(sum_y[i])) for i in range(BUCKET_COUNT)]


def _bucket_rates(count: int, sum_p: float, sum_y: float, index: int) -> Tuple[float, float]:
    """(predictedMean, observedRate) of one bucket with the empty-bucket fallbacks."""
    if count == 0:
        range_min, range_max = bucket_bounds(index)
        return (range_min + range_max) / 2, 0.0
    return sum_p / count, sum_y / count


# =============================================================================
# Metrics
# =============================================================================


def compute_reliability_curve(records: Sequence[PairedRecord]) -> List[CalibrationBucket]:
    """
    Build the 10-bucket reliability curve.

    Bucket counts always sum to len(records).
    """
    curve: List[CalibrationBucket] = []
    for index, (count, sum_p, sum_y) in enumerate(_accumulate_buckets(records)):
        predicted, observed = _bucket_rates(count, sum_p, sum_y, index)
        range_min, range_max = bucket_bounds(index)
        curve.append(CalibrationBucket(
            rangeMin=range_min,
            rangeMax=range_max,
            label=bucket_label(index),
            predictedMean=round_metric(predicted),
            observedRate=round_metric(observed),
            count=count,
        ))
    return curve


def compute_ece(records: Sequence[PairedRecord]) -> float:
    """
    Expected Calibration Error, rounded to 4 decimal places.

    Computed from unrounded bucket rates; 0.0 for an empty set.
    """
    total = len(records)
    if total == 0:
        return 0.0

    ece = 0.0
    for index, (count, sum_p, sum_y) in enumerate(_accumulate_buckets(records)):
        if count == 0:
            continue
        predicted, observed = _bucket_rates(count, sum_p, sum_y, index)
        ece += (count / total) * abs(observed - predicted)

    return round_metric(ece)


def compute_brier_score(records: Sequence[PairedRecord]) -> float:
    """Mean squared error between prediction and binary outcome; 0.0 when empty."""
    if len(records) == 0:
        return 0.0

    predictions = np.array([r.predictedProbability for r in records], dtype=float)
    outcomes = np.array([1.0 if r.observedOutcome else 0.0 for r in records], dtype=float)

    return round_metric(np.mean((predictions - outcomes) ** 2))


def compute_prediction_distribution(probabilities: Sequence[float]) -> List[PredictionMassBucket]:
    """Prediction-mass histogram over issued probabilities."""
    return [
        PredictionMassBucket(bucket=bucket_label(index), count=count)
        for index, count in enumerate(bucket_counts(probabilities))
    ]


# =============================================================================
# Analyzer Entry Point
# =============================================================================


def analyze_calibration(
    records: Sequence[PairedRecord],
    issued_probabilities: Sequence[float],
    min_samples: int = 0,
) -> CalibrationHealthMetrics:
    """
    Run the Calibration Analyzer over one paired-record population.

    Args:
        records: Paired prediction/outcome records.
        issued_probabilities: acceptProb of every prediction issued in the
            same window, resolved or not.
        min_samples: Paired records required before ECE alerts are raised;
            the filtered dashboard passes FILTERED_ECE_MIN_SAMPLES.

    Returns:
        CalibrationHealthMetrics with curve, ECE, Brier score, prediction-mass
        histogram and alerts. An empty population yields ece == 0,
        brierScore == 0 and no ECE alert.
    """
    ece = compute_ece(records)
    mass_counts = bucket_counts(issued_probabilities)

    metrics = CalibrationHealthMetrics(
        reliabilityCurve=compute_reliability_curve(records),
        ece=ece,
        brierScore=compute_brier_score(records),
        predictionDistribution=compute_prediction_distribution(issued_probabilities),
        totalPaired=len(records),
        alerts=calibration_alerts(ece, mass_counts, len(records), min_samples),
    )

    logger.info(
        f"Calibration: {metrics.totalPaired} paired, ECE={metrics.ece:.4f}, "
        f"Brier={metrics.brierScore:.4f}, {len(metrics.alerts)} alerts"
    )

    return metrics
