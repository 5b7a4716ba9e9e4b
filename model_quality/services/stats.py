"""
Shared numeric helpers for the model quality analyzers.

Covers the fixed 10-bucket probability scheme used by both the reliability
curve and the prediction-mass histogram, plus the small summary statistics
(mean, sample standard deviation) the drift analyzer relies on.

All helpers are pure and accept plain Python sequences; numpy is used for the
arithmetic.
"""

import math
from typing import List, Sequence

import numpy as np


# =============================================================================
# Constants
# =============================================================================

# Ten buckets of width 0.1 partition [0, 1]
BUCKET_COUNT: int = 10

# Output precision for rates and scores
METRIC_PRECISION: int = 4


# =============================================================================
# Probability Buckets
# =============================================================================


def bucket_index(probability: float, bucket_count: int = BUCKET_COUNT) -> int:
    """
    Map a probability to its bucket index.

    floor(p * bucket_count) clamped to [0, bucket_count - 1], so p == 1.0
    lands in the last bucket and the buckets cover [0, 1] without gap or
    overlap.

    Example:
        >>> bucket_index(0.0), bucket_index(0.55), bucket_index(1.0)
        (0, 5, 9)
    """
    if probability >= 1.0:
        return bucket_count - 1
    if probability <= 0.0:
        return 0
    return min(int(math.floor(probability * bucket_count)), bucket_count - 1)


def bucket_label(index: int, bucket_count: int = BUCKET_COUNT) -> str:
    """Display label of a bucket, e.g. '60-70%'."""
    width = 100 // bucket_count
    return f"{index * width}-{(index + 1) * width}%"


def bucket_bounds(index: int, bucket_count: int = BUCKET_COUNT) -> tuple:
    """(rangeMin, rangeMax) of a bucket."""
    return (
        round(index / bucket_count, METRIC_PRECISION),
        round((index + 1) / bucket_count, METRIC_PRECISION),
    )


def bucket_counts(probabilities: Sequence[float], bucket_count: int = BUCKET_COUNT) -> List[int]:
    """Count probabilities per bucket; the counts always sum to len(probabilities)."""
    counts = [0] * bucket_count
    for probability in probabilities:
        counts[bucket_index(probability, bucket_count)] += 1
    return counts


# =============================================================================
# Summary Statistics
# =============================================================================


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def sample_std(values: Sequence[float]) -> float:
    """
    Sample standard deviation (n - 1 denominator).

    Returns 0.0 when fewer than two values are available.
    """
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=1))


def round_metric(value: float, precision: int = METRIC_PRECISION) -> float:
    """Round an output metric to strip floating-point noise."""
    return round(float(value), precision)


def safe_rate(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero."""
    if denominator == 0:
        return 0.0
    return numerator / denominator
