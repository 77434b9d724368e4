"""
Trailing-Window Anomaly Detection Service.

Flags days whose value deviates from the trailing baseline by at least a
caller-supplied number of standard deviations.

Algorithm Overview:
    For each index i from window_days to len(series) - 1:
        1. Baseline = the window_days points strictly before i (no look-ahead)
        2. mean = arithmetic mean of the baseline
        3. std = sample standard deviation (ddof=1); 0 for a one-point or
           flat baseline
        4. z = (value_i - mean) / std, undefined (None) when std == 0
        5. Anomaly iff |z| >= z_threshold
           direction = spike if z > 0 else drop

Flat Baselines:
    With std == 0 the z-score is undefined and is reported as None. A point
    equal to a flat baseline is never flagged, whatever the threshold, so an
    all-equal series produces no anomalies. A point that departs from a flat
    baseline is an unbounded deviation: it is flagged with zScore None and
    its direction taken from the sign of (value - mean).

    The first window_days points are never evaluated: they have no complete
    baseline.

Key Outputs (AnomalyRecord):
    - date, metric, value
    - baselineMean, baselineStd
    - zScore, direction

Dependencies:
    - numpy: mean and sample std over the baseline window

Usage:
    from ga_mcp.services.anomaly import detect_anomalies

    anomalies = detect_anomalies(series, metric="sessions", window_days=7, z_threshold=2.5)
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from ga_mcp.models.enums import AnomalyDirection
from ga_mcp.models.schemas import AnomalyRecord, TimeSeriesPoint


# =============================================================================
# Constants
# =============================================================================

DEFAULT_WINDOW_DAYS: int = 7

DEFAULT_Z_THRESHOLD: float = 2.5


# =============================================================================
# Baseline Statistics
# =============================================================================


def baseline_stats(window: Sequence[float]) -> Tuple[float, float]:
    """
    Mean and sample standard deviation of a baseline window.

    Args:
        window: Baseline values, oldest first.

    Returns:
        Tuple of (mean, std). std is 0.0 when the window has fewer than two
        points or all its values are equal.

    Example:
        >>> baseline_stats([10, 10, 10])
        (10.0, 0.0)
        >>> baseline_stats([1, 2, 3])
        (2.0, 1.0)
    """
    if len(window) == 0:
        return (0.0, 0.0)

    values = np.asarray(window, dtype=np.float64)
    mean_val = float(np.mean(values))

    if len(values) < 2 or np.all(values == values[0]):
        return (mean_val, 0.0)

    return (mean_val, float(np.std(values, ddof=1)))


def z_score(value: float, mean_val: float, std_val: float) -> Optional[float]:
    """Z-score of value against (mean, std); None when std is 0."""
    if std_val == 0:
        return None
    return (value - mean_val) / std_val


# =============================================================================
# Detection
# =============================================================================


def detect_anomalies(
    series: Sequence[TimeSeriesPoint],
    metric: str,
    window_days: int = DEFAULT_WINDOW_DAYS,
    z_threshold: float = DEFAULT_Z_THRESHOLD,
) -> List[AnomalyRecord]:
    """
    Scan a daily series for spikes and drops.

    Args:
        series: Points ordered ascending by date. Duplicate dates are not
            deduplicated.
        metric: Metric name recorded on each AnomalyRecord.
        window_days: Baseline length. Must be >= 1.
        z_threshold: Minimum |z| for a point to be flagged. Must be > 0.

    Returns:
        AnomalyRecords in series order.

    Raises:
        ValueError: If window_days < 1 or z_threshold <= 0.

    Example:
        >>> points = [TimeSeriesPoint(date=f"2025-01-0{i + 1}", value=v)
        ...           for i, v in enumerate([10] * 7 + [100])]
        >>> [a.direction.value for a in detect_anomalies(points, "sessions", 7, 2.5)]
        ['spike']
    """
    if window_days < 1:
        raise ValueError(f"window_days must be >= 1, got {window_days}")
    if z_threshold <= 0:
        raise ValueError(f"z_threshold must be > 0, got {z_threshold}")

    values = [float(point.value) for point in series]
    anomalies: List[AnomalyRecord] = []

    for i in range(window_days, len(values)):
        window = values[i - window_days:i]
        mean_val, std_val = baseline_stats(window)
        z = z_score(values[i], mean_val, std_val)

        if z is None:
            # Flat baseline: any departure from the constant is unbounded.
            if values[i] == window[0]:
                continue
            spike = values[i] > mean_val
        elif abs(z) < z_threshold:
            continue
        else:
            spike = z > 0

        anomalies.append(AnomalyRecord(
            date=series[i].date,
            metric=metric,
            value=values[i],
            baselineMean=mean_val,
            baselineStd=std_val,
            zScore=z,
            direction=AnomalyDirection.SPIKE if spike else AnomalyDirection.DROP,
        ))

    return anomalies
