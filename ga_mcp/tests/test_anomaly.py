"""
Test suite for trailing-window anomaly detection.

The tests verify:
1. A flat series is never flagged, at any threshold
2. A spike after a flat baseline is flagged, with an undefined z-score
3. Drops on a noisy baseline are flagged with a finite negative z-score
4. The baseline never includes the evaluated point (no look-ahead)
5. Parameter validation
"""

from typing import Callable, List

import numpy as np
import pytest

from ga_mcp.models.enums import AnomalyDirection
from ga_mcp.models.schemas import TimeSeriesPoint
from ga_mcp.services.anomaly import baseline_stats, detect_anomalies, z_score


class TestBaselineStats:

    def test_sample_standard_deviation(self) -> None:
        values = [4.0, 8.0, 6.0, 2.0]
        mean_val, std_val = baseline_stats(values)
        assert mean_val == pytest.approx(5.0)
        assert std_val == pytest.approx(float(np.std(values, ddof=1)))

    def test_flat_window_has_zero_std(self) -> None:
        assert baseline_stats([10, 10, 10]) == (10.0, 0.0)

    def test_single_point_window(self) -> None:
        assert baseline_stats([3]) == (3.0, 0.0)

    def test_z_score_undefined_for_zero_std(self) -> None:
        assert z_score(12.0, 10.0, 0.0) is None
        assert z_score(12.0, 10.0, 1.0) == pytest.approx(2.0)


class TestDetectAnomalies:
    """Tests for detect_anomalies()."""

    @pytest.mark.parametrize("threshold", [0.1, 2.5, 10.0])
    def test_flat_series_never_flagged(self, flat_series: List[TimeSeriesPoint], threshold: float) -> None:
        assert detect_anomalies(flat_series, "sessions", 7, threshold) == []

    def test_spike_after_flat_baseline(self, spike_series: List[TimeSeriesPoint]) -> None:
        anomalies = detect_anomalies(spike_series, "sessions", window_days=7, z_threshold=2.5)

        assert len(anomalies) == 1
        [record] = anomalies
        assert record.date == "2025-01-08"
        assert record.metric == "sessions"
        assert record.value == 100
        assert record.baselineMean == pytest.approx(10.0)
        assert record.baselineStd == 0.0
        assert record.zScore is None
        assert record.direction == AnomalyDirection.SPIKE

    def test_drop_on_noisy_baseline(self, noisy_series: List[TimeSeriesPoint]) -> None:
        anomalies = detect_anomalies(noisy_series, "sessions", window_days=7, z_threshold=2.5)

        assert [a.date for a in anomalies] == ["2025-01-09"]
        record = anomalies[0]
        assert record.direction == AnomalyDirection.DROP
        assert record.zScore is not None and record.zScore < -2.5

    def test_threshold_boundary_is_inclusive(self, series_factory: Callable[..., List[TimeSeriesPoint]]) -> None:
        # Baseline [0, 2]: mean 1, sample std sqrt(2); 1 + 2*sqrt(2) is exactly z = 2.
        value = 1 + 2 * float(np.sqrt(2))
        series = series_factory([0, 2, value])

        assert len(detect_anomalies(series, "sessions", window_days=2, z_threshold=2.0)) == 1
        assert detect_anomalies(series, "sessions", window_days=2, z_threshold=2.01) == []

    def test_no_look_ahead(self, series_factory: Callable[..., List[TimeSeriesPoint]]) -> None:
        """Later values never influence an earlier point's baseline."""
        base = [100, 102, 98, 101, 99, 100, 103]
        quiet = detect_anomalies(series_factory(base + [101]), "sessions", 7, 2.5)
        followed_by_spike = detect_anomalies(series_factory(base + [101, 5000]), "sessions", 7, 2.5)

        assert quiet == []
        assert [a.date for a in followed_by_spike] == ["2025-01-09"]

    def test_first_window_not_evaluated(self, series_factory: Callable[..., List[TimeSeriesPoint]]) -> None:
        series = series_factory([1, 1000, 1, 1000, 1])
        assert detect_anomalies(series, "sessions", window_days=5, z_threshold=1.0) == []

    def test_series_shorter_than_window(self, series_factory: Callable[..., List[TimeSeriesPoint]]) -> None:
        assert detect_anomalies(series_factory([1, 2, 3]), "sessions", window_days=7) == []

    def test_window_of_one_flags_any_change(self, series_factory: Callable[..., List[TimeSeriesPoint]]) -> None:
        anomalies = detect_anomalies(series_factory([5, 5, 6, 4]), "sessions", window_days=1, z_threshold=2.5)

        assert [(a.date, a.direction) for a in anomalies] == [
            ("2025-01-03", AnomalyDirection.SPIKE),
            ("2025-01-04", AnomalyDirection.DROP),
        ]

    @pytest.mark.parametrize("window_days, threshold", [(0, 2.5), (7, 0), (7, -1)])
    def test_invalid_parameters(self, spike_series: List[TimeSeriesPoint], window_days: int, threshold: float) -> None:
        with pytest.raises(ValueError):
            detect_anomalies(spike_series, "sessions", window_days, threshold)
