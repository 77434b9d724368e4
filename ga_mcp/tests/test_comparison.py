"""
Test suite for the Comparison Merger.

The tests verify:
1. Deltas and percent changes per metric
2. The zero guard: pctChange is None whenever the previous value is 0
3. Groups missing from the previous period compare against 0
4. Ordering by the primary metric, descending, with ties in input order
5. Both periods are fetched with the same report shape
6. The comparison period is not cut to the current top-N
"""

from typing import Any, Callable, Dict
from unittest.mock import AsyncMock

import pytest

from ga_mcp.models.schemas import DateRange, ReportRequest
from ga_mcp.services.comparison import (
    PREVIOUS_PERIOD_ROW_LIMIT,
    TOTAL_KEY,
    fetch_both_periods,
    merge_periods,
    safe_pct_change,
)


class TestSafePctChange:

    def test_regular_change(self) -> None:
        assert safe_pct_change(120, 100) == pytest.approx(0.2)

    def test_decline(self) -> None:
        assert safe_pct_change(50, 100) == pytest.approx(-0.5)

    def test_zero_previous_is_none(self) -> None:
        assert safe_pct_change(5, 0) is None
        assert safe_pct_change(0, 0) is None


class TestMergePeriods:
    """Tests for merge_periods()."""

    def test_delta_and_pct_change(self) -> None:
        current = [{"channel": "Direct", "sessions": 120, "activeUsers": 90}]
        previous = [{"channel": "Direct", "sessions": 100, "activeUsers": 0}]

        [row] = merge_periods(current, previous, "channel")

        assert row.key == "Direct"
        assert row.current == {"sessions": 120, "activeUsers": 90}
        assert row.previous == {"sessions": 100, "activeUsers": 0}
        assert row.delta == {"sessions": 20, "activeUsers": 90}
        assert row.pctChange["sessions"] == pytest.approx(0.2)
        assert row.pctChange["activeUsers"] is None

    def test_group_missing_from_previous(self) -> None:
        current = [{"channel": "Paid Social", "sessions": 40}]

        [row] = merge_periods(current, [], "channel")

        assert row.previous == {"sessions": 0}
        assert row.delta == {"sessions": 40}
        assert row.pctChange == {"sessions": None}

    def test_previous_only_groups_dropped(self) -> None:
        current = [{"channel": "Direct", "sessions": 1}]
        previous = [{"channel": "Direct", "sessions": 1}, {"channel": "Email", "sessions": 9}]

        rows = merge_periods(current, previous, "channel")

        assert [r.key for r in rows] == ["Direct"]

    def test_sorted_by_primary_metric_descending(self) -> None:
        current = [
            {"channel": "Email", "sessions": 10, "keyEvents": 50},
            {"channel": "Direct", "sessions": 300, "keyEvents": 1},
            {"channel": "Organic Search", "sessions": 200, "keyEvents": 5},
        ]

        by_sessions = merge_periods(current, [], "channel", sort_metric="sessions")
        by_key_events = merge_periods(current, [], "channel", sort_metric="keyEvents")

        assert [r.key for r in by_sessions] == ["Direct", "Organic Search", "Email"]
        assert [r.key for r in by_key_events] == ["Email", "Organic Search", "Direct"]

    def test_ties_keep_input_order(self) -> None:
        current = [
            {"channel": "a", "sessions": 5},
            {"channel": "b", "sessions": 9},
            {"channel": "x", "sessions": 5},
            {"channel": "y", "sessions": 5},
        ]

        merged = merge_periods(current, [], "channel", sort_metric="sessions")

        assert [r.key for r in merged] == ["b", "a", "x", "y"]

    def test_integer_delta_stays_integer(self) -> None:
        [row] = merge_periods(
            [{"channel": "Direct", "sessions": 120}],
            [{"channel": "Direct", "sessions": 100}],
            "channel",
        )

        assert row.delta["sessions"] == 20
        assert isinstance(row.delta["sessions"], int)

    def test_totals_without_dimension(self) -> None:
        [row] = merge_periods([{"sessions": 50}], [{"sessions": 40}], None)

        assert row.key == TOTAL_KEY
        assert row.delta == {"sessions": 10}
        assert row.pctChange["sessions"] == pytest.approx(0.25)

    def test_empty_current(self) -> None:
        assert merge_periods([], [{"channel": "Direct", "sessions": 1}], "channel") == []


class TestFetchBothPeriods:

    @pytest.mark.asyncio
    async def test_runs_same_report_for_both_ranges(
        self,
        mock_client: AsyncMock,
        report_response: Callable[..., Dict[str, Any]],
    ) -> None:
        mock_client.run_report.side_effect = [
            report_response(["deviceCategory"], ["sessions"], [["mobile", 30]]),
            report_response(["deviceCategory"], ["sessions"], [["mobile", 20]]),
        ]
        request = ReportRequest(
            dimensions=["deviceCategory"],
            metrics=["sessions"],
            startDate="7daysAgo",
            endDate="yesterday",
        )

        current, previous = await fetch_both_periods(
            request, DateRange(startDate="14daysAgo", endDate="8daysAgo"), mock_client
        )

        assert current == [{"deviceCategory": "mobile", "sessions": 30}]
        assert previous == [{"deviceCategory": "mobile", "sessions": 20}]

        bodies = [call.args[0] for call in mock_client.run_report.await_args_list]
        assert bodies[0]["dateRanges"] == [{"startDate": "7daysAgo", "endDate": "yesterday"}]
        assert bodies[1]["dateRanges"] == [{"startDate": "14daysAgo", "endDate": "8daysAgo"}]
        assert bodies[0]["dimensions"] == bodies[1]["dimensions"]
        assert bodies[0]["metrics"] == bodies[1]["metrics"]

    @pytest.mark.asyncio
    async def test_previous_period_not_limited_to_current_top_n(
        self,
        mock_client: AsyncMock,
        report_response: Callable[..., Dict[str, Any]],
    ) -> None:
        mock_client.run_report.side_effect = [
            report_response(["deviceCategory"], ["sessions"], [["tablet", 30]]),
            report_response(["deviceCategory"], ["sessions"], [["mobile", 90], ["desktop", 60], ["tablet", 10]]),
        ]
        request = ReportRequest(
            dimensions=["deviceCategory"],
            metrics=["sessions"],
            startDate="7daysAgo",
            endDate="yesterday",
            limit=1,
        )

        current, previous = await fetch_both_periods(
            request, DateRange(startDate="14daysAgo", endDate="8daysAgo"), mock_client
        )
        [row] = merge_periods(current, previous, "deviceCategory")

        bodies = [call.args[0] for call in mock_client.run_report.await_args_list]
        assert bodies[0]["limit"] == "1"
        assert bodies[1]["limit"] == str(PREVIOUS_PERIOD_ROW_LIMIT)
        assert row.previous["sessions"] == 10
        assert row.pctChange["sessions"] == pytest.approx(2.0)
