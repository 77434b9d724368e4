"""
Period Resolver Service.

Derives the comparison period for a period-over-period report, but only when
the input form makes it unambiguous. Every other combination is reported as
not resolvable (None) so callers can surface the problem instead of comparing
against a wrong or empty period.

Resolvable Forms:
    previous_period, relative dates:
        ("NdaysAgo", "yesterday") -> ("{2N}daysAgo", "{N+1}daysAgo")
        ("NdaysAgo", "today")     -> ("{2N-1}daysAgo", "{N}daysAgo")
    previous_year, ISO dates on both ends:
        ("2025-03-01", "2025-03-31") -> ("2024-03-01", "2024-03-31")
        Feb 29 maps to Feb 28 in a non-leap target year.

Example:
    >>> resolve_previous_period("7daysAgo", "yesterday")
    DateRange(startDate='14daysAgo', endDate='8daysAgo')
    >>> resolve_previous_period("2025-01-01", "yesterday") is None
    True
"""

import re
from datetime import date
from typing import Optional

from ga_mcp.models.enums import CompareMode
from ga_mcp.models.schemas import DateRange

RELATIVE_DAYS_PATTERN = re.compile(r'^(\d+)daysAgo$')
ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

NOT_RESOLVABLE_HINT = (
    "Cannot infer a comparison period from these dates. Use "
    "compareMode=previous_period with startDate 'NdaysAgo' and endDate "
    "'yesterday' or 'today', or compareMode=previous_year with ISO dates "
    "(YYYY-MM-DD) on both ends."
)


def _days_ago(expression: str) -> Optional[int]:
    match = RELATIVE_DAYS_PATTERN.match(str(expression))
    if not match:
        return None
    return int(match.group(1))


def _parse_iso(expression: str) -> Optional[date]:
    if not ISO_DATE_PATTERN.match(str(expression)):
        return None
    try:
        return date.fromisoformat(expression)
    except ValueError:
        return None


def shift_year_back(day: date) -> date:
    """
    Same calendar day one year earlier.

    Feb 29 has no counterpart in a non-leap year and becomes Feb 28.
    """
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return day.replace(year=day.year - 1, day=28)


def resolve_previous_period(
    start_date: str,
    end_date: str,
    mode: CompareMode = CompareMode.PREVIOUS_PERIOD,
) -> Optional[DateRange]:
    """
    Derive the comparison period for [start_date, end_date].

    Args:
        start_date: Start of the current period (relative or ISO).
        end_date: End of the current period (relative or ISO).
        mode: previous_period or previous_year.

    Returns:
        The comparison DateRange, or None when the inputs are not one of the
        resolvable forms listed in the module docstring.
    """
    mode = CompareMode(mode)

    if mode == CompareMode.PREVIOUS_PERIOD:
        n = _days_ago(start_date)
        if n is None or n < 1:
            return None
        if end_date == 'yesterday':
            return DateRange(startDate=f'{2 * n}daysAgo', endDate=f'{n + 1}daysAgo')
        if end_date == 'today':
            return DateRange(startDate=f'{2 * n - 1}daysAgo', endDate=f'{n}daysAgo')
        return None

    start = _parse_iso(start_date)
    end = _parse_iso(end_date)
    if start is None or end is None or start > end:
        return None
    return DateRange(
        startDate=shift_year_back(start).isoformat(),
        endDate=shift_year_back(end).isoformat(),
    )
