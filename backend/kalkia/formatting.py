"""Formatting helpers for calculation output.

Danish conventions: '.' as thousands separator, ',' as decimal separator,
amounts suffixed with 'kr.', durations as hours and minutes ('1t 30m').
"""

from __future__ import annotations

SECONDS_PER_HOUR = 3600


def _danish_number(value: float, decimals: int) -> str:
    # 1,234.50 -> 1.234,50
    formatted = f"{value:,.{decimals}f}"
    return formatted.replace(",", "_").replace(".", ",").replace("_", ".")


def format_dkk(amount: float) -> str:
    """Format an amount in DKK, e.g. ``1234.5`` -> ``'1.234,50 kr.'``."""
    return f"{_danish_number(amount, 2)} kr."


def seconds_to_hours(seconds: float) -> float:
    """Convert seconds to hours, rounded to 2 decimals."""
    return round(seconds / SECONDS_PER_HOUR, 2)


def format_time_seconds(seconds: float) -> str:
    """Format a duration as hours and minutes.

    - Under an hour: '45m'
    - Whole hours: '2t'
    - Otherwise: '1t 30m'
    """
    total_minutes = round(seconds / 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}t"
    return f"{hours}t {minutes}m"


def format_percentage(value: float, decimals: int = 1) -> str:
    """Format a percentage, e.g. ``12.5`` -> ``'12,5 %'``."""
    return f"{_danish_number(value, decimals)} %"
