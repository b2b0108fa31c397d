"""
Comparison period parsing and validation.

Period A is the earlier (baseline) window and Period B the later one. Dates
arrive from the dashboard as YYYY-MM-DD strings; both bounds are inclusive.
"""

import logging
from datetime import date, datetime
from typing import Optional, Tuple, Union

from tier_engine.core.exceptions import ValidationError
from tier_engine.models.schemas import DateRange


logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: Union[str, date, None], field: str) -> date:
    """
    Parse a YYYY-MM-DD value.

    Raises:
        ValidationError: If the value is missing or not a valid date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or not str(value).strip():
        raise ValidationError(field)
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(field, f"{field} must be a date in YYYY-MM-DD format")


def make_date_range(
    start: Union[str, date, None],
    end: Union[str, date, None],
    start_field: str = "start",
    end_field: str = "end",
) -> DateRange:
    """
    Build an inclusive DateRange.

    Raises:
        ValidationError: If either bound is invalid or start is after end.
    """
    start_date = parse_date(start, start_field)
    end_date = parse_date(end, end_field)
    if start_date > end_date:
        raise ValidationError(
            start_field,
            f"{start_field} ({start_date}) must not be after {end_field} ({end_date})",
        )
    return DateRange(start=start_date, end=end_date)


def validate_period_ranges(period_a: DateRange, period_b: DateRange) -> None:
    """
    Check that the two periods form a forward-looking comparison.

    Period B may overlap Period A but must not start before it.

    Raises:
        ValidationError: If Period B starts before Period A.
    """
    if period_b.start < period_a.start:
        raise ValidationError(
            "periodBStart",
            f"Period B ({period_b.start}) must not start before Period A ({period_a.start})",
        )


def parse_comparison(
    period_a_start: Optional[str],
    period_a_end: Optional[str],
    period_b_start: Optional[str],
    period_b_end: Optional[str],
) -> Tuple[DateRange, DateRange]:
    """
    Parse and validate the four query parameters of a comparison request.

    Returns:
        (period_a, period_b)

    Raises:
        ValidationError: On the first invalid parameter.
    """
    period_a = make_date_range(period_a_start, period_a_end, "periodAStart", "periodAEnd")
    period_b = make_date_range(period_b_start, period_b_end, "periodBStart", "periodBEnd")
    validate_period_ranges(period_a, period_b)
    logger.debug(f"Comparison periods: A={period_a.start}..{period_a.end}, B={period_b.start}..{period_b.end}")
    return period_a, period_b
