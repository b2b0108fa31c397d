"""
Parameterized SQL query module for period snapshots.

Reads daily customer activity from the blue_whale_usc warehouse table. Only
active rows (deposit_cases > 0) with a tier are ever returned; the per-customer
reduction (best tier, summed metrics) happens in pandas on the service side.

All builders return ``(query, args)`` with asyncpg ``$n`` placeholders, since
the optional line filter shifts the parameter positions.
"""

from datetime import date
from typing import Any, List, Optional, Tuple


ACTIVITY_TABLE = "blue_whale_usc"

# Line filter values meaning "every line"
ALL_LINES = frozenset({"", "all", "ALL", "All"})


def is_all_lines(line: Optional[str]) -> bool:
    return line is None or line.strip() in ALL_LINES


def get_period_activity_query(
    currency: str,
    start_date: date,
    end_date: date,
    line: Optional[str] = None,
    limit: int = 10000,
    offset: int = 0,
) -> Tuple[str, List[Any]]:
    """
    Generate SQL for one batch of active daily rows inside a period.

    Rows are ordered by customer and date so consecutive batches never skip or
    repeat a row.

    Args:
        currency: Currency market, e.g. 'USC'.
        start_date: First day of the period (inclusive).
        end_date: Last day of the period (inclusive).
        line: Brand line filter. None / 'All' / '' means every line.
        limit: Batch size.
        offset: Rows to skip.

    Returns:
        (query, args) ready for ``conn.fetch(query, *args)``.
    """
    args: List[Any] = [currency, start_date, end_date]
    where_conditions = [
        "currency = $1",
        "date >= $2",
        "date <= $3",
        "tier_name IS NOT NULL",
        "deposit_cases > 0",
    ]

    if not is_all_lines(line):
        args.append(line.strip())
        where_conditions.append(f"line = ${len(args)}")

    args.extend([limit, offset])
    where_clause = " AND ".join(where_conditions)

    query = f"""
        SELECT
            user_unique AS customer_key,
            line,
            tier_name,
            date,
            COALESCE(deposit_cases, 0)::bigint AS deposit_cases,
            COALESCE(deposit_amount, 0)::float8 AS deposit_amount,
            COALESCE(withdraw_amount, 0)::float8 AS withdraw_amount,
            first_deposit_date
        FROM {ACTIVITY_TABLE}
        WHERE {where_clause}
        ORDER BY user_unique ASC, date ASC
        LIMIT ${len(args) - 1} OFFSET ${len(args)}
    """
    return query, args


def get_activity_history_query(
    currency: str,
    before_date: date,
    since_date: Optional[date] = None,
    line: Optional[str] = None,
    limit: int = 10000,
    offset: int = 0,
) -> Tuple[str, List[Any]]:
    """
    Generate SQL for one batch of customers active before a date.

    Used to tell returning customers apart from brand new ones. Tier is not
    required here: any deposit counts as prior activity.

    Args:
        currency: Currency market, e.g. 'USC'.
        before_date: Exclusive upper bound (Period A start).
        since_date: Optional inclusive lower bound; None scans all history.
        line: Brand line filter. None / 'All' / '' means every line.
        limit: Batch size.
        offset: Rows to skip.

    Returns:
        (query, args) ready for ``conn.fetch(query, *args)``.
    """
    args: List[Any] = [currency, before_date]
    where_conditions = [
        "currency = $1",
        "date < $2",
        "deposit_cases > 0",
    ]

    if since_date is not None:
        args.append(since_date)
        where_conditions.append(f"date >= ${len(args)}")

    if not is_all_lines(line):
        args.append(line.strip())
        where_conditions.append(f"line = ${len(args)}")

    args.extend([limit, offset])
    where_clause = " AND ".join(where_conditions)

    query = f"""
        SELECT DISTINCT user_unique AS customer_key
        FROM {ACTIVITY_TABLE}
        WHERE {where_clause}
        ORDER BY user_unique ASC
        LIMIT ${len(args) - 1} OFFSET ${len(args)}
    """
    return query, args
