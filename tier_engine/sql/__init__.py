"""
SQL Query Module for the Tier Engine.

Provides parameterized SQL for:
- Period snapshots and activity history (snapshot_queries)
- Customer assignments and SNR handler setup (assignment_queries)

Example usage:
    from tier_engine.sql import get_period_activity_query

    query, args = get_period_activity_query('USC', start, end, line='BRAND-A')
    rows = await conn.fetch(query, *args)
"""

# =============================================================================
# SNAPSHOT QUERIES - Daily activity warehouse
# =============================================================================

from tier_engine.sql.snapshot_queries import (
    ACTIVITY_TABLE,
    ALL_LINES,
    is_all_lines,
    get_period_activity_query,
    get_activity_history_query,
)

# =============================================================================
# ASSIGNMENT QUERIES - customer_assignment / snr_handler
# =============================================================================

from tier_engine.sql.assignment_queries import (
    SELECT_ASSIGNMENT,
    UPSERT_ASSIGNMENT,
    CLEAR_ASSIGNMENT,
    SELECT_HANDLER_BY_ACCOUNT,
    LIST_HANDLERS,
    INSERT_HANDLER,
    UPDATE_HANDLER,
    DELETE_HANDLER,
)


__all__ = [
    # Snapshot queries
    "ACTIVITY_TABLE",
    "ALL_LINES",
    "is_all_lines",
    "get_period_activity_query",
    "get_activity_history_query",
    # Assignment queries
    "SELECT_ASSIGNMENT",
    "UPSERT_ASSIGNMENT",
    "CLEAR_ASSIGNMENT",
    "SELECT_HANDLER_BY_ACCOUNT",
    "LIST_HANDLERS",
    "INSERT_HANDLER",
    "UPDATE_HANDLER",
    "DELETE_HANDLER",
]
