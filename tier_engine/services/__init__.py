"""
Tier Engine Services Module

Business logic for tier movement analytics and the assignment workflow.
Analytics services are pure functions over typed records; only the snapshot
source, handler registry and assignment repository touch the database.

Services:
- tier_rank: Tier name to rank lookup (lower rank = more valuable tier)
- transition: Per-customer movement classification
- transition_matrix: Matrix, summary cards, top movers, key flows
- growth_insights: Customer vs deposit growth per tier, tier alerts
- periods: Comparison period parsing and validation
- snapshot_source: Warehouse period snapshots paired per customer
- handler_registry: SNR account to handler lookup and setup
- assignment_repository: customer_assignment persistence
- assignment_guard: Per-customer in-flight guard for assignment mutations

All services are consumed by the API layer (tier_engine/api/).
"""

# =============================================================================
# Tier Rank Exports
# =============================================================================

from tier_engine.services.tier_rank import (
    TierRankTable,
    DEFAULT_RANK_TABLE,
    DEFAULT_TIER_RANKS,
    DEFAULT_UNKNOWN_TIER_RANK,
    rank_of,
)

# =============================================================================
# Transition Classification & Matrix Exports
# =============================================================================

from tier_engine.services.transition import (
    classify_movement,
    classify_transition,
    classify_population,
)

from tier_engine.services.transition_matrix import (
    build_transition_matrix,
    build_summary_cards,
    build_movement_report,
    top_movers,
    key_flows,
    classify,
)

# =============================================================================
# Growth Insight Exports
# =============================================================================

from tier_engine.services.growth_insights import (
    pct_change,
    classify_match,
    describe_insight,
    aggregate_tier_metrics,
    compute_insights,
    build_tier_alerts,
)

# =============================================================================
# Period & Snapshot Exports
# =============================================================================

from tier_engine.services.periods import (
    parse_date,
    make_date_range,
    validate_period_ranges,
    parse_comparison,
)

from tier_engine.services.snapshot_source import (
    CustomerPeriodSnapshot,
    SnapshotSource,
    PostgresSnapshotSource,
    aggregate_period_rows,
    pair_periods,
)

# =============================================================================
# Assignment Workflow Exports
# =============================================================================

from tier_engine.services.handler_registry import (
    HandlerRegistry,
    PostgresHandlerRegistry,
)

from tier_engine.services.assignment_repository import (
    AssignmentRepository,
    PostgresAssignmentRepository,
)

from tier_engine.services.assignment_guard import (
    InFlightGuardSet,
    AssignmentMutationGuard,
)


__all__ = [
    # ----- Tier Rank -----
    'TierRankTable',
    'DEFAULT_RANK_TABLE',
    'DEFAULT_TIER_RANKS',
    'DEFAULT_UNKNOWN_TIER_RANK',
    'rank_of',
    # ----- Transition Classification -----
    'classify_movement',
    'classify_transition',
    'classify_population',
    # ----- Transition Matrix -----
    'build_transition_matrix',
    'build_summary_cards',
    'build_movement_report',
    'top_movers',
    'key_flows',
    'classify',
    # ----- Growth Insights -----
    'pct_change',
    'classify_match',
    'describe_insight',
    'aggregate_tier_metrics',
    'compute_insights',
    'build_tier_alerts',
    # ----- Periods -----
    'parse_date',
    'make_date_range',
    'validate_period_ranges',
    'parse_comparison',
    # ----- Snapshot Source -----
    'CustomerPeriodSnapshot',
    'SnapshotSource',
    'PostgresSnapshotSource',
    'aggregate_period_rows',
    'pair_periods',
    # ----- Assignment Workflow -----
    'HandlerRegistry',
    'PostgresHandlerRegistry',
    'AssignmentRepository',
    'PostgresAssignmentRepository',
    'InFlightGuardSet',
    'AssignmentMutationGuard',
]
