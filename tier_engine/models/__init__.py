"""
Package initialization file for Tier Engine models.

Exports all Pydantic schemas and enumerations from schemas.py and enums.py so
other modules can import data models from tier_engine.models directly.

Usage:
    from tier_engine.models import (
        MovementType,
        CustomerPeriodRecord,
        TransitionMatrix,
        AssignmentResult,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from tier_engine.models.enums import (
    MovementType,
    MATRIX_MOVEMENTS,
    MatchStatus,
    AlertType,
    AlertPriority,
)

# =============================================================================
# Schemas
# =============================================================================

from tier_engine.models.schemas import (
    # Tier movement
    TierRef,
    PeriodMetrics,
    CustomerPeriodRecord,
    TransitionRecord,
    MatrixCell,
    TransitionMatrix,
    SummaryCard,
    SummaryCards,
    KeyFlow,
    TierMovementReport,
    # Growth insights
    TierMetrics,
    TierInsight,
    TierAlert,
    # Periods
    DateRange,
    # Assignments
    AssignmentRecord,
    AssignmentRequest,
    ClearAssignmentRequest,
    BulkAssignmentRequest,
    AssignmentErrorDetail,
    AssignmentResult,
    BulkAssignmentResult,
    # Handler setup
    HandlerSetupEntry,
    HandlerSetupRequest,
)


__all__ = [
    # Enums
    "MovementType",
    "MATRIX_MOVEMENTS",
    "MatchStatus",
    "AlertType",
    "AlertPriority",
    # Tier movement
    "TierRef",
    "PeriodMetrics",
    "CustomerPeriodRecord",
    "TransitionRecord",
    "MatrixCell",
    "TransitionMatrix",
    "SummaryCard",
    "SummaryCards",
    "KeyFlow",
    "TierMovementReport",
    # Growth insights
    "TierMetrics",
    "TierInsight",
    "TierAlert",
    # Periods
    "DateRange",
    # Assignments
    "AssignmentRecord",
    "AssignmentRequest",
    "ClearAssignmentRequest",
    "BulkAssignmentRequest",
    "AssignmentErrorDetail",
    "AssignmentResult",
    "BulkAssignmentResult",
    # Handler setup
    "HandlerSetupEntry",
    "HandlerSetupRequest",
]
