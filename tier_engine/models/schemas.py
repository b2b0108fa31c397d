"""
Pydantic models for the Tier Engine.

This module provides type-safe data validation and serialization for the
tier movement analytics, growth insights and customer assignment workflow.
Field names are camelCase because they form the JSON contract consumed by
the dashboard.

Groups:
- Tier movement: TierRef, PeriodMetrics, CustomerPeriodRecord, TransitionRecord,
  MatrixCell, TransitionMatrix, SummaryCard, SummaryCards, KeyFlow, TierMovementReport
- Growth insights: TierMetrics, TierInsight, TierAlert
- Periods: DateRange
- Assignments: AssignmentRecord, AssignmentRequest, ClearAssignmentRequest,
  BulkAssignmentRequest, AssignmentErrorDetail, AssignmentResult, BulkAssignmentResult
- Handler setup: HandlerSetupEntry, HandlerSetupRequest

All models use Pydantic v2 syntax.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tier_engine.models.enums import (
    AlertPriority,
    AlertType,
    MatchStatus,
    MovementType,
)


# =============================================================================
# Tier Movement Models
# =============================================================================


class TierRef(BaseModel):
    """
    A named tier and its rank.

    Rank is the only ordering key: a lower rank is a more valuable tier
    (Super VIP = 1, Regular = 7). Equal rank means the same tier bucket.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Canonical tier name, e.g. 'Super VIP'")
    rank: int = Field(..., description="Tier rank; lower is more valuable")


class PeriodMetrics(BaseModel):
    """Monetary activity of one customer within one comparison period."""
    model_config = ConfigDict(frozen=True)

    depositCases: int = Field(default=0, ge=0, description="Number of deposits")
    depositAmount: float = Field(default=0.0, description="Total deposit amount")
    withdrawAmount: float = Field(default=0.0, description="Total withdraw amount")
    ggr: float = Field(default=0.0, description="Gross gaming revenue (deposit - withdraw)")


class CustomerPeriodRecord(BaseModel):
    """
    One customer's tier membership and metrics in both comparison periods.

    Built per comparison request from two period snapshots and discarded once
    the matrix and insights have been computed.
    """
    model_config = ConfigDict(frozen=True)

    customerKey: str = Field(..., min_length=1, description="Customer identifier")
    line: Optional[str] = Field(default=None, description="Brand line the customer plays on")
    periodATier: Optional[TierRef] = Field(default=None, description="Tier in Period A, if active")
    periodBTier: Optional[TierRef] = Field(default=None, description="Tier in Period B, if active")
    periodAMetrics: PeriodMetrics = Field(default_factory=PeriodMetrics)
    periodBMetrics: PeriodMetrics = Field(default_factory=PeriodMetrics)
    hadActivityBeforePeriodA: bool = Field(
        default=False,
        description="True when the customer was active at any point before Period A"
    )


class TransitionRecord(BaseModel):
    """Classified tier movement of one customer."""
    model_config = ConfigDict(frozen=True)

    customerKey: str
    line: Optional[str] = None
    fromTier: Optional[TierRef] = None
    toTier: Optional[TierRef] = None
    movement: MovementType
    tierChange: int = Field(
        default=0,
        description="fromRank - toRank; positive for upgrades, 0 when a side is absent"
    )


class MatrixCell(BaseModel):
    """Number of customers that moved from one tier to another."""
    fromRank: int
    toRank: int
    count: int = Field(..., ge=0)
    movement: MovementType


class TransitionMatrix(BaseModel):
    """
    Tier-to-tier transition counts.

    Only UPGRADE/DOWNGRADE/STABLE records are counted; NEW, REACTIVATION and
    CHURNED customers are reported on the summary cards instead. Cells with a
    zero count are omitted; use count() for dense access.

    Cells and totals are keyed by rank while tierOrder lists distinct tier
    names, so tiers sharing a rank (every unknown name takes the sentinel
    rank) share one row and column. Walk the distinct ranks of tierOrder,
    not its entries, when summing totals.
    """
    tierOrder: List[TierRef] = Field(default_factory=list)
    cells: List[MatrixCell] = Field(default_factory=list)
    rowTotals: Dict[int, int] = Field(default_factory=dict, description="Moves out of each rank")
    colTotals: Dict[int, int] = Field(default_factory=dict, description="Moves into each rank")
    grandTotal: int = 0

    def count(self, from_rank: int, to_rank: int) -> int:
        for cell in self.cells:
            if cell.fromRank == from_rank and cell.toRank == to_rank:
                return cell.count
        return 0


class SummaryCard(BaseModel):
    """One summary counter with its share of the considered population."""
    movement: MovementType
    label: str
    count: int = 0
    percentage: float = 0.0


class SummaryCards(BaseModel):
    """
    The six movement counters.

    Percentages use every classified customer as the denominator, including
    NEW, REACTIVATION and CHURNED customers.
    """
    upgrades: SummaryCard
    downgrades: SummaryCard
    stable: SummaryCard
    newMembers: SummaryCard
    reactivations: SummaryCard
    churned: SummaryCard
    totalConsideredPopulation: int = 0

    def cards(self) -> List[SummaryCard]:
        return [
            self.upgrades,
            self.downgrades,
            self.stable,
            self.newMembers,
            self.reactivations,
            self.churned,
        ]


class KeyFlow(BaseModel):
    """A frequent non-stable tier-to-tier flow."""
    fromTier: TierRef
    toTier: TierRef
    count: int
    movement: MovementType


class TierMovementReport(BaseModel):
    """Everything the tier movement view needs for one comparison."""
    matrix: TransitionMatrix
    summary: SummaryCards
    topUpgrades: List[TransitionRecord] = Field(default_factory=list)
    topDowngrades: List[TransitionRecord] = Field(default_factory=list)
    keyFlows: List[KeyFlow] = Field(default_factory=list)


# =============================================================================
# Growth Insight Models
# =============================================================================


class TierMetrics(BaseModel):
    """Tier-level aggregate for one period."""
    tierName: str
    customerCount: int = Field(default=0, ge=0)
    depositAmount: float = 0.0
    withdrawAmount: float = 0.0
    ggr: float = 0.0


class TierInsight(BaseModel):
    """Customer growth versus deposit growth for one tier."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "tierName": "Tier 3",
                "customerCountChangePct": 20.0,
                "depositAmountChangePct": 12.0,
                "matchDelta": 8.0,
                "matchStatus": "Churn Risk",
                "insight": "Customer growth (+20.0%) exceeds DA growth (+12.0%). "
                           "Possible acquisition of lower-value customers or churn risk."
            }
        }
    )

    tierName: str
    customerCountChangePct: float
    depositAmountChangePct: float
    matchDelta: float
    matchStatus: MatchStatus
    insight: str = ""


class TierAlert(BaseModel):
    """Alert raised from period-over-period tier analytics."""
    id: str
    title: str
    message: str
    type: AlertType
    priority: AlertPriority


# =============================================================================
# Period Models
# =============================================================================


class DateRange(BaseModel):
    """Inclusive date window of one comparison period."""
    model_config = ConfigDict(frozen=True)

    start: date
    end: date


# =============================================================================
# Assignment Models
# =============================================================================


class AssignmentRecord(BaseModel):
    """
    A customer's handling assignment.

    Absence of a record means the customer is unassigned. A cleared record
    keeps customerKey and line with every assignment field set to None.
    """
    customerKey: str
    line: str
    snrAccount: Optional[str] = None
    handler: Optional[str] = None
    assignedAt: Optional[datetime] = None
    assignedBy: Optional[str] = None


class AssignmentRequest(BaseModel):
    """Single save request. Blank fields are rejected by the mutation guard."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "customerKey": "USC-000123",
                "line": "BRAND-A",
                "snrAccount": "snr_01"
            }
        }
    )

    customerKey: str = Field(default="", description="Customer identifier")
    line: str = Field(default="", description="Brand line")
    snrAccount: Optional[str] = Field(default=None, description="SNR account to assign")


class ClearAssignmentRequest(BaseModel):
    """Clear request for one customer."""
    model_config = ConfigDict(str_strip_whitespace=True)

    customerKey: str = Field(default="", description="Customer identifier")


class BulkAssignmentRequest(BaseModel):
    """Batch of save requests processed independently."""
    assignments: List[AssignmentRequest] = Field(default_factory=list)


class AssignmentErrorDetail(BaseModel):
    """Actionable description of why a mutation failed."""
    code: str
    message: str
    field: Optional[str] = None


class AssignmentResult(BaseModel):
    """Outcome of one save or clear."""
    customerKey: str
    success: bool
    handler: Optional[str] = None
    error: Optional[AssignmentErrorDetail] = None


class BulkAssignmentResult(BaseModel):
    """Per-item outcomes of a bulk save, in input order."""
    results: List[AssignmentResult] = Field(default_factory=list)
    successCount: int = 0
    errorCount: int = 0


# =============================================================================
# Handler Setup Models
# =============================================================================


class HandlerSetupEntry(BaseModel):
    """One SNR account to handler mapping."""
    id: Optional[int] = None
    snrAccount: str
    line: str
    handler: str
    assignedBy: Optional[str] = None
    assignedTime: Optional[datetime] = None


class HandlerSetupRequest(BaseModel):
    """Create (no id) or update (with id) a handler mapping."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = None
    snrAccount: str = ""
    line: str = ""
    handler: str = ""
