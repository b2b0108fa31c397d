"""
Enumeration definitions for the Tier Engine.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models, so API responses carry the plain values
the dashboard already renders.
"""

from enum import Enum


class MovementType(str, Enum):
    """
    How a customer's tier changed between Period A and Period B.

    Both tiers present:
    - UPGRADE: Moved to a better tier (numerically lower rank)
    - DOWNGRADE: Moved to a worse tier (numerically higher rank)
    - STABLE: Same rank in both periods

    One side absent:
    - NEW: Only in Period B and never active before Period A
    - REACTIVATION: Only in Period B but active at some point before Period A
    - CHURNED: Only in Period A
    """
    UPGRADE = "UPGRADE"
    DOWNGRADE = "DOWNGRADE"
    STABLE = "STABLE"
    NEW = "NEW"
    REACTIVATION = "REACTIVATION"
    CHURNED = "CHURNED"


# Movements with both sides defined; only these become transition matrix cells
MATRIX_MOVEMENTS = frozenset({
    MovementType.UPGRADE,
    MovementType.DOWNGRADE,
    MovementType.STABLE,
})


class MatchStatus(str, Enum):
    """
    Growth mismatch label for a tier.

    - Match: customer growth and deposit growth within the tolerance
    - Churn Risk: customers grew faster than deposits (value per customer falling)
    - Value Up: deposits grew faster than customers (value concentrating)
    """
    MATCH = "Match"
    CHURN_RISK = "Churn Risk"
    VALUE_UP = "Value Up"


class AlertType(str, Enum):
    """Display severity of a tier analytics alert."""
    WARNING = "warning"
    INFO = "info"
    ERROR = "error"


class AlertPriority(str, Enum):
    """Ordering priority of a tier analytics alert."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
