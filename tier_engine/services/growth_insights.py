"""
Growth Insight Engine

Compares, per tier, how fast the customer count grew against how fast the
deposit amount grew between Period A and Period B.

    customerChangePct = pct_change(countA, countB)
    depositChangePct  = pct_change(depositA, depositB)
    matchDelta        = |customerChangePct - depositChangePct|

    matchDelta <= tolerance (5.0)          -> Match
    customerChangePct > depositChangePct   -> Churn Risk
    otherwise                              -> Value Up

"Churn Risk" is a proxy for falling value per customer: the tier is being
diluted by lower-value customers. "Value Up" is the inverse, value
concentrating in fewer customers.

Also provides the tier analytics alerts shown in the dashboard header:
customer-count drops per tier, downgrade volume with its key flows, and the
overall deposit-per-user trend.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import pandas as pd

from tier_engine.models.enums import AlertPriority, AlertType, MatchStatus, MovementType
from tier_engine.models.schemas import (
    CustomerPeriodRecord,
    KeyFlow,
    SummaryCards,
    TierAlert,
    TierInsight,
    TierMetrics,
)
from tier_engine.services.tier_rank import DEFAULT_RANK_TABLE, TierRankTable


logger = logging.getLogger(__name__)

DEFAULT_MATCH_TOLERANCE_PCT: float = 5.0


# =============================================================================
# Percentage Change & Match Status
# =============================================================================


def pct_change(base: float, target: float) -> float:
    """
    Percentage change from base to target.

    A zero base has no meaningful ratio: growth from nothing reports 100%,
    and no growth (or a negative target) reports 0%.

    Examples:
        >>> pct_change(0, 0)
        0.0
        >>> pct_change(0, 5)
        100.0
        >>> pct_change(100, 150)
        50.0
    """
    if base == 0:
        return 100.0 if target > 0 else 0.0
    return (target - base) / base * 100


def classify_match(
    customer_change_pct: float,
    deposit_change_pct: float,
    tolerance: float = DEFAULT_MATCH_TOLERANCE_PCT,
) -> MatchStatus:
    """Match status for a pair of growth percentages."""
    match_delta = abs(customer_change_pct - deposit_change_pct)
    if match_delta <= tolerance:
        return MatchStatus.MATCH
    if customer_change_pct > deposit_change_pct:
        return MatchStatus.CHURN_RISK
    return MatchStatus.VALUE_UP


def _signed(pct: float) -> str:
    return f"+{pct:.1f}%" if pct >= 0 else f"{pct:.1f}%"


def describe_insight(
    tier_name: str,
    status: MatchStatus,
    customer_change_pct: float,
    deposit_change_pct: float,
    tolerance: float = DEFAULT_MATCH_TOLERANCE_PCT,
) -> str:
    """One-sentence explanation of a tier's match status."""
    if status == MatchStatus.MATCH:
        return (
            f"Customer growth and DA growth are aligned (within {tolerance:g}% difference). "
            f"Tier {tier_name} shows balanced movement."
        )
    if status == MatchStatus.VALUE_UP:
        return (
            f"DA growth ({_signed(deposit_change_pct)}) exceeds customer growth "
            f"({_signed(customer_change_pct)}). Possible high-value customer acquisition "
            f"or increased spending."
        )
    return (
        f"Customer growth ({_signed(customer_change_pct)}) exceeds DA growth "
        f"({_signed(deposit_change_pct)}). Possible acquisition of lower-value customers "
        f"or churn risk."
    )


# =============================================================================
# Tier Aggregation
# =============================================================================


def aggregate_tier_metrics(
    records: Sequence[CustomerPeriodRecord],
    period: str,
) -> Dict[str, TierMetrics]:
    """
    Per-tier aggregate of one period.

    Customers count towards their tier only when active (depositCases > 0);
    amounts are summed for every customer holding the tier.

    Args:
        records: Paired customer records.
        period: "A" or "B".

    Returns:
        Tier name -> TierMetrics.

    Raises:
        ValueError: If period is not "A" or "B".
    """
    if period not in ("A", "B"):
        raise ValueError(f"period must be 'A' or 'B', got {period!r}")

    rows = []
    for record in records:
        tier = record.periodATier if period == "A" else record.periodBTier
        if tier is None:
            continue
        metrics = record.periodAMetrics if period == "A" else record.periodBMetrics
        rows.append({
            "tier_name": tier.name,
            "active": 1 if metrics.depositCases > 0 else 0,
            "deposit_amount": metrics.depositAmount,
            "withdraw_amount": metrics.withdrawAmount,
        })

    if not rows:
        return {}

    grouped = (
        pd.DataFrame(rows)
        .groupby("tier_name", sort=False)
        .agg(
            customer_count=("active", "sum"),
            deposit_amount=("deposit_amount", "sum"),
            withdraw_amount=("withdraw_amount", "sum"),
        )
    )

    return {
        str(tier_name): TierMetrics(
            tierName=str(tier_name),
            customerCount=int(row.customer_count),
            depositAmount=float(row.deposit_amount),
            withdrawAmount=float(row.withdraw_amount),
            ggr=float(row.deposit_amount - row.withdraw_amount),
        )
        for tier_name, row in grouped.iterrows()
    }


# =============================================================================
# Insights
# =============================================================================


def compute_insights(
    period_a_metrics: Mapping[str, TierMetrics],
    period_b_metrics: Mapping[str, TierMetrics],
    tolerance: float = DEFAULT_MATCH_TOLERANCE_PCT,
    rank_table: TierRankTable = DEFAULT_RANK_TABLE,
) -> List[TierInsight]:
    """
    Growth mismatch insight for every tier seen in either period.

    A tier missing from one period is treated as zero customers and zero
    deposits in that period.

    Args:
        period_a_metrics: Tier name -> metrics for Period A.
        period_b_metrics: Tier name -> metrics for Period B.
        tolerance: Largest matchDelta still reported as Match.
        rank_table: Used to order the output from best to worst tier.

    Returns:
        TierInsights ordered by tier rank, then name.
    """
    tier_names = set(period_a_metrics) | set(period_b_metrics)
    ordered = sorted(tier_names, key=lambda name: (rank_table.rank_of(name), name))

    insights = []
    for tier_name in ordered:
        tier_a = period_a_metrics.get(tier_name) or TierMetrics(tierName=tier_name)
        tier_b = period_b_metrics.get(tier_name) or TierMetrics(tierName=tier_name)

        customer_change = pct_change(tier_a.customerCount, tier_b.customerCount)
        deposit_change = pct_change(tier_a.depositAmount, tier_b.depositAmount)
        status = classify_match(customer_change, deposit_change, tolerance)

        insights.append(TierInsight(
            tierName=tier_name,
            customerCountChangePct=customer_change,
            depositAmountChangePct=deposit_change,
            matchDelta=abs(customer_change - deposit_change),
            matchStatus=status,
            insight=describe_insight(tier_name, status, customer_change, deposit_change, tolerance),
        ))

    return insights


# =============================================================================
# Alerts
# =============================================================================


def build_tier_alerts(
    period_a_metrics: Mapping[str, TierMetrics],
    period_b_metrics: Mapping[str, TierMetrics],
    summary: Optional[SummaryCards] = None,
    flows: Sequence[KeyFlow] = (),
    customer_drop_warning_pct: float = 5.0,
    customer_drop_error_pct: float = 10.0,
    downgrade_error_count: int = 100,
    deposit_per_user_warning_pct: float = 5.0,
    deposit_per_user_error_pct: float = 15.0,
    rank_table: TierRankTable = DEFAULT_RANK_TABLE,
) -> List[TierAlert]:
    """
    Period-over-period alerts for the tier analytics view.

    Raised alerts:
    1. Per tier: customer count fell by more than customer_drop_warning_pct
       (error above customer_drop_error_pct). Tiers with no Period A customers
       are skipped.
    2. Any downgrades: total downgrades with the two biggest downgrade flows
       (error above downgrade_error_count).
    3. Overall deposit amount per active customer moved by more than
       deposit_per_user_warning_pct either way (error above
       deposit_per_user_error_pct).

    Returns:
        Alerts in the order listed above.
    """
    alerts: List[TierAlert] = []

    tier_names = sorted(
        set(period_a_metrics) | set(period_b_metrics),
        key=lambda name: (rank_table.rank_of(name), name),
    )
    for tier_name in tier_names:
        tier_a = period_a_metrics.get(tier_name) or TierMetrics(tierName=tier_name)
        tier_b = period_b_metrics.get(tier_name) or TierMetrics(tierName=tier_name)
        if tier_a.customerCount <= 0:
            continue

        change = pct_change(tier_a.customerCount, tier_b.customerCount)
        if change >= -customer_drop_warning_pct:
            continue

        severe = change < -customer_drop_error_pct
        loss = tier_a.customerCount - tier_b.customerCount
        alerts.append(TierAlert(
            id=f"customer-decrease-{tier_name}",
            title=f"{tier_name} Tier - Customer Count",
            message=(
                f"Decreased by {abs(change):.1f}% (from {tier_a.customerCount:,} to "
                f"{tier_b.customerCount:,}). Total loss of {loss:,} customers."
            ),
            type=AlertType.ERROR if severe else AlertType.WARNING,
            priority=AlertPriority.HIGH if severe else AlertPriority.MEDIUM,
        ))

    downgrades = summary.downgrades.count if summary is not None else 0
    if downgrades > 0:
        top = [f for f in flows if f.movement == MovementType.DOWNGRADE][:2]
        flow_text = ""
        if top:
            flow_text = " Key flows: " + ", ".join(
                f"{f.fromTier.name}→{f.toTier.name} ({f.count})" for f in top
            ) + "."
        severe = downgrades > downgrade_error_count
        alerts.append(TierAlert(
            id="tier-downgrades",
            title="Tier Movement - Downgrades",
            message=f"Total {downgrades:,} customers downgraded across all tiers.{flow_text}",
            type=AlertType.ERROR if severe else AlertType.WARNING,
            priority=AlertPriority.HIGH if severe else AlertPriority.MEDIUM,
        ))

    per_user_a = _deposit_per_user(period_a_metrics.values())
    per_user_b = _deposit_per_user(period_b_metrics.values())
    per_user_change = pct_change(per_user_a, per_user_b)
    if abs(per_user_change) > deposit_per_user_warning_pct:
        severe = abs(per_user_change) > deposit_per_user_error_pct
        direction = "increased" if per_user_change > 0 else "decreased"
        suffix = " Requires attention to customer value retention." if per_user_change < 0 else ""
        alerts.append(TierAlert(
            id="da-per-user-trend",
            title="Overall DA/U Trend",
            message=(
                f"Deposit Amount per User {direction} by {abs(per_user_change):.1f}% "
                f"(from {per_user_a:.2f} to {per_user_b:.2f}).{suffix}"
            ),
            type=AlertType.ERROR if severe else AlertType.WARNING,
            priority=AlertPriority.HIGH if severe else AlertPriority.MEDIUM,
        ))

    logger.debug(f"Generated {len(alerts)} tier alerts")
    return alerts


def _deposit_per_user(metrics) -> float:
    total_deposit = 0.0
    total_customers = 0
    for tier in metrics:
        total_deposit += tier.depositAmount
        total_customers += tier.customerCount
    return total_deposit / total_customers if total_customers > 0 else 0.0
