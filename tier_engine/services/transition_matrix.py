"""
Transition Matrix Builder Service

Aggregates classified transitions into the tier movement report:
- N x N transition matrix over every tier observed on either side
- Row totals (moves out), column totals (moves in), grand total
- Six summary cards with percentages of the whole considered population
- Top upgrades / downgrades and the most frequent tier-to-tier flows

Matrix cells only count UPGRADE, DOWNGRADE and STABLE records. NEW,
REACTIVATION and CHURNED customers have one undefined side, so they appear on
the summary cards only. Summary percentages, however, divide by ALL classified
customers, the three card-only categories included.

Invariant: grandTotal == sum(rowTotals) == sum(colTotals)
           == number of UPGRADE/DOWNGRADE/STABLE records
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from tier_engine.models.enums import MATRIX_MOVEMENTS, MovementType
from tier_engine.models.schemas import (
    CustomerPeriodRecord,
    KeyFlow,
    MatrixCell,
    SummaryCard,
    SummaryCards,
    TierMovementReport,
    TierRef,
    TransitionMatrix,
    TransitionRecord,
)
from tier_engine.services.transition import classify_movement, classify_population


logger = logging.getLogger(__name__)

DEFAULT_TOP_MOVERS_LIMIT: int = 20
DEFAULT_KEY_FLOWS_LIMIT: int = 5

SUMMARY_LABELS: Dict[MovementType, str] = {
    MovementType.UPGRADE: "Upgrades",
    MovementType.DOWNGRADE: "Downgrades",
    MovementType.STABLE: "Stable",
    MovementType.NEW: "New Member",
    MovementType.REACTIVATION: "Reactivation",
    MovementType.CHURNED: "Churned",
}


# =============================================================================
# Matrix
# =============================================================================


def observed_tiers(transitions: Iterable[TransitionRecord]) -> List[TierRef]:
    """
    Distinct tiers seen on either side of any transition.

    Sorted by rank, ties broken by name so the order is deterministic.
    """
    seen = set()
    for t in transitions:
        if t.fromTier is not None:
            seen.add(t.fromTier)
        if t.toTier is not None:
            seen.add(t.toTier)
    return sorted(seen, key=lambda tier: (tier.rank, tier.name))


def build_transition_matrix(transitions: Sequence[TransitionRecord]) -> TransitionMatrix:
    """
    Build the tier-to-tier count matrix.

    Args:
        transitions: All classified transitions of one comparison.

    Returns:
        TransitionMatrix. Empty input gives an empty tier order and zero totals.
    """
    tier_order = observed_tiers(transitions)
    ranks = sorted({tier.rank for tier in tier_order})
    index = {rank: i for i, rank in enumerate(ranks)}

    counts = np.zeros((len(ranks), len(ranks)), dtype=np.int64)
    eligible = [t for t in transitions if t.movement in MATRIX_MOVEMENTS]
    if eligible:
        rows = np.fromiter((index[t.fromTier.rank] for t in eligible), dtype=np.int64)
        cols = np.fromiter((index[t.toTier.rank] for t in eligible), dtype=np.int64)
        np.add.at(counts, (rows, cols), 1)

    row_sums = counts.sum(axis=1)
    col_sums = counts.sum(axis=0)

    cells = [
        MatrixCell(
            fromRank=ranks[i],
            toRank=ranks[j],
            count=int(counts[i, j]),
            movement=classify_movement(ranks[i], ranks[j]),
        )
        for i, j in zip(*np.nonzero(counts))
    ]

    return TransitionMatrix(
        tierOrder=tier_order,
        cells=cells,
        rowTotals={rank: int(row_sums[i]) for rank, i in index.items()},
        colTotals={rank: int(col_sums[i]) for rank, i in index.items()},
        grandTotal=int(row_sums.sum()),
    )


# =============================================================================
# Summary Cards
# =============================================================================


def _card(movement: MovementType, count: int, population: int) -> SummaryCard:
    percentage = (count / population) * 100 if population > 0 else 0.0
    return SummaryCard(
        movement=movement,
        label=SUMMARY_LABELS[movement],
        count=count,
        percentage=percentage,
    )


def build_summary_cards(transitions: Sequence[TransitionRecord]) -> SummaryCards:
    """
    Count each movement type and its share of the considered population.

    The denominator is every classified customer, NEW/REACTIVATION/CHURNED
    included, so the six counts always add up to totalConsideredPopulation.
    """
    counts = Counter(t.movement for t in transitions)
    population = len(transitions)

    return SummaryCards(
        upgrades=_card(MovementType.UPGRADE, counts[MovementType.UPGRADE], population),
        downgrades=_card(MovementType.DOWNGRADE, counts[MovementType.DOWNGRADE], population),
        stable=_card(MovementType.STABLE, counts[MovementType.STABLE], population),
        newMembers=_card(MovementType.NEW, counts[MovementType.NEW], population),
        reactivations=_card(MovementType.REACTIVATION, counts[MovementType.REACTIVATION], population),
        churned=_card(MovementType.CHURNED, counts[MovementType.CHURNED], population),
        totalConsideredPopulation=population,
    )


# =============================================================================
# Top Movers & Key Flows
# =============================================================================


def top_movers(
    transitions: Sequence[TransitionRecord],
    movement: MovementType,
    limit: int = DEFAULT_TOP_MOVERS_LIMIT,
) -> List[TransitionRecord]:
    """
    Customers with the largest tier jumps.

    Args:
        transitions: Classified transitions.
        movement: UPGRADE (largest positive tierChange first) or DOWNGRADE
            (largest negative tierChange first).
        limit: Maximum rows returned.

    Raises:
        ValueError: For any other movement type.
    """
    if movement == MovementType.UPGRADE:
        sign = -1
    elif movement == MovementType.DOWNGRADE:
        sign = 1
    else:
        raise ValueError(f"top_movers supports UPGRADE or DOWNGRADE, got {movement}")

    movers = [t for t in transitions if t.movement == movement]
    movers.sort(key=lambda t: (sign * t.tierChange, t.customerKey))
    return movers[:limit]


def key_flows(
    transitions: Sequence[TransitionRecord],
    limit: int = DEFAULT_KEY_FLOWS_LIMIT,
    movement: Optional[MovementType] = None,
) -> List[KeyFlow]:
    """
    Most frequent upgrade/downgrade flows between two tiers.

    Args:
        transitions: Classified transitions.
        limit: Maximum flows returned.
        movement: Restrict to UPGRADE or DOWNGRADE flows.

    Returns:
        Flows ordered by count (desc), then source and target rank.
    """
    flows: Counter = Counter()
    tiers: Dict[Tuple[int, int], Tuple[TierRef, TierRef]] = {}

    for t in transitions:
        if t.movement not in (MovementType.UPGRADE, MovementType.DOWNGRADE):
            continue
        if movement is not None and t.movement != movement:
            continue
        key = (t.fromTier.rank, t.toTier.rank)
        flows[key] += 1
        tiers.setdefault(key, (t.fromTier, t.toTier))

    ordered = sorted(flows.items(), key=lambda item: (-item[1], item[0]))
    return [
        KeyFlow(
            fromTier=tiers[key][0],
            toTier=tiers[key][1],
            count=count,
            movement=classify_movement(*key),
        )
        for key, count in ordered[:limit]
    ]


# =============================================================================
# Facade
# =============================================================================


def build_movement_report(
    transitions: Sequence[TransitionRecord],
    top_movers_limit: int = DEFAULT_TOP_MOVERS_LIMIT,
    key_flows_limit: int = DEFAULT_KEY_FLOWS_LIMIT,
) -> TierMovementReport:
    """Assemble the matrix, summary cards, top movers and key flows."""
    report = TierMovementReport(
        matrix=build_transition_matrix(transitions),
        summary=build_summary_cards(transitions),
        topUpgrades=top_movers(transitions, MovementType.UPGRADE, top_movers_limit),
        topDowngrades=top_movers(transitions, MovementType.DOWNGRADE, top_movers_limit),
        keyFlows=key_flows(transitions, key_flows_limit),
    )
    logger.info(
        f"Tier movement report: population={report.summary.totalConsideredPopulation}, "
        f"matrix_total={report.matrix.grandTotal}, tiers={len(report.matrix.tierOrder)}"
    )
    return report


def classify(
    records: Sequence[CustomerPeriodRecord],
    max_workers: int = 1,
    top_movers_limit: int = DEFAULT_TOP_MOVERS_LIMIT,
    key_flows_limit: int = DEFAULT_KEY_FLOWS_LIMIT,
) -> TierMovementReport:
    """
    Classify a comparison population and build its movement report.

    Args:
        records: Paired Period A / Period B records, one per customer.
        max_workers: Thread pool size for classification.
        top_movers_limit: Rows in topUpgrades / topDowngrades.
        key_flows_limit: Rows in keyFlows.

    Returns:
        TierMovementReport with matrix and summary cards.
    """
    transitions = classify_population(records, max_workers=max_workers)
    return build_movement_report(transitions, top_movers_limit, key_flows_limit)
