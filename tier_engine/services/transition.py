"""
Transition Classifier Service

Classifies how each customer's tier changed between Period A (earlier) and
Period B (later). Each CustomerPeriodRecord yields at most one TransitionRecord.

Decision order:
1. A absent, B present  -> NEW, or REACTIVATION when the customer was active
                           at some point before Period A
2. A present, B absent  -> CHURNED
3. Both absent          -> excluded (not counted anywhere)
4. Both present         -> compare ranks:
                           rank_A > rank_B -> UPGRADE (moved to a better tier)
                           rank_A < rank_B -> DOWNGRADE
                           equal           -> STABLE

Rank 1 is the BEST tier, so an upgrade is a move to a numerically LOWER rank.

Classification is pure: records are independent, so a population may be split
across a thread pool and the partial results concatenated in input order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from tier_engine.models.enums import MovementType
from tier_engine.models.schemas import CustomerPeriodRecord, TransitionRecord


logger = logging.getLogger(__name__)

# Below this many records per worker the pool costs more than it saves
MIN_RECORDS_PER_WORKER: int = 5000


def classify_movement(from_rank: int, to_rank: int) -> MovementType:
    """
    Movement between two present tiers.

    Args:
        from_rank: Rank in Period A.
        to_rank: Rank in Period B.

    Returns:
        UPGRADE when from_rank > to_rank, DOWNGRADE when from_rank < to_rank,
        otherwise STABLE.
    """
    if from_rank > to_rank:
        return MovementType.UPGRADE
    if from_rank < to_rank:
        return MovementType.DOWNGRADE
    return MovementType.STABLE


def classify_transition(record: CustomerPeriodRecord) -> Optional[TransitionRecord]:
    """
    Classify one customer's tier movement.

    Args:
        record: The customer's tiers and metrics for both periods.

    Returns:
        TransitionRecord, or None when the customer has no tier in either
        period and is irrelevant to the comparison.
    """
    tier_a = record.periodATier
    tier_b = record.periodBTier

    if tier_a is None and tier_b is None:
        return None

    if tier_a is None:
        movement = (
            MovementType.REACTIVATION
            if record.hadActivityBeforePeriodA
            else MovementType.NEW
        )
        return TransitionRecord(
            customerKey=record.customerKey,
            line=record.line,
            fromTier=None,
            toTier=tier_b,
            movement=movement,
        )

    if tier_b is None:
        return TransitionRecord(
            customerKey=record.customerKey,
            line=record.line,
            fromTier=tier_a,
            toTier=None,
            movement=MovementType.CHURNED,
        )

    return TransitionRecord(
        customerKey=record.customerKey,
        line=record.line,
        fromTier=tier_a,
        toTier=tier_b,
        movement=classify_movement(tier_a.rank, tier_b.rank),
        tierChange=tier_a.rank - tier_b.rank,
    )


def _classify_chunk(records: Sequence[CustomerPeriodRecord]) -> List[TransitionRecord]:
    transitions = []
    for record in records:
        transition = classify_transition(record)
        if transition is not None:
            transitions.append(transition)
    return transitions


def classify_population(
    records: Sequence[CustomerPeriodRecord],
    max_workers: int = 1,
) -> List[TransitionRecord]:
    """
    Classify every record of a comparison population.

    Args:
        records: Customer period records for one comparison.
        max_workers: Thread pool size. 1 classifies on the calling thread.

    Returns:
        TransitionRecords in input order, without the excluded (both-absent)
        customers.
    """
    records = list(records)
    workers = max(1, min(max_workers, len(records) // MIN_RECORDS_PER_WORKER))

    if workers == 1:
        transitions = _classify_chunk(records)
    else:
        chunk_size = -(-len(records) // workers)
        chunks = [records[i:i + chunk_size] for i in range(0, len(records), chunk_size)]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            transitions = [t for part in executor.map(_classify_chunk, chunks) for t in part]

    excluded = len(records) - len(transitions)
    logger.debug(
        f"Classified {len(transitions)} transitions from {len(records)} records "
        f"({excluded} excluded, workers={workers})"
    )
    return transitions
