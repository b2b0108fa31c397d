"""
Period Snapshot Source

Builds the paired CustomerPeriodRecords that feed the transition classifier.

Pipeline per comparison:
1. Fetch active daily rows (deposit_cases > 0, tier present) for Period A and
   Period B in fixed-size batches.
2. Reduce each period per customer with pandas: the period tier is the BEST
   tier (lowest rank) the customer held on any active day, metrics are summed
   and the earliest first deposit date is kept.
3. Fetch the set of customers active before Period A start (optionally only
   within a lookback window) to tell REACTIVATION apart from NEW.
4. Pair both periods over the union of customer keys.

NEW vs REACTIVATION for a customer absent in Period A:
- first deposit date known and inside Period B  -> brand new (NEW)
- first deposit date known and outside Period B -> returning (REACTIVATION)
- first deposit date unknown                    -> returning if found in the
                                                   pre-Period A history set
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import asyncpg
import pandas as pd

from tier_engine.core.database import STORAGE_ERRORS
from tier_engine.core.exceptions import RepositoryError
from tier_engine.models.schemas import CustomerPeriodRecord, DateRange, PeriodMetrics, TierRef
from tier_engine.services.tier_rank import DEFAULT_RANK_TABLE, TierRankTable
from tier_engine.sql.snapshot_queries import (
    get_activity_history_query,
    get_period_activity_query,
)


logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS = [
    "customer_key",
    "line",
    "tier_name",
    "deposit_cases",
    "deposit_amount",
    "withdraw_amount",
    "first_deposit_date",
]


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class CustomerPeriodSnapshot:
    """One customer's reduced activity within a single period."""
    customer_key: str
    line: Optional[str]
    tier: TierRef
    metrics: PeriodMetrics
    first_deposit_date: Optional[date] = None


# =============================================================================
# AGGREGATION
# =============================================================================

def aggregate_period_rows(
    rows: Iterable[Mapping[str, Any]],
    rank_table: TierRankTable = DEFAULT_RANK_TABLE,
) -> Dict[str, CustomerPeriodSnapshot]:
    """
    Reduce daily warehouse rows to one snapshot per customer.

    Inactive rows (deposit_cases <= 0) and rows without a tier are ignored,
    so a customer with no active day in the period is absent from the result.

    Args:
        rows: Daily rows with the SNAPSHOT_COLUMNS keys (dicts or asyncpg
            Records).
        rank_table: Resolves tier names to canonical TierRefs.

    Returns:
        Customer key -> CustomerPeriodSnapshot.
    """
    frame = pd.DataFrame([dict(row) for row in rows])
    if frame.empty:
        return {}

    for column in SNAPSHOT_COLUMNS:
        if column not in frame.columns:
            frame[column] = None

    frame["customer_key"] = frame["customer_key"].fillna("").astype(str).str.strip()
    frame["tier_name"] = frame["tier_name"].fillna("").astype(str).str.strip()
    for column in ("deposit_cases", "deposit_amount", "withdraw_amount"):
        frame[column] = pd.to_numeric(frame[column], errors="coerce").fillna(0)
    frame["first_deposit_date"] = pd.to_datetime(frame["first_deposit_date"], errors="coerce")

    active = frame[
        (frame["deposit_cases"] > 0)
        & (frame["tier_name"] != "")
        & (frame["customer_key"] != "")
    ].copy()
    if active.empty:
        return {}

    refs = [rank_table.tier_ref(name) for name in active["tier_name"]]
    active["tier_canonical"] = [ref.name for ref in refs]
    active["tier_rank"] = [ref.rank for ref in refs]

    totals = active.groupby("customer_key", sort=True).agg(
        line=("line", "first"),
        deposit_cases=("deposit_cases", "sum"),
        deposit_amount=("deposit_amount", "sum"),
        withdraw_amount=("withdraw_amount", "sum"),
        first_deposit_date=("first_deposit_date", "min"),
    )

    best = (
        active.sort_values(["customer_key", "tier_rank", "tier_canonical"])
        .drop_duplicates("customer_key", keep="first")
        .set_index("customer_key")
    )

    snapshots: Dict[str, CustomerPeriodSnapshot] = {}
    for customer_key, row in totals.iterrows():
        deposit_amount = float(row["deposit_amount"])
        withdraw_amount = float(row["withdraw_amount"])
        first_deposit = row["first_deposit_date"]
        line = row["line"]

        snapshots[customer_key] = CustomerPeriodSnapshot(
            customer_key=customer_key,
            line=None if pd.isna(line) else str(line),
            tier=TierRef(
                name=best.at[customer_key, "tier_canonical"],
                rank=int(best.at[customer_key, "tier_rank"]),
            ),
            metrics=PeriodMetrics(
                depositCases=int(row["deposit_cases"]),
                depositAmount=deposit_amount,
                withdrawAmount=withdraw_amount,
                ggr=deposit_amount - withdraw_amount,
            ),
            first_deposit_date=None if pd.isna(first_deposit) else first_deposit.date(),
        )

    return snapshots


def pair_periods(
    period_a: Mapping[str, CustomerPeriodSnapshot],
    period_b: Mapping[str, CustomerPeriodSnapshot],
    history_keys: Set[str],
    period_b_range: Optional[DateRange] = None,
) -> List[CustomerPeriodRecord]:
    """
    Pair two period snapshots into CustomerPeriodRecords.

    Args:
        period_a: Period A snapshots by customer key.
        period_b: Period B snapshots by customer key.
        history_keys: Customers active before Period A start.
        period_b_range: When given, a known first deposit date decides
            NEW vs REACTIVATION before the history set is consulted.

    Returns:
        One record per customer present in either period, sorted by key.
    """
    records = []
    for customer_key in sorted(set(period_a) | set(period_b)):
        snap_a = period_a.get(customer_key)
        snap_b = period_b.get(customer_key)

        had_history = customer_key in history_keys
        if (
            snap_a is None
            and snap_b is not None
            and period_b_range is not None
            and snap_b.first_deposit_date is not None
        ):
            first_deposit = snap_b.first_deposit_date
            had_history = not (period_b_range.start <= first_deposit <= period_b_range.end)

        records.append(CustomerPeriodRecord(
            customerKey=customer_key,
            line=(snap_b or snap_a).line,
            periodATier=snap_a.tier if snap_a else None,
            periodBTier=snap_b.tier if snap_b else None,
            periodAMetrics=snap_a.metrics if snap_a else PeriodMetrics(),
            periodBMetrics=snap_b.metrics if snap_b else PeriodMetrics(),
            hadActivityBeforePeriodA=had_history,
        ))
    return records


# =============================================================================
# SOURCES
# =============================================================================

class SnapshotSource(ABC):
    """
    Supplier of period snapshots and pre-period activity history.

    Args:
        rank_table: Tier rank table used during aggregation.
        reactivation_lookback_days: History window for the returning-customer
            check. None means any activity ever before Period A.
    """

    def __init__(
        self,
        rank_table: TierRankTable = DEFAULT_RANK_TABLE,
        reactivation_lookback_days: Optional[int] = None,
    ):
        self.rank_table = rank_table
        self.reactivation_lookback_days = reactivation_lookback_days

    @abstractmethod
    async def load_period(
        self,
        line_filter: Optional[str],
        date_range: DateRange,
    ) -> Dict[str, CustomerPeriodSnapshot]:
        """Per-customer snapshots of one period."""

    @abstractmethod
    async def load_history(
        self,
        line_filter: Optional[str],
        before: date,
        since: Optional[date] = None,
    ) -> Set[str]:
        """Customers with any activity in [since, before)."""

    def history_start(self, period_a: DateRange) -> Optional[date]:
        if not self.reactivation_lookback_days:
            return None
        return period_a.start - timedelta(days=self.reactivation_lookback_days)

    async def load_comparison(
        self,
        line_filter: Optional[str],
        period_a: DateRange,
        period_b: DateRange,
    ) -> List[CustomerPeriodRecord]:
        """
        Load both periods and the history set, then pair them.

        Returns:
            CustomerPeriodRecords ready for classification.
        """
        snapshots_a, snapshots_b, history = await asyncio.gather(
            self.load_period(line_filter, period_a),
            self.load_period(line_filter, period_b),
            self.load_history(line_filter, period_a.start, self.history_start(period_a)),
        )
        records = pair_periods(snapshots_a, snapshots_b, history, period_b)
        logger.info(
            f"Loaded comparison line={line_filter or 'All'}: "
            f"periodA={len(snapshots_a)}, periodB={len(snapshots_b)}, "
            f"history={len(history)}, records={len(records)}"
        )
        return records


class PostgresSnapshotSource(SnapshotSource):
    """
    Snapshot source reading the daily activity warehouse through asyncpg.

    Args:
        pool: asyncpg connection pool.
        currency: Currency market to read.
        batch_size: Rows fetched per round trip.
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        currency: str = "USC",
        batch_size: int = 10000,
        rank_table: TierRankTable = DEFAULT_RANK_TABLE,
        reactivation_lookback_days: Optional[int] = None,
    ):
        super().__init__(rank_table, reactivation_lookback_days)
        self._pool = pool
        self.currency = currency
        self.batch_size = batch_size

    async def _fetch_batches(self, build_query) -> List[asyncpg.Record]:
        rows: List[asyncpg.Record] = []
        offset = 0
        try:
            async with self._pool.acquire() as conn:
                while True:
                    query, args = build_query(offset)
                    batch = await conn.fetch(query, *args)
                    rows.extend(batch)
                    if len(batch) < self.batch_size:
                        break
                    offset += self.batch_size
        except STORAGE_ERRORS as e:
            logger.error(f"Snapshot query failed at offset {offset}: {e}", exc_info=True)
            raise RepositoryError(f"Failed to load activity snapshot: {e}", cause=e) from e
        return rows

    async def load_period(
        self,
        line_filter: Optional[str],
        date_range: DateRange,
    ) -> Dict[str, CustomerPeriodSnapshot]:
        rows = await self._fetch_batches(
            lambda offset: get_period_activity_query(
                self.currency,
                date_range.start,
                date_range.end,
                line=line_filter,
                limit=self.batch_size,
                offset=offset,
            )
        )
        snapshots = aggregate_period_rows(rows, self.rank_table)
        logger.debug(
            f"Period {date_range.start}..{date_range.end}: {len(rows)} rows -> "
            f"{len(snapshots)} customers"
        )
        return snapshots

    async def load_history(
        self,
        line_filter: Optional[str],
        before: date,
        since: Optional[date] = None,
    ) -> Set[str]:
        rows = await self._fetch_batches(
            lambda offset: get_activity_history_query(
                self.currency,
                before,
                since_date=since,
                line=line_filter,
                limit=self.batch_size,
                offset=offset,
            )
        )
        return {str(row["customer_key"]) for row in rows if row["customer_key"]}
