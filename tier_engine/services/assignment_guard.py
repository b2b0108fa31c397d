"""
Assignment Mutation Guard

Concurrency-safe save / clear / bulk save of a customer's SNR-account
assignment. At most one mutation per customer key is in flight at any time.

State per customer key:

    Idle --(save/clear accepted)--> InFlight --(finished, failed or cancelled)--> Idle

A request arriving while its key is InFlight is rejected with
ConcurrencyRejected immediately. It is never queued or retried; the caller
re-issues it once the first mutation completes.

Two layers:
- ``save`` / ``clear`` raise ValidationError, ConcurrencyRejected or
  RepositoryError.
- ``save_assignment`` / ``clear_assignment`` / ``bulk_save_assignments`` catch
  those errors and report them inside AssignmentResults, so one bad item can
  never halt a batch.
"""

import asyncio
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional, Sequence, Set

from tier_engine.core.exceptions import ConcurrencyRejected, TierEngineError, ValidationError
from tier_engine.models.schemas import (
    AssignmentErrorDetail,
    AssignmentRecord,
    AssignmentRequest,
    AssignmentResult,
    BulkAssignmentResult,
)
from tier_engine.services.assignment_repository import AssignmentRepository
from tier_engine.services.handler_registry import HandlerRegistry


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# In-Flight Guard Set
# =============================================================================


class InFlightGuardSet:
    """
    Process-wide set of customer keys currently being mutated.

    Test-and-set happens under a threading.Lock, so the guard holds for
    coroutines on one event loop and for worker threads alike.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._keys: Set[str] = set()

    def try_acquire(self, key: str) -> bool:
        """Mark key as in flight. Returns False if it already was."""
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._keys.discard(key)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """
        Keep key in flight for the duration of the block.

        Raises:
            ConcurrencyRejected: If key is already in flight.
        """
        if not self.try_acquire(key):
            raise ConcurrencyRejected(key)
        try:
            yield
        finally:
            self.release(key)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


# =============================================================================
# Mutation Guard
# =============================================================================


def _require(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(field)
    return str(value).strip()


def _is_cleared(record: AssignmentRecord) -> bool:
    return (
        record.snrAccount is None
        and record.handler is None
        and record.assignedAt is None
        and record.assignedBy is None
    )


def _error_result(customer_key: str, error: TierEngineError) -> AssignmentResult:
    return AssignmentResult(
        customerKey=customer_key,
        success=False,
        error=AssignmentErrorDetail(**error.to_dict()),
    )


class AssignmentMutationGuard:
    """
    Serializes assignment mutations per customer key.

    Args:
        repository: Assignment storage.
        registry: SNR account to handler lookup.
        guard_set: Shared in-flight set. Every guard serving the same
            customers must share one instance.
        clock: Returns the current UTC time for assignedAt.
    """

    def __init__(
        self,
        repository: AssignmentRepository,
        registry: HandlerRegistry,
        guard_set: Optional[InFlightGuardSet] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.registry = registry
        self.guard_set = guard_set if guard_set is not None else InFlightGuardSet()
        self._clock = clock

    # =========================================================================
    # Raising operations
    # =========================================================================

    async def save(
        self,
        customer_key: Optional[str],
        line: Optional[str],
        snr_account: Optional[str],
        assigned_by: Optional[str] = None,
    ) -> AssignmentRecord:
        """
        Assign an SNR account (and its handler) to a customer.

        Args:
            customer_key: Customer to assign.
            line: Brand line of the customer.
            snr_account: SNR account to assign.
            assigned_by: Username of the caller, if known.

        Returns:
            The stored AssignmentRecord. Its handler is an empty string when
            the SNR account has no handler configured.

        Raises:
            ValidationError: If customer_key, line or snr_account is blank.
            ConcurrencyRejected: If a mutation for the key is in flight.
            RepositoryError: If the registry or repository fails.
        """
        customer_key = _require(customer_key, "customerKey")
        line = _require(line, "line")
        snr_account = _require(snr_account, "snrAccount")

        with self.guard_set.hold(customer_key):
            handler = await self.registry.lookup(snr_account)
            record = AssignmentRecord(
                customerKey=customer_key,
                line=line,
                snrAccount=snr_account,
                handler=handler,
                assignedAt=self._clock(),
                assignedBy=assigned_by,
            )
            saved = await self.repository.save(record)

        logger.info(f"Saved assignment for {customer_key}: {snr_account} -> {handler or '(no handler)'}")
        return saved

    async def clear(self, customer_key: Optional[str]) -> bool:
        """
        Remove a customer's assignment.

        Clearing an unassigned customer is a successful no-op.

        Returns:
            True if a record was changed, False for the no-op case.

        Raises:
            ValidationError: If customer_key is blank.
            ConcurrencyRejected: If a mutation for the key is in flight.
            RepositoryError: If the repository fails.
        """
        customer_key = _require(customer_key, "customerKey")

        with self.guard_set.hold(customer_key):
            existing = await self.repository.get(customer_key)
            if existing is None or _is_cleared(existing):
                logger.debug(f"Assignment for {customer_key} already clear")
                return False
            await self.repository.clear(customer_key)

        logger.info(f"Cleared assignment for {customer_key}")
        return True

    # =========================================================================
    # Result-returning operations
    # =========================================================================

    async def save_assignment(
        self,
        customer_key: Optional[str],
        line: Optional[str],
        snr_account: Optional[str],
        assigned_by: Optional[str] = None,
    ) -> AssignmentResult:
        """``save`` with engine errors reported in the result."""
        try:
            record = await self.save(customer_key, line, snr_account, assigned_by)
        except TierEngineError as e:
            logger.warning(f"Save rejected for {customer_key!r}: {e.code}: {e.message}")
            return _error_result(customer_key or "", e)
        return AssignmentResult(customerKey=record.customerKey, success=True, handler=record.handler)

    async def clear_assignment(self, customer_key: Optional[str]) -> AssignmentResult:
        """``clear`` with engine errors reported in the result."""
        try:
            await self.clear(customer_key)
        except TierEngineError as e:
            logger.warning(f"Clear rejected for {customer_key!r}: {e.code}: {e.message}")
            return _error_result(customer_key or "", e)
        return AssignmentResult(customerKey=customer_key.strip(), success=True)

    async def _save_item(self, item: AssignmentRequest, assigned_by: Optional[str]) -> AssignmentResult:
        try:
            return await self.save_assignment(item.customerKey, item.line, item.snrAccount, assigned_by)
        except Exception as e:
            logger.error(f"Unexpected error saving {item.customerKey!r}: {e}", exc_info=True)
            return AssignmentResult(
                customerKey=item.customerKey,
                success=False,
                error=AssignmentErrorDetail(code="internal_error", message=str(e)),
            )

    async def bulk_save_assignments(
        self,
        items: Sequence[AssignmentRequest],
        assigned_by: Optional[str] = None,
    ) -> BulkAssignmentResult:
        """
        Save every item independently and concurrently.

        Each item goes through the single-item save path, so a key already in
        flight (including a duplicate inside the same batch) is rejected for
        that item only. If the caller cancels the batch, items already
        dispatched still run to completion and release their keys.

        Returns:
            BulkAssignmentResult with results in input order.
        """
        tasks = [asyncio.ensure_future(self._save_item(item, assigned_by)) for item in items]
        if not tasks:
            return BulkAssignmentResult()

        results: List[AssignmentResult] = await asyncio.shield(asyncio.gather(*tasks))

        success_count = sum(1 for r in results if r.success)
        bulk = BulkAssignmentResult(
            results=list(results),
            successCount=success_count,
            errorCount=len(results) - success_count,
        )
        logger.info(
            f"Bulk save finished: {bulk.successCount} succeeded, {bulk.errorCount} failed "
            f"out of {len(results)}"
        )
        return bulk
