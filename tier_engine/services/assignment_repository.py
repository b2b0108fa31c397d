"""
Customer assignment persistence.

The repository owns AssignmentRecords. Absence of a row means the customer is
unassigned; ``clear`` keeps the row and nulls the assignment columns.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import asyncpg

from tier_engine.core.database import STORAGE_ERRORS
from tier_engine.core.exceptions import RepositoryError
from tier_engine.models.schemas import AssignmentRecord
from tier_engine.sql.assignment_queries import (
    CLEAR_ASSIGNMENT,
    SELECT_ASSIGNMENT,
    UPSERT_ASSIGNMENT,
)


logger = logging.getLogger(__name__)


class AssignmentRepository(ABC):
    """Storage for customer assignments. Every method may raise RepositoryError."""

    @abstractmethod
    async def get(self, customer_key: str) -> Optional[AssignmentRecord]:
        ...

    @abstractmethod
    async def save(self, record: AssignmentRecord) -> AssignmentRecord:
        """Insert or replace the record for record.customerKey."""

    @abstractmethod
    async def clear(self, customer_key: str) -> None:
        """Null snrAccount, handler, assignedAt and assignedBy."""


def _record_from_row(row: asyncpg.Record) -> AssignmentRecord:
    return AssignmentRecord(
        customerKey=row["customer_key"],
        line=row["line"],
        snrAccount=row["snr_account"],
        handler=row["handler"],
        assignedAt=row["assigned_at"],
        assignedBy=row["assigned_by"],
    )


class PostgresAssignmentRepository(AssignmentRepository):
    """AssignmentRepository backed by the customer_assignment table."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def get(self, customer_key: str) -> Optional[AssignmentRecord]:
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(SELECT_ASSIGNMENT, customer_key)
        except STORAGE_ERRORS as e:
            raise RepositoryError(f"Failed to read assignment for {customer_key}: {e}", cause=e) from e
        return _record_from_row(row) if row else None

    async def save(self, record: AssignmentRecord) -> AssignmentRecord:
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    UPSERT_ASSIGNMENT,
                    record.customerKey,
                    record.line,
                    record.snrAccount,
                    record.handler,
                    record.assignedAt,
                    record.assignedBy,
                )
        except STORAGE_ERRORS as e:
            raise RepositoryError(f"Failed to save assignment for {record.customerKey}: {e}", cause=e) from e
        return _record_from_row(row) if row else record

    async def clear(self, customer_key: str) -> None:
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(CLEAR_ASSIGNMENT, customer_key)
        except STORAGE_ERRORS as e:
            raise RepositoryError(f"Failed to clear assignment for {customer_key}: {e}", cause=e) from e
