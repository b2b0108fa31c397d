"""
SNR handler registry.

Maps an SNR account to the name of the person handling it. The assignment
guard only needs ``lookup``; the Handler Setup screen additionally lists,
creates, updates and deletes mappings through PostgresHandlerRegistry.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

import asyncpg

from tier_engine.core.database import STORAGE_ERRORS
from tier_engine.core.exceptions import NotFound, RepositoryError, ValidationError
from tier_engine.models.schemas import HandlerSetupEntry, HandlerSetupRequest
from tier_engine.sql.assignment_queries import (
    DELETE_HANDLER,
    INSERT_HANDLER,
    LIST_HANDLERS,
    SELECT_HANDLER_BY_ACCOUNT,
    UPDATE_HANDLER,
)


logger = logging.getLogger(__name__)


class HandlerRegistry(ABC):
    """Read-only SNR account to handler lookup."""

    @abstractmethod
    async def lookup(self, snr_account: str) -> str:
        """
        Handler name for an SNR account.

        Returns:
            The handler, or an empty string when the account is blank or has
            no handler configured.

        Raises:
            RepositoryError: If the registry storage fails.
        """


def _entry_from_row(row: asyncpg.Record) -> HandlerSetupEntry:
    return HandlerSetupEntry(
        id=row["id"],
        snrAccount=row["snr_account"],
        line=row["line"],
        handler=row["handler"],
        assignedBy=row["assigned_by"],
        assignedTime=row["assigned_time"],
    )


class PostgresHandlerRegistry(HandlerRegistry):
    """HandlerRegistry backed by the snr_handler table."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def lookup(self, snr_account: str) -> str:
        if not snr_account or not snr_account.strip():
            return ""
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(SELECT_HANDLER_BY_ACCOUNT, snr_account.strip())
        except STORAGE_ERRORS as e:
            raise RepositoryError(f"Failed to fetch handler for {snr_account}: {e}", cause=e) from e

        if row is None or not row["handler"]:
            logger.debug(f"No handler found for SNR account: {snr_account}")
            return ""
        return str(row["handler"]).strip()

    # =========================================================================
    # Handler Setup administration
    # =========================================================================

    async def list_handlers(self) -> List[HandlerSetupEntry]:
        """All mappings ordered by line, then SNR account."""
        try:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(LIST_HANDLERS)
        except STORAGE_ERRORS as e:
            raise RepositoryError(f"Failed to list handlers: {e}", cause=e) from e
        return [_entry_from_row(row) for row in rows]

    async def save_handler(
        self,
        request: HandlerSetupRequest,
        assigned_by: Optional[str] = None,
    ) -> HandlerSetupEntry:
        """
        Create a mapping, or update it when ``request.id`` is set.

        Raises:
            ValidationError: If snrAccount, line or handler is blank, or a
                mapping for the SNR account already exists.
            NotFound: If the id to update does not exist.
            RepositoryError: On any other storage failure.
        """
        for field in ("snrAccount", "line", "handler"):
            if not getattr(request, field):
                raise ValidationError(field)

        assigned_time = datetime.now(timezone.utc)
        try:
            async with self._pool.acquire() as conn:
                if request.id:
                    row = await conn.fetchrow(
                        UPDATE_HANDLER,
                        request.id,
                        request.line,
                        request.handler,
                        assigned_by,
                        assigned_time,
                    )
                    if row is None:
                        raise NotFound(f"Handler setup {request.id} not found")
                else:
                    row = await conn.fetchrow(
                        INSERT_HANDLER,
                        request.snrAccount,
                        request.line,
                        request.handler,
                        assigned_by,
                        assigned_time,
                    )
        except asyncpg.UniqueViolationError as e:
            raise ValidationError(
                "snrAccount",
                f"Handler for SNR account {request.snrAccount} already exists. Please update instead.",
            ) from e
        except STORAGE_ERRORS as e:
            raise RepositoryError(f"Failed to save handler: {e}", cause=e) from e

        logger.info(f"Saved handler setup: {request.snrAccount} -> {request.handler}")
        return _entry_from_row(row)

    async def delete_handler(self, handler_id: int) -> None:
        """
        Delete a mapping.

        Raises:
            NotFound: If no mapping has the id.
            RepositoryError: On storage failure.
        """
        try:
            async with self._pool.acquire() as conn:
                status = await conn.execute(DELETE_HANDLER, handler_id)
        except STORAGE_ERRORS as e:
            raise RepositoryError(f"Failed to delete handler {handler_id}: {e}", cause=e) from e

        if status.endswith(" 0"):
            raise NotFound(f"Handler setup {handler_id} not found")
        logger.info(f"Deleted handler setup {handler_id}")
