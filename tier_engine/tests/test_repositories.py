"""
Tests for the Postgres-backed assignment repository and handler registry.

All database access goes through the mock asyncpg pool from conftest.
"""

import asyncio
from datetime import datetime, timezone

import asyncpg
import pytest

from tier_engine.core.exceptions import NotFound, RepositoryError, ValidationError
from tier_engine.models.schemas import AssignmentRecord, HandlerSetupRequest
from tier_engine.services.assignment_guard import AssignmentMutationGuard
from tier_engine.services.assignment_repository import PostgresAssignmentRepository
from tier_engine.services.handler_registry import PostgresHandlerRegistry
from tier_engine.sql.assignment_queries import (
    CLEAR_ASSIGNMENT,
    INSERT_HANDLER,
    UPDATE_HANDLER,
)


pytestmark = pytest.mark.asyncio

ASSIGNED_AT = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def assignment_row(customer_key="K1", snr_account="A1", handler="Alice"):
    return {
        "customer_key": customer_key,
        "line": "BRAND-A",
        "snr_account": snr_account,
        "handler": handler,
        "assigned_at": ASSIGNED_AT,
        "assigned_by": "ops.user",
    }


def handler_row(id=1, snr_account="A1", handler="Alice"):
    return {
        "id": id,
        "snr_account": snr_account,
        "line": "BRAND-A",
        "handler": handler,
        "assigned_by": "admin",
        "assigned_time": ASSIGNED_AT,
    }


# =============================================================================
# Test Class: TestPostgresAssignmentRepository
# =============================================================================

class TestPostgresAssignmentRepository:

    async def test_get_missing_returns_none(self, mock_db_pool):
        repository = PostgresAssignmentRepository(mock_db_pool)
        assert await repository.get("K1") is None

    async def test_get_maps_row(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.return_value = assignment_row()
        record = await PostgresAssignmentRepository(mock_db_pool).get("K1")

        assert record.snrAccount == "A1"
        assert record.handler == "Alice"
        assert record.assignedAt == ASSIGNED_AT

    async def test_save_returns_stored_row(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.return_value = assignment_row(handler="")
        record = AssignmentRecord(customerKey="K1", line="BRAND-A", snrAccount="A1", handler="")

        saved = await PostgresAssignmentRepository(mock_db_pool).save(record)

        assert saved.handler == ""
        args = mock_conn.fetchrow.await_args.args
        assert args[1:4] == ("K1", "BRAND-A", "A1")

    async def test_clear_executes_update(self, mock_db_pool, mock_conn):
        await PostgresAssignmentRepository(mock_db_pool).clear("K1")
        mock_conn.execute.assert_awaited_once_with(CLEAR_ASSIGNMENT, "K1")

    async def test_postgres_error_wrapped(self, mock_db_pool, mock_conn):
        cause = asyncpg.PostgresError("relation does not exist")
        mock_conn.fetchrow.side_effect = cause

        with pytest.raises(RepositoryError) as exc_info:
            await PostgresAssignmentRepository(mock_db_pool).get("K1")

        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause

    async def test_connection_error_wrapped_on_clear(self, mock_db_pool, mock_conn):
        mock_conn.execute.side_effect = OSError("connection refused")

        with pytest.raises(RepositoryError):
            await PostgresAssignmentRepository(mock_db_pool).clear("K1")

    async def test_interface_error_wrapped(self, mock_db_pool, mock_conn):
        cause = asyncpg.InterfaceError("pool is closing")
        mock_conn.fetchrow.side_effect = cause

        with pytest.raises(RepositoryError) as exc_info:
            await PostgresAssignmentRepository(mock_db_pool).get("K1")

        assert exc_info.value.cause is cause

    async def test_command_timeout_wrapped(self, mock_db_pool, mock_conn):
        mock_conn.execute.side_effect = asyncio.TimeoutError()

        with pytest.raises(RepositoryError):
            await PostgresAssignmentRepository(mock_db_pool).clear("K1")


# =============================================================================
# Test Class: TestGuardOverPostgresRepository
# =============================================================================

class TestGuardOverPostgresRepository:
    """Storage failures from the Postgres repository come back as results."""

    @pytest.fixture
    def postgres_guard(self, mock_db_pool, fake_registry, guard_set) -> AssignmentMutationGuard:
        return AssignmentMutationGuard(
            repository=PostgresAssignmentRepository(mock_db_pool),
            registry=fake_registry,
            guard_set=guard_set,
        )

    async def test_closing_pool_reported_in_result(self, postgres_guard, mock_conn, guard_set):
        mock_conn.fetchrow.side_effect = asyncpg.InterfaceError("pool is closing")

        result = await postgres_guard.save_assignment("K1", "BRAND-A", "A1")

        assert result.success is False
        assert result.error.code == "repository_error"
        assert "pool is closing" in result.error.message
        assert "K1" not in guard_set

    async def test_timeout_on_clear_reported_in_result(self, postgres_guard, mock_conn, guard_set):
        mock_conn.fetchrow.return_value = assignment_row()
        mock_conn.execute.side_effect = asyncio.TimeoutError()

        result = await postgres_guard.clear_assignment("K1")

        assert result.success is False
        assert result.error.code == "repository_error"
        assert "K1" not in guard_set


# =============================================================================
# Test Class: TestHandlerLookup
# =============================================================================

class TestHandlerLookup:

    async def test_known_account(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.return_value = {"handler": " Alice "}
        assert await PostgresHandlerRegistry(mock_db_pool).lookup("A1") == "Alice"

    async def test_unknown_account_returns_empty(self, mock_db_pool):
        assert await PostgresHandlerRegistry(mock_db_pool).lookup("Z9") == ""

    async def test_null_handler_returns_empty(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.return_value = {"handler": None}
        assert await PostgresHandlerRegistry(mock_db_pool).lookup("A1") == ""

    @pytest.mark.parametrize("account", ["", "   "])
    async def test_blank_account_skips_query(self, mock_db_pool, mock_conn, account):
        assert await PostgresHandlerRegistry(mock_db_pool).lookup(account) == ""
        mock_conn.fetchrow.assert_not_awaited()

    async def test_storage_failure_raises(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.side_effect = OSError("timeout")

        with pytest.raises(RepositoryError):
            await PostgresHandlerRegistry(mock_db_pool).lookup("A1")


# =============================================================================
# Test Class: TestHandlerSetup
# =============================================================================

class TestHandlerSetup:

    async def test_list_handlers(self, mock_db_pool, mock_conn):
        mock_conn.fetch.return_value = [handler_row(1, "A1"), handler_row(2, "B2", "Bob")]

        entries = await PostgresHandlerRegistry(mock_db_pool).list_handlers()

        assert [e.snrAccount for e in entries] == ["A1", "B2"]
        assert entries[1].handler == "Bob"

    async def test_create(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.return_value = handler_row(7)
        request = HandlerSetupRequest(snrAccount="A1", line="BRAND-A", handler="Alice")

        entry = await PostgresHandlerRegistry(mock_db_pool).save_handler(request, assigned_by="admin")

        assert entry.id == 7
        args = mock_conn.fetchrow.await_args.args
        assert args[0] == INSERT_HANDLER
        assert args[1:5] == ("A1", "BRAND-A", "Alice", "admin")

    async def test_update(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.return_value = handler_row(3, handler="Carol")
        request = HandlerSetupRequest(id=3, snrAccount="A1", line="BRAND-A", handler="Carol")

        entry = await PostgresHandlerRegistry(mock_db_pool).save_handler(request)

        assert entry.handler == "Carol"
        assert mock_conn.fetchrow.await_args.args[0] == UPDATE_HANDLER

    async def test_update_missing_id(self, mock_db_pool):
        request = HandlerSetupRequest(id=404, snrAccount="A1", line="BRAND-A", handler="Carol")

        with pytest.raises(NotFound):
            await PostgresHandlerRegistry(mock_db_pool).save_handler(request)

    @pytest.mark.parametrize("field", ["snrAccount", "line", "handler"])
    async def test_blank_field_rejected(self, mock_db_pool, mock_conn, field):
        values = {"snrAccount": "A1", "line": "BRAND-A", "handler": "Alice", field: "  "}

        with pytest.raises(ValidationError) as exc_info:
            await PostgresHandlerRegistry(mock_db_pool).save_handler(HandlerSetupRequest(**values))

        assert exc_info.value.field == field
        mock_conn.fetchrow.assert_not_awaited()

    async def test_duplicate_account(self, mock_db_pool, mock_conn):
        mock_conn.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key")
        request = HandlerSetupRequest(snrAccount="A1", line="BRAND-A", handler="Alice")

        with pytest.raises(ValidationError) as exc_info:
            await PostgresHandlerRegistry(mock_db_pool).save_handler(request)

        assert exc_info.value.message == (
            "Handler for SNR account A1 already exists. Please update instead."
        )

    async def test_delete(self, mock_db_pool, mock_conn):
        mock_conn.execute.return_value = "DELETE 1"
        await PostgresHandlerRegistry(mock_db_pool).delete_handler(1)
        mock_conn.execute.assert_awaited_once()

    async def test_delete_missing(self, mock_db_pool, mock_conn):
        mock_conn.execute.return_value = "DELETE 0"

        with pytest.raises(NotFound):
            await PostgresHandlerRegistry(mock_db_pool).delete_handler(99)
