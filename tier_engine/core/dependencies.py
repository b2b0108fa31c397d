"""
FastAPI dependency injection module for the Tier Engine.

Provides reusable dependencies for database access, configuration, the
warehouse snapshot source, the assignment workflow and caller identity.
Endpoints declare what they need through the ``*Dep`` type aliases; tests swap
any of them out with ``app.dependency_overrides``.

Key Dependencies Provided:
- get_pool_dependency / PoolDep: the shared asyncpg pool
- get_settings_dependency / SettingsDep: cached Settings singleton
- get_rank_table / RankTableDep: tier rank table honouring unknown_tier_rank
- get_snapshot_source / SnapshotSourceDep: Postgres period snapshot source
- get_handler_registry / HandlerRegistryDep: SNR handler registry
- get_assignment_guard / AssignmentGuardDep: mutation guard sharing the
  process-wide InFlightGuardSet
- get_current_user / CurrentUserDep: username from the ``x-user`` header

Usage Examples:
    @router.post("/assignments/save")
    async def save(
        request: AssignmentRequest,
        guard: AssignmentGuardDep,
        current_user: CurrentUserDep,
    ) -> dict:
        result = await guard.save_assignment(
            request.customerKey, request.line, request.snrAccount, current_user
        )
        ...
"""

import json
import logging
from functools import lru_cache
from typing import Annotated, Optional

from asyncpg import Pool
from fastapi import Depends, Header

from tier_engine.core.config import Settings, get_settings
from tier_engine.core.database import get_db_pool
from tier_engine.services.assignment_guard import AssignmentMutationGuard, InFlightGuardSet
from tier_engine.services.assignment_repository import PostgresAssignmentRepository
from tier_engine.services.handler_registry import PostgresHandlerRegistry
from tier_engine.services.snapshot_source import PostgresSnapshotSource, SnapshotSource
from tier_engine.services.tier_rank import TierRankTable


logger = logging.getLogger(__name__)


# =============================================================================
# Database Dependencies
# =============================================================================

async def get_pool_dependency() -> Pool:
    """Return the shared asyncpg pool for services that acquire their own connections."""
    return await get_db_pool()


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

PoolDep = Annotated[Pool, Depends(get_pool_dependency)]


# =============================================================================
# Tier Analytics Dependencies
# =============================================================================

@lru_cache()
def _rank_table(unknown_rank: int) -> TierRankTable:
    return TierRankTable(unknown_rank=unknown_rank)


def get_rank_table(settings: SettingsDep) -> TierRankTable:
    return _rank_table(settings.unknown_tier_rank)


RankTableDep = Annotated[TierRankTable, Depends(get_rank_table)]


def get_snapshot_source(
    pool: PoolDep,
    settings: SettingsDep,
    rank_table: RankTableDep,
) -> SnapshotSource:
    """Snapshot source reading the activity warehouse with configured batching."""
    return PostgresSnapshotSource(
        pool,
        currency=settings.snapshot_currency,
        batch_size=settings.snapshot_batch_size,
        rank_table=rank_table,
        reactivation_lookback_days=settings.reactivation_lookback_days,
    )


SnapshotSourceDep = Annotated[SnapshotSource, Depends(get_snapshot_source)]


# =============================================================================
# Assignment Dependencies
# =============================================================================

# Shared by every request in this process; None until first use
_guard_set: Optional[InFlightGuardSet] = None


def get_guard_set() -> InFlightGuardSet:
    """Return the process-wide in-flight guard set, creating it on first use."""
    global _guard_set

    if _guard_set is None:
        _guard_set = InFlightGuardSet()

    return _guard_set


def get_handler_registry(pool: PoolDep) -> PostgresHandlerRegistry:
    return PostgresHandlerRegistry(pool)


HandlerRegistryDep = Annotated[PostgresHandlerRegistry, Depends(get_handler_registry)]


def get_assignment_guard(
    pool: PoolDep,
    registry: HandlerRegistryDep,
) -> AssignmentMutationGuard:
    """Mutation guard over the Postgres repository and registry."""
    return AssignmentMutationGuard(
        repository=PostgresAssignmentRepository(pool),
        registry=registry,
        guard_set=get_guard_set(),
    )


AssignmentGuardDep = Annotated[AssignmentMutationGuard, Depends(get_assignment_guard)]


# =============================================================================
# Caller Identity
# =============================================================================

async def get_current_user(
    x_user: Annotated[Optional[str], Header(alias="x-user")] = None,
) -> Optional[str]:
    """
    Username of the caller, read from the ``x-user`` header.

    The dashboard sends the logged-in user as JSON, e.g.
    ``{"username": "alice", "role": "admin"}``. Authentication itself happens
    upstream; a missing or unreadable header yields None.

    Returns:
        The username, or None.
    """
    if not x_user:
        return None
    try:
        user = json.loads(x_user)
    except ValueError:
        logger.warning("Could not parse x-user header")
        return None
    if not isinstance(user, dict):
        return None
    username = user.get("username")
    return str(username) if username else None


CurrentUserDep = Annotated[Optional[str], Depends(get_current_user)]
