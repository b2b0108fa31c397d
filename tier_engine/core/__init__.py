"""
Core infrastructure package for the Tier Engine service.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL database connectivity via asyncpg
- The engine error taxonomy

FastAPI dependencies live in tier_engine.core.dependencies and are not
re-exported here.

Re-exports key components so other modules can write:

    from tier_engine.core import get_settings, get_db_pool, RepositoryError

Usage Examples:
    # Database pool lifecycle (in FastAPI lifespan)
    from tier_engine.core import init_db, close_db

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db()
        yield
        await close_db()
"""

# =============================================================================
# Re-exports from tier_engine.core.config
# =============================================================================
from tier_engine.core.config import Settings, get_settings

# =============================================================================
# Re-exports from tier_engine.core.database
# =============================================================================
from tier_engine.core.database import init_db, close_db, get_db_pool

# =============================================================================
# Re-exports from tier_engine.core.exceptions
# =============================================================================
from tier_engine.core.exceptions import (
    TierEngineError,
    ValidationError,
    ConcurrencyRejected,
    NotFound,
    RepositoryError,
)


__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    # Error taxonomy (from exceptions.py)
    'TierEngineError',
    'ValidationError',
    'ConcurrencyRejected',
    'NotFound',
    'RepositoryError',
]
