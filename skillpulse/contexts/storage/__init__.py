"""
Data storage domain.

Handles persistence to PostgreSQL and the Redis snapshot cache.

Public API exports only the interfaces needed by other contexts.
Credentials and implementation details remain private.
"""

from skillpulse.contexts.storage.cache import (
    CacheWriter,
    ProfessionCache,
)
from skillpulse.contexts.storage.config import DatabaseConfig
from skillpulse.contexts.storage.database import (
    DatabaseWrapper,
    InvalidProfession,
    ProfessionAlreadyExists,
)
from skillpulse.contexts.storage.getter import get_database_wrapper
from skillpulse.contexts.storage.provider import (
    ProfessionDetailProvider,
    ProfessionNotFound,
)

__all__ = [
    # Factory function (primary interface)
    "get_database_wrapper",
    # Generic interfaces
    "DatabaseWrapper",
    "DatabaseConfig",
    # Profession administration errors
    "InvalidProfession",
    "ProfessionAlreadyExists",
    # Cache
    "ProfessionCache",
    "CacheWriter",
    # Read-back
    "ProfessionDetailProvider",
    "ProfessionNotFound",
]
