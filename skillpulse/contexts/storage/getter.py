import os

from dotenv import load_dotenv

from skillpulse.contexts.storage.config import DatabaseConfig
from skillpulse.contexts.storage.database import DatabaseWrapper
from skillpulse.contexts.storage.postgres import PostgreSQLWrapper

# Load environment variables from .env file
load_dotenv()

# Supported database backends
backend_class_map = {"postgres": PostgreSQLWrapper}
ALLOWED_BACKENDS = list(backend_class_map.keys())


def get_database_wrapper(config: DatabaseConfig = None, ensure_exists: bool = False) -> DatabaseWrapper:
    """
    Factory function to create appropriate DatabaseWrapper based on DATABASE_BACKEND env var.

    Args:
        config: DatabaseConfig with connection details (default: DatabaseConfig.from_env())
        ensure_exists: If True, create database if it doesn't exist

    Returns:
        DatabaseWrapper implementation for the configured backend

    Raises:
        ValueError: If DATABASE_BACKEND is not set or is unsupported
    """
    database_backend = os.getenv("DATABASE_BACKEND")
    if not database_backend:
        raise ValueError(
            "DATABASE_BACKEND environment variable not set. "
            f"Set it in your .env file to one of: {', '.join(ALLOWED_BACKENDS)}"
        )

    backend = database_backend.lower()
    if backend not in ALLOWED_BACKENDS:
        raise ValueError(
            f"Unsupported database backend: '{database_backend}'. "
            f"Supported backends: {', '.join(ALLOWED_BACKENDS)}"
        )

    config = config or DatabaseConfig.from_env()
    return backend_class_map[backend].from_config(config, ensure_exists=ensure_exists)
