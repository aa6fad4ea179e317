"""
Database configuration for the SkillPulse storage context.

Handles loading credentials from environment and creating connection configurations.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _get_required_env(key: str) -> str:
    """Get required environment variable or raise clear error."""
    try:
        return os.environ[key]
    except KeyError:
        raise EnvironmentError(
            f"Required environment variable '{key}' not found. "
            f"Ensure .env file exists and contains {key}."
        )


def get_postgres_credentials() -> dict:
    """
    Get PostgreSQL credentials from environment.

    Returns:
        Dictionary with host, port, user, password

    Raises:
        EnvironmentError: If any of POSTGRES_HOST/PORT/USER/PASSWORD is missing
    """
    return {
        "host": _get_required_env("POSTGRES_HOST"),
        "port": int(_get_required_env("POSTGRES_PORT")),
        "user": _get_required_env("POSTGRES_USER"),
        "password": _get_required_env("POSTGRES_PASSWORD"),
    }


@dataclass
class DatabaseConfig:
    """Generic database connection configuration."""

    host: str
    port: int
    user: str
    password: str
    name: str

    def __post_init__(self):
        if not self.name:
            raise ValueError("Database name is required")

    @classmethod
    def from_env(cls, name: str = None) -> "DatabaseConfig":
        """Create DatabaseConfig from environment variables (database name from POSTGRES_DB unless given)."""
        return cls(name=name or os.getenv("POSTGRES_DB", "skillpulse"), **get_postgres_credentials())

    @property
    def connection_string(self) -> str:
        """Generate PostgreSQL connection string."""
        return f"postgresql+psycopg2://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"
