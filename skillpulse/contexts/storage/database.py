"""
Generic database wrapper for SkillPulse.

Provides the backend-agnostic interface the pipeline and the read-back
provider depend on. Statistics are keyed by (profession id, session id).
"""

import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import pandas as pd

from skillpulse.contexts.scraping.schema import (
    Profession,
    ScrapingSession,
    SkillCount,
    Stat,
)
from skillpulse.contexts.storage.config import DatabaseConfig


class ProfessionNotFound(LookupError):
    """Unknown profession, or no statistics for it in the latest session."""


class InvalidProfession(ValueError):
    """Blank profession name or vacancy query."""


class ProfessionAlreadyExists(ValueError):
    """Another profession already uses this name."""


def validate_profession_input(name: str, vacancy_query: str) -> Tuple[str, str]:
    """
    Strip and check a profession's name and vacancy query.

    Returns:
        (name, vacancy_query) with surrounding whitespace removed

    Raises:
        InvalidProfession: If either is empty after stripping
    """
    name = (name or "").strip()
    vacancy_query = (vacancy_query or "").strip()
    if not name:
        raise InvalidProfession("profession name cannot be empty")
    if not vacancy_query:
        raise InvalidProfession("vacancy query cannot be empty")
    return name, vacancy_query


class DatabaseWrapper(ABC):
    """
    Abstract base class for database operations.

    Provides a common interface for different database backends (PostgreSQL, ...)
    """

    def __init__(self, config: DatabaseConfig):
        """
        Initialize database wrapper.

        Args:
            config: Database config
        """
        self.config = config

    @abstractmethod
    def connect(self):
        """Create and return a database connection."""
        pass

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the profession, scraping, stat, formal_skill and extracted_skill tables if missing."""
        pass

    # Professions

    @abstractmethod
    def get_active_professions(self) -> List[Profession]:
        pass

    @abstractmethod
    def get_all_professions(self) -> List[Profession]:
        """Every profession, inactive ones included."""
        pass

    @abstractmethod
    def get_profession(self, profession_id: uuid.UUID) -> Optional[Profession]:
        pass

    @abstractmethod
    def add_profession(self, name: str, vacancy_query: str) -> Profession:
        """
        Register a new active profession.

        Raises:
            InvalidProfession: If the name or query is blank
            ProfessionAlreadyExists: If the name is taken
        """
        pass

    @abstractmethod
    def update_profession(
        self,
        profession_id: uuid.UUID,
        name: Optional[str] = None,
        vacancy_query: Optional[str] = None,
    ) -> Profession:
        """
        Rename a profession and/or change its vacancy query; None keeps the current value.

        Raises:
            ProfessionNotFound: If no profession has this id
            InvalidProfession: If the resulting name or query is blank
            ProfessionAlreadyExists: If the new name is taken
        """
        pass

    @abstractmethod
    def set_profession_active(self, profession_id: uuid.UUID, active: bool) -> Profession:
        """
        Include (active) or exclude a profession from future runs.

        Raises:
            ProfessionNotFound: If no profession has this id
        """
        pass

    # Sessions

    @abstractmethod
    def create_scraping_session(self) -> ScrapingSession:
        """Open a new session; every row a persisted run writes carries its id."""
        pass

    @abstractmethod
    def get_latest_session(self) -> Optional[ScrapingSession]:
        pass

    # Statistics

    @abstractmethod
    def save_stat(self, session_id: uuid.UUID, profession_id: uuid.UUID, vacancy_count: int) -> None:
        pass

    @abstractmethod
    def save_formal_skills(self, session_id: uuid.UUID, profession_id: uuid.UUID, counts: Dict[str, int]) -> None:
        pass

    @abstractmethod
    def save_extracted_skills(self, session_id: uuid.UUID, profession_id: uuid.UUID, counts: Dict[str, int]) -> None:
        pass

    @abstractmethod
    def get_stat(self, profession_id: uuid.UUID, session_id: uuid.UUID) -> Optional[Stat]:
        pass

    @abstractmethod
    def get_formal_skills(self, profession_id: uuid.UUID, session_id: uuid.UUID) -> List[SkillCount]:
        pass

    @abstractmethod
    def get_extracted_skills(self, profession_id: uuid.UUID, session_id: uuid.UUID) -> List[SkillCount]:
        pass

    @abstractmethod
    def export_df(self, query: str = None) -> pd.DataFrame:
        """
        Execute a query and return results as a pandas DataFrame.

        Args:
            query: SQL query string (default: vacancy counts per profession and session)

        Returns:
            DataFrame with query results
        """
        pass

    @staticmethod
    @abstractmethod
    def _db_exists(config: DatabaseConfig) -> bool:
        """
        Check if a database exists.

        Args:
            config: DatabaseConfig with connection details

        Returns:
            True if database exists, False otherwise
        """
        pass

    @staticmethod
    @abstractmethod
    def _create_db(config: DatabaseConfig) -> None:
        pass

    @classmethod
    def from_config(cls, config: DatabaseConfig, ensure_exists: bool = False):
        if ensure_exists and not cls._db_exists(config):
            cls._create_db(config)
        return cls(config)
