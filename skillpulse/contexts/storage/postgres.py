"""
PostgreSQL-specific database operations for SkillPulse.

Provides:
- Database creation and existence checking
- PostgreSQL implementation of DatabaseWrapper
- Table creation for the profession/scraping/statistics schema
"""

import uuid
from contextlib import contextmanager
from typing import Dict, List, Optional

import pandas as pd
import psycopg2
import psycopg2.errors
import psycopg2.extras
from loguru import logger
from psycopg2 import sql
from sqlalchemy import create_engine

from skillpulse.contexts.scraping.schema import (
    Profession,
    ScrapingSession,
    SkillCount,
    Stat,
)
from skillpulse.contexts.storage.config import DatabaseConfig
from skillpulse.contexts.storage.database import (
    DatabaseWrapper,
    ProfessionAlreadyExists,
    ProfessionNotFound,
    validate_profession_input,
)

# Pass uuid.UUID parameters as-is and read UUID columns back as uuid.UUID
psycopg2.extras.register_uuid()

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS profession (
        id UUID PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        vacancy_query TEXT NOT NULL,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scraping (
        id UUID PRIMARY KEY,
        scraped_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stat (
        profession_id UUID NOT NULL REFERENCES profession (id) ON DELETE CASCADE,
        scraped_at_id UUID NOT NULL REFERENCES scraping (id) ON DELETE CASCADE,
        vacancy_count INTEGER NOT NULL,
        PRIMARY KEY (profession_id, scraped_at_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS formal_skill (
        profession_id UUID NOT NULL REFERENCES profession (id) ON DELETE CASCADE,
        scraped_at_id UUID NOT NULL REFERENCES scraping (id) ON DELETE CASCADE,
        skill TEXT NOT NULL,
        count INTEGER NOT NULL,
        PRIMARY KEY (profession_id, scraped_at_id, skill)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS extracted_skill (
        profession_id UUID NOT NULL REFERENCES profession (id) ON DELETE CASCADE,
        scraped_at_id UUID NOT NULL REFERENCES scraping (id) ON DELETE CASCADE,
        skill TEXT NOT NULL,
        count INTEGER NOT NULL,
        PRIMARY KEY (profession_id, scraped_at_id, skill)
    )
    """,
]

DEFAULT_EXPORT_QUERY = """
    SELECT p.name AS profession, s.scraped_at, st.vacancy_count
    FROM stat st
    JOIN profession p ON p.id = st.profession_id
    JOIN scraping s ON s.id = st.scraped_at_id
    ORDER BY s.scraped_at, p.name
"""


class PostgreSQLWrapper(DatabaseWrapper):
    """
    PostgreSQL implementation of DatabaseWrapper.

    Every call opens its own short-lived connection, so one wrapper can be
    shared by concurrently processed professions.
    """

    def __init__(self, config: DatabaseConfig):
        super().__init__(config)
        self._engine = None

    def connect(self):
        """Create a new PostgreSQL database connection."""
        return psycopg2.connect(
            dbname=self.config.name,
            host=self.config.host,
            user=self.config.user,
            port=self.config.port,
            password=self.config.password,
        )

    @contextmanager
    def _cursor(self):
        """Cursor inside a transaction: committed on success, rolled back on error."""
        conn = self.connect()
        try:
            cur = conn.cursor()
            yield cur
            conn.commit()
            cur.close()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
        logger.info(f"Schema ready in database '{self.config.name}'")

    def get_active_professions(self) -> List[Profession]:
        with self._cursor() as cur:
            cur.execute(
                "SELECT id, name, vacancy_query, is_active FROM profession WHERE is_active ORDER BY name;"
            )
            rows = cur.fetchall()
        return [Profession(*row) for row in rows]

    def get_all_professions(self) -> List[Profession]:
        with self._cursor() as cur:
            cur.execute("SELECT id, name, vacancy_query, is_active FROM profession ORDER BY name;")
            rows = cur.fetchall()
        return [Profession(*row) for row in rows]

    def get_profession(self, profession_id: uuid.UUID) -> Optional[Profession]:
        with self._cursor() as cur:
            cur.execute(
                "SELECT id, name, vacancy_query, is_active FROM profession WHERE id = %s;",
                (profession_id,),
            )
            row = cur.fetchone()
        return Profession(*row) if row else None

    def add_profession(self, name: str, vacancy_query: str) -> Profession:
        name, vacancy_query = validate_profession_input(name, vacancy_query)
        profession = Profession(id=uuid.uuid4(), name=name, vacancy_query=vacancy_query, is_active=True)
        try:
            with self._cursor() as cur:
                cur.execute(
                    "INSERT INTO profession (id, name, vacancy_query, is_active) VALUES (%s, %s, %s, %s);",
                    (profession.id, profession.name, profession.vacancy_query, profession.is_active),
                )
        except psycopg2.errors.UniqueViolation as e:
            raise ProfessionAlreadyExists(f"profession '{name}' already exists") from e
        logger.info(f"Added profession '{name}' [{profession.id}]")
        return profession

    def update_profession(
        self,
        profession_id: uuid.UUID,
        name: Optional[str] = None,
        vacancy_query: Optional[str] = None,
    ) -> Profession:
        current = self.get_profession(profession_id)
        if current is None:
            raise ProfessionNotFound(f"profession {profession_id} not found")
        name, vacancy_query = validate_profession_input(
            current.name if name is None else name,
            current.vacancy_query if vacancy_query is None else vacancy_query,
        )
        try:
            with self._cursor() as cur:
                cur.execute(
                    "UPDATE profession SET name = %s, vacancy_query = %s WHERE id = %s "
                    "RETURNING id, name, vacancy_query, is_active;",
                    (name, vacancy_query, profession_id),
                )
                row = cur.fetchone()
        except psycopg2.errors.UniqueViolation as e:
            raise ProfessionAlreadyExists(f"profession '{name}' already exists") from e
        if row is None:
            raise ProfessionNotFound(f"profession {profession_id} not found")
        logger.info(f"Updated profession [{profession_id}]: name '{name}', query '{vacancy_query}'")
        return Profession(*row)

    def set_profession_active(self, profession_id: uuid.UUID, active: bool) -> Profession:
        with self._cursor() as cur:
            cur.execute(
                "UPDATE profession SET is_active = %s WHERE id = %s "
                "RETURNING id, name, vacancy_query, is_active;",
                (active, profession_id),
            )
            row = cur.fetchone()
        if row is None:
            raise ProfessionNotFound(f"profession {profession_id} not found")
        logger.info(f"Profession '{row[1]}' [{profession_id}] {'activated' if active else 'deactivated'}")
        return Profession(*row)

    def create_scraping_session(self) -> ScrapingSession:
        session_id = uuid.uuid4()
        with self._cursor() as cur:
            cur.execute(
                "INSERT INTO scraping (id) VALUES (%s) RETURNING scraped_at;",
                (session_id,),
            )
            (scraped_at,) = cur.fetchone()
        return ScrapingSession(id=session_id, scraped_at=scraped_at)

    def get_latest_session(self) -> Optional[ScrapingSession]:
        with self._cursor() as cur:
            cur.execute("SELECT id, scraped_at FROM scraping ORDER BY scraped_at DESC LIMIT 1;")
            row = cur.fetchone()
        return ScrapingSession(id=row[0], scraped_at=row[1]) if row else None

    def save_stat(self, session_id: uuid.UUID, profession_id: uuid.UUID, vacancy_count: int) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO stat (profession_id, scraped_at_id, vacancy_count) VALUES (%s, %s, %s)
                ON CONFLICT (profession_id, scraped_at_id) DO UPDATE SET vacancy_count = EXCLUDED.vacancy_count;
                """,
                (profession_id, session_id, vacancy_count),
            )

    def _save_skills(self, table: str, session_id: uuid.UUID, profession_id: uuid.UUID, counts: Dict[str, int]) -> None:
        if not counts:
            return
        insert = sql.SQL(
            "INSERT INTO {} (profession_id, scraped_at_id, skill, count) VALUES %s "
            "ON CONFLICT (profession_id, scraped_at_id, skill) DO UPDATE SET count = EXCLUDED.count"
        ).format(sql.Identifier(table))
        rows = [(profession_id, session_id, skill, count) for skill, count in counts.items()]
        with self._cursor() as cur:
            psycopg2.extras.execute_values(cur, insert.as_string(cur), rows)

    def save_formal_skills(self, session_id: uuid.UUID, profession_id: uuid.UUID, counts: Dict[str, int]) -> None:
        self._save_skills("formal_skill", session_id, profession_id, counts)

    def save_extracted_skills(self, session_id: uuid.UUID, profession_id: uuid.UUID, counts: Dict[str, int]) -> None:
        self._save_skills("extracted_skill", session_id, profession_id, counts)

    def get_stat(self, profession_id: uuid.UUID, session_id: uuid.UUID) -> Optional[Stat]:
        with self._cursor() as cur:
            cur.execute(
                "SELECT vacancy_count FROM stat WHERE profession_id = %s AND scraped_at_id = %s;",
                (profession_id, session_id),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return Stat(profession_id=profession_id, session_id=session_id, vacancy_count=row[0])

    def _get_skills(self, table: str, profession_id: uuid.UUID, session_id: uuid.UUID) -> List[SkillCount]:
        query = sql.SQL(
            "SELECT skill, count FROM {} WHERE profession_id = %s AND scraped_at_id = %s "
            "ORDER BY count DESC, skill;"
        ).format(sql.Identifier(table))
        with self._cursor() as cur:
            cur.execute(query, (profession_id, session_id))
            rows = cur.fetchall()
        return [SkillCount(skill=skill, count=count) for skill, count in rows]

    def get_formal_skills(self, profession_id: uuid.UUID, session_id: uuid.UUID) -> List[SkillCount]:
        return self._get_skills("formal_skill", profession_id, session_id)

    def get_extracted_skills(self, profession_id: uuid.UUID, session_id: uuid.UUID) -> List[SkillCount]:
        return self._get_skills("extracted_skill", profession_id, session_id)

    def export_df(self, query: str = None) -> pd.DataFrame:
        """Execute a query and return results as a pandas DataFrame."""
        if self._engine is None:
            self._engine = create_engine(self.config.connection_string)
        query = query if query is not None else DEFAULT_EXPORT_QUERY
        return pd.read_sql_query(query, self._engine)

    @staticmethod
    def _db_exists(config: DatabaseConfig) -> bool:
        return db_exists(config)

    @staticmethod
    def _create_db(config: DatabaseConfig) -> None:
        create_db(config)


def _connect_maintenance_db(config: DatabaseConfig):
    return psycopg2.connect(
        database="postgres",
        user=config.user,
        password=config.password,
        host=config.host,
        port=config.port,
    )


def db_exists(config: DatabaseConfig) -> bool:
    """
    Check if a PostgreSQL database exists.

    Args:
        config: Connection details; config.name is the database to look for

    Returns:
        True if database exists, False otherwise
    """
    conn = _connect_maintenance_db(config)
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s;", (config.name,))
    fetched = cursor.fetchone()
    conn.close()
    return fetched is not None


def create_db(config: DatabaseConfig) -> None:
    """
    Create a new PostgreSQL database.

    Args:
        config: Connection details; config.name is the database to create
    """
    conn = _connect_maintenance_db(config)
    conn.autocommit = True
    cursor = conn.cursor()
    cursor.execute(sql.SQL("CREATE DATABASE {};").format(sql.Identifier(config.name)))
    logger.info(f"Database named '{config.name}' created successfully")
    conn.close()
