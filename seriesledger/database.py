"""Database setup with SQLModel and async SQLite."""

import logging
from enum import Enum

import sqlalchemy
from sqlalchemy import text as sa_text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from seriesledger.config import settings

# Import all models so their tables are registered with SQLModel.metadata
from seriesledger.models import (  # noqa: F401
    AppConfig,
    DownloadClient,
    SeriesEpisode,
    SeriesSubscription,
    TaskHistory,
)

logger = logging.getLogger(__name__)

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
    connect_args={"check_same_thread": False},  # Needed for SQLite
)


@sqlalchemy.event.listens_for(engine.sync_engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Async session factory
async_session = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db() -> None:
    """Initialize the database, creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    # Older databases may predate columns such as task_history.is_finished
    await _migrate_schema(engine)

    logger.info("Database initialized successfully")


def _get_expected_columns(table_name: str) -> set[str]:
    """Get expected column names from the SQLModel metadata for a table."""
    table = SQLModel.metadata.tables.get(table_name)
    if table is None:
        return set()
    return {col.name for col in table.columns}


async def _get_actual_columns(conn, table_name: str) -> set[str]:
    """Get actual column names from the database for a table."""
    result = await conn.execute(sa_text(f"PRAGMA table_info('{table_name}')"))
    rows = result.fetchall()
    return {row[1] for row in rows}  # column name is at index 1


def _column_ddl(column: sqlalchemy.Column, dialect) -> str:
    """Build an ``ADD COLUMN`` clause. SQLite can't add NOT NULL without a default."""
    ddl = f"{column.name} {column.type.compile(dialect=dialect)}"
    default = None
    if column.default is not None and column.default.is_scalar:
        default = column.default.arg
    if isinstance(default, Enum):
        default = default.name
    if isinstance(default, bool):
        ddl += f" DEFAULT {int(default)}"
    elif isinstance(default, int | float):
        ddl += f" DEFAULT {default}"
    elif isinstance(default, str):
        escaped = default.replace("'", "''")
        ddl += f" DEFAULT '{escaped}'"
    return ddl


async def _migrate_schema(target_engine: AsyncEngine | None = None) -> None:
    """Add columns that the models define but the live tables lack.

    - Existing rows are kept; new columns get the model's scalar default.
    - Extra columns in the database are left alone.
    - Idempotent: no-op when schema already matches.
    """
    eng = target_engine or engine

    async with eng.begin() as conn:
        result = await conn.execute(sa_text("SELECT name FROM sqlite_master WHERE type='table'"))
        existing_tables = {row[0] for row in result.fetchall()}

        for table_name, table in SQLModel.metadata.tables.items():
            if table_name not in existing_tables:
                continue

            actual_cols = await _get_actual_columns(conn, table_name)
            missing = _get_expected_columns(table_name) - actual_cols
            if not missing:
                continue

            logger.info(f"Schema mismatch in {table_name}, adding columns: {sorted(missing)}")
            for column in table.columns:
                if column.name not in missing:
                    continue
                ddl = _column_ddl(column, conn.dialect)
                await conn.execute(sa_text(f"ALTER TABLE {table_name} ADD COLUMN {ddl}"))

