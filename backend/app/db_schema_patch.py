from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Bracket columns added to databases created before elimination events existed.
# (name, sqlite_type, postgres_type, default clause)
REQUIRED_EVENT_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("best_of", "INTEGER", "INTEGER", "DEFAULT 3"),
    ("has_third_place_match", "INTEGER", "BOOLEAN", "DEFAULT {false}"),
    ("losers_start_rounds_before_final", "INTEGER", "INTEGER", "DEFAULT NULL"),
    ("completed", "INTEGER", "BOOLEAN", "DEFAULT {false}"),
]

REQUIRED_MATCH_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("bracket_position", "INTEGER", "INTEGER", "DEFAULT NULL"),
    ("bracket_type", "VARCHAR", "VARCHAR", "DEFAULT NULL"),
    ("winner_to_id", "INTEGER", "INTEGER", "DEFAULT NULL"),
    ("winner_to_slot", "INTEGER", "INTEGER", "DEFAULT NULL"),
    ("loser_to_id", "INTEGER", "INTEGER", "DEFAULT NULL"),
    ("loser_to_slot", "INTEGER", "INTEGER", "DEFAULT NULL"),
    ("is_bye", "INTEGER", "BOOLEAN", "DEFAULT {false}"),
    ("is_third_place", "INTEGER", "BOOLEAN", "DEFAULT {false}"),
    ("is_reset", "INTEGER", "BOOLEAN", "DEFAULT {false}"),
]


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _get_existing_columns_sqlite(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        res = conn.execute(text(f"PRAGMA table_info({table_name});")).fetchall()
        # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
        for row in res:
            cols[str(row[1])] = str(row[2])
    return cols


def _get_existing_columns_postgres(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    sql = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = :table_name;
    """
    with engine.connect() as conn:
        res = conn.execute(text(sql), {"table_name": table_name}).fetchall()
        for row in res:
            cols[str(row[0])] = str(row[1])
    return cols


def _table_exists(engine: Engine, table_name: str) -> bool:
    with engine.connect() as conn:
        if _is_sqlite(engine):
            result = conn.execute(
                text("SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"),
                {"table_name": table_name},
            ).fetchone()
            return result is not None
        result = conn.execute(
            text("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public' AND table_name = :table_name
            )
        """),
            {"table_name": table_name},
        ).fetchone()
        return bool(result and result[0])


def _ensure_columns(engine: Engine, table: str, columns: List[Tuple[str, str, str, str]]) -> List[str]:
    """Add missing columns to table. Returns names of the columns added."""
    if not _table_exists(engine, table):
        # create_all makes the table with every column
        return []

    added: List[str] = []
    if _is_sqlite(engine):
        existing = _get_existing_columns_sqlite(engine, table)
        with engine.begin() as conn:
            for name, sqlite_type, _pg_type, default in columns:
                if name in existing:
                    continue
                # SQLite supports ADD COLUMN without IF NOT EXISTS
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {sqlite_type} {default.format(false=0)};"))
                added.append(name)
    else:
        existing = _get_existing_columns_postgres(engine, table)
        with engine.begin() as conn:
            for name, _sqlite_type, pg_type, default in columns:
                if name in existing:
                    continue
                conn.execute(
                    text(
                        f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {name} {pg_type} {default.format(false='FALSE')};"
                    )
                )
                added.append(name)
    return added


def ensure_event_columns(engine: Engine) -> None:
    """
    Idempotently adds the bracket columns to the 'event' table if missing.
    Safe to run at every startup.
    """
    try:
        from app.models.event import Event

        added = _ensure_columns(engine, Event.__table__.name, REQUIRED_EVENT_COLUMNS)
        if added:
            logger.info("Added event columns: %s", ", ".join(added))
    except Exception as e:
        # Log error but don't crash the server
        logger.warning("Failed to ensure event columns (this is OK if table doesn't exist yet): %s", e)


def ensure_match_columns(engine: Engine) -> None:
    """
    Idempotently adds the bracket link columns to the 'match' table if missing.
    Safe to run at every startup.
    """
    try:
        from app.models.match import Match

        added = _ensure_columns(engine, Match.__table__.name, REQUIRED_MATCH_COLUMNS)
        if added:
            logger.info("Added match columns: %s", ", ".join(added))
    except Exception as e:
        logger.warning("Failed to ensure match columns (this is OK if table doesn't exist yet): %s", e)
