"""Database schema DDL, lazy upgrade and destructive reset for the local store.

The local store mirrors the remote tables column for column (wire shape),
so records read from either backend go through the same normalization.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from src.config import settings

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent.parent / "data" / "bet_tracker.db"

BETS = "bets"
PROFILES = "profiles"

BETS_SQL = """
CREATE TABLE IF NOT EXISTS bets (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    events      TEXT NOT NULL DEFAULT '[]',
    total_coef  REAL NOT NULL DEFAULT 1.0,
    amount      REAL NOT NULL DEFAULT 0.0,
    status      TEXT NOT NULL DEFAULT 'pending',
    type        TEXT NOT NULL DEFAULT 'single',
    profile_id  INTEGER,
    created_at  TEXT NOT NULL,
    image       TEXT
);
CREATE INDEX IF NOT EXISTS idx_bets_status ON bets(status);
CREATE INDEX IF NOT EXISTS idx_bets_created_at ON bets(created_at);
CREATE INDEX IF NOT EXISTS idx_bets_profile_id ON bets(profile_id);
"""

PROFILES_SQL = """
CREATE TABLE IF NOT EXISTS profiles (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    color       TEXT NOT NULL DEFAULT '#3b82f6',
    icon        TEXT NOT NULL DEFAULT 'fa-user',
    created_at  TEXT NOT NULL
);
"""

# collection -> (DDL, columns in insert order)
COLLECTIONS: dict[str, tuple[str, tuple[str, ...]]] = {
    BETS: (
        BETS_SQL,
        ("id", "events", "total_coef", "amount", "status", "type",
         "profile_id", "created_at", "image"),
    ),
    PROFILES: (
        PROFILES_SQL,
        ("id", "name", "description", "color", "icon", "created_at"),
    ),
}


def columns_for(collection: str) -> tuple[str, ...]:
    try:
        return COLLECTIONS[collection][1]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}") from None


def _existing_tables(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    return {r[0] for r in rows}


def _seed_default_profile(conn: sqlite3.Connection) -> None:
    conn.execute(
        """INSERT INTO profiles (name, description, color, icon, created_at)
           VALUES (?, ?, ?, ?, ?)""",
        (
            settings.default_profile_name,
            "",
            settings.default_profile_color,
            settings.default_profile_icon,
            datetime.now(timezone.utc).isoformat(),
        ),
    )


def ensure_schema(conn: sqlite3.Connection) -> list[str]:
    """Create missing collections in place. Returns the names created.

    Unrelated tables are left untouched. When anything is created the
    schema version (PRAGMA user_version) is bumped by one, and a freshly
    created profiles table is seeded with the default profile.
    """
    existing = _existing_tables(conn)
    created: list[str] = []
    for name, (ddl, _cols) in COLLECTIONS.items():
        if name not in existing:
            conn.executescript(ddl)
            created.append(name)

    if created:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        conn.execute(f"PRAGMA user_version = {int(version) + 1}")
        if PROFILES in created:
            _seed_default_profile(conn)
        conn.commit()
        logger.info("Local store upgraded to v%d (created: %s)", version + 1, ", ".join(created))
    return created


def _connect(db_path: Path | str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open (or create) the SQLite database and ensure schema exists."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    ensure_schema(conn)
    return conn


def reset_database(db_path: Path | str = DEFAULT_DB_PATH) -> None:
    """Drop the whole database file and recreate an empty, seeded schema.

    Destructive: every bet and profile stored locally is lost.
    """
    db_path = Path(db_path)
    for suffix in ("", "-wal", "-shm"):
        p = db_path.with_name(db_path.name + suffix)
        if p.exists():
            p.unlink()
    logger.warning("Local store deleted: %s", db_path)
    conn = _connect(db_path)
    conn.close()
