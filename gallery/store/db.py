"""SQLite connection factory and schema initialisation for the local store.

Usage::

    from gallery.store.db import get_connection, init_db

    conn = get_connection(path)
    init_db(conn)
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from gallery.config import settings


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Open and configure a SQLite connection.

    Args:
        db_path: Database file, or ``":memory:"``.  Defaults to
            ``<workspace>/dataset.db``.

    Returns:
        A connection with ``row_factory`` set to :class:`sqlite3.Row` and
        foreign keys enabled.
    """
    path = db_path or settings.workspace_dir / "dataset.db"

    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    if str(path) != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes.  Idempotent."""
    conn.executescript(settings.schema_path.read_text(encoding="utf-8"))
