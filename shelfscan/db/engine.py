"""
Centralized SQLAlchemy/SQLModel engine.

Store modules receive an engine from here (or one built by the caller via
`create_db_engine`). The database URL is resolved from
config/shelfscan_config.json or the SHELFSCAN_DATABASE_URL environment
variable, so moving to PostgreSQL is a single configuration change.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

_engine: Engine | None = None


def _resolve_db_url() -> str:
    """
    Resolve database URL with precedence:
    1. SHELFSCAN_DATABASE_URL environment variable
    2. config/shelfscan_config.local.json  database.url
    3. config/shelfscan_config.json        database.url
    4. Fallback: sqlite:///data/shelfscan.db
    """
    env_url = os.environ.get("SHELFSCAN_DATABASE_URL")
    if env_url:
        return env_url

    root = Path(__file__).resolve().parents[2]
    for cfg_name in ("shelfscan_config.local.json", "shelfscan_config.json"):
        cfg_path = root / "config" / cfg_name
        if cfg_path.exists():
            with open(cfg_path, "r", encoding="utf-8") as f:
                cfg = json.load(f)
            url = (cfg.get("database") or {}).get("url")
            if url:
                return url

    return "sqlite:///data/shelfscan.db"


def _make_absolute_sqlite_url(url: str) -> str:
    """
    Resolve relative sqlite:/// paths against the project root so the DB
    lands in <project_root>/data regardless of cwd.
    """
    if not url.startswith("sqlite:///"):
        return url
    rel_path = url[len("sqlite:///"):]
    if rel_path == ":memory:" or os.path.isabs(rel_path):
        return url
    root = Path(__file__).resolve().parents[2]
    abs_path = (root / rel_path).resolve()
    abs_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{abs_path}"


def create_db_engine(url: str) -> Engine:
    """Build an engine for *url* with the SQLite pragmas the stores rely on."""
    db_url = _make_absolute_sqlite_url(url)
    is_sqlite = db_url.startswith("sqlite")
    connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}

    engine = create_engine(
        db_url,
        echo=False,
        connect_args=connect_args,
        pool_pre_ping=True,
    )

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_conn, _connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=30000")
            cursor.close()

    return engine


def get_engine() -> Engine:
    """Return the singleton engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(_resolve_db_url())
    return _engine


def reset_engine() -> None:
    """Dispose the singleton engine (tests, or after changing SHELFSCAN_DATABASE_URL)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def get_session() -> Generator[Session, None, None]:
    """FastAPI-style dependency that yields a SQLModel session."""
    with Session(get_engine()) as session:
        yield session


def init_db(engine: Engine | None = None) -> None:
    """
    Create all tables that are not yet present.
    In production the Alembic migration handles table creation; this is a
    safety net for tests and fresh installs.
    """
    from shelfscan.db import models as _models  # noqa: F401 - register tables
    SQLModel.metadata.create_all(engine or get_engine())
