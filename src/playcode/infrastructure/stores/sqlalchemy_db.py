from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_DB_URL = "sqlite:///data/playcode.db"
SQLITE_BUSY_TIMEOUT_MS = 30_000

_engines: Dict[str, Engine] = {}
_engines_lock = threading.Lock()


def get_db_url() -> str:
    return os.getenv("PLAYCODE_DB_URL") or DEFAULT_DB_URL


def sqlite_file_path(db_url: str) -> Optional[Path]:
    """Database file of a SQLite url, or None for other backends and in-memory databases."""
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return None
    database = url.database or ""
    if database in ("", ":memory:") or database.startswith("file:"):
        return None
    return Path(database).expanduser()


def _sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    cursor.close()


def create_db_engine(db_url: Optional[str] = None) -> Engine:
    url = db_url or get_db_url()
    path = sqlite_file_path(url)
    if path is not None:
        path.resolve().parent.mkdir(parents=True, exist_ok=True)

    if make_url(url).get_backend_name() != "sqlite":
        return create_engine(url, future=True, pool_pre_ping=True)

    engine = create_engine(url, future=True, connect_args={"check_same_thread": False})
    event.listen(engine, "connect", _sqlite_pragmas)
    return engine


def shared_engine(db_url: Optional[str] = None) -> Engine:
    """One engine per url, shared by every store pointed at the same database."""
    url = db_url or get_db_url()
    with _engines_lock:
        engine = _engines.get(url)
        if engine is None:
            engine = create_db_engine(url)
            _engines[url] = engine
        return engine


def dispose_engines() -> None:
    with _engines_lock:
        for engine in _engines.values():
            engine.dispose()
        _engines.clear()


class SessionProvider:
    """Sessions bound to the shared engine of a database url."""

    def __init__(self, db_url: Optional[str] = None):
        self.engine = shared_engine(db_url)
        self._factory = sessionmaker(bind=self.engine, autoflush=False, future=True, expire_on_commit=False)

    def session(self) -> Session:
        return self._factory()
