from __future__ import annotations

from pathlib import Path

from playcode.infrastructure.stores.sqlalchemy_db import (
    SessionProvider,
    create_db_engine,
    dispose_engines,
    shared_engine,
    sqlite_file_path,
)


def test_create_db_engine_creates_parent_dir_for_relative_sqlite(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    assert not (tmp_path / "data").exists()

    engine = create_db_engine("sqlite:///data/test.db")
    try:
        assert (tmp_path / "data").is_dir()
        with engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
    finally:
        engine.dispose()


def test_sqlite_file_path():
    assert sqlite_file_path("sqlite:////tmp/x/playcode.db") == Path("/tmp/x/playcode.db")
    assert sqlite_file_path("sqlite:///:memory:") is None
    assert sqlite_file_path("sqlite://") is None
    assert sqlite_file_path("postgresql://u:p@db/playcode") is None


def test_stores_share_one_engine_per_url(tmp_path: Path):
    url = f"sqlite:///{tmp_path / 'shared.db'}"
    try:
        assert SessionProvider(url).engine is SessionProvider(url).engine
        assert shared_engine(url) is not shared_engine(f"sqlite:///{tmp_path / 'other.db'}")
    finally:
        dispose_engines()
