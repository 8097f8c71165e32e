import os
import sys
import weakref

import pytest

# project root and this directory on sys.path so flat modules and helpers import
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

import models  # noqa: F401,E402  registers tables on the metadata
from sqlmodel import SQLModel, create_engine  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db(tmp_path, monkeypatch):
    """Each test runs against a fresh SQLite file database."""
    import db as db_mod
    test_db = f"sqlite:///{tmp_path}/test.db"
    new_engine = create_engine(test_db, echo=False, connect_args={"check_same_thread": False})
    monkeypatch.setattr(db_mod, "engine", new_engine)
    monkeypatch.setattr(db_mod, "locks", weakref.WeakValueDictionary())
    monkeypatch.delenv("REQUEST_EXPIRY_HOURS", raising=False)
    monkeypatch.delenv("AUTO_CLEANUP_INTERVAL_HOURS", raising=False)
    SQLModel.metadata.create_all(new_engine)
    yield new_engine
    SQLModel.metadata.drop_all(new_engine)
    new_engine.dispose()
