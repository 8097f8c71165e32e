from sqlmodel import create_engine, Session
from sqlmodel import SQLModel
import threading
import weakref
import os

DB_FILE = os.path.join(os.path.dirname(__file__), "rideshare.db")
_default_url = f"sqlite:///{DB_FILE}"
DATABASE_URL = os.environ.get("DATABASE_URL", _default_url)

# SQLite needs check_same_thread=False; Postgres does not
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}


class RequestLock:
    """A plain mutex that can live in a ``WeakValueDictionary``."""

    __slots__ = ("_lock", "__weakref__")

    def __init__(self):
        self._lock = threading.Lock()

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info):
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()


# One lock per request id, serialising vote writes with their occupancy
# recompute. Entries vanish once no caller holds the lock.
locks = weakref.WeakValueDictionary()
locks_lock = threading.Lock()


def get_lock(name: str):
    """Return the process-wide lock for ``name`` (see ``request_lock_name``).

    Callers must keep the returned lock referenced while using it; a
    ``with get_lock(...)`` block does.
    """
    with locks_lock:
        lock = locks.get(name)
        if lock is None:
            lock = RequestLock()
            locks[name] = lock
        return lock


def request_lock_name(request_id) -> str:
    return f"request:{request_id}"


engine = create_engine(DATABASE_URL, echo=False, connect_args=_connect_args)


def init_db():
    # register tables on the metadata before creating them
    import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    # objects stay readable after the session commits and closes
    return Session(engine, expire_on_commit=False)
