# Overview: Service-layer operations for concurrency; serializes mutations of a session aggregate.

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator

from ..extensions import db
from ..models import DailySession
from ..errors import NoActiveSessionError, SessionClosedError


_registry_guard = threading.Lock()
_mutexes: dict[Hashable, threading.RLock] = {}


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    populate_existing() refreshes an already-loaded row with the locked read.
    """
    return query.with_for_update().populate_existing()


def _mutex(key: Hashable) -> threading.RLock:
    with _registry_guard:
        mutex = _mutexes.get(key)
        if mutex is None:
            mutex = _mutexes[key] = threading.RLock()
        return mutex


def session_mutex(session_id: int) -> threading.RLock:
    """In-process mutex shared by every writer of one session."""
    return _mutex(("session", session_id))


def date_mutex(session_date) -> threading.RLock:
    """In-process mutex for open/reopen of one business date."""
    return _mutex(("date", session_date))


@contextmanager
def unit_of_work(mutex: threading.RLock) -> Iterator[None]:
    """
    Run a block as one atomic ledger mutation.

    Holds the mutex for the whole read-modify-write, commits once at the end,
    rolls back everything on any exception. No retries: StaleDataError from
    the optimistic version counter propagates to the caller like any other
    persistence failure.
    """
    with mutex:
        try:
            yield
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


@contextmanager
def session_unit_of_work(session_id: int) -> Iterator[None]:
    with unit_of_work(session_mutex(session_id)):
        yield


def load_session_for_update(session_id: int) -> DailySession | None:
    return lock_for_update(db.session.query(DailySession).filter_by(id=session_id)).first()


def load_open_session_for_update(session_id: int) -> DailySession:
    """Locked session row; raises if missing or closed."""
    session = load_session_for_update(session_id)
    if not session:
        raise NoActiveSessionError(f"Session {session_id} not found", session_id=session_id)
    if session.is_closed:
        raise SessionClosedError(
            f"Session {session_id} ({session.session_date}) is closed",
            session_id=session_id,
        )
    return session
