"""
KeyLockRegistry -- per-aggregate write serialization.

Responsibility:
    Serializes writers that touch the same aggregate key inside one process
    (one outturn, one location+variety, one movement, one finished-goods
    stock key).  The in-process lock is released when the service returns,
    before the caller commits, so every write path also takes a database
    row lock that lasts until commit: ``lock_row`` on an existing aggregate
    row (outturn, movement), or ``lock_aggregate`` on a guard row per key
    where no natural row exists (finished-goods stock keys).

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Writers for different keys never block each other; there is no
      global lock.
    - Several keys are always acquired in sorted order.
    - Readers take no locks.

Failure modes:
    - LockContentionError (retryable) when a key cannot be acquired within
      the timeout.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from uuid import UUID

from sqlalchemy import String, select
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from stock_kernel.db.base import Base

from stock_kernel.exceptions import LockContentionError
from stock_kernel.logging_config import get_logger

logger = get_logger("services.key_lock")


def outturn_key(outturn_id: UUID) -> str:
    return f"outturn:{outturn_id}"


def movement_key(movement_id: UUID) -> str:
    return f"movement:{movement_id}"


def location_variety_key(location_id: UUID, variety: str) -> str:
    return f"location:{location_id}:{variety.strip().lower()}"


def stock_key(location_code: str, product_type: str, packaging_id: UUID) -> str:
    return f"stock:{location_code}:{product_type.strip().lower()}:{packaging_id}"


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyLockRegistry:
    """In-process mutex per key, created on demand and dropped when idle."""

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def _acquire(self, key: str, timeout: float) -> _Entry:
        entry = self._checkout(key)
        t0 = time.monotonic()
        if not entry.lock.acquire(timeout=timeout):
            self._checkin(key, entry)
            logger.warning(
                "lock_contention",
                extra={"lock_key": key, "timeout_seconds": timeout},
            )
            raise LockContentionError(key, timeout)
        waited_ms = round((time.monotonic() - t0) * 1000, 2)
        if waited_ms >= 1:
            logger.debug("lock_acquired", extra={"lock_key": key, "waited_ms": waited_ms})
        return entry

    def _release(self, key: str, entry: _Entry) -> None:
        entry.lock.release()
        self._checkin(key, entry)

    @contextmanager
    def hold(self, *keys: str, timeout: float | None = None) -> Iterator[None]:
        """Hold every key for the duration of the block."""
        timeout = self.timeout_seconds if timeout is None else timeout
        held: list[tuple[str, _Entry]] = []
        try:
            for key in sorted(set(keys)):
                held.append((key, self._acquire(key, timeout)))
            yield
        finally:
            for key, entry in reversed(held):
                self._release(key, entry)

    def is_held(self, key: str) -> bool:
        with self._guard:
            entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def active_keys(self) -> list[str]:
        with self._guard:
            return sorted(self._entries)


_default_registry = KeyLockRegistry()


def get_key_locks() -> KeyLockRegistry:
    """Process-wide registry shared by every service."""
    return _default_registry


def lock_row(session: Session, model: type, row_id: Any) -> Any | None:
    """Load one row under ``SELECT ... FOR UPDATE``; None if absent."""
    return session.execute(
        select(model)
        .where(model.id == row_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


# ---------------------------------------------------------------------------
# Database guard rows
# ---------------------------------------------------------------------------


class AggregateLock(Base):
    """One guard row per write-serialized key; locked, never updated."""

    __tablename__ = "aggregate_locks"

    key: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)


def _locked_guard(session: Session, key: str) -> AggregateLock | None:
    return session.execute(
        select(AggregateLock)
        .where(AggregateLock.key == key)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def lock_aggregate(session: Session, *keys: str) -> None:
    """
    ``SELECT ... FOR UPDATE`` the guard row of every key, in sorted order,
    creating rows on first use.

    The locks are held until the caller's transaction ends.  A concurrent
    first use of the same key is resolved by savepoint rollback and a
    re-read under lock.
    """
    for key in sorted(set(keys)):
        if _locked_guard(session, key) is not None:
            continue
        savepoint = session.begin_nested()
        try:
            session.add(AggregateLock(key=key))
            session.flush()
        except DBIntegrityError:
            savepoint.rollback()
            logger.debug("aggregate_lock_race_retry", extra={"lock_key": key})
            if _locked_guard(session, key) is None:
                raise
        else:
            savepoint.commit()
