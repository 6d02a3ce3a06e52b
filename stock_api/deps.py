"""Request-scoped dependencies: session, actor, policy, clock."""

from __future__ import annotations

from collections.abc import Generator
from datetime import date
from uuid import UUID

from fastapi import Header, Request
from sqlalchemy.orm import Session

from stock_kernel.db.engine import get_session
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.ingestion import parse_date, parse_uuid
from stock_kernel.domain.policy import StockPolicy

# actor recorded when a request carries no X-Actor-Id
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


def get_db() -> Generator[Session, None, None]:
    db = get_session()
    try:
        yield db
    finally:
        db.close()


def get_actor(x_actor_id: str | None = Header(default=None)) -> UUID:
    if not x_actor_id:
        return SYSTEM_ACTOR_ID
    return parse_uuid(x_actor_id, "X-Actor-Id")


def get_policy(request: Request) -> StockPolicy:
    return request.app.state.settings.policy


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def date_or_today(value: str | None, clock: Clock, field: str) -> date:
    """Explicit query date, or today from the injected clock."""
    return clock.today() if value in (None, "") else parse_date(value, field)


def optional_date(value: str | None, field: str) -> date | None:
    return None if value in (None, "") else parse_date(value, field)
