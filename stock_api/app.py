"""
stock_api.app -- FastAPI application factory.

``create_app()`` wires configuration, the database engine, immutability
listeners, structured logging, the error mapping and every router.  "Today"
reaches the engines only through the Clock stored on ``app.state``.
"""

from __future__ import annotations

import uuid

from fastapi import FastAPI, Request

from stock_api.errors import install_error_handlers
from stock_api.routers import (
    approvals,
    health,
    ledger,
    opening_balances,
    outturns,
    paddy_movements,
    rice_productions,
    rice_stock,
)
from stock_config import ActiveSettings, get_active_settings
from stock_kernel.db.engine import create_tables, init_engine_from_url
from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.logging_config import LogContext, configure_logging, get_logger
from stock_kernel.services.key_lock import get_key_locks

logger = get_logger("api.app")


def create_app(
    settings: ActiveSettings | None = None,
    clock: Clock | None = None,
    init_database: bool = True,
) -> FastAPI:
    """Build the application.

    With ``init_database=False`` the caller owns the engine and schema, which
    is how tests share one in-memory database with the app.
    """
    configure_logging()
    settings = settings or get_active_settings()

    if init_database:
        init_engine_from_url(settings.database_url)
        create_tables()
    register_immutability_listeners()
    get_key_locks().timeout_seconds = settings.policy.lock_timeout_seconds

    app = FastAPI(title="Paddy & Rice Stock Ledger")
    app.state.settings = settings
    app.state.clock = clock or SystemClock()

    @app.middleware("http")
    async def _log_context(request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-Id") or str(uuid.uuid4())
        with LogContext.bind(correlation_id=correlation_id, actor_id=request.headers.get("X-Actor-Id")):
            response = await call_next(request)
        response.headers["X-Correlation-Id"] = correlation_id
        return response

    install_error_handlers(app)

    app.include_router(health.router)
    app.include_router(ledger.router)
    app.include_router(paddy_movements.router)
    app.include_router(approvals.router)
    app.include_router(opening_balances.router)
    app.include_router(outturns.router)
    app.include_router(rice_productions.router)
    app.include_router(rice_stock.router)

    logger.info(
        "api_started",
        extra={"config_source": settings.source, "database_dialect": settings.database_url.split(":", 1)[0]},
    )
    return app
