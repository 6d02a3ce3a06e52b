"""
Fixtures for the HTTP surface.

The app is built without touching the engine and every request's session
is the test session, so API writes roll back with the test.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from stock_api.app import create_app
from stock_api.deps import get_db
from stock_config import ActiveSettings
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.policy import StockPolicy


@pytest.fixture
def api_settings() -> ActiveSettings:
    return ActiveSettings(policy=StockPolicy(), database_url="sqlite://", source="tests")


@pytest.fixture
def client(session, api_settings):
    app = create_app(
        settings=api_settings,
        clock=DeterministicClock(datetime(2024, 3, 20, 12, 0, 0, tzinfo=timezone.utc)),
        init_database=False,
    )

    def _session_override():
        yield session

    app.dependency_overrides[get_db] = _session_override
    with TestClient(app) as c:
        yield c
