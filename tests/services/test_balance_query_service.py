"""
Tests for BalanceQueryService: read views and the strict integrity mode.
"""

from datetime import date
from uuid import uuid4

import pytest

from stock_kernel.exceptions import LocationNotFoundError, NegativeBalanceError, OutturnNotFoundError
from stock_services.approval_service import ApprovalService
from stock_services.balance_query_service import BalanceQueryService
from stock_services.movement_service import MovementService

ACTOR = uuid4()


@pytest.fixture
def yard(create_warehouse, create_kunchinittu, create_outturn):
    warehouse = create_warehouse()
    return {
        "warehouse": warehouse,
        "a": create_kunchinittu(warehouse, variety="SONA"),
        "b": create_kunchinittu(warehouse, variety="SONA"),
        "outturn": create_outturn("SONA"),
    }


@pytest.fixture
def post(session, deterministic_clock, key_locks):
    """Create and approve one paddy movement."""
    movements = MovementService(session, locks=key_locks)
    approvals = ApprovalService(session, clock=deterministic_clock, locks=key_locks)

    def _post(payload: dict):
        movement = movements.create_paddy_movement({"variety": "SONA", **payload}, ACTOR)
        return approvals.approve(movement.id, ACTOR)

    return _post


class TestPaddyLedger:
    def test_series_covers_every_day(self, session, yard, post):
        post({"kind": "purchase", "movement_date": "2024-03-01", "bags": 100, "to_location_id": yard["a"].id})
        post({
            "kind": "shifting", "movement_date": "2024-03-03", "bags": 30,
            "from_location_id": yard["a"].id, "to_location_id": yard["b"].id,
        })

        view = BalanceQueryService(session).paddy_ledger(yard["a"].id, date_to=date(2024, 3, 4))

        assert view.location.id == yard["a"].id
        assert [d.balance_date for d in view.days] == [date(2024, 3, d) for d in range(1, 5)]
        assert [d.closing_bags for d in view.days] == [100, 100, 70, 70]
        assert view.integrity.is_clean

    def test_warehouse_is_the_sum_of_its_cells(self, session, yard, post):
        post({"kind": "purchase", "movement_date": "2024-03-01", "bags": 100, "to_location_id": yard["a"].id})
        post({
            "kind": "shifting", "movement_date": "2024-03-02", "bags": 30,
            "from_location_id": yard["a"].id, "to_location_id": yard["b"].id,
        })

        queries = BalanceQueryService(session)
        on = date(2024, 3, 2)

        assert queries.day_sheet(yard["warehouse"].id, on).closing_bags == (
            queries.day_sheet(yard["a"].id, on).closing_bags + queries.day_sheet(yard["b"].id, on).closing_bags
        )

    def test_outturn_id_resolves_to_the_outturn(self, session, yard, post):
        post({"kind": "purchase", "movement_date": "2024-03-01", "bags": 100, "to_location_id": yard["a"].id})
        post({
            "kind": "production-shifting", "movement_date": "2024-03-02", "bags": 40,
            "from_location_id": yard["a"].id, "outturn_id": yard["outturn"].id,
        })

        view = BalanceQueryService(session).paddy_ledger(yard["outturn"].id, date_to=date(2024, 3, 2))

        assert view.location is None
        assert view.outturn.id == yard["outturn"].id
        assert view.days[-1].closing_bags == 40

    def test_unknown_location(self, session):
        with pytest.raises(LocationNotFoundError):
            BalanceQueryService(session).paddy_ledger(uuid4(), date_to=date(2024, 3, 2))

    def test_unknown_outturn_report(self, session):
        with pytest.raises(OutturnNotFoundError):
            BalanceQueryService(session).outturn_report(uuid4())


class TestNegativeBalances:
    @pytest.fixture
    def overdrawn(self, yard, post):
        post({
            "kind": "shifting", "movement_date": "2024-03-02", "bags": 30,
            "from_location_id": yard["a"].id, "to_location_id": yard["b"].id,
        })
        return yard["a"]

    def test_reported_by_default(self, session, overdrawn, captured_logs):
        view = BalanceQueryService(session).paddy_ledger(overdrawn.id, date_to=date(2024, 3, 2))

        assert view.days[-1].closing_bags == -30
        assert not view.integrity.is_clean
        negatives = [r for r in captured_logs() if r["message"] == "ledger_negative_balance"]
        assert negatives and negatives[0]["level"] == "ERROR"

    def test_strict_mode_raises(self, session, overdrawn, captured_logs):
        with pytest.raises(NegativeBalanceError) as exc:
            BalanceQueryService(session, strict=True).paddy_ledger(overdrawn.id, date_to=date(2024, 3, 2))

        assert exc.value.closing_bags == -30
        critical = [r for r in captured_logs() if r["message"] == "ledger_integrity_error"]
        assert critical and critical[0]["level"] == "CRITICAL"
