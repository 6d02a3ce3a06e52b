"""
Tests for the HTTP surface: routes, status mapping and response shapes.

Tests cover:
- Paddy entry pending until approved, bulk approval
- available-paddy-bags and the production capacity rejection (409)
- Outturn clearing
- Rice stock movements and the paginated ledger
- Error bodies: validation 422, not found 404, state 409
- Correlation id echoed on every response
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.exceptions import (
    InsufficientPaddyBagsError,
    InsufficientStockError,
    MovementAlreadyResolvedError,
    MovementValidationError,
    OutturnNotFoundError,
)


@pytest.fixture
def mill(create_warehouse, create_kunchinittu, create_outturn, create_packaging):
    warehouse = create_warehouse()
    return {
        "warehouse": warehouse,
        "cell": create_kunchinittu(warehouse, variety="SONA"),
        "outturn": create_outturn("SONA"),
        "bag_26": create_packaging("26"),
    }


def create(client, payload: dict) -> dict:
    response = client.post("/paddy-movements", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def approve(client, movement: dict) -> dict:
    response = client.post(f"/paddy-movements/{movement['id']}/approve")
    assert response.status_code == 200, response.text
    return response.json()


def earmark(client, mill, bags: int, on: str = "2024-03-05") -> None:
    approve(client, create(client, {
        "movementType": "purchase", "date": on, "variety": "SONA",
        "bags": bags, "netWeight": bags * 75, "toKunchinintuId": str(mill["cell"].id),
    }))
    approve(client, create(client, {
        "movementType": "production-shifting", "date": on, "variety": "SONA", "bags": bags,
        "netWeight": bags * 75, "fromKunchinintuId": str(mill["cell"].id), "outturnId": str(mill["outturn"].id),
    }))


class TestPaddyMovements:
    def test_created_pending_then_approved(self, client, mill):
        movement = create(client, {
            "movementType": "purchase", "date": "2024-03-05", "variety": "SONA",
            "bags": 40, "toKunchinintuId": str(mill["cell"].id),
        })
        assert movement["status"] == "pending"

        pending = client.get("/paddy-movements/pending").json()
        assert movement["id"] in {m["id"] for m in pending}

        assert approve(client, movement)["status"] == "approved"

    def test_pending_is_invisible_to_the_ledger(self, client, mill):
        movement = create(client, {
            "movementType": "purchase", "date": "2024-03-05", "variety": "SONA",
            "bags": 40, "toKunchinintuId": str(mill["cell"].id),
        })
        url = f"/ledger/paddy-stock/{mill['cell'].id}/day"

        assert client.get(url, params={"date": "2024-03-05"}).json()["closingBags"] == 0
        approve(client, movement)
        day = client.get(url, params={"date": "2024-03-05"}).json()
        assert day["closingBags"] == 40
        assert day["warehouse"][0]["variety"] == "SONA"

    def test_second_decision_is_a_conflict(self, client, mill):
        movement = create(client, {
            "movementType": "purchase", "date": "2024-03-05", "variety": "SONA",
            "bags": 40, "toKunchinintuId": str(mill["cell"].id),
        })
        approve(client, movement)

        response = client.post(f"/paddy-movements/{movement['id']}/reject", json={"reason": "late"})

        assert response.status_code == 409
        assert response.json()["error"] == MovementAlreadyResolvedError.code

    def test_bulk_approve(self, client, mill):
        ids = [
            create(client, {
                "movementType": "purchase", "date": "2024-03-05", "variety": "SONA",
                "bags": 10, "toKunchinintuId": str(mill["cell"].id),
            })["id"]
            for _ in range(2)
        ]

        body = client.post("/paddy-movements/bulk-approve", json={"ids": ids + [str(uuid4())]}).json()

        assert body["succeeded"] == 2
        assert body["failed"] == 1

    def test_validation_error_body(self, client, mill):
        response = client.post("/paddy-movements", json={
            "movementType": "purchase", "date": "2024-03-05", "variety": "SONA",
            "bags": 0, "toKunchinintuId": str(mill["cell"].id),
        })

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == MovementValidationError.code
        assert body["details"]["field"] == "bags"


class TestProduction:
    def test_available_paddy_bags(self, client, mill):
        earmark(client, mill, 100)

        body = client.get(
            f"/rice-productions/outturn/{mill['outturn'].id}/available-paddy-bags",
            params={"date": "2024-03-10"},
        ).json()

        assert body["availablePaddyBags"] == 100
        assert body["totalPaddyBags"] == 100
        assert body["usedPaddyBags"] == 0
        assert body["isCleared"] is False

    def test_available_paddy_bags_counts_the_rest_of_the_month(self, client, mill):
        earmark(client, mill, 100)
        # 115 x 26 kg = 29.9 q -> 90 bags on the 10th
        client.post("/rice-productions", json={
            "productionDate": "2024-03-10", "outturnId": str(mill["outturn"].id),
            "productType": "Rice", "packagingId": str(mill["bag_26"].id), "bags": 115,
        })

        body = client.get(
            f"/rice-productions/outturn/{mill['outturn'].id}/available-paddy-bags",
            params={"date": "2024-03-06"},
        ).json()

        assert body["availableOnDateBags"] == 100
        assert body["bookableBags"] == 10
        assert body["availablePaddyBags"] == 10

        # what is shown is what the gate accepts: 13 x 26 kg = 3.38 q -> 10 bags
        accepted = client.post("/rice-productions", json={
            "productionDate": "2024-03-06", "outturnId": str(mill["outturn"].id),
            "productType": "Rice", "packagingId": str(mill["bag_26"].id), "bags": 13,
        })
        assert accepted.status_code == 201, accepted.text

    def test_over_capacity_is_a_conflict(self, client, mill):
        earmark(client, mill, 100)

        response = client.post("/rice-productions", json={
            "productionDate": "2024-03-10", "outturnId": str(mill["outturn"].id),
            "productType": "Rice", "packagingId": str(mill["bag_26"].id), "bags": 130,
        })

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == InsufficientPaddyBagsError.code
        assert body["details"]["available"] == 100
        assert body["details"]["requested"] == 101

    def test_production_then_clear(self, client, mill):
        earmark(client, mill, 100)
        produced = client.post("/rice-productions", json={
            "productionDate": "2024-03-10", "outturnId": str(mill["outturn"].id),
            "productType": "Rice", "packagingId": str(mill["bag_26"].id), "bags": 10,
        })
        assert produced.json()["paddyBagsDeducted"] == 8

        # no clearDate: today comes from the app clock
        cleared = client.post(f"/outturns/{mill['outturn'].id}/clear").json()

        assert cleared["isCleared"] is True
        assert cleared["clearedOn"] == "2024-03-20"
        assert cleared["remainingBags"] == 92
        assert cleared["movement"]["status"] == "approved"

    def test_unknown_outturn_is_not_found(self, client):
        response = client.get(f"/outturns/{uuid4()}/yield")

        assert response.status_code == 404
        assert response.json()["error"] == OutturnNotFoundError.code


class TestRiceStock:
    def test_sale_over_balance_and_ledger(self, client, mill):
        bag = str(mill["bag_26"].id)
        base = {"locationCode": "GODOWN-1", "productType": "Rice", "variety": "SONA", "packagingId": bag}

        assert client.post("/rice-stock-management/movements", json={
            **base, "movementType": "purchase", "date": "2024-03-01", "bags": 50,
        }).status_code == 201

        rejected = client.post("/rice-stock-management/movements", json={
            **base, "movementType": "sale", "date": "2024-03-02", "bags": 60,
        })
        assert rejected.status_code == 409
        assert rejected.json()["error"] == InsufficientStockError.code
        assert rejected.json()["details"]["available"] == 50

        body = client.get("/rice-stock-management/ledger", params={"locationCode": "GODOWN-1"}).json()
        assert [e["runningBags"] for e in body["entries"]] == [50]
        assert body["pagination"]["totalEntries"] == 1
        assert body["closingBalance"][0]["bags"] == 50


class TestCorrelation:
    def test_correlation_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-Id": "abc-123"})

        assert response.status_code == 200
        assert response.headers["X-Correlation-Id"] == "abc-123"

    def test_correlation_id_is_generated(self, client):
        assert client.get("/health").headers["X-Correlation-Id"]


class TestLedgerViews:
    def test_range_defaults_to_the_clock(self, client, mill):
        approve(client, create(client, {
            "movementType": "purchase", "date": "2024-03-18", "variety": "SONA",
            "bags": 40, "toKunchinintuId": str(mill["cell"].id),
        }))

        body = client.get(f"/ledger/paddy-stock/{mill['cell'].id}").json()

        assert body["dateFrom"] == "2024-03-18"
        assert body["dateTo"] == "2024-03-20"
        assert [d["closingBags"] for d in body["days"]] == [40, 40, 40]
        assert body["integrity"]["clean"] is True

    def test_opening_balance_and_integrity(self, client, mill):
        created = client.post("/opening-balances", json={
            "locationId": str(mill["cell"].id), "variety": "SONA", "date": "2024-03-01", "bags": 10,
        })
        assert created.status_code == 201
        approve(client, create(client, {
            "movementType": "shifting", "date": "2024-03-02", "variety": "SONA", "bags": 25,
            "fromKunchinintuId": str(mill["cell"].id), "toWarehouseId": str(mill["warehouse"].id),
        }))

        report = client.get(
            f"/ledger/paddy-stock/{mill['cell'].id}/integrity",
            params={"dateFrom": "2024-03-01", "dateTo": "2024-03-02"},
        ).json()

        assert report["clean"] is False
        assert report["violations"][0]["date"] == "2024-03-02"

    def test_strict_ledger_is_a_server_error(self, client, mill):
        approve(client, create(client, {
            "movementType": "shifting", "date": "2024-03-02", "variety": "SONA", "bags": 5,
            "fromKunchinintuId": str(mill["cell"].id), "toWarehouseId": str(mill["warehouse"].id),
        }))

        response = client.get(
            f"/ledger/paddy-stock/{mill['cell'].id}",
            params={"dateTo": "2024-03-02", "strict": "true"},
        )

        assert response.status_code == 500
        assert response.json()["details"]["closing_bags"] == -5

    def test_outturn_yield(self, client, mill):
        earmark(client, mill, 100)
        client.post("/rice-productions", json={
            "productionDate": "2024-03-10", "outturnId": str(mill["outturn"].id),
            "productType": "Rice", "packagingId": str(mill["bag_26"].id), "bags": 100,
        })

        body = client.get(f"/outturns/{mill['outturn'].id}/yield").json()

        assert body["shiftedBags"] == 100
        assert Decimal(body["producedQuintals"]) == Decimal("26")
        assert Decimal(body["yieldPercentage"]) == Decimal("34.6667")
