"""Integration tests for order lookups, listings and statistics."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from libs.auth.models import Role
from services.order_service.models import OrderStatus
from tests.factories import (
    OrderFactory,
    OrderItemFactory,
    UserFactory,
    persist,
)


def _at(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 1, day, hour, 0, tzinfo=timezone.utc)


async def _seed_orders(db):
    """
    Two customers:
      ana  - ORD-A1 pending 286.00 (Jan 5, 2 items), ORD-A2 delivered 100.00 (Jan 10)
             ORD-A3 cancelled 50.00 (Jan 12)
      bo   - ORD-B1 pending 500.00 (Jan 8)
    """
    ana, bo = await persist(
        db,
        UserFactory.create(email="ana@shop.test", first_name="Ana", last_name="Silva"),
        UserFactory.create(email="bo@shop.test", first_name="Bo", last_name=None),
    )
    a1, a2, a3, b1 = await persist(
        db,
        OrderFactory.create(user_id=ana.id, order_number="ORD-A1", created_at=_at(5)),
        OrderFactory.create(
            user_id=ana.id,
            order_number="ORD-A2",
            status=OrderStatus.DELIVERED,
            total_amount=Decimal("100.00"),
            created_at=_at(10, 23),
        ),
        OrderFactory.create(
            user_id=ana.id,
            order_number="ORD-A3",
            status=OrderStatus.CANCELLED,
            total_amount=Decimal("50.00"),
            created_at=_at(12),
        ),
        OrderFactory.create(
            user_id=bo.id,
            order_number="ORD-B1",
            total_amount=Decimal("500.00"),
            created_at=_at(8),
        ),
    )
    await persist(
        db,
        OrderItemFactory.create(order_id=a1.id, quantity=1, total_price=Decimal("100")),
        OrderItemFactory.create(order_id=a1.id, quantity=1, total_price=Decimal("100")),
        OrderItemFactory.create(order_id=b1.id),
    )
    return {
        "ana": ana.id,
        "bo": bo.id,
        "A1": a1.id,
        "A2": a2.id,
        "A3": a3.id,
        "B1": b1.id,
    }


def _numbers(response):
    return [o["order_number"] for o in response.json()["data"]["items"]]


# ---------------------------------------------------------------------------
# Detail
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_owner_sees_order_detail(client, db_session, login):
    ids = await _seed_orders(db_session)
    login(ids["ana"])

    response = await client.get(f"/api/orders/{ids['A1']}")

    assert response.status_code == 200
    order = response.json()["data"]
    assert order["order_number"] == "ORD-A1"
    assert len(order["items"]) == 2
    assert order["status_history"] == []
    assert "internal_notes" not in order


@pytest.mark.integration
@pytest.mark.asyncio
async def test_other_customer_is_denied_detail(client, db_session, login):
    ids = await _seed_orders(db_session)
    login(ids["bo"])

    assert (await client.get(f"/api/orders/{ids['A1']}")).status_code == 403
    assert (await client.get("/api/orders/number/ORD-A1")).status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_sees_any_order(client, db_session, login, staff_ids):
    ids = await _seed_orders(db_session)
    login(staff_ids["admin"], Role.ADMIN)

    response = await client.get(f"/api/orders/{ids['B1']}")

    assert response.status_code == 200
    assert response.json()["data"]["user_id"] == ids["bo"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_lookup_by_order_number(client, db_session, login):
    ids = await _seed_orders(db_session)
    login(ids["ana"])

    response = await client.get("/api/orders/number/ORD-A2")

    assert response.status_code == 200
    assert response.json()["data"]["id"] == ids["A2"]
    assert response.json()["data"]["status_label"] == "Delivered"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_missing_order(client, login):
    login(1)

    assert (await client.get("/api/orders/424242")).status_code == 404
    response = await client.get("/api/orders/number/ORD-NOPE")
    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


# ---------------------------------------------------------------------------
# Customer listing and stats
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_customer_lists_own_orders_newest_first(client, db_session, login):
    ids = await _seed_orders(db_session)
    login(ids["ana"])

    response = await client.get("/api/orders")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 3
    assert data["limit"] == 20
    assert data["offset"] == 0
    assert _numbers(response) == ["ORD-A3", "ORD-A2", "ORD-A1"]

    a1 = data["items"][2]
    assert a1["item_count"] == 2
    assert a1["customer_email"] == "ana@shop.test"
    assert a1["customer_name"] == "Ana Silva"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_customer_list_filters_and_paginates(client, db_session, login):
    ids = await _seed_orders(db_session)
    login(ids["ana"])

    delivered = await client.get("/api/orders", params={"status": "delivered"})
    assert _numbers(delivered) == ["ORD-A2"]
    assert delivered.json()["data"]["total"] == 1

    page = await client.get("/api/orders", params={"limit": 1, "offset": 1})
    assert _numbers(page) == ["ORD-A2"]
    assert page.json()["data"]["total"] == 3


@pytest.mark.integration
@pytest.mark.asyncio
async def test_customer_stats(client, db_session, login):
    ids = await _seed_orders(db_session)
    login(ids["ana"])

    response = await client.get("/api/orders/stats")

    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["total_orders"] == 3
    assert stats["delivered_orders"] == 1
    assert stats["cancelled_orders"] == 1
    assert Decimal(stats["total_amount"]) == Decimal("436.00")
    assert Decimal(stats["average_order_value"]) == Decimal("145.33")
    assert stats["by_status"] == {"pending": 1, "delivered": 1, "cancelled": 1}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_stats_without_orders(client, login):
    login(77)

    stats = (await client.get("/api/orders/stats")).json()["data"]

    assert stats["total_orders"] == 0
    assert Decimal(stats["total_amount"]) == Decimal("0")
    assert Decimal(stats["average_order_value"]) == Decimal("0")
    assert stats["by_status"] == {}


# ---------------------------------------------------------------------------
# Admin listing and stats
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_lists_all_orders(client, db_session, login, staff_ids):
    await _seed_orders(db_session)
    login(staff_ids["admin"], Role.ADMIN)

    response = await client.get("/api/admin/orders")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 4
    assert data["limit"] == 50
    assert _numbers(response) == ["ORD-A3", "ORD-A2", "ORD-B1", "ORD-A1"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_search_matches_number_or_email(
    client, db_session, login, staff_ids
):
    await _seed_orders(db_session)
    login(staff_ids["admin"], Role.ADMIN)

    by_email = await client.get("/api/admin/orders", params={"search": "BO@SHOP"})
    assert _numbers(by_email) == ["ORD-B1"]
    assert by_email.json()["data"]["items"][0]["customer_name"] == "Bo"

    by_number = await client.get("/api/admin/orders", params={"search": "ord-a"})
    assert by_number.json()["data"]["total"] == 3


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_search_treats_wildcards_literally(
    client, db_session, login, staff_ids
):
    ids = await _seed_orders(db_session)
    await persist(
        db_session, OrderFactory.create(user_id=ids["bo"], order_number="ORD-C_1")
    )
    login(staff_ids["admin"], Role.ADMIN)

    underscore = await client.get("/api/admin/orders", params={"search": "_"})
    assert _numbers(underscore) == ["ORD-C_1"]

    percent = await client.get("/api/admin/orders", params={"search": "%"})
    assert percent.json()["data"]["total"] == 0

    backslash = await client.get("/api/admin/orders", params={"search": "\\"})
    assert backslash.json()["data"]["total"] == 0


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_filters_by_status_and_dates(client, db_session, login, staff_ids):
    await _seed_orders(db_session)
    login(staff_ids["admin"], Role.ADMIN)

    pending = await client.get("/api/admin/orders", params={"status": "pending"})
    assert _numbers(pending) == ["ORD-B1", "ORD-A1"]

    # date_to is inclusive of the whole day
    window = await client.get(
        "/api/admin/orders",
        params={"date_from": "2026-01-06", "date_to": "2026-01-10"},
    )
    assert _numbers(window) == ["ORD-A2", "ORD-B1"]

    paid = await client.get("/api/admin/orders", params={"payment_status": "paid"})
    assert paid.json()["data"]["total"] == 0


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_statistics(client, db_session, login, staff_ids):
    await _seed_orders(db_session)
    login(staff_ids["admin"], Role.ADMIN)

    response = await client.get("/api/admin/orders/statistics")

    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["total_orders"] == 4
    assert stats["by_status"]["pending"] == 2
    assert Decimal(stats["total_amount"]) == Decimal("936.00")
    assert Decimal(stats["average_order_value"]) == Decimal("234.00")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_views_one_customer(client, db_session, login, staff_ids):
    ids = await _seed_orders(db_session)
    login(staff_ids["admin"], Role.ADMIN)

    response = await client.get(f"/api/admin/orders/user/{ids['bo']}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user_id"] == ids["bo"]
    assert [o["order_number"] for o in data["orders"]["items"]] == ["ORD-B1"]
    assert data["statistics"]["total_orders"] == 1
    assert Decimal(data["statistics"]["total_amount"]) == Decimal("500.00")


@pytest.mark.integration
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path",
    ["/api/admin/orders", "/api/admin/orders/statistics", "/api/admin/orders/user/1"],
)
async def test_admin_routes_reject_customers(client, login, path):
    login(1)

    response = await client.get(path)

    assert response.status_code == 403
    assert response.json()["success"] is False
    assert response.json()["error"] == "HTTP_ERROR"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_date_window_excludes_next_day(client, db_session, login, staff_ids):
    ids = await _seed_orders(db_session)
    await persist(
        db_session,
        OrderFactory.create(
            user_id=ids["bo"],
            order_number="ORD-B2",
            created_at=_at(10, 23) + timedelta(hours=1),
        ),
    )
    login(staff_ids["admin"], Role.ADMIN)

    response = await client.get(
        "/api/admin/orders",
        params={"date_from": "2026-01-10", "date_to": "2026-01-10"},
    )

    assert _numbers(response) == ["ORD-A2"]
