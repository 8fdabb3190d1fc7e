"""Integration tests for back-office order management."""

import pytest

from storefront.db.models import Product
from tests.factories import OrderFactory, ProductFactory, UserFactory


@pytest.fixture
async def admin(db_session):
    user = await UserFactory.async_create(db_session, admin=True)
    await db_session.commit()
    return user


@pytest.fixture
async def product(db_session):
    item = await ProductFactory.async_create(db_session, stock=4)
    await db_session.commit()
    return item


class TestAccess:
    def test_requires_token(self, client):
        assert client.get("/api/admin/orders").status_code == 401

    async def test_customers_are_refused(self, client, db_session, auth_headers):
        customer = await UserFactory.async_create(db_session)
        await db_session.commit()

        response = client.get("/api/admin/orders", headers=auth_headers(customer))

        assert response.status_code == 403
        assert response.json()["error_code"] == "ERR_AUTH_003"


class TestListing:
    async def test_drafts_are_hidden(self, client, db_session, auth_headers, admin, product):
        await OrderFactory.async_create(db_session, product_id=product.id)
        await OrderFactory.async_create(db_session, product_id=product.id, pending=True)
        await OrderFactory.async_create(db_session, product_id=product.id, delivered=True)
        await db_session.commit()

        everything = client.get("/api/admin/orders", headers=auth_headers(admin)).json()
        active = client.get("/api/admin/orders?scope=active", headers=auth_headers(admin)).json()
        history = client.get("/api/admin/orders?scope=history", headers=auth_headers(admin)).json()

        assert everything["pagination"]["total"] == 2
        assert [o["status"] for o in active["orders"]] == ["PLACED"]
        assert [o["status"] for o in history["orders"]] == ["DELIVERED"]

    async def test_legacy_status_is_normalized(self, client, db_session, auth_headers, admin, product):
        await OrderFactory.async_create(db_session, product_id=product.id, status="confirmed")
        await db_session.commit()

        orders = client.get("/api/admin/orders", headers=auth_headers(admin)).json()["orders"]

        assert orders[0]["status"] == "PLACED"
        assert orders[0]["rawStatus"] == "confirmed"

    async def test_stats(self, client, db_session, auth_headers, admin, product):
        await OrderFactory.async_create(db_session, product_id=product.id)
        await OrderFactory.async_create(db_session, product_id=product.id, status="PROCESSING")
        await OrderFactory.async_create(db_session, product_id=product.id, pending=True)
        await OrderFactory.async_create(db_session, product_id=product.id, delivered=True)
        await db_session.commit()

        stats = client.get("/api/admin/orders/stats", headers=auth_headers(admin)).json()["stats"]

        assert stats == {
            "placed": 1,
            "processing": 1,
            "shipped": 0,
            "delivered": 1,
            "cancelled": 0,
            "activeTotal": 2,
        }

    async def test_unknown_status_filter(self, client, auth_headers, admin):
        response = client.get("/api/admin/orders?status=lost", headers=auth_headers(admin))

        assert response.status_code == 400


class TestStatusUpdates:
    async def test_forward_transition(self, client, db_session, auth_headers, admin, product):
        order = await OrderFactory.async_create(db_session, product_id=product.id)
        await db_session.commit()

        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "processing"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["previousStatus"] == "PLACED"
        assert body["order"]["status"] == "PROCESSING"
        assert body["order"]["processedAt"] is not None
        assert "stockRestored" not in body

    async def test_cancel_restores_stock(self, client, db_session, auth_headers, admin, product, published_events):
        order = await OrderFactory.async_create(db_session, product_id=product.id, quantity=3)
        await db_session.commit()

        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "CANCELLED"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["stockRestored"] == {"productId": product.id, "restoredBy": 3, "newStock": 7}
        stored = await db_session.get(Product, product.id)
        await db_session.refresh(stored)
        assert stored.stock == 7
        assert published_events == [
            {"event": "product-update", "action": "stock", "productId": product.id, "stock": 7}
        ]

    async def test_cancel_after_product_deleted(
        self, client, db_session, auth_headers, admin, product, published_events
    ):
        order = await OrderFactory.async_create(db_session, product_id=product.id, quantity=2)
        await db_session.commit()
        client.delete(f"/api/admin/products/{product.id}", headers=auth_headers(admin))

        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "CANCELLED"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["order"]["status"] == "CANCELLED"
        assert "stockRestored" not in body
        assert [e["action"] for e in published_events] == ["deleted"]

    async def test_terminal_status_is_final(self, client, db_session, auth_headers, admin, product):
        order = await OrderFactory.async_create(db_session, product_id=product.id, delivered=True)
        await db_session.commit()

        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "CANCELLED"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_ORDER_002"

    async def test_unknown_order(self, client, auth_headers, admin):
        response = client.patch(
            "/api/admin/orders/00000000-0000-0000-0000-000000000000/status",
            json={"status": "SHIPPED"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 404


class TestInventory:
    async def test_list_filters_by_stock_status(self, client, db_session, auth_headers, admin):
        await ProductFactory.async_create(db_session, name="Pashmina", stock=0)
        await ProductFactory.async_create(db_session, name="Topi", stock=3)
        await ProductFactory.async_create(db_session, name="Khukuri", stock=40)
        await db_session.commit()

        low = client.get("/api/admin/inventory?stockStatus=low_stock", headers=auth_headers(admin)).json()
        out = client.get("/api/admin/inventory?stockStatus=out_of_stock", headers=auth_headers(admin)).json()

        assert [p["name"] for p in low["products"]] == ["Topi"]
        assert [p["stockStatus"] for p in out["products"]] == ["out_of_stock"]

    async def test_adjust(self, client, db_session, auth_headers, admin, product, published_events):
        response = client.patch(
            f"/api/admin/inventory/{product.id}/adjust",
            json={"delta": -3},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["previousStock"] == 4
        assert body["newStock"] == 1
        assert body["stockStatus"] == "low_stock"
        assert published_events[0]["stock"] == 1

    async def test_adjust_below_zero(self, client, auth_headers, admin, product, published_events):
        response = client.patch(
            f"/api/admin/inventory/{product.id}/adjust",
            json={"delta": -5},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot reduce stock below 0"
        assert response.json()["currentStock"] == 4
        assert published_events == []

    @pytest.mark.parametrize("delta", [0, 101, "many"])
    async def test_adjust_rejects_bad_delta(self, client, auth_headers, admin, product, delta):
        response = client.patch(
            f"/api/admin/inventory/{product.id}/adjust",
            json={"delta": delta},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_STOCK_002"

    @pytest.mark.parametrize("raw_delta", ["NaN", "Infinity", "1e999"])
    async def test_adjust_rejects_non_finite_delta(self, client, auth_headers, admin, product, raw_delta):
        response = client.patch(
            f"/api/admin/inventory/{product.id}/adjust",
            content=f'{{"delta": {raw_delta}}}',
            headers={**auth_headers(admin), "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Delta must be a non-zero integer"


class TestUserModeration:
    async def test_block_and_unblock(self, client, db_session, auth_headers, admin):
        customer = await UserFactory.async_create(db_session, suspended=True)
        await db_session.commit()

        blocked = client.patch(
            f"/api/admin/users/{customer.id}/block",
            json={"reason": "Fraud"},
            headers=auth_headers(admin),
        )
        unblocked = client.patch(f"/api/admin/users/{customer.id}/unblock", headers=auth_headers(admin))

        assert blocked.status_code == 200
        assert blocked.json()["user"]["status"] == "BLOCKED"
        # blocking clears the suspension, so the account comes back active
        assert unblocked.json()["user"]["status"] == "ACTIVE"

    async def test_block_without_body(self, client, db_session, auth_headers, admin):
        customer = await UserFactory.async_create(db_session)
        await db_session.commit()

        response = client.patch(f"/api/admin/users/{customer.id}/block", headers=auth_headers(admin))

        assert response.status_code == 200
        await db_session.refresh(customer)
        assert customer.is_blocked
        assert customer.block_reason is None

    async def test_admins_cannot_be_blocked(self, client, db_session, auth_headers, admin):
        other_admin = await UserFactory.async_create(db_session, admin=True)
        await db_session.commit()

        response = client.patch(f"/api/admin/users/{other_admin.id}/block", headers=auth_headers(admin))

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot block admin users"

    async def test_suspend(self, client, db_session, auth_headers, admin):
        customer = await UserFactory.async_create(db_session)
        await db_session.commit()

        response = client.patch(
            f"/api/admin/users/{customer.id}/suspend",
            json={"days": 7, "reason": "Spam"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["message"] == "User suspended for 7 days"
        assert response.json()["user"]["status"] == "SUSPENDED"

    @pytest.mark.parametrize("days", [0, 366, 2.5, "week"])
    async def test_suspend_rejects_bad_days(self, client, db_session, auth_headers, admin, days):
        customer = await UserFactory.async_create(db_session)
        await db_session.commit()

        response = client.patch(
            f"/api/admin/users/{customer.id}/suspend",
            json={"days": days},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Suspension days must be between 1 and 365"

    async def test_suspend_blocked_user(self, client, db_session, auth_headers, admin):
        customer = await UserFactory.async_create(db_session, blocked=True)
        await db_session.commit()

        response = client.patch(
            f"/api/admin/users/{customer.id}/suspend",
            json={"days": 3},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot suspend a blocked user. Unblock first."

    async def test_list_users(self, client, db_session, auth_headers, admin, product):
        buyer = await UserFactory.async_create(db_session, username="buyer", login_count=3)
        await UserFactory.async_create(db_session, username="lurker", blocked=True)
        await OrderFactory.async_create(
            db_session, product_id=product.id, user_id=buyer.id, total=1100.0, delivered=True
        )
        await db_session.commit()

        body = client.get("/api/admin/users", headers=auth_headers(admin)).json()
        blocked = client.get("/api/admin/users?status=blocked", headers=auth_headers(admin)).json()

        rows = {u["username"]: u for u in body["users"]}
        assert set(rows) == {"buyer", "lurker"}
        assert rows["buyer"]["totalOrders"] == 1
        assert rows["buyer"]["totalSpent"] == 1100.0
        assert body["stats"] == {"totalUsers": 2, "totalLogins": 3, "suspendedCount": 0, "blockedCount": 1}
        assert [u["username"] for u in blocked["users"]] == ["lurker"]

    async def test_unknown_user(self, client, auth_headers, admin):
        response = client.get("/api/admin/users/999", headers=auth_headers(admin))

        assert response.status_code == 404
