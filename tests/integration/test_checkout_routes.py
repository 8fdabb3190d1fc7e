"""Integration tests for buy-now sessions and customer orders."""

import uuid

import pytest
from sqlalchemy import select

from storefront.db.models import Order, OrderItem, Product
from tests.factories import BuyNowSessionFactory, OrderFactory, ProductFactory, UserFactory

CUSTOMER = {
    "customerEmail": "asha@example.com",
    "customerFirstName": "Asha",
    "customerLastName": "Rai",
    "customerProvince": "Bagmati",
    "customerCity": "Lalitpur",
    "customerAddress": "Jhamsikhel 4",
    "customerPhone": "98-0123-4567",
}


class TestBuyNowSession:
    async def test_create_snapshots_product(self, client, db_session):
        product = await ProductFactory.async_create(db_session, name="Dhaka Topi", price=1200.0, stock=4)
        await db_session.commit()

        response = client.post(
            "/api/buy-now/session",
            json={"productId": product.id, "selectedSize": ["M", "L"], "quantity": 2},
        )

        assert response.status_code == 201
        body = response.json()
        session = body["session"]
        assert body["sessionId"] == session["id"]
        assert session["productName"] == "Dhaka Topi"
        assert session["selectedSize"] == "M,L"
        assert session["quantity"] == 2
        assert session["unitPrice"] == 1200.0
        assert session["status"] == "active"
        assert [o["id"] for o in session["shippingOptions"]] == ["courier", "home_valley", "outside_valley"]

    async def test_create_rejects_quantity_over_stock(self, client, db_session):
        product = await ProductFactory.async_create(db_session, stock=1)
        await db_session.commit()

        response = client.post("/api/buy-now/session", json={"productId": product.id, "quantity": 3})

        assert response.status_code == 400
        assert response.json()["message"] == "Not enough stock. Available: 1"

    def test_create_unknown_product(self, client):
        response = client.post("/api/buy-now/session", json={"productId": 999})

        assert response.status_code == 404

    async def test_get_expired_session_is_gone(self, client, db_session):
        product = await ProductFactory.async_create(db_session)
        checkout = await BuyNowSessionFactory.async_create(db_session, product_id=product.id, expired=True)
        await db_session.commit()

        response = client.get(f"/api/buy-now/session/{checkout.id}")

        assert response.status_code == 410
        assert response.json()["message"] == "Session has expired"
        await db_session.refresh(checkout)
        assert checkout.status == "expired"

    def test_get_unknown_session(self, client):
        response = client.get(f"/api/buy-now/session/{uuid.uuid4()}")

        assert response.status_code == 404

    async def test_update_quantity(self, client, db_session):
        product = await ProductFactory.async_create(db_session, stock=5)
        checkout = await BuyNowSessionFactory.async_create(db_session, product_id=product.id)
        await db_session.commit()

        response = client.put(f"/api/buy-now/session/{checkout.id}", json={"quantity": 3})

        assert response.status_code == 200
        assert response.json()["session"]["quantity"] == 3


@pytest.fixture
async def checkout(db_session):
    """A signed-up customer holding an active session for a 3-unit product."""
    user = await UserFactory.async_create(db_session)
    product = await ProductFactory.async_create(db_session, price=1000.0, stock=3)
    session = await BuyNowSessionFactory.async_create(
        db_session, product_id=product.id, unit_price=1000.0, quantity=2
    )
    await db_session.commit()
    return user, product, session


class TestCreateOrder:
    async def test_creates_pending_order(self, client, db_session, auth_headers, checkout):
        user, product, session = checkout

        response = client.post(
            "/api/orders",
            json={"sessionId": str(session.id), "shippingType": "courier", "giftBox": True, **CUSTOMER},
            headers=auth_headers(user),
        )

        assert response.status_code == 201, response.json()
        order = response.json()["order"]
        assert order["status"] == "PENDING_CONFIRMATION"
        assert order["subtotal"] == 2000.0
        assert order["shippingCharge"] == 100.0
        assert order["giftBoxFee"] == 20.0
        assert order["total"] == 2120.0
        assert order["shippingMethodLabel"] == "Courier Charge"

        await db_session.refresh(product)
        assert product.stock == 3

    async def test_requires_token(self, client, checkout):
        _, _, session = checkout

        response = client.post("/api/orders", json={"sessionId": str(session.id), **CUSTOMER})

        assert response.status_code == 401

    async def test_rejects_bad_form(self, client, auth_headers, checkout):
        user, _, session = checkout

        response = client.post(
            "/api/orders",
            json={"sessionId": str(session.id), "shippingType": "courier", **CUSTOMER, "customerEmail": "asha"},
            headers=auth_headers(user),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email format"

    async def test_suspended_customer_cannot_order(self, client, db_session, auth_headers, checkout):
        _, _, session = checkout
        suspended = await UserFactory.async_create(db_session, suspended=True)
        await db_session.commit()

        response = client.post(
            "/api/orders",
            json={"sessionId": str(session.id), "shippingType": "courier", **CUSTOMER},
            headers=auth_headers(suspended),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "ERR_AUTH_007"


class TestConfirmOrder:
    def _create(self, client, auth_headers, user, session) -> str:
        response = client.post(
            "/api/orders",
            json={"sessionId": str(session.id), "shippingType": "home_valley", **CUSTOMER},
            headers=auth_headers(user),
        )
        return response.json()["orderId"]

    async def test_confirm_takes_stock(self, client, db_session, auth_headers, checkout):
        user, product, session = checkout
        order_id = self._create(client, auth_headers, user, session)

        response = client.post(f"/api/orders/{order_id}/confirm", headers=auth_headers(user))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Order placed successfully"
        assert body["order"]["status"] == "PLACED"
        assert len(body["order"]["items"]) == 1

        await db_session.refresh(product)
        assert product.stock == 1
        await db_session.refresh(session)
        assert session.status == "completed"
        items = (await db_session.execute(select(OrderItem))).scalars().all()
        assert [i.quantity for i in items] == [2]

    async def test_confirm_twice(self, client, auth_headers, checkout):
        user, _, session = checkout
        order_id = self._create(client, auth_headers, user, session)
        client.post(f"/api/orders/{order_id}/confirm", headers=auth_headers(user))

        response = client.post(f"/api/orders/{order_id}/confirm", headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["message"] == "Order cannot be confirmed. Current status: PLACED"

    async def test_confirm_someone_elses_order(self, client, db_session, auth_headers, checkout):
        user, _, session = checkout
        stranger = await UserFactory.async_create(db_session)
        await db_session.commit()
        order_id = self._create(client, auth_headers, user, session)

        response = client.post(f"/api/orders/{order_id}/confirm", headers=auth_headers(stranger))

        assert response.status_code == 403

    async def test_confirm_when_stock_ran_out(self, client, db_session, auth_headers, checkout):
        user, product, session = checkout
        order_id = self._create(client, auth_headers, user, session)
        stored = await db_session.get(Product, product.id)
        stored.stock = 1
        await db_session.commit()

        response = client.post(f"/api/orders/{order_id}/confirm", headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_STOCK_001"
        order = (await db_session.execute(select(Order))).scalar_one()
        await db_session.refresh(order)
        assert order.status == "PENDING_CONFIRMATION"


class TestOrderHistory:
    async def test_my_orders(self, client, db_session, auth_headers):
        user = await UserFactory.async_create(db_session)
        other = await UserFactory.async_create(db_session)
        product = await ProductFactory.async_create(db_session)
        await OrderFactory.async_create(db_session, product_id=product.id, user_id=user.id)
        await OrderFactory.async_create(db_session, product_id=product.id, user_id=user.id, delivered=True)
        await OrderFactory.async_create(db_session, product_id=product.id, user_id=other.id)
        await db_session.commit()

        response = client.get("/api/orders/my", headers=auth_headers(user))
        delivered = client.get("/api/orders/my?status=DELIVERED", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 2
        assert [o["status"] for o in delivered.json()["orders"]] == ["DELIVERED"]

    async def test_my_order_belongs_to_caller(self, client, db_session, auth_headers):
        owner = await UserFactory.async_create(db_session)
        stranger = await UserFactory.async_create(db_session)
        product = await ProductFactory.async_create(db_session)
        order = await OrderFactory.async_create(db_session, product_id=product.id, user_id=owner.id)
        await db_session.commit()

        mine = client.get(f"/api/orders/my/{order.id}", headers=auth_headers(owner))
        theirs = client.get(f"/api/orders/my/{order.id}", headers=auth_headers(stranger))

        assert mine.status_code == 200
        assert mine.json()["order"]["customer"]["city"] == "Kathmandu"
        assert theirs.status_code == 403

    async def test_guest_order_is_public(self, client, db_session):
        product = await ProductFactory.async_create(db_session)
        order = await OrderFactory.async_create(db_session, product_id=product.id)
        await db_session.commit()

        response = client.get(f"/api/orders/{order.id}")

        assert response.status_code == 200

    def test_malformed_order_id(self, client):
        response = client.get("/api/orders/not-a-uuid")

        assert response.status_code == 404
