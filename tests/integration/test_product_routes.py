"""Integration tests for back-office product management."""

import json

import pytest
from sqlalchemy import select

from storefront.db.models import Product
from tests.factories import CategoryFactory, ProductFactory, UserFactory

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
async def admin(db_session):
    user = await UserFactory.async_create(db_session, admin=True)
    await db_session.commit()
    return user


@pytest.fixture
async def category(db_session):
    item = await CategoryFactory.async_create(db_session, name="Men", slug="men")
    await db_session.commit()
    return item


class TestCreate:
    async def test_multipart_create(self, client, db_session, auth_headers, admin, category, upload_dir, published_events):
        response = client.post(
            "/api/admin/products",
            data={
                "name": "Dhaka Topi",
                "price": "1200",
                "stock": "8",
                "categorySlug": "men",
                "tag": "best-selling",
                "features": json.dumps(["Hand woven", " ", "Cotton"]),
                "sizes": json.dumps(["M", "L"]),
                "shipping": json.dumps({"courier_charge": 80, "courier_desc": "Pathao"}),
            },
            files=[("images", ("topi.png", PNG_BYTES, "image/png"))],
            headers=auth_headers(admin),
        )

        assert response.status_code == 201, response.json()
        product_id = response.json()["productId"]
        assert published_events == [{"event": "product-update", "action": "created", "productId": product_id}]

        detail = client.get(f"/api/admin/products/{product_id}", headers=auth_headers(admin)).json()
        assert detail["categorySlug"] == "men"
        assert detail["features"] == ["Hand woven", "Cotton"]
        assert detail["sizes"] == ["M", "L"]
        assert detail["shipping"]["courier_charge"] == 80
        assert len(detail["images"]) == 1
        stored_name = detail["images"][0].rsplit("/", 1)[-1]
        assert (upload_dir / stored_name).read_bytes() == PNG_BYTES

    async def test_missing_name(self, client, auth_headers, admin, category):
        response = client.post(
            "/api/admin/products",
            data={"price": "100", "categorySlug": "men"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Product name is required"

    async def test_unknown_category(self, client, auth_headers, admin):
        response = client.post(
            "/api/admin/products",
            data={"name": "Topi", "price": "100", "categorySlug": "nowhere"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Valid category is required"

    async def test_exclusive_offer_needs_old_price(self, client, auth_headers, admin, category):
        response = client.post(
            "/api/admin/products",
            data={"name": "Topi", "price": "100", "categorySlug": "men", "tag": "exclusive-offer"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_VAL_005"

    async def test_rejects_non_images(self, client, db_session, auth_headers, admin, category):
        response = client.post(
            "/api/admin/products",
            data={"name": "Topi", "price": "100", "categorySlug": "men"},
            files=[("images", ("notes.txt", b"hello", "text/plain"))],
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Only images allowed"
        assert (await db_session.execute(select(Product))).scalars().all() == []

    async def test_customers_are_refused(self, client, db_session, auth_headers, category):
        customer = await UserFactory.async_create(db_session)
        await db_session.commit()

        response = client.post(
            "/api/admin/products",
            data={"name": "Topi", "price": "100", "categorySlug": "men"},
            headers=auth_headers(customer),
        )

        assert response.status_code == 403


class TestUpdateAndDelete:
    async def test_partial_update(self, client, db_session, auth_headers, admin, published_events):
        product = await ProductFactory.async_create(db_session, name="Topi", price=500.0, stock=2)
        await db_session.commit()

        response = client.put(
            f"/api/admin/products/{product.id}",
            data={"price": "650"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        await db_session.refresh(product)
        assert product.price == 650.0
        assert product.name == "Topi"
        assert product.stock == 2
        assert published_events[0]["action"] == "updated"

    async def test_delete(self, client, db_session, auth_headers, admin, published_events):
        product = await ProductFactory.async_create(db_session)
        await db_session.commit()

        response = client.delete(f"/api/admin/products/{product.id}", headers=auth_headers(admin))
        again = client.delete(f"/api/admin/products/{product.id}", headers=auth_headers(admin))

        assert response.status_code == 200
        assert again.status_code == 404
        assert [e["action"] for e in published_events] == ["deleted"]
        db_session.expire_all()
        assert (await db_session.execute(select(Product))).scalars().all() == []

    async def test_list_by_category(self, client, db_session, auth_headers, admin, category):
        await ProductFactory.async_create(db_session, name="First", category=category)
        await ProductFactory.async_create(db_session, name="Second", category=category)
        await ProductFactory.async_create(db_session, name="Elsewhere")
        await db_session.commit()

        rows = client.get(f"/api/admin/products/category/{category.id}", headers=auth_headers(admin)).json()

        assert [r["name"] for r in rows] == ["Second", "First"]
