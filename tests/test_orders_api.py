"""Tests for the public catalog and order endpoints."""

import uuid

from sqlmodel import Session, select

from firewood.models.order import Order, OrderItem
from firewood.services.notifier import NotificationKind


def _count(engine, model):
    with Session(engine) as s:
        return len(s.exec(select(model)).all())


class TestProducts:
    def test_list_active_in_price_list_order(self, client, make_product):
        make_product("IBC Crate", 19500, sort_order=30)
        make_product("Net of Logs", 2000, sort_order=10)
        make_product("Bulk Bag of Logs", 10000, sort_order=10)
        make_product("Kindling", 500, is_active=False)

        response = client.get("/api/v1/products")
        assert response.status_code == 200
        names = [p["name"] for p in response.json()]
        assert names == ["Bulk Bag of Logs", "Net of Logs", "IBC Crate"]

    def test_seed_is_idempotent(self, client):
        first = client.post("/api/v1/admin/products/seed", auth=("admin", "s3cret"))
        assert first.status_code == 200
        assert len(first.json()["created"]) == 3

        second = client.post("/api/v1/admin/products/seed", auth=("admin", "s3cret"))
        data = second.json()
        assert data["created"] == []
        assert len(data["existed"]) == 3
        assert data["total"] == 3

    def test_admin_create_and_update(self, client):
        created = client.post(
            "/api/v1/admin/products",
            json={"name": "  Kindling  ", "price_pence": 600, "sort_order": 40},
            auth=("admin", "s3cret"),
        )
        assert created.status_code == 201
        product = created.json()
        assert product["name"] == "Kindling"

        updated = client.patch(
            f"/api/v1/admin/products/{product['id']}",
            json={"price_pence": 650},
            auth=("admin", "s3cret"),
        )
        assert updated.status_code == 200
        assert updated.json()["price_pence"] == 650
        assert updated.json()["sort_order"] == 40

    def test_image_upload_rejects_unsupported_type(self, client, make_product):
        product = make_product()
        response = client.post(
            f"/api/v1/admin/products/{product.id}/image",
            files={"file": ("logs.gif", b"GIF89a", "image/gif")},
            auth=("admin", "s3cret"),
        )
        assert response.status_code == 400

    def test_image_upload_replaces_previous(self, client, make_product, monkeypatch):
        from firewood.core.storage import ImageStorage
        from firewood.routers import products

        class FakeStorage(ImageStorage):
            def __init__(self):
                super().__init__(client_factory=None)
                self.uploads = []
                self.deleted = []

            def upload(self, path, file_bytes, content_type):
                self.uploads.append((path, content_type))
                return f"https://proj.supabase.co/storage/v1/object/public/assets/{path}"

            def delete_url(self, url):
                self.deleted.append(self.path_from_url(url))
                return True

        storage = FakeStorage()
        monkeypatch.setattr(products.service, "_storage", storage)
        product = make_product()
        url = f"/api/v1/admin/products/{product.id}/image"

        first = client.post(
            url, files={"file": ("a.png", b"\x89PNG", "image/png")}, auth=("admin", "s3cret")
        )
        assert first.status_code == 200
        assert first.json()["image_alt"] == "Net of Logs"
        assert storage.uploads[0][0].startswith(f"products/{product.id}/")

        second = client.post(
            url, files={"file": ("b.webp", b"RIFF", "image/webp")}, auth=("admin", "s3cret")
        )
        assert second.status_code == 200
        assert second.json()["image_url"].endswith(storage.uploads[1][0])
        assert storage.deleted == [storage.uploads[0][0]]


class TestCreateOrder:
    def test_creates_priced_order(self, client, make_product, order_payload, notifier):
        net = make_product("Net of Logs", 2000)
        body = order_payload(product=net, quantity=3, postcode="ba98bw")

        response = client.post("/api/v1/orders", json=body)
        assert response.status_code == 201
        data = response.json()
        assert data["order_number"] == "VF-ORDER-001"
        assert data["subtotal_pence"] == 6000
        assert data["delivery_fee_pence"] == 0
        assert data["total_pence"] == 6000
        assert data["payment_status"] == "UNPAID"

        kinds = [i.kind for i in notifier.intents]
        assert kinds == [NotificationKind.ADMIN_NEW_ORDER, NotificationKind.CUSTOMER_CONFIRMATION]

    def test_ignores_client_prices(self, client, make_product, order_payload, engine):
        net = make_product("Net of Logs", 2000)
        body = order_payload(product=net, postcode="TA1 1AA")
        body["items"][0]["price_pence"] = 1

        data = client.post("/api/v1/orders", json=body).json()
        assert data["subtotal_pence"] == 2000
        assert data["total_pence"] == 3000

        with Session(engine) as s:
            (item,) = s.exec(select(OrderItem)).all()
            assert item.price_pence == 2000
            assert item.line_total_pence == 2000

    def test_sequential_order_numbers(self, place_order, make_product):
        product = make_product()
        first = place_order(product=product)
        second = place_order(product=product)
        assert first["order_number"] == "VF-ORDER-001"
        assert second["order_number"] == "VF-ORDER-002"

    def test_mollie_order_starts_pending(self, place_order):
        data = place_order(payment_method="mollie")
        assert data["payment_method"] == "MOLLIE"
        assert data["payment_status"] == "PENDING"

    def test_zero_quantity_writes_nothing(self, client, order_payload, engine):
        response = client.post("/api/v1/orders", json=order_payload(quantity=0))
        assert response.status_code == 422
        assert _count(engine, Order) == 0
        assert _count(engine, OrderItem) == 0

    def test_malformed_email_writes_nothing(self, client, order_payload, engine, notifier):
        response = client.post(
            "/api/v1/orders", json=order_payload(customer_email="not an email")
        )
        assert response.status_code == 422
        assert _count(engine, Order) == 0
        assert notifier.intents == []

    def test_email_is_trimmed(self, client, order_payload, notifier):
        response = client.post(
            "/api/v1/orders", json=order_payload(customer_email="  jane@example.com ")
        )
        assert response.status_code == 201
        assert notifier.intents[-1].to == "jane@example.com"

    def test_quantity_upper_bound(self, client, make_product, order_payload, engine):
        crate = make_product("IBC Crate", 19500)
        response = client.post(
            "/api/v1/orders", json=order_payload(product=crate, quantity=10**9)
        )
        assert response.status_code == 422
        assert _count(engine, Order) == 0
        assert _count(engine, OrderItem) == 0

    def test_largest_allowed_quantity(self, client, make_product, order_payload):
        crate = make_product("IBC Crate", 19500)
        response = client.post(
            "/api/v1/orders", json=order_payload(product=crate, quantity=1000)
        )
        assert response.status_code == 201
        assert response.json()["subtotal_pence"] == 19_500_000

    def test_inactive_product_writes_nothing(self, client, make_product, order_payload, engine):
        retired = make_product("Kindling", 500, is_active=False)
        response = client.post("/api/v1/orders", json=order_payload(product=retired))
        assert response.status_code == 404
        assert response.json()["detail"]["product_ids"] == [str(retired.id)]
        assert _count(engine, Order) == 0
        assert _count(engine, OrderItem) == 0

    def test_unknown_product(self, client, order_payload, make_product, engine):
        body = order_payload()
        body["items"].append({"product_id": str(uuid.uuid4()), "quantity": 1})
        response = client.post("/api/v1/orders", json=body)
        assert response.status_code == 404
        assert _count(engine, Order) == 0

    def test_empty_items_rejected(self, client, order_payload):
        response = client.post("/api/v1/orders", json=order_payload(items=[]))
        assert response.status_code == 422

    def test_blank_postcode_rejected(self, client, order_payload, engine):
        response = client.post("/api/v1/orders", json=order_payload(postcode="   "))
        assert response.status_code == 422
        assert _count(engine, Order) == 0

    def test_no_customer_email_skips_confirmation(self, client, order_payload, notifier):
        response = client.post("/api/v1/orders", json=order_payload(customer_email=""))
        assert response.status_code == 201
        assert [i.kind for i in notifier.intents] == [NotificationKind.ADMIN_NEW_ORDER]


class TestPublicOrderView:
    def test_excludes_staff_fields(self, client, place_order):
        created = place_order()
        order_id = created["order_id"]

        client.post(
            f"/api/v1/admin/orders/{order_id}/cancel",
            json={"reason": "Customer changed mind"},
            auth=("admin", "s3cret"),
        )
        client.post(
            f"/api/v1/admin/orders/{order_id}/husbandry",
            json={"note": "Called customer"},
            auth=("admin", "s3cret"),
        )

        response = client.get(f"/api/v1/orders/{order_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["order_number"] == created["order_number"]
        assert data["status"] == "CANCELLED"
        assert len(data["items"]) == 1
        for staff_field in (
            "cancel_reason",
            "cancelled_at",
            "archived_at",
            "husbandry",
            "mollie_payment_id",
            "mollie_checkout_url",
            "customer_phone",
        ):
            assert staff_field not in data

    def test_unknown_order(self, client):
        response = client.get(f"/api/v1/orders/{uuid.uuid4()}")
        assert response.status_code == 404
