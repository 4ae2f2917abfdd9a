"""Tests for the admin order lifecycle: status, cancel/restore, archive, bulk."""

import uuid

import pytest

from firewood.models.order import FulfillmentStatus
from firewood.services.fulfillment_service import ALLOWED_TRANSITIONS, can_transition
from firewood.services.notifier import NotificationKind, OrderNotifier, get_notifier
from firewood.main import app

AUTH = ("admin", "s3cret")
BASE = "/api/v1/admin/orders"


def _status(client, order_id, new_status, **extra):
    return client.patch(
        f"{BASE}/{order_id}/status", json={"status": new_status, **extra}, auth=AUTH
    )


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(FulfillmentStatus)

    @pytest.mark.parametrize(
        "current, new, allowed",
        [
            (FulfillmentStatus.NEW, FulfillmentStatus.PAID, True),
            (FulfillmentStatus.NEW, FulfillmentStatus.DELIVERED, False),
            (FulfillmentStatus.PAID, FulfillmentStatus.NEW, False),
            (FulfillmentStatus.OFD, FulfillmentStatus.DELIVERED, True),
            (FulfillmentStatus.DELIVERED, FulfillmentStatus.CANCELLED, False),
            (FulfillmentStatus.CANCELLED, FulfillmentStatus.NEW, False),
        ],
    )
    def test_can_transition(self, current, new, allowed):
        assert can_transition(current, new) is allowed


class TestSetStatus:
    def test_forward_path(self, client, place_order, notifier):
        order_id = place_order()["order_id"]
        notifier.intents.clear()

        for step in ("PAID", "OFD", "DELIVERED"):
            response = _status(client, order_id, step)
            assert response.status_code == 200
            assert response.json()["status"] == step

        assert [i.status.value for i in notifier.intents] == ["PAID", "OFD", "DELIVERED"]
        assert all(i.kind is NotificationKind.CUSTOMER_STATUS_UPDATE for i in notifier.intents)

    def test_illegal_transition(self, client, place_order):
        order_id = place_order()["order_id"]
        response = _status(client, order_id, "DELIVERED")
        assert response.status_code == 409
        assert client.get(f"{BASE}/{order_id}", auth=AUTH).json()["status"] == "NEW"

    def test_same_status_is_noop(self, client, place_order, notifier):
        order_id = place_order()["order_id"]
        notifier.intents.clear()
        response = _status(client, order_id, "NEW")
        assert response.status_code == 200
        assert notifier.intents == []

    def test_no_email_without_address(self, client, place_order, notifier):
        order_id = place_order(customer_email=None)["order_id"]
        notifier.intents.clear()
        _status(client, order_id, "OFD")
        assert notifier.intents == []

    def test_cancel_via_status_records_reason(self, client, place_order):
        order_id = place_order()["order_id"]
        response = _status(client, order_id, "CANCELLED", cancel_reason=" No access ")
        data = response.json()
        assert data["status"] == "CANCELLED"
        assert data["cancel_reason"] == "No access"
        assert data["cancelled_at"] is not None

    def test_unknown_order(self, client):
        assert _status(client, uuid.uuid4(), "PAID").status_code == 404

    def test_email_failure_does_not_fail_update(self, client, place_order):
        order_id = place_order()["order_id"]

        def broken_sender(to, subject, text, html):
            raise OSError("SMTP down")

        app.dependency_overrides[get_notifier] = lambda: OrderNotifier(sender=broken_sender)

        response = _status(client, order_id, "OFD")
        assert response.status_code == 200
        assert client.get(f"{BASE}/{order_id}", auth=AUTH).json()["status"] == "OFD"


class TestCancelRestore:
    def test_cancel_then_restore(self, client, place_order):
        order_id = place_order()["order_id"]
        _status(client, order_id, "OFD")

        cancelled = client.post(
            f"{BASE}/{order_id}/cancel", json={"reason": "Customer away"}, auth=AUTH
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["cancel_reason"] == "Customer away"

        restored = client.delete(f"{BASE}/{order_id}/cancel", auth=AUTH)
        assert restored.status_code == 200
        data = restored.json()
        assert data["status"] == "NEW"
        assert data["cancelled_at"] is None
        assert data["cancel_reason"] is None

    def test_cancel_without_body(self, client, place_order):
        order_id = place_order()["order_id"]
        response = client.post(f"{BASE}/{order_id}/cancel", auth=AUTH)
        assert response.status_code == 200
        assert response.json()["cancel_reason"] is None

    def test_cancel_twice_conflicts(self, client, place_order):
        order_id = place_order()["order_id"]
        client.post(f"{BASE}/{order_id}/cancel", auth=AUTH)
        assert client.post(f"{BASE}/{order_id}/cancel", auth=AUTH).status_code == 409

    def test_restore_requires_cancelled(self, client, place_order):
        order_id = place_order()["order_id"]
        assert client.delete(f"{BASE}/{order_id}/cancel", auth=AUTH).status_code == 409

    def test_delivered_cannot_be_cancelled(self, client, place_order):
        order_id = place_order()["order_id"]
        for step in ("OFD", "DELIVERED"):
            _status(client, order_id, step)
        assert client.post(f"{BASE}/{order_id}/cancel", auth=AUTH).status_code == 409


class TestArchive:
    def test_archive_leaves_status_and_payment(self, client, place_order):
        order_id = place_order(payment_method="CASH")["order_id"]
        _status(client, order_id, "OFD")

        archived = client.post(f"{BASE}/{order_id}/archive", auth=AUTH).json()
        assert archived["archived_at"] is not None
        assert archived["status"] == "OFD"
        assert archived["payment_status"] == "UNPAID"

        listed = client.get(BASE, auth=AUTH).json()
        assert order_id not in [o["id"] for o in listed]
        archived_list = client.get(BASE, params={"archived": True}, auth=AUTH).json()
        assert [o["id"] for o in archived_list] == [order_id]

        unarchived = client.delete(f"{BASE}/{order_id}/archive", auth=AUTH).json()
        assert unarchived["archived_at"] is None
        assert unarchived["status"] == "OFD"

    def test_archive_is_idempotent(self, client, place_order):
        order_id = place_order()["order_id"]
        first = client.post(f"{BASE}/{order_id}/archive", auth=AUTH).json()
        second = client.post(f"{BASE}/{order_id}/archive", auth=AUTH).json()
        assert first["archived_at"] == second["archived_at"]


class TestBulk:
    def test_missing_id_does_not_block_others(self, client, place_order, make_product):
        product = make_product()
        a = place_order(product=product)["order_id"]
        b = place_order(product=product)["order_id"]
        missing = str(uuid.uuid4())

        response = client.post(
            f"{BASE}/bulk",
            json={"action": "cancel", "ids": [a, missing, b], "reason": "Storm"},
            auth=AUTH,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["updated"] == [a, b]
        assert data["failed"] == [
            {"id": missing, "reason": "not_found", "detail": "Order not found"}
        ]

        for order_id in (a, b):
            detail = client.get(f"{BASE}/{order_id}", auth=AUTH).json()
            assert detail["status"] == "CANCELLED"
            assert detail["cancel_reason"] == "Storm"

    def test_conflicts_reported(self, client, place_order):
        order_id = place_order()["order_id"]
        response = client.post(
            f"{BASE}/bulk", json={"action": "restore", "ids": [order_id]}, auth=AUTH
        )
        data = response.json()
        assert data["updated"] == []
        assert data["failed"][0]["reason"] == "conflict"

    def test_archive_many(self, client, place_order, make_product):
        product = make_product()
        ids = [place_order(product=product)["order_id"] for _ in range(3)]
        response = client.post(
            f"{BASE}/bulk", json={"action": "archive", "ids": ids + ids[:1]}, auth=AUTH
        )
        assert sorted(response.json()["updated"]) == sorted(ids)
        assert client.get(BASE, auth=AUTH).json() == []

    def test_unknown_action(self, client, place_order):
        order_id = place_order()["order_id"]
        response = client.post(
            f"{BASE}/bulk", json={"action": "delete", "ids": [order_id]}, auth=AUTH
        )
        assert response.status_code == 422


class TestAdminViews:
    def test_statuses(self, client):
        response = client.get(f"{BASE}/statuses", auth=AUTH)
        assert response.json() == ["NEW", "PAID", "OFD", "DELIVERED", "CANCELLED"]

    def test_search_and_filter(self, client, place_order, make_product):
        product = make_product()
        place_order(product=product, customer_name="Alice Smith")
        bob = place_order(product=product, customer_name="Bob Jones")["order_id"]
        _status(client, bob, "OFD")

        by_name = client.get(BASE, params={"q": "alice"}, auth=AUTH).json()
        assert [o["customer_name"] for o in by_name] == ["Alice Smith"]

        by_status = client.get(BASE, params={"status": "OFD"}, auth=AUTH).json()
        assert [o["id"] for o in by_status] == [bob]

    def test_detail_includes_items_and_notes(self, client, place_order):
        order_id = place_order(quantity=2)["order_id"]
        client.post(f"{BASE}/{order_id}/husbandry", json={"note": "Gate code 1234"}, auth=AUTH)

        detail = client.get(f"{BASE}/{order_id}", auth=AUTH).json()
        assert detail["items"][0]["quantity"] == 2
        assert detail["husbandry"][0]["note"] == "Gate code 1234"
        assert detail["mollie_checkout_url"] is None

    def test_dispatch_groups_by_outward_code(self, client, place_order, make_product):
        product = make_product()
        ta = place_order(product=product, postcode="ta11aa")["order_id"]
        ba_late = place_order(product=product, postcode="BA9 9ZZ")["order_id"]
        ba_early = place_order(product=product, postcode="ba98bw")["order_id"]
        cancelled = place_order(product=product, postcode="BA9 8AA")["order_id"]
        client.post(f"{BASE}/{cancelled}/cancel", auth=AUTH)

        view = client.get(f"{BASE}/dispatch", auth=AUTH).json()
        assert view["order_count"] == 3
        assert [g["outward_code"] for g in view["groups"]] == ["BA9", "TA1"]
        assert [o["id"] for o in view["groups"][0]["orders"]] == [ba_early, ba_late]
        assert [o["id"] for o in view["groups"][1]["orders"]] == [ta]
        assert view["groups"][0]["total_pence"] == 4000
