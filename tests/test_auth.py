"""Tests for admin HTTP Basic authentication."""

import pytest

from firewood.core import auth
from firewood.core.config import Settings

ORDERS = "/api/v1/admin/orders"


class TestAdminAuth:
    def test_correct_credentials(self, client):
        assert client.get(ORDERS, auth=("admin", "s3cret")).status_code == 200

    def test_missing_credentials(self, client):
        response = client.get(ORDERS)
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"].startswith("Basic")

    @pytest.mark.parametrize("user, password", [("admin", "wrong"), ("root", "s3cret"), ("", "")])
    def test_wrong_credentials(self, client, user, password):
        assert client.get(ORDERS, auth=(user, password)).status_code == 401

    def test_unconfigured_fails_closed(self, client, monkeypatch):
        unconfigured = Settings(_env_file=None, ADMIN_USER=None, ADMIN_PASS=None)
        monkeypatch.setattr(auth, "get_settings", lambda: unconfigured)

        assert client.get(ORDERS, auth=("admin", "s3cret")).status_code == 401
        assert auth.credentials_match("", "") is False

    def test_product_admin_routes_protected(self, client):
        assert client.post("/api/v1/admin/products/seed").status_code == 401
        assert client.get("/api/v1/products").status_code == 200
