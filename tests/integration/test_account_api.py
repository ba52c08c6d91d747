"""Integration tests for account, usage, admin and health endpoints."""

from metered_api.config import get_settings


def auth(user) -> dict[str, str]:
    return {"X-API-Key": user.api_key}


class TestAccountAPI:
    """Tests for /v1/account."""

    def test_get_account(self, client, seed_user):
        user = seed_user(credits=3, credits_used=1)

        response = client.get("/v1/account", headers=auth(user))

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == user.id
        assert data["email"] == user.email
        assert data["api_key"] == user.api_key
        assert data["credits_remaining"] == 3
        assert data["credits_used"] == 1
        assert data["can_recharge"] is True

    def test_account_is_not_metered(self, client, seed_user, load_user):
        user = seed_user(credits=1)

        for _ in range(3):
            assert client.get("/v1/account", headers=auth(user)).status_code == 200

        assert load_user(user.id).credits == 1

    def test_account_reachable_with_zero_credits(self, client, seed_user):
        user = seed_user(credits=0)
        response = client.get("/v1/account", headers=auth(user))
        assert response.status_code == 200
        assert response.json()["credits_remaining"] == 0

    def test_account_requires_key(self, client):
        assert client.get("/v1/account").status_code == 401


class TestUsageAPI:
    """Tests for /v1/account/usage."""

    def test_usage_counts_admitted_requests(self, client, seed_user, drain_usage):
        user = seed_user(credits=10)
        client.post("/v1/items", json={"value": 1}, headers=auth(user))
        client.get("/v1/items", headers=auth(user))
        client.get("/v1/items", headers=auth(user))
        client.get("/v1/items/item_missing", headers=auth(user))
        drain_usage()

        response = client.get("/v1/account/usage", headers=auth(user))

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == user.id
        assert data["total_count"] == 4
        endpoints = {e["endpoint"]: e["count"] for e in data["endpoint_stats"]}
        assert endpoints["GET /v1/items"] == 2
        assert endpoints["POST /v1/items"] == 1
        assert endpoints["GET /v1/items/item_missing"] == 1
        statuses = {s["status_code"]: s["count"] for s in data["status_stats"]}
        assert statuses == {200: 2, 201: 1, 404: 1}

    def test_rejected_requests_not_logged(self, client, seed_user, drain_usage):
        user = seed_user(credits=1)
        client.get("/v1/items", headers=auth(user))
        client.get("/v1/items", headers=auth(user))
        client.get("/v1/items", headers=auth(user))
        drain_usage()

        data = client.get("/v1/account/usage", headers=auth(user)).json()

        assert data["total_count"] == 1

    def test_usage_is_per_user(self, client, seed_user, drain_usage):
        alice = seed_user(credits=5)
        bob = seed_user(credits=5)
        client.get("/v1/items", headers=auth(alice))
        drain_usage()

        data = client.get("/v1/account/usage", headers=auth(bob)).json()

        assert data["total_count"] == 0
        assert data["endpoint_stats"] == []


class TestAdminAPI:
    """Tests for /v1/admin/users."""

    body = {
        "external_id": "google-42",
        "email": "ada@test.com",
        "name": "Ada",
        "image": "https://img/ada.png",
    }

    def test_provision_requires_admin_key(self, client):
        response = client.post("/v1/admin/users", json=self.body)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "INVALID_ADMIN_KEY"

    def test_provision_wrong_admin_key(self, client):
        response = client.post(
            "/v1/admin/users", json=self.body, headers={"X-Admin-Key": "wrong"}
        )
        assert response.status_code == 403

    def test_provision_closed_without_configured_key(self, client, monkeypatch):
        monkeypatch.delenv("ADMIN_API_KEY")
        get_settings.cache_clear()

        response = client.post(
            "/v1/admin/users", json=self.body, headers={"X-Admin-Key": ""}
        )

        assert response.status_code == 403

    def test_provision_new_user(self, client, admin_headers):
        response = client.post("/v1/admin/users", json=self.body, headers=admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["api_key"].startswith("clapi_")
        assert data["credits_remaining"] == 4
        assert data["can_recharge"] is True
        assert data["email"] == "ada@test.com"

    def test_provision_is_idempotent(self, client, admin_headers):
        first = client.post("/v1/admin/users", json=self.body, headers=admin_headers).json()
        second = client.post("/v1/admin/users", json=self.body, headers=admin_headers).json()

        assert second["id"] == first["id"]
        assert second["api_key"] == first["api_key"]

    def test_provision_rejects_bad_email(self, client, admin_headers):
        body = {**self.body, "email": "not-an-email"}
        response = client.post("/v1/admin/users", json=body, headers=admin_headers)
        assert response.status_code == 400

    def test_provisioned_key_is_usable(self, client, admin_headers):
        api_key = client.post(
            "/v1/admin/users", json=self.body, headers=admin_headers
        ).json()["api_key"]

        response = client.post("/v1/items", json={"value": 1}, headers={"X-API-Key": api_key})

        assert response.status_code == 201
        account = client.get("/v1/account", headers={"X-API-Key": api_key}).json()
        assert account["credits_remaining"] == 3


class TestHealthAPI:
    """Tests for health and root endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["storage"]["status"] == "up"

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["backend"] == "memory"
