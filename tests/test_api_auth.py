"""Tests for authentication endpoints."""

from api.auth.jwt import create_refresh_token


def register(client, **overrides):
    payload = {"name": "Jane", "email": "jane@example.com", "password": "secret123"}
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


class TestRegister:

    def test_register_returns_tokens(self, client):
        response = register(client)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["token"]
        assert data["refresh_token"]
        assert data["user"]["email"] == "jane@example.com"
        assert data["user"]["role"] == "user"
        assert "password_hash" not in data["user"]

    def test_email_is_normalized(self, client):
        response = register(client, email="Jane@Example.com")
        assert response.json()["data"]["user"]["email"] == "jane@example.com"

    def test_duplicate_email(self, client):
        register(client)

        response = register(client)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "User already exists"

    def test_short_password(self, client):
        response = register(client, password="123")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert any("password" in detail["field"] for detail in body["error"]["details"])

    def test_admin_role_cannot_be_self_assigned(self, client):
        assert register(client, role="admin").status_code == 400

    def test_unknown_vendor(self, client):
        response = register(client, role="vendor", vendorId="aaaaaaaaaaaaaaaaaaaaaaaa")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Vendor not found"

    def test_vendor_user_linked_to_vendor(self, client, vendor_record):
        response = register(client, role="vendor", vendorId=vendor_record["id"])

        assert response.status_code == 201
        assert response.json()["data"]["user"]["vendor_id"] == vendor_record["id"]


class TestLogin:

    def test_login(self, client):
        register(client)

        response = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["data"]["token"]

    def test_wrong_password(self, client):
        register(client)

        response = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "wrong-one"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    def test_unknown_user(self, client):
        response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "secret123"})
        assert response.status_code == 401


class TestTokens:

    def test_me_with_bearer_token(self, client):
        token = register(client).json()["data"]["token"]

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "jane@example.com"

    def test_me_with_legacy_header(self, client):
        token = register(client).json()["data"]["token"]

        response = client.get("/api/auth/me", headers={"x-auth-token": token})

        assert response.status_code == 200

    def test_me_without_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "No token, authorization denied"

    def test_garbage_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_refresh(self, client):
        refresh = register(client).json()["data"]["refresh_token"]

        response = client.post("/api/auth/refresh", json={"refresh_token": refresh})

        assert response.status_code == 200
        assert response.json()["data"]["token"]

    def test_access_token_is_not_a_refresh_token(self, client):
        token = register(client).json()["data"]["token"]

        response = client.post("/api/auth/refresh", json={"refresh_token": token})

        assert response.status_code == 401

    def test_refresh_for_unknown_user(self, client):
        token = create_refresh_token({"sub": "aaaaaaaaaaaaaaaaaaaaaaaa"})

        response = client.post("/api/auth/refresh", json={"refresh_token": token})

        assert response.status_code == 401
