"""
API tests for registration, login, token refresh and the error envelope.
"""

from datetime import timedelta

from listing_api.utils.auth import TokenService


class TestRegistration:
    """Test POST /auth/register."""

    async def test_register_returns_user_without_password(self, client, user_factory):
        data = user_factory.registration_data(email="Tamar@Example.com", age=27.8)

        response = await client.post("/api/auth/register", json=data)

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "tamar@example.com"
        assert body["age"] == 27
        assert body["flats"] == []
        assert body["birth_date"].endswith("-01-01")
        assert "password" not in body
        assert "hashed_password" not in body

    async def test_register_special_use_domain(self, client, user_factory):
        response = await client.post("/api/auth/register", json=user_factory.registration_data(email="qa@shop.test"))

        assert response.status_code == 201
        assert response.json()["email"] == "qa@shop.test"

    async def test_register_reports_every_problem(self, client):
        response = await client.post("/api/auth/register", json={"email": "x@example.com"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        messages = [detail["message"] for detail in error["details"]]
        assert "address is required" in messages
        assert "age is required" in messages
        assert len(messages) == 5

    async def test_register_duplicate_email(self, client, test_user, user_factory):
        data = user_factory.registration_data(email=test_user["email"].upper())

        response = await client.post("/api/auth/register", json=data)

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Email already registered"


class TestLogin:
    """Test POST /auth/login and GET /auth/me."""

    async def test_login_returns_token_pair(self, client, test_user):
        response = await client.post(
            "/api/auth/login",
            json={"email": test_user["email"], "password": test_user["password"]},
        )

        assert response.status_code == 200
        tokens = response.json()
        assert tokens["token_type"] == "bearer"
        assert tokens["expires_in"] == 15 * 60
        assert tokens["access_token"] != tokens["refresh_token"]

    async def test_login_wrong_password(self, client, test_user):
        response = await client.post(
            "/api/auth/login",
            json={"email": test_user["email"], "password": "wrong-password"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_login_missing_fields(self, client):
        response = await client.post("/api/auth/login", json={"email": "a@example.com"})

        assert response.status_code == 400

    async def test_me(self, client, test_user, auth_headers):
        response = await client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["id"] == test_user["id"]

    async def test_me_requires_token(self, client):
        response = await client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Authentication token required"

    async def test_expired_access_token(self, client, app, test_user):
        token = TokenService(app.state.settings).create_access_token(
            {"sub": test_user["id"], "email": test_user["email"]},
            expires_delta=timedelta(seconds=-1),
        )

        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Token has expired"


class TestRefresh:
    """Test POST /auth/refresh."""

    async def test_refresh_issues_new_pair(self, client, test_user, login):
        tokens = await login(test_user["email"], test_user["password"])

        response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        assert set(response.json()) >= {"access_token", "refresh_token", "expires_in"}

    async def test_access_token_is_not_a_refresh_token(self, client, test_user, login):
        tokens = await login(test_user["email"], test_user["password"])

        response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid or expired refresh token"

    async def test_refresh_token_required(self, client):
        response = await client.post("/api/auth/refresh", json={})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "refresh_token is required"


class TestErrorEnvelope:
    """Test the shared error response shape."""

    async def test_request_id_header_matches_body(self, client):
        response = await client.get("/api/flats/not-a-uuid")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["request_id"] == response.headers["x-request-id"]
        assert error["timestamp"].endswith("Z")

    async def test_unknown_route(self, client):
        response = await client.get("/api/nowhere")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HTTP_404"

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    async def test_banner(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["api_prefix"] == "/api"
