"""Integration tests for sign-up, sign-in and password recovery."""

from sqlalchemy import select

from storefront.db.models import User
from tests.factories import DEFAULT_PASSWORD, UserFactory

SIGNUP = {
    "username": "asha",
    "password": "hunter22",
    "securityQuestion": "First pet's name?",
    "securityAnswer": "Rex",
}


class TestSignup:
    async def test_creates_account(self, client, db_session):
        response = client.post("/api/auth/signup", json=SIGNUP)

        assert response.status_code == 201
        assert response.json() == {"success": True, "message": "Signup successful!"}
        user = (await db_session.execute(select(User).where(User.username == "asha"))).scalar_one()
        assert user.role == "user"
        assert user.password_hash != "hunter22"

    async def test_rejects_taken_username(self, client, db_session):
        await UserFactory.async_create(db_session, username="asha")
        await db_session.commit()

        response = client.post("/api/auth/signup", json=SIGNUP)

        assert response.status_code == 400
        assert response.json()["message"] == "Username already exists"

    def test_requires_every_field(self, client):
        response = client.post("/api/auth/signup", json={"username": "asha", "password": "x"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "All fields are required"


class TestLogin:
    async def test_returns_token_and_status(self, client, db_session):
        user = await UserFactory.async_create(db_session, username="asha")
        await db_session.commit()

        response = client.post("/api/auth/login", json={"username": "asha", "password": DEFAULT_PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["token"]
        assert body["role"] == "user"
        assert body["user"] == {"id": user.id, "username": "asha", "role": "user"}
        assert body["accountStatus"] == "ACTIVE"
        assert "suspension" not in body

        await db_session.refresh(user)
        assert user.login_count == 1

    async def test_wrong_password(self, client, db_session):
        await UserFactory.async_create(db_session, username="asha")
        await db_session.commit()

        response = client.post("/api/auth/login", json={"username": "asha", "password": "nope"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid password"

    def test_unknown_user(self, client):
        response = client.post("/api/auth/login", json={"username": "ghost", "password": "x"})

        assert response.status_code == 400
        assert response.json()["message"] == "User not found"

    async def test_blocked_account(self, client, db_session):
        await UserFactory.async_create(db_session, username="asha", blocked=True)
        await db_session.commit()

        response = client.post("/api/auth/login", json={"username": "asha", "password": DEFAULT_PASSWORD})

        assert response.status_code == 403
        body = response.json()
        assert body["statusCode"] == "BLOCKED"
        assert body["reason"] == "Chargeback abuse"

    async def test_suspended_account_signs_in(self, client, db_session):
        await UserFactory.async_create(db_session, username="asha", suspended=True)
        await db_session.commit()

        response = client.post("/api/auth/login", json={"username": "asha", "password": DEFAULT_PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["accountStatus"] == "SUSPENDED"
        assert body["suspension"]["reason"] == "Spam comments"


class TestPasswordRecovery:
    async def test_question_then_reset(self, client, db_session):
        await UserFactory.async_create(db_session, username="asha")
        await db_session.commit()

        question = client.post("/api/auth/get-question", json={"username": "asha"})
        assert question.json() == {"success": True, "securityQuestion": "First pet's name?"}

        reset = client.post(
            "/api/auth/reset-password",
            json={"username": "asha", "securityAnswer": "  rex ", "newPassword": "fresh-pass"},
        )
        assert reset.status_code == 200

        login = client.post("/api/auth/login", json={"username": "asha", "password": "fresh-pass"})
        assert login.status_code == 200

    async def test_wrong_answer(self, client, db_session):
        await UserFactory.async_create(db_session, username="asha")
        await db_session.commit()

        response = client.post(
            "/api/auth/reset-password",
            json={"username": "asha", "securityAnswer": "Max", "newPassword": "fresh-pass"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Incorrect security answer"

    def test_unknown_user_question(self, client):
        response = client.post("/api/auth/get-question", json={"username": "ghost"})

        assert response.status_code == 404


class TestProfile:
    def test_requires_token(self, client):
        response = client.get("/api/auth/profile")

        assert response.status_code == 401
        assert response.json()["error_code"] == "ERR_AUTH_001"

    def test_rejects_garbage_token(self, client):
        response = client.get("/api/auth/profile", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "ERR_AUTH_002"

    async def test_returns_profile(self, client, db_session, auth_headers):
        user = await UserFactory.async_create(db_session, username="asha")
        await db_session.commit()

        response = client.get("/api/auth/profile", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["user"]["username"] == "asha"
        assert response.json()["user"]["status"] == "ACTIVE"
