"""
HTTP tests for /api/auth.
"""

from unittest.mock import AsyncMock, patch

from fastapi.concurrency import run_in_threadpool

from core.config import settings
from core.security import hash_reset_token
from models.models import User
from services.email_service import password_reset_url

ONBOARDING = {
    "fullName": "Ana Lopez",
    "bio": "Learning German",
    "nativeLanguage": "spanish",
    "learningLanguage": "german",
    "location": "Madrid",
}


def signup(client, email="a@x.com", password="secret1", full_name="Ana"):
    return client.post("/api/auth/signup", json={"email": email, "password": password, "fullName": full_name})


class TestSignupAndLogin:
    """Signup, login, logout and session cookie behaviour"""

    def test_signup_login_scenario(self, client, client_factory):
        response = signup(client)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["user"]["email"] == "a@x.com"
        assert body["user"]["fullName"] == "Ana"
        assert body["user"]["isOnboarded"] is False
        assert "hashedPassword" not in body["user"]
        assert settings.SESSION_COOKIE_NAME in response.cookies

        other = client_factory()
        assert other.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"}).status_code == 200

        wrong = client_factory().post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
        assert wrong.status_code == 401
        assert wrong.json() == {"message": "Invalid email or password"}

    def test_login_unknown_email_matches_wrong_password(self, client, client_factory):
        signup(client)

        unknown = client_factory().post("/api/auth/login", json={"email": "b@x.com", "password": "secret1"})
        wrong = client_factory().post("/api/auth/login", json={"email": "a@x.com", "password": "secret2"})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()

    def test_password_hashing_runs_in_threadpool(self, client, client_factory):
        with patch("api.auth.run_in_threadpool", new=AsyncMock(wraps=run_in_threadpool)) as offload:
            assert signup(client).status_code == 201
            login = client_factory().post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"})
            assert login.status_code == 200
            reset = client_factory().post("/api/auth/reset-password/unknown", json={"newPassword": "newpass1"})
            assert reset.status_code == 400

        offloaded = [call.args[0].__name__ for call in offload.await_args_list]
        assert offloaded == ["register", "authenticate", "consume_reset_token"]

    def test_session_cookie_flags(self, client):
        response = signup(client)
        set_cookie = response.headers["set-cookie"].lower()

        assert "httponly" in set_cookie
        assert "samesite=strict" in set_cookie
        assert f"max-age={7 * 24 * 60 * 60}" in set_cookie

    def test_signup_validation_errors(self, client):
        assert signup(client, password="123").status_code == 400
        assert signup(client, email="bad-email").status_code == 400

        missing = client.post("/api/auth/signup", json={"email": "a@x.com"})
        assert missing.status_code == 400
        assert missing.json() == {"message": "All fields are required"}

    def test_malformed_body(self, client):
        response = client.post("/api/auth/signup", content="not json", headers={"content-type": "application/json"})
        assert response.status_code == 400
        assert "message" in response.json()

    def test_duplicate_signup(self, client, client_factory):
        signup(client)
        response = signup(client_factory(), email="A@X.com")

        assert response.status_code == 400
        assert "already exists" in response.json()["message"]

    def test_concurrent_duplicate_signup_is_400(self, client, client_factory):
        signup(client)

        with patch("services.auth_service.AuthService.get_user_by_email", return_value=None):
            response = signup(client_factory())

        assert response.status_code == 400
        assert response.json() == {"message": "Email already exists, please use a different one"}

    def test_signup_provisions_stream_user(self, client, delegate):
        user_id = signup(client).json()["user"]["id"]
        assert delegate.users[user_id]["name"] == "Ana"

    def test_signup_survives_stream_failure(self, client, delegate):
        delegate.fail_upsert = True
        response = signup(client)

        assert response.status_code == 201
        assert delegate.users == {}

    def test_me_and_logout(self, client):
        signup(client)

        me = client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["user"]["email"] == "a@x.com"

        assert client.post("/api/auth/logout").status_code == 200
        client.cookies.clear()
        assert client.get("/api/auth/me").status_code == 401

    def test_me_requires_session(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["message"].startswith("Unauthorized")

    def test_me_rejects_forged_cookie(self, client):
        cookie = {"cookie": f"{settings.SESSION_COOKIE_NAME}=forged.token.value"}
        assert client.get("/api/auth/me", headers=cookie).status_code == 401


class TestOnboarding:
    """POST /api/auth/onboarding"""

    def test_completes_profile_without_rehashing(self, client, db, delegate):
        user_id = signup(client).json()["user"]["id"]
        before = db.query(User).filter(User.id == user_id).first().hashed_password

        response = client.post("/api/auth/onboarding", json=ONBOARDING)

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["isOnboarded"] is True
        assert user["nativeLanguage"] == "spanish"
        assert user["location"] == "Madrid"
        db.expire_all()
        assert db.query(User).filter(User.id == user_id).first().hashed_password == before
        assert delegate.users[user_id]["name"] == "Ana Lopez"

    def test_reports_missing_fields(self, client):
        signup(client)

        response = client.post("/api/auth/onboarding", json={"fullName": "Ana", "bio": "hi"})

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "All fields are required"
        assert body["missingFields"] == ["nativeLanguage", "learningLanguage", "location"]

    def test_requires_session(self, client):
        assert client.post("/api/auth/onboarding", json=ONBOARDING).status_code == 401


class TestPasswordResetFlow:
    """forgot-password / reset-password endpoints"""

    def _reset_token(self, mailer):
        html = mailer.sent[-1]["html"]
        prefix = password_reset_url("")
        start = html.index(prefix) + len(prefix)
        return html[start:html.index('"', start)]

    def test_full_reset_flow(self, client, client_factory, mailer):
        signup(client)

        response = client_factory().post("/api/auth/forgot-password", json={"email": "A@x.com"})
        assert response.status_code == 200
        assert mailer.sent[-1]["to"] == "a@x.com"
        token = self._reset_token(mailer)

        reset = client_factory().post(f"/api/auth/reset-password/{token}", json={"newPassword": "newpass1"})
        assert reset.status_code == 200

        login = client_factory().post("/api/auth/login", json={"email": "a@x.com", "password": "newpass1"})
        assert login.status_code == 200
        old = client_factory().post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"})
        assert old.status_code == 401

        again = client_factory().post(f"/api/auth/reset-password/{token}", json={"newPassword": "another1"})
        assert again.status_code == 400
        assert again.json() == {"message": "Invalid or expired token"}

    def test_unknown_email(self, client, mailer):
        response = client.post("/api/auth/forgot-password", json={"email": "nobody@x.com"})

        assert response.status_code == 404
        assert mailer.sent == []

    def test_mail_failure_clears_token(self, client, db, mailer):
        signup(client)
        mailer.fail = True

        response = client.post("/api/auth/forgot-password", json={"email": "a@x.com"})

        assert response.status_code == 500
        db.expire_all()
        user = db.query(User).filter(User.email == "a@x.com").first()
        assert user.reset_password_token is None
        assert user.reset_password_expires is None

    def test_token_is_hashed_at_rest(self, client, db, mailer):
        signup(client)
        client.post("/api/auth/forgot-password", json={"email": "a@x.com"})
        token = self._reset_token(mailer)

        db.expire_all()
        user = db.query(User).filter(User.email == "a@x.com").first()
        assert user.reset_password_token == hash_reset_token(token)
