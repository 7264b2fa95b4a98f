import smtplib
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from main import app
from repositories import UserRepository

REGISTER = "/api/v1/auth/register"
LOGIN = "/api/v1/auth/login"
ME = "/api/v1/auth/me"


def register(client, **overrides):
    payload = {"name": "John Doe", "email": "john@devcamper.io", "password": "123456", "role": "publisher"}
    payload.update(overrides)
    return client.post(REGISTER, json=payload)


def reset_token_from(mail):
    return mail["message"].strip().rsplit("/", 1)[-1]


class TestRegister:
    def test_register_hashes_password_and_issues_session(self, client, db):
        response = register(client)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["token"]
        assert "password" not in body and "password_hash" not in body
        assert response.cookies.get("token") == body["token"]

        stored = db["users"].find_one({"email": "john@devcamper.io"})
        assert stored["password_hash"] != "123456"
        assert "password" not in stored
        assert stored["role"] == "publisher"

    def test_register_cannot_claim_admin(self, client):
        response = register(client, role="admin")
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_register_duplicate_email(self, client):
        register(client)
        response = register(client, name="Other")
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Duplicate field value entered"}

    def test_register_validates_fields(self, client):
        response = register(client, email="not-an-email", password="123")
        assert response.status_code == 400
        error = response.json()["error"]
        assert "email" in error
        assert "password" in error


class TestLogin:
    def test_login_returns_token(self, client, make_user):
        user = make_user(email="jane@devcamper.io", password="secret1")
        response = client.post(LOGIN, json={"email": "jane@devcamper.io", "password": "secret1"})
        assert response.status_code == 200
        token = response.json()["token"]

        me = TestClient(app).get(ME, headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["id"] == str(user["_id"])

    def test_wrong_password_and_unknown_email_look_the_same(self, client, make_user):
        make_user(email="jane@devcamper.io", password="secret1")
        wrong_password = client.post(LOGIN, json={"email": "jane@devcamper.io", "password": "nope12"})
        unknown_email = client.post(LOGIN, json={"email": "ghost@devcamper.io", "password": "secret1"})

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json() == {"success": False, "error": "Invalid credentials"}

    def test_login_with_mixed_case_email(self, client, db):
        credentials = {"email": "John@Example.COM", "password": "123456"}
        assert register(client, **credentials).status_code == 200
        assert db["users"].find_one({"email": "john@example.com"}) is not None

        response = client.post(LOGIN, json=credentials)
        assert response.status_code == 200
        assert response.json()["token"]

        response = client.post(LOGIN, json={"email": "JOHN@example.com", "password": "123456"})
        assert response.status_code == 200

    def test_login_requires_email_and_password(self, client):
        response = client.post(LOGIN, json={"email": "jane@devcamper.io"})
        assert response.status_code == 400
        assert response.json()["error"] == "Please provide an email and password"


class TestProtect:
    def test_me_with_cookie(self, client):
        register(client)
        response = client.get(ME)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "john@devcamper.io"
        assert "password_hash" not in data

    def test_header_takes_precedence_over_cookie(self, client, make_user, auth_headers):
        register(client)
        other = make_user(email="other@devcamper.io")
        response = client.get(ME, headers=auth_headers(other))
        assert response.json()["data"]["email"] == "other@devcamper.io"

    def test_missing_token(self, client):
        response = client.get(ME)
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Not authorized to access this resource"}

    def test_invalid_token(self, client):
        response = client.get(ME, headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401

    def test_token_for_deleted_user(self, client, db, make_user, auth_headers):
        user = make_user()
        headers = auth_headers(user)
        db["users"].delete_one({"_id": user["_id"]})
        assert client.get(ME, headers=headers).status_code == 401

    def test_logout_clears_cookie(self, client):
        register(client)
        response = client.get("/api/v1/auth/logout")
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {}}
        assert client.get(ME).status_code == 401


class TestPasswordReset:
    def test_reset_round_trip(self, client, make_user, mailer):
        make_user(email="jane@devcamper.io", password="secret1")

        response = client.post("/api/v1/auth/forgotpassword", json={"email": "jane@devcamper.io"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": "Email sent"}
        assert len(mailer.sent) == 1
        assert mailer.sent[0]["email"] == "jane@devcamper.io"
        assert "/api/v1/auth/resetpassword/" in mailer.sent[0]["message"]

        token = reset_token_from(mailer.sent[0])
        url = f"/api/v1/auth/resetpassword/{token}"
        reset = client.put(url, json={"password": "newpass1"})
        assert reset.status_code == 200
        assert reset.json()["token"]

        assert client.post(LOGIN, json={"email": "jane@devcamper.io", "password": "newpass1"}).status_code == 200
        assert client.post(LOGIN, json={"email": "jane@devcamper.io", "password": "secret1"}).status_code == 401

        reused = client.put(url, json={"password": "another1"})
        assert reused.status_code == 400
        assert reused.json()["error"] == "Invalid token"

    def test_reset_token_is_stored_hashed(self, client, db, make_user, mailer):
        make_user(email="jane@devcamper.io")
        client.post("/api/v1/auth/forgotpassword", json={"email": "jane@devcamper.io"})
        token = reset_token_from(mailer.sent[0])
        stored = db["users"].find_one({"email": "jane@devcamper.io"})
        assert stored["reset_password_token"] != token
        assert stored["reset_password_expire"] is not None

    def test_expired_reset_token(self, client, db, make_user, mailer):
        make_user(email="jane@devcamper.io")
        client.post("/api/v1/auth/forgotpassword", json={"email": "jane@devcamper.io"})
        token = reset_token_from(mailer.sent[0])
        db["users"].update_one(
            {"email": "jane@devcamper.io"},
            {"$set": {"reset_password_expire": datetime.now(timezone.utc) - timedelta(minutes=1)}},
        )
        response = client.put(f"/api/v1/auth/resetpassword/{token}", json={"password": "newpass1"})
        assert response.status_code == 400

    def test_forgot_password_unknown_email(self, client, mailer):
        response = client.post("/api/v1/auth/forgotpassword", json={"email": "ghost@devcamper.io"})
        assert response.status_code == 404
        assert mailer.sent == []

    @pytest.mark.parametrize("error", [smtplib.SMTPException("connection refused"), RuntimeError("mail relay crashed")])
    def test_email_failure_clears_reset_fields(self, client, db, make_user, mailer, error):
        make_user(email="jane@devcamper.io")
        mailer.error = error

        response = client.post("/api/v1/auth/forgotpassword", json={"email": "jane@devcamper.io"})
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Email could not be sent"}

        stored = db["users"].find_one({"email": "jane@devcamper.io"})
        assert "reset_password_token" not in stored
        assert "reset_password_expire" not in stored


class TestSelfService:
    def test_update_details(self, client, make_user, auth_headers):
        user = make_user()
        response = client.put(
            "/api/v1/auth/updatedetails",
            json={"name": "Renamed", "email": "renamed@devcamper.io"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed"
        assert data["email"] == "renamed@devcamper.io"

    def test_update_details_ignores_role(self, client, db, make_user, auth_headers):
        user = make_user()
        client.put("/api/v1/auth/updatedetails", json={"role": "admin"}, headers=auth_headers(user))
        assert db["users"].find_one({"_id": user["_id"]})["role"] == "user"

    def test_update_password(self, client, db, make_user, auth_headers):
        user = make_user(password="secret1")
        headers = auth_headers(user)

        wrong = client.put(
            "/api/v1/auth/updatepassword",
            json={"current_password": "nope12", "new_password": "newpass1"},
            headers=headers,
        )
        assert wrong.status_code == 401
        assert wrong.json()["error"] == "Password is incorrect"

        ok = client.put(
            "/api/v1/auth/updatepassword",
            json={"current_password": "secret1", "new_password": "newpass1"},
            headers=headers,
        )
        assert ok.status_code == 200
        assert ok.json()["token"]

        stored = db["users"].find_one({"_id": user["_id"]})
        assert UserRepository.match_password(stored, "newpass1")
        assert not UserRepository.match_password(stored, "secret1")
