from datetime import datetime, timedelta, timezone

import jwt

from config.settings import settings
from utils.security import create_refresh_token


def test_login_returns_tokens_and_user(client, make_user):
    make_user("teacher", username="t_khan", password="secret123")
    res = client.post("/api/auth/login", json={"username": "t_khan", "password": "secret123"})
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["data"]["user"]["username"] == "t_khan"
    assert "password_hash" not in body["data"]["user"]
    assert body["data"]["accessToken"] and body["data"]["refreshToken"]


def test_login_by_email(client, make_user):
    make_user("student", username="s_one", password="secret123")
    res = client.post("/api/auth/login", json={"email": "s_one@obe.test", "password": "secret123"})
    assert res.status_code == 200


def test_login_wrong_password(client, make_user):
    make_user("teacher", username="t_khan", password="secret123")
    res = client.post("/api/auth/login", json={"username": "t_khan", "password": "nope"})
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid credentials"}


def test_login_missing_password_is_400(client):
    res = client.post("/api/auth/login", json={"username": "x"})
    assert res.status_code == 400
    assert res.json()["message"] == "password is required"


def test_no_token(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json()["message"] == "Access denied. No token provided."


def test_invalid_token(client):
    res = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "INVALID_TOKEN"


def test_expired_token(client, admin):
    user, _ = admin
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode(
        {"sub": str(user.id), "role": "admin", "type": "access",
         "iat": int(past.timestamp()), "exp": int((past + timedelta(minutes=1)).timestamp())},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "TOKEN_EXPIRED"


def test_refresh_token_cannot_be_used_as_access(client, admin):
    user, _ = admin
    token = create_refresh_token(user.id, user.role)
    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_refresh_issues_new_access_token(client, admin):
    user, _ = admin
    res = client.post("/api/auth/refresh", json={"refreshToken": create_refresh_token(user.id, user.role)})
    assert res.status_code == 200
    token = res.json()["data"]["accessToken"]
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_inactive_user_is_forbidden(client, make_user):
    _, headers = make_user("teacher", username="gone", is_active=False)
    res = client.get("/api/auth/me", headers=headers)
    assert res.status_code == 403
    assert res.json()["message"] == "Account is inactive."


def test_register_requires_admin(client, teacher_headers):
    res = client.post("/api/auth/register", json={"username": "u1", "email": "u1@x.y", "password": "secret1"},
                      headers=teacher_headers)
    assert res.status_code == 403
    assert res.json()["error"] == {"requiredRoles": ["admin"], "userRole": "teacher"}


def test_register_and_duplicate(client, admin_headers):
    payload = {"username": "new_teacher", "email": "nt@obe.test", "password": "secret1", "role": "teacher"}
    res = client.post("/api/auth/register", json=payload, headers=admin_headers)
    assert res.status_code == 201
    assert res.json()["data"]["role"] == "teacher"

    again = client.post("/api/auth/register", json=payload, headers=admin_headers)
    assert again.status_code == 409


def test_register_rejects_unknown_role(client, admin_headers):
    res = client.post("/api/auth/register",
                      json={"username": "x1", "email": "x1@obe.test", "password": "secret1", "role": "janitor"},
                      headers=admin_headers)
    assert res.status_code == 400
