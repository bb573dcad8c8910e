from portal.core.config import settings
from portal.core.security import create_access_token

from .conftest import TEST_PASSWORD


async def test_login_returns_token_and_user(client, admin_user):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "Admin@Riverside.org", "password": TEST_PASSWORD}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    assert body["user"]["email"] == "admin@riverside.org"
    assert body["user"]["role_names"] == ["Admin"]
    assert body["user"]["last_login"] is not None

    me = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {body['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["id"] == admin_user.id


async def test_login_wrong_password(client, admin_user):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@riverside.org", "password": "not-the-password"}
    )
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "INVALID_CREDENTIALS"


async def test_login_pending_account_is_forbidden(client, make_user):
    await make_user("Student", email="pending@riverside.org", is_approved=False)
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "pending@riverside.org", "password": TEST_PASSWORD}
    )
    assert response.status_code == 403


async def test_login_inactive_account(client, make_user):
    await make_user("Teacher", email="gone@riverside.org", is_active=False)
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "gone@riverside.org", "password": TEST_PASSWORD}
    )
    assert response.status_code == 401
    assert response.json()["error_code"] == "ACCOUNT_INACTIVE"


async def test_login_is_rate_limited(client):
    payload = {"email": "nobody@riverside.org", "password": "whatever"}
    for _ in range(settings.LOGIN_RATE_LIMIT):
        response = await client.post("/api/v1/auth/login", json=payload)
        assert response.status_code == 401

    response = await client.post("/api/v1/auth/login", json=payload)
    assert response.status_code == 429
    assert response.json()["error_code"] == "RATE_LIMIT_EXCEEDED"


async def test_register_creates_pending_student(client, organization):
    response = await client.post("/api/v1/auth/register", json={
        "organization_slug": "riverside",
        "email": "new.student@riverside.org",
        "password": "longenough1",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "role": "Student"
    })
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["is_approved"] is False
    assert user["role_names"] == ["Student"]
    assert user["student_profile"] is not None

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "new.student@riverside.org", "password": "longenough1"}
    )
    assert login.status_code == 403


async def test_register_rejects_staff_roles(client, organization):
    response = await client.post("/api/v1/auth/register", json={
        "organization_slug": "riverside",
        "email": "sneaky@riverside.org",
        "password": "longenough1",
        "first_name": "Eve",
        "last_name": "Smith",
        "role": "Admin"
    })
    assert response.status_code == 422


async def test_register_duplicate_email(client, student_user):
    response = await client.post("/api/v1/auth/register", json={
        "organization_slug": "riverside",
        "email": "student@riverside.org",
        "password": "longenough1",
        "first_name": "Sam",
        "last_name": "Jones"
    })
    assert response.status_code == 409


async def test_register_unknown_organization(client, organization):
    response = await client.post("/api/v1/auth/register", json={
        "organization_slug": "nowhere",
        "email": "lost@riverside.org",
        "password": "longenough1",
        "first_name": "Sam",
        "last_name": "Jones"
    })
    assert response.status_code == 404


async def test_me_requires_token(client):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401
    assert response.json()["error_code"] == "NOT_AUTHENTICATED"


async def test_me_rejects_garbage_token(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_token_for_other_organization_is_rejected(client, admin_user, other_organization):
    organization, _ = other_organization
    token = create_access_token(admin_user.id, organization.id, ["Admin"])
    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


async def test_change_password(client, teacher_user, teacher_headers):
    response = await client.post("/api/v1/auth/change-password", headers=teacher_headers, json={
        "current_password": TEST_PASSWORD,
        "new_password": "brand-new-pass",
        "confirm_password": "brand-new-pass"
    })
    assert response.status_code == 200
    assert response.json()["success"] is True

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "teacher@riverside.org", "password": "brand-new-pass"}
    )
    assert login.status_code == 200


async def test_change_password_wrong_current(client, teacher_headers):
    response = await client.post("/api/v1/auth/change-password", headers=teacher_headers, json={
        "current_password": "incorrect",
        "new_password": "brand-new-pass",
        "confirm_password": "brand-new-pass"
    })
    assert response.status_code == 400


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-ID" in response.headers
