import pytest

from portal.core.errors import BadRequestError
from portal.services.settings_service import SettingsService, parse_setting, serialize_setting

from .conftest import TEST_PASSWORD


@pytest.mark.parametrize("raw, value_type, expected", [
    ("true", "boolean", True),
    ("0", "boolean", False),
    ("12", "number", 12),
    ("2.5", "number", 2.5),
    ("abc", "number", 0),
    ("hello", "string", "hello"),
])
def test_parse_setting(raw, value_type, expected):
    assert parse_setting(raw, value_type) == expected


def test_serialize_setting_keeps_bool_apart_from_number():
    assert serialize_setting(True) == ("true", "boolean")
    assert serialize_setting(3) == ("3", "number")
    assert serialize_setting("x") == ("x", "string")


async def test_defaults_are_returned(client, admin_headers):
    response = await client.get("/api/v1/settings", headers=admin_headers)
    assert response.status_code == 200
    values = response.json()["settings"]
    assert values["site_name"] == "Academy Portal"
    assert values["maintenance_mode"] is False
    assert values["invoice_prefix"] == "INV"


async def test_update_settings(client, admin_headers):
    response = await client.put("/api/v1/settings", headers=admin_headers, json={
        "settings": {"site_name": "Riverside", "maintenance_mode": True, "session_timeout": 30, "theme": "dark"}
    })
    assert response.status_code == 200
    values = response.json()["settings"]
    assert values["site_name"] == "Riverside"
    assert values["maintenance_mode"] is True
    assert values["session_timeout"] == 30
    assert values["theme"] == "dark"

    single = await client.get("/api/v1/settings/theme", headers=admin_headers)
    assert single.json() == {"key": "theme", "value": "dark"}


async def test_update_rejects_wrong_type(client, admin_headers):
    response = await client.put("/api/v1/settings", headers=admin_headers, json={
        "settings": {"maintenance_mode": "sometimes"}
    })
    assert response.status_code == 400


async def test_unknown_setting(client, admin_headers):
    response = await client.get("/api/v1/settings/not-a-key", headers=admin_headers)
    assert response.status_code == 404


async def test_settings_require_admin(client, student_headers):
    response = await client.get("/api/v1/settings", headers=student_headers)
    assert response.status_code == 403


async def test_activity_log_records_logins(client, admin_user, admin_headers):
    await client.post("/api/v1/auth/login", json={"email": "admin@riverside.org", "password": TEST_PASSWORD})
    response = await client.get("/api/v1/activity", headers=admin_headers, params={"limit": 5})
    assert response.status_code == 200
    entries = response.json()
    assert entries[0]["action"] == "login"
    assert entries[0]["user_id"] == admin_user.id


async def test_null_values_are_rejected(client, admin_headers, db_session, organization):
    response = await client.put("/api/v1/settings", headers=admin_headers, json={"settings": {"site_name": None}})
    assert response.status_code == 422

    with pytest.raises(BadRequestError):
        await SettingsService(db_session).update(organization.id, {"site_name": None})
    assert await SettingsService(db_session).get(organization.id, "site_name") == "Academy Portal"
