import json
from typing import Any, Dict, Tuple, Union

from sqlalchemy import select

from portal.core.errors import BadRequestError, NotFoundError
from portal.models import SiteSetting
from portal.services.base_service import BaseService

SettingValue = Union[bool, int, float, str]

# key -> (type, default)
DEFAULT_SETTINGS: Dict[str, Tuple[str, SettingValue]] = {
    "site_name": ("string", "Academy Portal"),
    "site_description": ("string", ""),
    "contact_email": ("string", ""),
    "maintenance_mode": ("boolean", False),
    "max_file_size": ("number", 10),
    "allowed_file_types": ("string", "pdf,doc,docx,png,jpg,jpeg"),
    "session_timeout": ("number", 60),
    "password_min_length": ("number", 8),
    "invoice_prefix": ("string", "INV"),
    "invoice_footer": ("string", "Thank you for your business."),
}


def parse_setting(value: str, value_type: str) -> SettingValue:
    """Decode a stored string according to its type tag."""
    if value_type == "boolean":
        return value.strip().lower() in ("true", "1", "yes", "on")
    if value_type == "number":
        try:
            number = float(value)
        except ValueError:
            return 0
        return int(number) if number.is_integer() else number
    return value


def serialize_setting(value: Any) -> Tuple[str, str]:
    if isinstance(value, bool):
        return json.dumps(value), "boolean"
    if isinstance(value, (int, float)):
        return str(value), "number"
    return str(value), "string"


class SettingsService(BaseService):
    async def get_all(self, organization_id: int) -> Dict[str, SettingValue]:
        values = {key: default for key, (_, default) in DEFAULT_SETTINGS.items()}
        rows = await self._scalars(
            select(SiteSetting).where(SiteSetting.organization_id == organization_id)
        )
        for row in rows:
            values[row.key] = parse_setting(row.value, row.value_type)
        return values

    async def get(self, organization_id: int, key: str) -> SettingValue:
        result = await self.db.execute(
            select(SiteSetting).where(
                SiteSetting.organization_id == organization_id,
                SiteSetting.key == key
            )
        )
        row = result.scalar_one_or_none()
        if row is not None:
            return parse_setting(row.value, row.value_type)
        if key in DEFAULT_SETTINGS:
            return DEFAULT_SETTINGS[key][1]
        raise NotFoundError(f"Setting '{key}' not found")

    async def update(self, organization_id: int, updates: Dict[str, Any]) -> Dict[str, SettingValue]:
        """
        Upsert the given keys. Known keys must keep their declared type.

        Raises:
            BadRequestError: If a value is null or a known key receives the wrong type
        """
        rows = {
            row.key: row for row in await self._scalars(
                select(SiteSetting).where(SiteSetting.organization_id == organization_id)
            )
        }
        for key, value in updates.items():
            if value is None:
                raise BadRequestError(f"Setting '{key}' cannot be null")
            expected = DEFAULT_SETTINGS.get(key, (None, None))[0]
            if expected and expected != serialize_setting(value)[1]:
                raise BadRequestError(f"Setting '{key}' must be a {expected}")

        async with self.transaction():
            for key, value in updates.items():
                stored, value_type = serialize_setting(value)
                if key in rows:
                    rows[key].value = stored
                    rows[key].value_type = value_type
                else:
                    self.db.add(SiteSetting(
                        organization_id=organization_id,
                        key=key,
                        value=stored,
                        value_type=value_type
                    ))
        return await self.get_all(organization_id)
