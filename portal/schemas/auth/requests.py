from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from portal.schemas.enums import BuiltinRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"email": "admin@academy.org", "password": "changeme123"}
        }
    }


class RegisterRequest(BaseModel):
    """Self-service signup into an organization; the account awaits approval."""
    organization_slug: str
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    role: BuiltinRole = BuiltinRole.STUDENT

    @model_validator(mode='after')
    def validate_role(self) -> 'RegisterRequest':
        if self.role not in (BuiltinRole.STUDENT, BuiltinRole.PARENT):
            raise ValueError("Only Student or Parent accounts can self-register")
        return self


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)
    confirm_password: str

    @model_validator(mode='after')
    def passwords_match(self) -> 'PasswordChange':
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self
