from portal.schemas.common import ORMModel
from portal.schemas.user.responses import UserResponse


class LoginResponse(ORMModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RegisterResponse(ORMModel):
    user: UserResponse
    message: str = "Registration successful. Your account is pending approval."
