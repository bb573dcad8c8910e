from .requests import LoginRequest, RegisterRequest, PasswordChange
from .responses import LoginResponse, RegisterResponse

__all__ = ['LoginRequest', 'RegisterRequest', 'PasswordChange', 'LoginResponse', 'RegisterResponse']
