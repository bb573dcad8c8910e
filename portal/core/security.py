# portal/core/security.py

import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional, Union

from jose import JWTError, jwt
from passlib.context import CryptContext

from portal.core.config import get_jwt_settings, get_token_expires_delta
from portal.core.errors import TokenError
from portal.core.logging import logger


class SecurityConfig:
    """Security configuration constants"""
    MIN_PASSWORD_LENGTH = 8
    MAX_PASSWORD_LENGTH = 128
    PASSWORD_ROUNDS = 12


class TokenType:
    ACCESS = "access"


JWT_SETTINGS = get_jwt_settings()

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__default_rounds=SecurityConfig.PASSWORD_ROUNDS
)


def verify_token(token: str, token_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify JWT token and optionally check token type

    Raises:
        TokenError: If the token is malformed, expired or of the wrong type
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SETTINGS["secret_key"],
            algorithms=[JWT_SETTINGS["algorithm"]],
            issuer=JWT_SETTINGS["token_issuer"]
        )
    except JWTError as e:
        logger.warning(f"Token verification failed: {str(e)}")
        raise TokenError("Could not validate credentials")

    if token_type and payload.get("type") != token_type:
        raise TokenError(f"Invalid token type. Expected {token_type}")

    return payload


def create_token(
    data: Dict[str, Any],
    token_type: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT token with specified type and expiration"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or get_token_expires_delta())

    to_encode.update({
        "exp": expire,
        "iss": JWT_SETTINGS["token_issuer"],
        "type": token_type,
        "jti": secrets.token_urlsafe(32)
    })

    return jwt.encode(
        to_encode,
        JWT_SETTINGS["secret_key"],
        algorithm=JWT_SETTINGS["algorithm"]
    )


def create_access_token(
    user_id: Union[int, str],
    organization_id: int,
    roles: Iterable[str],
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create access token carrying the user, tenant and role names"""
    data = {
        "sub": str(user_id),
        "org": organization_id,
        "roles": sorted(roles)
    }
    return create_token(data, TokenType.ACCESS, expires_delta)


def get_password_hash(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_temporary_password(length: int = 12) -> str:
    """Generate secure temporary password"""
    if length < SecurityConfig.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password length must be at least {SecurityConfig.MIN_PASSWORD_LENGTH} characters")
    if length > SecurityConfig.MAX_PASSWORD_LENGTH:
        raise ValueError(f"Password length must not exceed {SecurityConfig.MAX_PASSWORD_LENGTH} characters")

    chars = string.ascii_letters + string.digits + "@$!%*?&"
    while True:
        password = ''.join(secrets.choice(chars) for _ in range(length))
        if (any(c.islower() for c in password)
                and any(c.isupper() for c in password)
                and any(c.isdigit() for c in password)):
            return password
