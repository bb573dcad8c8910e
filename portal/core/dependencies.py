from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.database import get_db
from portal.core.errors import AuthenticationError, PermissionDenied, TokenError
from portal.core.security import TokenType, verify_token
from portal.models import Organization, User

bearer_scheme = HTTPBearer(auto_error=False)


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolve the bearer token to a user of the token's organization.

    Raises:
        AuthenticationError: If no token is supplied, the user no longer exists
            or the organization has been deactivated
        TokenError: If the token is invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated", error_code="NOT_AUTHENTICATED")

    payload = verify_token(credentials.credentials, TokenType.ACCESS)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise TokenError("Invalid token subject")

    result = await db.execute(
        select(User, Organization.is_active)
        .join(Organization, User.organization_id == Organization.id)
        .where(User.id == user_id, User.organization_id == payload.get("org"))
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if row is None:
        raise AuthenticationError("User not found", error_code="USER_NOT_FOUND")
    user, organization_active = row
    if not organization_active and not user.is_superuser:
        raise AuthenticationError("Organization is inactive", error_code="ORGANIZATION_INACTIVE")
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise AuthenticationError("Account is inactive", error_code="ACCOUNT_INACTIVE")
    if not current_user.is_approved:
        raise PermissionDenied("Account pending approval")
    return current_user


async def get_current_superuser(current_user: User = Depends(get_current_active_user)) -> User:
    if not current_user.is_superuser:
        raise PermissionDenied("Superuser privileges required")
    return current_user
