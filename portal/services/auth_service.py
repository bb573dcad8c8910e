from typing import Any, Dict, Optional

from sqlalchemy import select

from portal.core.config import settings
from portal.core.errors import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    InvalidCredentialsException,
    PermissionDenied
)
from portal.core.logging import logger
from portal.core.security import create_access_token, get_password_hash, verify_password
from portal.models import Organization, ParentProfile, Role, StudentProfile, User
from portal.schemas.auth.requests import PasswordChange, RegisterRequest
from portal.schemas.enums import BuiltinRole
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService
from portal.services.organization_service import OrganizationService
from portal.utils.dates import utcnow


class AuthService(BaseService):
    async def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials and account state.

        Raises:
            InvalidCredentialsException: Unknown email or wrong password
            AuthenticationError: Account or its organization is inactive
            PermissionDenied: Account is not approved yet
        """
        result = await self.db.execute(
            select(User, Organization.is_active)
            .join(Organization, User.organization_id == Organization.id)
            .where(User.email == email.lower())
            .execution_options(populate_existing=True)
        )
        row = result.first()
        if row is None or not verify_password(password, row[0].password_hash):
            logger.warning(f"Failed login attempt for {email}")
            raise InvalidCredentialsException()
        user, organization_active = row
        if not organization_active and not user.is_superuser:
            logger.warning(f"Login refused for {email}: organization {user.organization_id} is inactive")
            raise AuthenticationError("Organization is inactive", error_code="ORGANIZATION_INACTIVE")
        if not user.is_active:
            raise AuthenticationError("Account is inactive", error_code="ACCOUNT_INACTIVE")
        if not user.is_approved:
            raise PermissionDenied("Account pending approval")
        return user

    async def login(self, email: str, password: str, ip_address: Optional[str] = None) -> Dict[str, Any]:
        user = await self.authenticate(email, password)

        async with self.transaction():
            user.last_login = utcnow()
            await ActivityService(self.db).record(
                user.organization_id, "login", "user", user.id,
                user_id=user.id, ip_address=ip_address
            )

        token = create_access_token(user.id, user.organization_id, user.role_names)
        logger.info(f"User {user.id} logged in", extra={'user_id': user.id})
        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": user
        }

    async def register(self, data: RegisterRequest) -> User:
        """
        Self-service signup. The account is created unapproved.

        Raises:
            NotFoundError: Unknown organization slug
            ConflictError: Email already registered
        """
        organization = await OrganizationService(self.db).get_by_slug(data.organization_slug)

        existing = await self.db.execute(select(User.id).where(User.email == data.email.lower()))
        if existing.first() is not None:
            raise ConflictError("A user with this email already exists")

        result = await self.db.execute(
            select(Role).where(
                Role.organization_id == organization.id,
                Role.name == data.role.value
            )
        )
        role = result.scalar_one_or_none()
        if role is None:
            raise BadRequestError(f"Role {data.role.value} is not available")

        async with self.transaction():
            user = User(
                organization_id=organization.id,
                email=data.email.lower(),
                password_hash=get_password_hash(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                phone=data.phone,
                is_active=True,
                is_approved=False,
                roles=[role]
            )
            if data.role == BuiltinRole.STUDENT:
                user.student_profile = StudentProfile(
                    organization_id=organization.id,
                    phone_number=data.phone
                )
            else:
                user.parent_profile = ParentProfile(
                    organization_id=organization.id,
                    phone=data.phone
                )
            self.db.add(user)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization.id, "registered", "user", user.id, user_id=user.id
            )

        logger.info(f"New {data.role.value} registration pending approval: {user.id}")
        return await self._fetch(User, user.id, organization.id, label="User")

    async def change_password(self, user: User, data: PasswordChange) -> None:
        if not verify_password(data.current_password, user.password_hash):
            raise BadRequestError("Current password is incorrect")
        async with self.transaction():
            user.password_hash = get_password_hash(data.new_password)
        logger.info(f"Password changed for user {user.id}", extra={'user_id': user.id})
