from typing import Dict, List, Optional

from sqlalchemy import select

from portal.core.config import settings
from portal.core.errors import ConflictError, NotFoundError
from portal.core.logging import logger
from portal.core.security import get_password_hash
from portal.models import Organization, Role, User
from portal.schemas.enums import BuiltinRole
from portal.schemas.organization.requests import (
    OrganizationCreateRequest,
    OrganizationUpdateRequest
)
from portal.services.base_service import BaseService
from portal.utils.text import unique_slug

BUILTIN_ROLES: Dict[str, str] = {
    BuiltinRole.ADMIN.value: "Full access to the organization",
    BuiltinRole.TEACHER.value: "Teaches courses and grades work",
    BuiltinRole.STUDENT.value: "Enrolled learner",
    BuiltinRole.PARENT.value: "Guardian of one or more students",
}


class OrganizationService(BaseService):
    async def _slug_taken(self, slug: str) -> bool:
        result = await self.db.execute(select(Organization.id).where(Organization.slug == slug))
        return result.first() is not None

    async def _email_taken(self, email: str) -> bool:
        result = await self.db.execute(select(User.id).where(User.email == email.lower()))
        return result.first() is not None

    async def create_builtin_roles(self, organization_id: int) -> Dict[str, Role]:
        """Create any missing built-in roles for an organization."""
        existing = await self._scalars(
            select(Role).where(Role.organization_id == organization_id)
        )
        roles = {role.name: role for role in existing}
        for name, description in BUILTIN_ROLES.items():
            if name not in roles:
                role = Role(
                    organization_id=organization_id,
                    name=name,
                    description=description,
                    permissions=[],
                    is_system=True
                )
                self.db.add(role)
                roles[name] = role
        await self.db.flush()
        return roles

    async def create_organization(self, data: OrganizationCreateRequest) -> Organization:
        """
        Create an organization together with its built-in roles and first Admin.

        Raises:
            ConflictError: If the slug or the admin email is already taken
        """
        if data.slug:
            if await self._slug_taken(data.slug):
                raise ConflictError(f"Organization slug '{data.slug}' is already taken")
            slug = data.slug
        else:
            slug = await unique_slug(data.name, self._slug_taken)

        if await self._email_taken(data.admin.email):
            raise ConflictError("A user with this email already exists")

        async with self.transaction():
            organization = Organization(
                name=data.name,
                slug=slug,
                email=data.email,
                phone=data.phone,
                address=data.address,
                is_active=True
            )
            self.db.add(organization)
            await self.db.flush()

            roles = await self.create_builtin_roles(organization.id)
            admin = User(
                organization_id=organization.id,
                email=data.admin.email.lower(),
                password_hash=get_password_hash(data.admin.password),
                first_name=data.admin.first_name,
                last_name=data.admin.last_name,
                is_active=True,
                is_approved=True,
                roles=[roles[BuiltinRole.ADMIN.value]]
            )
            self.db.add(admin)

        logger.info(f"Organization created: {organization.slug}", extra={'organization_id': organization.id})
        return await self.get_organization(organization.id)

    async def list_organizations(self, include_inactive: bool = True) -> List[Organization]:
        stmt = select(Organization).order_by(Organization.name)
        if not include_inactive:
            stmt = stmt.where(Organization.is_active.is_(True))
        return await self._scalars(stmt)

    async def get_organization(self, organization_id: int) -> Organization:
        return await self._fetch(Organization, organization_id, label="Organization")

    async def get_by_slug(self, slug: str) -> Organization:
        """
        Raises:
            NotFoundError: If no active organization uses the slug
        """
        result = await self.db.execute(
            select(Organization).where(
                Organization.slug == slug,
                Organization.is_active.is_(True)
            )
        )
        organization = result.scalar_one_or_none()
        if organization is None:
            raise NotFoundError("Organization not found")
        return organization

    async def update_organization(self, organization_id: int, data: OrganizationUpdateRequest) -> Organization:
        organization = await self.get_organization(organization_id)
        async with self.transaction():
            self._apply(organization, data.model_dump(exclude_unset=True))
        return await self.get_organization(organization_id)

    async def deactivate_organization(self, organization_id: int) -> Organization:
        organization = await self.get_organization(organization_id)
        async with self.transaction():
            organization.is_active = False
        logger.info(f"Organization deactivated: {organization.slug}")
        return await self.get_organization(organization_id)

    async def ensure_system_organization(self) -> Organization:
        """Create the platform-level organization when it does not exist yet."""
        result = await self.db.execute(
            select(Organization).where(Organization.slug == settings.SYSTEM_ORGANIZATION_SLUG)
        )
        organization = result.scalar_one_or_none()
        if organization is None:
            async with self.transaction():
                organization = Organization(
                    name=settings.SYSTEM_ORGANIZATION_NAME,
                    slug=settings.SYSTEM_ORGANIZATION_SLUG,
                    is_active=True
                )
                self.db.add(organization)
                await self.db.flush()
                await self.create_builtin_roles(organization.id)
            logger.info("System organization created successfully")
        return organization

    async def ensure_superuser(self, organization: Organization) -> Optional[User]:
        """Create the configured platform superuser when absent."""
        if not (settings.SUPERUSER_EMAIL and settings.SUPERUSER_PASSWORD):
            logger.info("Superuser credentials not configured; skipping bootstrap")
            return None

        result = await self.db.execute(
            select(User).where(User.email == settings.SUPERUSER_EMAIL.lower())
        )
        superuser = result.scalar_one_or_none()
        if superuser is not None:
            logger.info("Superuser already exists")
            return superuser

        roles = await self.create_builtin_roles(organization.id)
        async with self.transaction():
            superuser = User(
                organization_id=organization.id,
                email=settings.SUPERUSER_EMAIL.lower(),
                password_hash=get_password_hash(settings.SUPERUSER_PASSWORD),
                first_name="Platform",
                last_name="Admin",
                is_active=True,
                is_approved=True,
                is_superuser=True,
                roles=[roles[BuiltinRole.ADMIN.value]]
            )
            self.db.add(superuser)
        logger.info("Superuser created successfully")
        return superuser


