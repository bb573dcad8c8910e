from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select

from portal.core.errors import BadRequestError, ConflictError, NotFoundError
from portal.core.logging import logger
from portal.core.security import generate_temporary_password, get_password_hash
from portal.models import ParentProfile, Role, StudentProfile, TeacherProfile, User, user_roles
from portal.schemas.user.requests import (
    RoleCreateRequest,
    UserCreateRequest,
    UserFilterParams,
    UserUpdateRequest
)
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService


class UserService(BaseService):
    """Administrative management of users and roles within one organization."""

    async def _resolve_roles(self, organization_id: int, names: List[str]) -> List[Role]:
        wanted = list(dict.fromkeys(names))
        roles = await self._scalars(
            select(Role).where(Role.organization_id == organization_id, Role.name.in_(wanted))
        )
        found = {role.name for role in roles}
        missing = [name for name in wanted if name not in found]
        if missing:
            raise BadRequestError(f"Unknown role(s): {', '.join(missing)}")
        return roles

    async def _email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(User.id).where(User.email == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def _check_parent(self, organization_id: int, parent_id: Optional[int]) -> None:
        if parent_id is None:
            return
        result = await self.db.execute(
            select(ParentProfile.id).where(
                ParentProfile.id == parent_id,
                ParentProfile.organization_id == organization_id
            )
        )
        if result.first() is None:
            raise BadRequestError("Parent profile not found")

    def _apply_profiles(self, user: User, data: Any) -> None:
        organization_id = user.organization_id
        if data.student_profile is not None:
            fields = data.student_profile.model_dump(exclude_unset=True)
            if user.student_profile is None:
                user.student_profile = StudentProfile(organization_id=organization_id)
            self._apply(user.student_profile, fields)
        if data.parent_profile is not None:
            fields = data.parent_profile.model_dump(exclude_unset=True)
            if user.parent_profile is None:
                user.parent_profile = ParentProfile(organization_id=organization_id)
            self._apply(user.parent_profile, fields)
        if data.teacher_profile is not None:
            fields = data.teacher_profile.model_dump(exclude_unset=True)
            if user.teacher_profile is None:
                user.teacher_profile = TeacherProfile(organization_id=organization_id)
            self._apply(user.teacher_profile, fields)

    def _ensure_role_profiles(self, user: User) -> None:
        """Every Student, Parent and Teacher gets the matching profile row."""
        organization_id = user.organization_id
        if user.has_role("Student") and user.student_profile is None:
            user.student_profile = StudentProfile(organization_id=organization_id)
        if user.has_role("Parent") and user.parent_profile is None:
            user.parent_profile = ParentProfile(organization_id=organization_id)
        if user.has_role("Teacher") and user.teacher_profile is None:
            user.teacher_profile = TeacherProfile(organization_id=organization_id)

    async def list_users(self, organization_id: int, filters: UserFilterParams) -> Dict[str, Any]:
        stmt = select(User).where(User.organization_id == organization_id)
        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            stmt = stmt.where(or_(
                func.lower(User.email).like(pattern),
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
                func.lower(User.username).like(pattern),
            ))
        if filters.role:
            stmt = stmt.where(User.roles.any(Role.name == filters.role))
        if filters.is_approved is not None:
            stmt = stmt.where(User.is_approved.is_(filters.is_approved))

        total = (await self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        )).scalar_one()

        page_stmt = (
            stmt.order_by(User.created_at.desc(), User.id.desc())
            .offset((filters.page - 1) * filters.size)
            .limit(filters.size)
        )
        return {
            "total": total,
            "page": filters.page,
            "size": filters.size,
            "items": await self._scalars(page_stmt),
        }

    async def get_user(self, organization_id: int, user_id: int) -> User:
        return await self._fetch(User, user_id, organization_id, label="User")

    async def create_user(self, organization_id: int, data: UserCreateRequest, actor: User) -> User:
        """
        Raises:
            ConflictError: If the email is already registered
            BadRequestError: If a role or parent does not exist
        """
        if await self._email_taken(data.email):
            raise ConflictError("A user with this email already exists")
        roles = await self._resolve_roles(organization_id, data.roles)
        if data.student_profile is not None:
            await self._check_parent(organization_id, data.student_profile.parent_id)

        async with self.transaction():
            user = User(
                organization_id=organization_id,
                email=data.email.lower(),
                password_hash=get_password_hash(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                username=data.username,
                phone=data.phone,
                is_active=True,
                is_approved=data.is_approved,
                roles=roles,
                student_profile=None,
                parent_profile=None,
                teacher_profile=None
            )
            self._apply_profiles(user, data)
            self._ensure_role_profiles(user)
            self.db.add(user)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization_id, "user_created", "user", user.id,
                user_id=actor.id, details={"roles": data.roles}
            )

        logger.info(f"User {user.id} created by {actor.id}", extra={'user_id': actor.id})
        return await self.get_user(organization_id, user.id)

    async def update_user(self, organization_id: int, user_id: int, data: UserUpdateRequest) -> User:
        user = await self.get_user(organization_id, user_id)
        fields = data.model_dump(
            exclude_unset=True,
            exclude={"roles", "student_profile", "parent_profile", "teacher_profile"}
        )
        if "email" in fields:
            if await self._email_taken(fields["email"], exclude_id=user.id):
                raise ConflictError("A user with this email already exists")
            fields["email"] = fields["email"].lower()
        if data.student_profile is not None and "parent_id" in data.student_profile.model_fields_set:
            await self._check_parent(organization_id, data.student_profile.parent_id)

        roles = None
        if data.roles is not None:
            roles = await self._resolve_roles(organization_id, data.roles)

        async with self.transaction():
            self._apply(user, fields)
            if roles is not None:
                user.roles = roles
            self._apply_profiles(user, data)
            self._ensure_role_profiles(user)

        return await self.get_user(organization_id, user_id)

    async def delete_user(self, organization_id: int, user_id: int, actor: User) -> None:
        if user_id == actor.id:
            raise BadRequestError("You cannot delete your own account")
        user = await self.get_user(organization_id, user_id)
        async with self.transaction():
            await self.db.delete(user)
            await ActivityService(self.db).record(
                organization_id, "user_deleted", "user", user_id, user_id=actor.id
            )
        logger.info(f"User {user_id} deleted by {actor.id}")

    async def approve_users(self, organization_id: int, user_ids: List[int], actor: User) -> int:
        users = await self._scalars(
            select(User).where(
                User.organization_id == organization_id,
                User.id.in_(user_ids),
                User.is_approved.is_(False)
            )
        )
        async with self.transaction():
            activity = ActivityService(self.db)
            for user in users:
                user.is_approved = True
                await activity.record(organization_id, "user_approved", "user", user.id, user_id=actor.id)
        return len(users)

    async def reset_password(self, organization_id: int, user_id: int, new_password: Optional[str] = None) -> str:
        """Set a new password, generating a temporary one when none is given."""
        user = await self.get_user(organization_id, user_id)
        password = new_password or generate_temporary_password()
        async with self.transaction():
            user.password_hash = get_password_hash(password)
        logger.info(f"Password reset for user {user_id}")
        return password

    async def list_roles(self, organization_id: int) -> List[Dict[str, Any]]:
        counts = dict((await self.db.execute(
            select(user_roles.c.role_id, func.count(user_roles.c.user_id))
            .group_by(user_roles.c.role_id)
        )).all())
        roles = await self._scalars(
            select(Role).where(Role.organization_id == organization_id).order_by(Role.name)
        )
        return [
            {
                "id": role.id,
                "name": role.name,
                "description": role.description,
                "permissions": role.permissions or [],
                "is_system": role.is_system,
                "user_count": counts.get(role.id, 0),
            }
            for role in roles
        ]

    async def create_role(self, organization_id: int, data: RoleCreateRequest) -> Role:
        result = await self.db.execute(
            select(Role.id).where(Role.organization_id == organization_id, Role.name == data.name)
        )
        if result.first() is not None:
            raise ConflictError(f"Role '{data.name}' already exists")
        async with self.transaction():
            role = Role(
                organization_id=organization_id,
                name=data.name,
                description=data.description,
                permissions=sorted(set(data.permissions)),
                is_system=False
            )
            self.db.add(role)
        return role

    async def delete_role(self, organization_id: int, role_id: int) -> None:
        role = await self._fetch(Role, role_id, organization_id, label="Role")
        if role.is_system:
            raise BadRequestError("Built-in roles cannot be deleted")
        async with self.transaction():
            await self.db.delete(role)

    async def get_parent_profile(self, organization_id: int, parent_id: int) -> ParentProfile:
        result = await self.db.execute(
            select(ParentProfile)
            .where(ParentProfile.id == parent_id, ParentProfile.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        parent = result.scalar_one_or_none()
        if parent is None:
            raise NotFoundError("Parent not found")
        return parent
