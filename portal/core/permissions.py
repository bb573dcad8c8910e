# portal/core/permissions.py
from typing import Dict, Iterable, List, Optional, Set

from fastapi import Depends

from portal.core.dependencies import get_current_active_user
from portal.core.errors import PermissionDenied
from portal.core.logging import logger
from portal.models import User
from portal.schemas.enums import BuiltinRole, TeamRole

ALL_KNOWLEDGE_PERMISSIONS: Set[str] = {
    "knowledge:read",
    "knowledge:create",
    "knowledge:edit",
    "knowledge:delete",
    "knowledge:publish",
    "knowledge:comment",
    "knowledge:suggest",
    "knowledge:manage",
}

# Default wiki capabilities granted by built-in role membership
KNOWLEDGE_ROLE_PERMISSIONS: Dict[str, Set[str]] = {
    BuiltinRole.ADMIN.value: ALL_KNOWLEDGE_PERMISSIONS,
    BuiltinRole.TEACHER.value: {
        "knowledge:read",
        "knowledge:create",
        "knowledge:edit",
        "knowledge:comment",
        "knowledge:suggest",
    },
    BuiltinRole.STUDENT.value: {"knowledge:read", "knowledge:suggest"},
    BuiltinRole.PARENT.value: {"knowledge:read"},
}

TEAM_MANAGER_ROLES: Set[str] = {
    TeamRole.OWNER.value,
    TeamRole.CAPTAIN.value,
    TeamRole.MENTOR.value,
}


def get_user_permissions(user: User) -> Set[str]:
    """Collect role defaults and explicit grants held by the user."""
    permissions: Set[str] = set()
    for role in user.roles:
        permissions.update(KNOWLEDGE_ROLE_PERMISSIONS.get(role.name, set()))
        permissions.update(role.permissions or [])
    return permissions


def has_permission(user: User, permission: str) -> bool:
    if user.is_admin:
        return True
    granted = get_user_permissions(user)
    if permission in granted:
        return True
    resource = permission.split(":", 1)[0]
    return f"{resource}:*" in granted


def can_manage_team(user: User, team_role: Optional[str]) -> bool:
    return user.is_admin or team_role in TEAM_MANAGER_ROLES


class RoleChecker:
    """Dependency that admits users holding at least one of the given roles"""

    def __init__(self, allowed_roles: Iterable[str]):
        self.allowed_roles: List[str] = [
            role.value if isinstance(role, BuiltinRole) else role for role in allowed_roles
        ]

    async def __call__(self, current_user: User = Depends(get_current_active_user)) -> User:
        if not current_user.has_role(*self.allowed_roles):
            logger.warning(
                f"User {current_user.id} denied; requires one of {self.allowed_roles}",
                extra={'user_id': current_user.id}
            )
            raise PermissionDenied(
                "You do not have permission to perform this action",
                details={"required_roles": self.allowed_roles}
            )
        return current_user


class PermissionChecker:
    """Dependency that admits users holding a single named permission"""

    def __init__(self, permission: str):
        self.permission = permission

    async def __call__(self, current_user: User = Depends(get_current_active_user)) -> User:
        if not has_permission(current_user, self.permission):
            raise PermissionDenied(
                "You do not have permission to perform this action",
                details={"required_permission": self.permission}
            )
        return current_user


require_admin = RoleChecker([BuiltinRole.ADMIN])
require_staff = RoleChecker([BuiltinRole.ADMIN, BuiltinRole.TEACHER])
require_student = RoleChecker([BuiltinRole.STUDENT])
require_parent = RoleChecker([BuiltinRole.PARENT])
