from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from portal.core.errors import BadRequestError, ConflictError, NotFoundError, PermissionDenied
from portal.core.logging import logger
from portal.core.permissions import can_manage_team
from portal.models import Project, Team, TeamMember, User
from portal.schemas.enums import TeamRole
from portal.schemas.projects.requests import (
    TeamCreateRequest,
    TeamMemberAddRequest,
    TeamMemberRoleUpdate,
    TeamUpdateRequest
)
from portal.services.base_service import BaseService
from portal.utils.text import unique_slug


class TeamService(BaseService):
    """Teams and their memberships."""

    async def _slug_taken(self, organization_id: int, slug: str) -> bool:
        result = await self.db.execute(
            select(Team.id).where(Team.organization_id == organization_id, Team.slug == slug)
        )
        return result.first() is not None

    async def member_role(self, team_id: int, user_id: int) -> Optional[str]:
        result = await self.db.execute(
            select(TeamMember.role).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def require_member(self, team_id: int, user: User) -> Optional[str]:
        """
        Return the user's role in the team; Admins pass without a membership.

        Raises:
            PermissionDenied: If the user is not a team member
        """
        role = await self.member_role(team_id, user.id)
        if role is None and not user.is_admin:
            raise PermissionDenied("Not a team member")
        return role

    async def require_manager(self, team_id: int, user: User) -> None:
        role = await self.require_member(team_id, user)
        if not can_manage_team(user, role):
            raise PermissionDenied("Only team owners, captains and mentors can do this")

    async def list_my_teams(self, organization_id: int, user: User) -> List[Dict[str, Any]]:
        stmt = select(Team).where(Team.organization_id == organization_id)
        if not user.is_admin:
            stmt = stmt.where(Team.members.any(TeamMember.user_id == user.id))
        teams = await self._scalars(stmt.order_by(Team.name, Team.id))

        project_counts = dict((await self.db.execute(
            select(Project.team_id, func.count(Project.id))
            .where(Project.organization_id == organization_id)
            .group_by(Project.team_id)
        )).all())

        summaries = []
        for team in teams:
            my_role = next((m.role for m in team.members if m.user_id == user.id), None)
            summaries.append({
                "id": team.id,
                "name": team.name,
                "slug": team.slug,
                "description": team.description,
                "color": team.color,
                "member_count": len(team.members),
                "project_count": project_counts.get(team.id, 0),
                "my_role": my_role,
            })
        return summaries

    async def get_team(self, organization_id: int, team_id: int, user: Optional[User] = None) -> Team:
        team = await self._fetch(Team, team_id, organization_id, label="Team")
        if user is not None:
            await self.require_member(team.id, user)
        return team

    async def create_team(self, organization_id: int, data: TeamCreateRequest, actor: User) -> Team:
        """
        Create a team with the creator as its owner.

        Raises:
            ConflictError: If an explicit slug is already taken
        """
        async def exists(slug: str) -> bool:
            return await self._slug_taken(organization_id, slug)

        if data.slug:
            if await exists(data.slug):
                raise ConflictError(f"Team slug '{data.slug}' is already taken")
            slug = data.slug
        else:
            slug = await unique_slug(data.name, exists)

        async with self.transaction():
            team = Team(
                organization_id=organization_id,
                name=data.name,
                slug=slug,
                description=data.description,
                color=data.color,
                members=[TeamMember(user_id=actor.id, role=TeamRole.OWNER.value)]
            )
            self.db.add(team)
        logger.info(f"Team {slug} created by {actor.id}", extra={'organization_id': organization_id})
        return await self.get_team(organization_id, team.id)

    async def update_team(self, organization_id: int, team_id: int, data: TeamUpdateRequest, actor: User) -> Team:
        team = await self.get_team(organization_id, team_id)
        await self.require_manager(team.id, actor)
        async with self.transaction():
            self._apply(team, data.model_dump(exclude_unset=True))
        return await self.get_team(organization_id, team_id)

    async def delete_team(self, organization_id: int, team_id: int, actor: User) -> None:
        team = await self.get_team(organization_id, team_id)
        role = await self.require_member(team.id, actor)
        if role != TeamRole.OWNER.value and not actor.is_admin:
            raise PermissionDenied("Only the team owner can delete the team")
        async with self.transaction():
            await self.db.delete(team)

    async def list_members(self, organization_id: int, team_id: int, user: User) -> List[TeamMember]:
        team = await self.get_team(organization_id, team_id, user)
        return list(team.members)

    async def _get_member(self, team_id: int, member_id: int) -> TeamMember:
        result = await self.db.execute(
            select(TeamMember)
            .where(TeamMember.id == member_id, TeamMember.team_id == team_id)
            .execution_options(populate_existing=True)
        )
        member = result.scalar_one_or_none()
        if member is None:
            raise NotFoundError("Team member not found")
        return member

    async def _owner_count(self, team_id: int) -> int:
        return (await self.db.execute(
            select(func.count(TeamMember.id))
            .where(TeamMember.team_id == team_id, TeamMember.role == TeamRole.OWNER.value)
        )).scalar_one()

    async def add_member(self, organization_id: int, team_id: int, data: TeamMemberAddRequest, actor: User) -> TeamMember:
        """
        Raises:
            BadRequestError: If the user is outside the organization or already a member
        """
        team = await self.get_team(organization_id, team_id)
        await self.require_manager(team.id, actor)

        result = await self.db.execute(
            select(User.id).where(User.id == data.user_id, User.organization_id == organization_id)
        )
        if result.first() is None:
            raise BadRequestError("User not found")
        if await self.member_role(team.id, data.user_id) is not None:
            raise BadRequestError("User is already a member of this team")

        async with self.transaction():
            member = TeamMember(team_id=team.id, user_id=data.user_id, role=data.role.value)
            self.db.add(member)
        return await self._get_member(team.id, member.id)

    async def change_role(
        self,
        organization_id: int,
        team_id: int,
        member_id: int,
        data: TeamMemberRoleUpdate,
        actor: User
    ) -> TeamMember:
        team = await self.get_team(organization_id, team_id)
        await self.require_manager(team.id, actor)
        member = await self._get_member(team.id, member_id)
        if (
            member.role == TeamRole.OWNER.value
            and data.role != TeamRole.OWNER
            and await self._owner_count(team.id) <= 1
        ):
            raise BadRequestError("A team must keep at least one owner")

        async with self.transaction():
            member.role = data.role.value
        return await self._get_member(team.id, member_id)

    async def remove_member(self, organization_id: int, team_id: int, member_id: int, actor: User) -> None:
        """
        Members may leave on their own; removing others needs a manager.

        Raises:
            BadRequestError: If the member is the last owner
        """
        team = await self.get_team(organization_id, team_id)
        member = await self._get_member(team.id, member_id)
        if member.user_id != actor.id:
            await self.require_manager(team.id, actor)
        if member.role == TeamRole.OWNER.value and await self._owner_count(team.id) <= 1:
            raise BadRequestError("Cannot remove the last owner of a team")

        async with self.transaction():
            await self.db.delete(member)
