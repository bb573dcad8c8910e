from typing import Any, Dict, List

from sqlalchemy import func, select

from portal.core.errors import ConflictError, NotFoundError
from portal.models import Milestone, Project, ProjectFile, Task, TaskAssignee, Team, TeamMember, User
from portal.schemas.enums import TaskStatus
from portal.schemas.projects.requests import (
    MilestoneCreateRequest,
    MilestoneUpdateRequest,
    ProjectCreateRequest,
    ProjectFileCreateRequest,
    ProjectUpdateRequest
)
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService
from portal.services.team_service import TeamService
from portal.utils.dates import utcnow
from portal.utils.text import unique_slug


class ProjectService(BaseService):
    """Projects within a team, with milestones and file records."""

    def __init__(self, db):
        super().__init__(db)
        self.teams = TeamService(db)

    async def _slug_taken(self, team_id: int, slug: str) -> bool:
        result = await self.db.execute(
            select(Project.id).where(Project.team_id == team_id, Project.slug == slug)
        )
        return result.first() is not None

    async def list_projects(self, organization_id: int, team_id: int, user: User) -> List[Project]:
        await self.teams.get_team(organization_id, team_id, user)
        return await self._scalars(
            select(Project).where(Project.team_id == team_id).order_by(Project.created_at.desc(), Project.id.desc())
        )

    async def get_project(self, organization_id: int, project_id: int, user: User) -> Project:
        """
        Raises:
            NotFoundError: If the project does not exist in the organization
            PermissionDenied: If the user is not on the project's team
        """
        project = await self._fetch(Project, project_id, organization_id, label="Project")
        await self.teams.require_member(project.team_id, user)
        return project

    async def _managed_project(self, organization_id: int, project_id: int, actor: User) -> Project:
        """
        Load a project the actor may change: team owners, captains, mentors and Admins.

        Raises:
            PermissionDenied: If the actor is not a managing member of the team
        """
        project = await self._fetch(Project, project_id, organization_id, label="Project")
        await self.teams.require_manager(project.team_id, actor)
        return project

    async def create_project(self, organization_id: int, team_id: int, data: ProjectCreateRequest, actor: User) -> Project:
        await self.teams.get_team(organization_id, team_id, actor)
        await self.teams.require_manager(team_id, actor)

        async def exists(slug: str) -> bool:
            return await self._slug_taken(team_id, slug)

        if data.slug:
            if await exists(data.slug):
                raise ConflictError(f"Project slug '{data.slug}' is already taken in this team")
            slug = data.slug
        else:
            slug = await unique_slug(data.name, exists)

        fields = data.model_dump(exclude={"slug"})
        fields["status"] = data.status.value
        fields["priority"] = data.priority.value
        async with self.transaction():
            project = Project(
                organization_id=organization_id,
                team_id=team_id,
                slug=slug,
                created_by_id=actor.id,
                **fields
            )
            self.db.add(project)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization_id, "project_created", "project", project.id, user_id=actor.id
            )
        return await self.get_project(organization_id, project.id, actor)

    async def update_project(self, organization_id: int, project_id: int, data: ProjectUpdateRequest, actor: User) -> Project:
        project = await self._managed_project(organization_id, project_id, actor)
        fields = data.model_dump(exclude_unset=True)
        for key in ("status", "priority"):
            if fields.get(key) is not None:
                fields[key] = fields[key].value
        async with self.transaction():
            self._apply(project, fields)
        return await self.get_project(organization_id, project_id, actor)

    async def delete_project(self, organization_id: int, project_id: int, actor: User) -> None:
        project = await self._managed_project(organization_id, project_id, actor)
        async with self.transaction():
            await self.db.delete(project)

    # Milestones

    async def _get_milestone(self, project_id: int, milestone_id: int) -> Milestone:
        result = await self.db.execute(
            select(Milestone)
            .where(Milestone.id == milestone_id, Milestone.project_id == project_id)
            .execution_options(populate_existing=True)
        )
        milestone = result.scalar_one_or_none()
        if milestone is None:
            raise NotFoundError("Milestone not found")
        return milestone

    async def list_milestones(self, organization_id: int, project_id: int, user: User) -> List[Milestone]:
        project = await self.get_project(organization_id, project_id, user)
        return list(project.milestones)

    async def create_milestone(self, organization_id: int, project_id: int, data: MilestoneCreateRequest, actor: User) -> Milestone:
        await self._managed_project(organization_id, project_id, actor)
        last = (await self.db.execute(
            select(func.max(Milestone.order)).where(Milestone.project_id == project_id)
        )).scalar_one()
        async with self.transaction():
            milestone = Milestone(
                project_id=project_id,
                order=0 if last is None else last + 1,
                **data.model_dump()
            )
            self.db.add(milestone)
        return await self._get_milestone(project_id, milestone.id)

    async def update_milestone(
        self,
        organization_id: int,
        project_id: int,
        milestone_id: int,
        data: MilestoneUpdateRequest,
        actor: User
    ) -> Milestone:
        await self._managed_project(organization_id, project_id, actor)
        milestone = await self._get_milestone(project_id, milestone_id)
        fields = data.model_dump(exclude_unset=True)
        async with self.transaction():
            self._apply(milestone, fields)
            if "is_completed" in fields:
                milestone.completed_at = utcnow() if milestone.is_completed else None
        return await self._get_milestone(project_id, milestone_id)

    async def toggle_milestone(self, organization_id: int, project_id: int, milestone_id: int, actor: User) -> Milestone:
        await self._managed_project(organization_id, project_id, actor)
        milestone = await self._get_milestone(project_id, milestone_id)
        async with self.transaction():
            milestone.is_completed = not milestone.is_completed
            milestone.completed_at = utcnow() if milestone.is_completed else None
        return await self._get_milestone(project_id, milestone_id)

    async def delete_milestone(self, organization_id: int, project_id: int, milestone_id: int, actor: User) -> None:
        await self._managed_project(organization_id, project_id, actor)
        milestone = await self._get_milestone(project_id, milestone_id)
        async with self.transaction():
            await self.db.delete(milestone)

    # Files

    async def list_files(self, organization_id: int, project_id: int, user: User) -> List[ProjectFile]:
        await self.get_project(organization_id, project_id, user)
        return await self._scalars(
            select(ProjectFile).where(ProjectFile.project_id == project_id).order_by(ProjectFile.created_at.desc(), ProjectFile.id.desc())
        )

    async def add_file(self, organization_id: int, project_id: int, data: ProjectFileCreateRequest, actor: User) -> ProjectFile:
        await self.get_project(organization_id, project_id, actor)
        async with self.transaction():
            record = ProjectFile(project_id=project_id, uploaded_by_id=actor.id, **data.model_dump())
            self.db.add(record)
        return record

    async def delete_file(self, organization_id: int, project_id: int, file_id: int, actor: User) -> None:
        await self.get_project(organization_id, project_id, actor)
        result = await self.db.execute(
            select(ProjectFile).where(ProjectFile.id == file_id, ProjectFile.project_id == project_id)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError("File not found")
        async with self.transaction():
            await self.db.delete(record)

    # Dashboard

    async def dashboard_stats(self, organization_id: int, user: User) -> Dict[str, Any]:
        team_ids = list((await self.db.execute(
            select(TeamMember.team_id)
            .join(Team, TeamMember.team_id == Team.id)
            .where(TeamMember.user_id == user.id, Team.organization_id == organization_id)
        )).scalars().all())

        project_count = 0
        if team_ids:
            project_count = (await self.db.execute(
                select(func.count(Project.id)).where(Project.team_id.in_(team_ids))
            )).scalar_one()

        assigned = await self._scalars(
            select(Task)
            .join(TaskAssignee, TaskAssignee.task_id == Task.id)
            .join(Project, Task.project_id == Project.id)
            .where(TaskAssignee.user_id == user.id, Project.organization_id == organization_id)
        )
        now = utcnow()
        open_tasks = [task for task in assigned if task.status != TaskStatus.DONE.value]
        by_status = {status.value: 0 for status in TaskStatus}
        for task in assigned:
            by_status[task.status] = by_status.get(task.status, 0) + 1

        return {
            "team_count": len(team_ids),
            "project_count": project_count,
            "open_tasks": len(open_tasks),
            "overdue_tasks": sum(1 for task in open_tasks if task.due_date is not None and task.due_date < now),
            "tasks_by_status": by_status,
        }
