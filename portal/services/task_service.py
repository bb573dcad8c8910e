from typing import List, Optional

from sqlalchemy import case, func, select

from portal.core.errors import BadRequestError, NotFoundError
from portal.core.logging import logger
from portal.models import ChecklistItem, Milestone, Project, Task, TaskActivity, TaskAssignee, User
from portal.schemas.enums import TaskStatus
from portal.schemas.projects.requests import (
    ChecklistItemCreateRequest,
    ChecklistItemUpdateRequest,
    TaskCreateRequest,
    TaskMoveRequest,
    TaskUpdateRequest
)
from portal.services.base_service import BaseService
from portal.services.project_service import ProjectService
from portal.utils.dates import utcnow

STATUS_ORDER = [status.value for status in TaskStatus]


def _column(tasks: List[Task], status: str, exclude: Task) -> List[Task]:
    return sorted(
        (task for task in tasks if task.status == status and task is not exclude),
        key=lambda task: (task.kanban_order, task.id)
    )


def apply_move(tasks: List[Task], moving: Task, status: str, position: int) -> None:
    """
    Place a task at an index of a status column.

    Both the column it leaves and the column it joins are renumbered 0..n-1.
    """
    source = _column(tasks, moving.status, moving)
    target = source if moving.status == status else _column(tasks, status, moving)
    target.insert(min(position, len(target)), moving)
    moving.status = status
    for index, task in enumerate(target):
        task.kanban_order = index
    if source is not target:
        for index, task in enumerate(source):
            task.kanban_order = index


class TaskService(BaseService):
    """Kanban tasks with assignees, checklists and an activity trail."""

    def __init__(self, db):
        super().__init__(db)
        self.projects = ProjectService(db)

    async def _check_assignees(self, organization_id: int, user_ids: List[int]) -> None:
        wanted = set(user_ids)
        if not wanted:
            return
        result = await self.db.execute(
            select(User.id).where(User.organization_id == organization_id, User.id.in_(wanted))
        )
        if wanted - set(result.scalars().all()):
            raise BadRequestError("Assignee(s) not found")

    async def _check_milestone(self, project_id: int, milestone_id: Optional[int]) -> None:
        if milestone_id is None:
            return
        result = await self.db.execute(
            select(Milestone.id).where(Milestone.id == milestone_id, Milestone.project_id == project_id)
        )
        if result.first() is None:
            raise BadRequestError("Milestone not found")

    async def list_tasks(self, organization_id: int, project_id: int, user: User) -> List[Task]:
        await self.projects.get_project(organization_id, project_id, user)
        status_rank = case({status: index for index, status in enumerate(STATUS_ORDER)}, value=Task.status)
        return await self._scalars(
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(status_rank, Task.kanban_order, Task.id)
        )

    async def get_task(self, organization_id: int, task_id: int, user: User) -> Task:
        """
        Raises:
            NotFoundError: If the task is not in the organization
            PermissionDenied: If the user is not on the project's team
        """
        result = await self.db.execute(
            select(Task)
            .join(Project, Task.project_id == Project.id)
            .where(Task.id == task_id, Project.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError("Task not found")
        await self.projects.get_project(organization_id, task.project_id, user)
        return task

    def _log(self, task_id: int, user: User, action: str, field: Optional[str] = None,
             old_value: Optional[str] = None, new_value: Optional[str] = None) -> None:
        self.db.add(TaskActivity(
            task_id=task_id,
            user_id=user.id,
            action=action,
            field=field,
            old_value=old_value,
            new_value=new_value
        ))

    async def create_task(self, organization_id: int, project_id: int, data: TaskCreateRequest, actor: User) -> Task:
        await self.projects.get_project(organization_id, project_id, actor)
        await self._check_assignees(organization_id, data.assignee_ids)
        await self._check_milestone(project_id, data.milestone_id)

        status = data.status.value
        last = (await self.db.execute(
            select(func.max(Task.kanban_order)).where(Task.project_id == project_id, Task.status == status)
        )).scalar_one()

        fields = data.model_dump(exclude={"assignee_ids", "status", "priority", "task_type"})
        async with self.transaction():
            task = Task(
                project_id=project_id,
                status=status,
                priority=data.priority.value,
                task_type=data.task_type.value,
                kanban_order=0 if last is None else last + 1,
                completed_at=utcnow() if data.status == TaskStatus.DONE else None,
                created_by_id=actor.id,
                assignees=[TaskAssignee(user_id=user_id) for user_id in dict.fromkeys(data.assignee_ids)],
                **fields
            )
            self.db.add(task)
            await self.db.flush()
            self._log(task.id, actor, "created")
        return await self.get_task(organization_id, task.id, actor)

    async def update_task(self, organization_id: int, task_id: int, data: TaskUpdateRequest, actor: User) -> Task:
        task = await self.get_task(organization_id, task_id, actor)
        fields = data.model_dump(exclude_unset=True, exclude={"assignee_ids"})
        for key in ("priority", "task_type"):
            if fields.get(key) is not None:
                fields[key] = fields[key].value
        if data.assignee_ids is not None:
            await self._check_assignees(organization_id, data.assignee_ids)
        if "milestone_id" in fields:
            await self._check_milestone(task.project_id, fields["milestone_id"])

        async with self.transaction():
            self._apply(task, fields)
            if data.assignee_ids is not None:
                wanted = list(dict.fromkeys(data.assignee_ids))
                kept = [a for a in task.assignees if a.user_id in wanted]
                held = {a.user_id for a in kept}
                task.assignees = kept + [TaskAssignee(user_id=u) for u in wanted if u not in held]
            self._log(task.id, actor, "updated")
        return await self.get_task(organization_id, task_id, actor)

    async def delete_task(self, organization_id: int, task_id: int, actor: User) -> None:
        task = await self.get_task(organization_id, task_id, actor)
        async with self.transaction():
            await self.db.delete(task)

    async def move_task(self, organization_id: int, task_id: int, data: TaskMoveRequest, actor: User) -> Task:
        """Drag a task to a position in a status column of the board."""
        task = await self.get_task(organization_id, task_id, actor)
        old_status = task.status
        new_status = data.status.value
        siblings = await self._scalars(
            select(Task).where(
                Task.project_id == task.project_id,
                Task.status.in_([old_status, new_status])
            )
        )

        async with self.transaction():
            apply_move(siblings, task, new_status, data.position)
            task.completed_at = utcnow() if new_status == TaskStatus.DONE.value else None
            if old_status != new_status:
                self._log(task.id, actor, "status_changed", "status", old_status, new_status)

        logger.info(f"Task {task_id} moved to {new_status}:{data.position}")
        return await self.get_task(organization_id, task_id, actor)

    async def list_activity(self, organization_id: int, task_id: int, user: User) -> List[TaskActivity]:
        task = await self.get_task(organization_id, task_id, user)
        return await self._scalars(
            select(TaskActivity).where(TaskActivity.task_id == task.id).order_by(TaskActivity.id)
        )

    # Checklist

    async def _get_item(self, task_id: int, item_id: int) -> ChecklistItem:
        result = await self.db.execute(
            select(ChecklistItem).where(ChecklistItem.id == item_id, ChecklistItem.task_id == task_id)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFoundError("Checklist item not found")
        return item

    async def add_checklist_item(
        self,
        organization_id: int,
        task_id: int,
        data: ChecklistItemCreateRequest,
        actor: User
    ) -> Task:
        task = await self.get_task(organization_id, task_id, actor)
        last = max((item.order for item in task.checklist_items), default=-1)
        async with self.transaction():
            task.checklist_items.append(ChecklistItem(content=data.content, order=last + 1))
        return await self.get_task(organization_id, task_id, actor)

    async def update_checklist_item(
        self,
        organization_id: int,
        task_id: int,
        item_id: int,
        data: ChecklistItemUpdateRequest,
        actor: User
    ) -> Task:
        await self.get_task(organization_id, task_id, actor)
        item = await self._get_item(task_id, item_id)
        async with self.transaction():
            self._apply(item, data.model_dump(exclude_unset=True))
        return await self.get_task(organization_id, task_id, actor)

    async def toggle_checklist_item(self, organization_id: int, task_id: int, item_id: int, actor: User) -> Task:
        await self.get_task(organization_id, task_id, actor)
        item = await self._get_item(task_id, item_id)
        async with self.transaction():
            item.is_completed = not item.is_completed
        return await self.get_task(organization_id, task_id, actor)

    async def delete_checklist_item(self, organization_id: int, task_id: int, item_id: int, actor: User) -> Task:
        await self.get_task(organization_id, task_id, actor)
        item = await self._get_item(task_id, item_id)
        async with self.transaction():
            await self.db.delete(item)
        return await self.get_task(organization_id, task_id, actor)
