from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_active_user, get_db
from portal.models import User
from portal.schemas.projects import (
    ChecklistItemCreateRequest,
    ChecklistItemUpdateRequest,
    DashboardStatsResponse,
    MilestoneCreateRequest,
    MilestoneResponse,
    MilestoneUpdateRequest,
    ProjectCreateRequest,
    ProjectDetailResponse,
    ProjectFileCreateRequest,
    ProjectFileResponse,
    ProjectResponse,
    ProjectUpdateRequest,
    TaskActivityResponse,
    TaskCreateRequest,
    TaskMoveRequest,
    TaskResponse,
    TaskUpdateRequest
)
from portal.services import ProjectService, TaskService

router = APIRouter(tags=["Projects"])


# Service dependencies
def get_project_service(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db=db)


def get_task_service(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db=db)


@router.get("/dashboard", response_model=DashboardStatsResponse)
async def dashboard_stats(
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    """Team, project and task counts for the current user"""
    return await service.dashboard_stats(current_user.organization_id, current_user)


# Projects

@router.get("/teams/{team_id}/projects", response_model=List[ProjectResponse])
async def list_projects(
    team_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    return await service.list_projects(current_user.organization_id, team_id, current_user)


@router.post("/teams/{team_id}/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    team_id: int,
    data: ProjectCreateRequest,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    return await service.create_project(current_user.organization_id, team_id, data, current_user)


@router.get("/projects/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    """Project with its milestones and kanban tasks"""
    return await service.get_project(current_user.organization_id, project_id, current_user)


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    data: ProjectUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    return await service.update_project(current_user.organization_id, project_id, data, current_user)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    await service.delete_project(current_user.organization_id, project_id, current_user)


# Milestones

@router.get("/projects/{project_id}/milestones", response_model=List[MilestoneResponse])
async def list_milestones(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    return await service.list_milestones(current_user.organization_id, project_id, current_user)


@router.post(
    "/projects/{project_id}/milestones",
    response_model=MilestoneResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_milestone(
    project_id: int,
    data: MilestoneCreateRequest,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    return await service.create_milestone(current_user.organization_id, project_id, data, current_user)


@router.patch("/projects/{project_id}/milestones/{milestone_id}", response_model=MilestoneResponse)
async def update_milestone(
    project_id: int,
    milestone_id: int,
    data: MilestoneUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    return await service.update_milestone(
        current_user.organization_id, project_id, milestone_id, data, current_user
    )


@router.post("/projects/{project_id}/milestones/{milestone_id}/toggle", response_model=MilestoneResponse)
async def toggle_milestone(
    project_id: int,
    milestone_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    return await service.toggle_milestone(current_user.organization_id, project_id, milestone_id, current_user)


@router.delete("/projects/{project_id}/milestones/{milestone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_milestone(
    project_id: int,
    milestone_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    await service.delete_milestone(current_user.organization_id, project_id, milestone_id, current_user)


# Files

@router.get("/projects/{project_id}/files", response_model=List[ProjectFileResponse])
async def list_files(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    return await service.list_files(current_user.organization_id, project_id, current_user)


@router.post("/projects/{project_id}/files", response_model=ProjectFileResponse, status_code=status.HTTP_201_CREATED)
async def add_file(
    project_id: int,
    data: ProjectFileCreateRequest,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    """Register a file already stored elsewhere by its URL"""
    return await service.add_file(current_user.organization_id, project_id, data, current_user)


@router.delete("/projects/{project_id}/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    project_id: int,
    file_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ProjectService = Depends(get_project_service)
):
    await service.delete_file(current_user.organization_id, project_id, file_id, current_user)


# Tasks

@router.get("/projects/{project_id}/tasks", response_model=List[TaskResponse])
async def list_tasks(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    return await service.list_tasks(current_user.organization_id, project_id, current_user)


@router.post("/projects/{project_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    project_id: int,
    data: TaskCreateRequest,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    return await service.create_task(current_user.organization_id, project_id, data, current_user)


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    return await service.get_task(current_user.organization_id, task_id, current_user)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    data: TaskUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    return await service.update_task(current_user.organization_id, task_id, data, current_user)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    await service.delete_task(current_user.organization_id, task_id, current_user)


@router.post("/tasks/{task_id}/move", response_model=TaskResponse)
async def move_task(
    task_id: int,
    data: TaskMoveRequest,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    """Move a task to a status column and position on the board"""
    return await service.move_task(current_user.organization_id, task_id, data, current_user)


@router.get("/tasks/{task_id}/activity", response_model=List[TaskActivityResponse])
async def task_activity(
    task_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    return await service.list_activity(current_user.organization_id, task_id, current_user)


@router.post("/tasks/{task_id}/checklist", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def add_checklist_item(
    task_id: int,
    data: ChecklistItemCreateRequest,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    return await service.add_checklist_item(current_user.organization_id, task_id, data, current_user)


@router.patch("/tasks/{task_id}/checklist/{item_id}", response_model=TaskResponse)
async def update_checklist_item(
    task_id: int,
    item_id: int,
    data: ChecklistItemUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    return await service.update_checklist_item(current_user.organization_id, task_id, item_id, data, current_user)


@router.post("/tasks/{task_id}/checklist/{item_id}/toggle", response_model=TaskResponse)
async def toggle_checklist_item(
    task_id: int,
    item_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    return await service.toggle_checklist_item(current_user.organization_id, task_id, item_id, current_user)


@router.delete("/tasks/{task_id}/checklist/{item_id}", response_model=TaskResponse)
async def delete_checklist_item(
    task_id: int,
    item_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TaskService = Depends(get_task_service)
):
    return await service.delete_checklist_item(current_user.organization_id, task_id, item_id, current_user)
