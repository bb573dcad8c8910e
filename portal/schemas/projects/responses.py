from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from portal.schemas.common import ORMModel, UserBrief


class TeamMemberResponse(ORMModel):
    id: int
    user_id: int
    role: str
    joined_at: datetime
    user: Optional[UserBrief] = None


class TeamResponse(ORMModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime
    members: List[TeamMemberResponse] = []


class TeamSummary(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    color: Optional[str] = None
    member_count: int
    project_count: int
    my_role: Optional[str] = None


class MilestoneResponse(ORMModel):
    id: int
    project_id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    order: int
    is_completed: bool
    completed_at: Optional[datetime] = None


class ChecklistItemResponse(ORMModel):
    id: int
    content: str
    is_completed: bool
    order: int


class TaskResponse(ORMModel):
    id: int
    project_id: int
    milestone_id: Optional[int] = None
    parent_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    task_type: str
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    kanban_order: int
    progress: int
    completed_at: Optional[datetime] = None
    created_by_id: Optional[int] = None
    assignee_ids: List[int] = []
    checklist_items: List[ChecklistItemResponse] = []
    created_at: datetime
    updated_at: datetime


class TaskActivityResponse(ORMModel):
    id: int
    user_id: Optional[int] = None
    action: str
    field: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    created_at: datetime


class ProjectResponse(ORMModel):
    id: int
    team_id: int
    name: str
    slug: str
    description: Optional[str] = None
    status: str
    priority: str
    color: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ProjectDetailResponse(ProjectResponse):
    milestones: List[MilestoneResponse] = []
    tasks: List[TaskResponse] = []


class ProjectFileResponse(ORMModel):
    id: int
    project_id: int
    name: str
    url: str
    size: Optional[int] = None
    mime_type: Optional[str] = None
    uploaded_by_id: Optional[int] = None
    created_at: datetime


class DashboardStatsResponse(BaseModel):
    team_count: int
    project_count: int
    open_tasks: int
    overdue_tasks: int
    tasks_by_status: Dict[str, int]
