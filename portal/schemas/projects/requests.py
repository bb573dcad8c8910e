from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from portal.schemas.common import UTCDateTime
from portal.schemas.enums import Priority, ProjectStatus, TaskStatus, TaskType, TeamRole

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class TeamCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(default=None, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)


class TeamUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)


class TeamMemberAddRequest(BaseModel):
    user_id: int
    role: TeamRole = TeamRole.MEMBER


class TeamMemberRoleUpdate(BaseModel):
    role: TeamRole


class ProjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(default=None, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: Priority = Priority.MEDIUM
    color: Optional[str] = Field(default=None, max_length=20)
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None

    @model_validator(mode='after')
    def validate_dates(self) -> 'ProjectCreateRequest':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class ProjectUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    color: Optional[str] = Field(default=None, max_length=20)
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


class MilestoneCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    due_date: Optional[UTCDateTime] = None


class MilestoneUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    due_date: Optional[UTCDateTime] = None
    is_completed: Optional[bool] = None


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    task_type: TaskType = TaskType.TASK
    milestone_id: Optional[int] = None
    parent_id: Optional[int] = None
    start_date: Optional[UTCDateTime] = None
    due_date: Optional[UTCDateTime] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    assignee_ids: List[int] = Field(default_factory=list)


class TaskUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    task_type: Optional[TaskType] = None
    milestone_id: Optional[int] = None
    start_date: Optional[UTCDateTime] = None
    due_date: Optional[UTCDateTime] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)
    assignee_ids: Optional[List[int]] = None


class TaskMoveRequest(BaseModel):
    status: TaskStatus
    position: int = Field(..., ge=0)


class ChecklistItemCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)


class ChecklistItemUpdateRequest(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1, max_length=500)
    is_completed: Optional[bool] = None


class ProjectFileCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=300)
    url: str = Field(..., min_length=1, max_length=1000)
    size: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = Field(default=None, max_length=100)
