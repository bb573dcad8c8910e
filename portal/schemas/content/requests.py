from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from portal.schemas.common import UTCDateTime
from portal.schemas.enums import AnnouncementType, ContactStatus, KnowledgeNodeType


class ContactCreateRequest(BaseModel):
    organization_slug: str
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = None
    subject: Optional[str] = Field(default=None, max_length=300)
    message: str = Field(..., min_length=1)


class ContactStatusUpdate(BaseModel):
    status: ContactStatus


class PageCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    slug: str = Field(..., min_length=1, max_length=300, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    content: str = Field(..., min_length=1)
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    is_draft: bool = True


class PageUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=300, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    content: Optional[str] = Field(default=None, min_length=1)
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    is_draft: Optional[bool] = None


class TestimonialCreateRequest(BaseModel):
    author_name: str = Field(..., min_length=1, max_length=200)
    author_role: Optional[str] = None
    content: str = Field(..., min_length=1)
    rating: int = Field(default=5, ge=1, le=5)
    image_url: Optional[str] = None
    is_approved: bool = False
    display_order: int = 0


class TestimonialUpdateRequest(BaseModel):
    author_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    author_role: Optional[str] = None
    content: Optional[str] = Field(default=None, min_length=1)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    image_url: Optional[str] = None
    is_approved: Optional[bool] = None
    display_order: Optional[int] = None


class KnowledgeNodeCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    slug: Optional[str] = Field(default=None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    node_type: KnowledgeNodeType = KnowledgeNodeType.MARKDOWN
    content: Optional[str] = None
    url: Optional[str] = None
    parent_id: Optional[int] = None
    order: int = 0
    is_published: bool = False

    @model_validator(mode='after')
    def validate_link(self) -> 'KnowledgeNodeCreateRequest':
        if self.node_type == KnowledgeNodeType.LINK and not self.url:
            raise ValueError("Link nodes require a url")
        return self


class KnowledgeNodeUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = None
    url: Optional[str] = None
    order: Optional[int] = None


class KnowledgeNodeMoveRequest(BaseModel):
    parent_id: Optional[int] = None
    order: Optional[int] = None


class CalendarEventCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    start_time: UTCDateTime
    end_time: Optional[UTCDateTime] = None
    event_type: str = Field(default="event", max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)
    all_day: bool = False
    location: Optional[str] = None
    is_public: bool = False
    team_id: Optional[int] = None

    @model_validator(mode='after')
    def validate_times(self) -> 'CalendarEventCreateRequest':
        if self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time cannot be before start_time")
        return self


class CalendarEventUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    start_time: Optional[UTCDateTime] = None
    end_time: Optional[UTCDateTime] = None
    event_type: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)
    all_day: Optional[bool] = None
    location: Optional[str] = None
    is_public: Optional[bool] = None
    team_id: Optional[int] = None


class AnnouncementCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    type: AnnouncementType = AnnouncementType.GENERAL
    target_id: Optional[int] = None
    send_to_all: bool = False
    send_to_students: bool = False
    send_to_parents: bool = False
    send_to_teachers: bool = False

    @model_validator(mode='after')
    def validate_audience(self) -> 'AnnouncementCreateRequest':
        if not (self.send_to_all or self.send_to_students or self.send_to_parents or self.send_to_teachers):
            raise ValueError("Choose at least one audience")
        return self


class AnnouncementStatusUpdate(BaseModel):
    is_active: bool
