from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from portal.schemas.common import ORMModel, UserBrief


class ContactResponse(ORMModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: str
    status: str
    created_at: datetime


class ContactListResponse(BaseModel):
    items: List[ContactResponse]
    counts: Dict[str, int]


class PageResponse(ORMModel):
    id: int
    title: str
    slug: str
    content: str
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    is_draft: bool
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class PageStats(BaseModel):
    total: int
    published: int
    drafts: int


class PageListResponse(BaseModel):
    items: List[PageResponse]
    stats: PageStats


class TestimonialResponse(ORMModel):
    id: int
    author_name: str
    author_role: Optional[str] = None
    content: str
    rating: int
    image_url: Optional[str] = None
    is_approved: bool
    display_order: int


class KnowledgeNodeResponse(ORMModel):
    id: int
    title: str
    slug: str
    node_type: str
    content: Optional[str] = None
    url: Optional[str] = None
    parent_id: Optional[int] = None
    order: int
    is_published: bool
    author_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class KnowledgeTreeNode(BaseModel):
    id: int
    title: str
    slug: str
    node_type: str
    is_published: bool
    children: List['KnowledgeTreeNode'] = []


class CalendarEventResponse(ORMModel):
    id: int
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    event_type: str
    color: Optional[str] = None
    all_day: bool
    location: Optional[str] = None
    is_public: bool
    team_id: Optional[int] = None
    created_by_id: Optional[int] = None


class AnnouncementResponse(ORMModel):
    id: int
    title: str
    content: str
    type: str
    target_id: Optional[int] = None
    send_to_all: bool
    send_to_students: bool
    send_to_parents: bool
    send_to_teachers: bool
    is_active: bool
    author: Optional[UserBrief] = None
    created_at: datetime


class AnnouncementFeedItem(AnnouncementResponse):
    is_read: bool = False


class UnreadCountResponse(BaseModel):
    unread: int
