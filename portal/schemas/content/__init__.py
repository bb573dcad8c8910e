from .requests import (
    ContactCreateRequest, ContactStatusUpdate, PageCreateRequest, PageUpdateRequest,
    TestimonialCreateRequest, TestimonialUpdateRequest, KnowledgeNodeCreateRequest,
    KnowledgeNodeUpdateRequest, KnowledgeNodeMoveRequest, CalendarEventCreateRequest,
    CalendarEventUpdateRequest, AnnouncementCreateRequest, AnnouncementStatusUpdate
)
from .responses import (
    ContactResponse, ContactListResponse, PageResponse, PageStats, PageListResponse,
    TestimonialResponse, KnowledgeNodeResponse, KnowledgeTreeNode, CalendarEventResponse,
    AnnouncementResponse, AnnouncementFeedItem, UnreadCountResponse
)

__all__ = [
    'ContactCreateRequest', 'ContactStatusUpdate', 'PageCreateRequest', 'PageUpdateRequest',
    'TestimonialCreateRequest', 'TestimonialUpdateRequest', 'KnowledgeNodeCreateRequest',
    'KnowledgeNodeUpdateRequest', 'KnowledgeNodeMoveRequest', 'CalendarEventCreateRequest',
    'CalendarEventUpdateRequest', 'AnnouncementCreateRequest', 'AnnouncementStatusUpdate',
    'ContactResponse', 'ContactListResponse', 'PageResponse', 'PageStats', 'PageListResponse',
    'TestimonialResponse', 'KnowledgeNodeResponse', 'KnowledgeTreeNode', 'CalendarEventResponse',
    'AnnouncementResponse', 'AnnouncementFeedItem', 'UnreadCountResponse'
]
