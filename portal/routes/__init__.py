from .activity import router as activity_router
from .announcements import router as announcements_router
from .assessments import router as assessments_router
from .attendance import router as attendance_router
from .auth import router as auth_router
from .calendar import router as calendar_router
from .content import router as content_router
from .finance import router as finance_router
from .forums import router as forums_router
from .inventory import router as inventory_router
from .knowledge import router as knowledge_router
from .lms import router as lms_router
from .organizations import router as organizations_router
from .parent import router as parent_router
from .projects import router as projects_router
from .settings import router as settings_router
from .teams import router as teams_router
from .users import router as users_router

__all__ = [
    "activity_router",
    "announcements_router",
    "assessments_router",
    "attendance_router",
    "auth_router",
    "calendar_router",
    "content_router",
    "finance_router",
    "forums_router",
    "inventory_router",
    "knowledge_router",
    "lms_router",
    "organizations_router",
    "parent_router",
    "projects_router",
    "settings_router",
    "teams_router",
    "users_router",
]
