from .activity_service import ActivityService
from .announcement_service import AnnouncementService
from .assignment_service import AssignmentService
from .attendance_service import AttendanceService
from .auth_service import AuthService
from .calendar_service import CalendarService
from .content_service import ContactService, PageService, TestimonialService
from .course_service import CourseService
from .email_service import EmailService
from .expense_service import ExpenseService
from .finance_service import FinanceService
from .forum_service import ForumService
from .grading_service import GradingService
from .inventory_service import InventoryService
from .invoice_service import InvoiceService
from .knowledge_service import KnowledgeService
from .learning_path_service import LearningPathService
from .organization_service import OrganizationService
from .parent_service import ParentService
from .payroll_service import PayrollService
from .project_service import ProjectService
from .quiz_service import QuizService
from .rubric_service import RubricService
from .settings_service import SettingsService
from .task_service import TaskService
from .team_service import TeamService
from .user_service import UserService

__all__ = [
    "ActivityService",
    "AnnouncementService",
    "AssignmentService",
    "AttendanceService",
    "AuthService",
    "CalendarService",
    "ContactService",
    "CourseService",
    "EmailService",
    "ExpenseService",
    "FinanceService",
    "ForumService",
    "GradingService",
    "InventoryService",
    "InvoiceService",
    "KnowledgeService",
    "LearningPathService",
    "OrganizationService",
    "PageService",
    "ParentService",
    "PayrollService",
    "ProjectService",
    "QuizService",
    "RubricService",
    "SettingsService",
    "TaskService",
    "TeamService",
    "TestimonialService",
    "UserService",
]
