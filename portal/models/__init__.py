from .base import Base, TenantModel, TimestampMixin
from .organization import Organization
from .user import User, Role, StudentProfile, ParentProfile, TeacherProfile, user_roles
from .activity import ActivityLog, SiteSetting
from .finance import Invoice, InvoiceItem, Expense, PayrollRun, PayrollItem
from .content import (
    ContactSubmission, Page, Testimonial, KnowledgeNode, CalendarEvent, Announcement,
    AnnouncementRead
)
from .inventory import InventoryItem, InventoryCheckout
from .lms import (
    LMSCourse, CourseEnrollment, Module, Lesson, LessonProgress,
    Rubric, RubricCriterion, RubricScore, Assignment, AssignmentSubmission,
    Quiz, Question, QuizAttempt, QuizAnswer, ClassSession, AttendanceRecord,
    LearningPath, LearningPathStep, ForumThread, ForumPost
)
from .projects import (
    Team, TeamMember, Project, Milestone, Task, TaskAssignee, ChecklistItem,
    TaskActivity, ProjectFile
)

__all__ = [
    'Base',
    'TenantModel',
    'TimestampMixin',
    'Organization',
    'User',
    'Role',
    'StudentProfile',
    'ParentProfile',
    'TeacherProfile',
    'user_roles',
    'ActivityLog',
    'SiteSetting',
    'Invoice',
    'InvoiceItem',
    'Expense',
    'PayrollRun',
    'PayrollItem',
    'ContactSubmission',
    'Page',
    'Testimonial',
    'KnowledgeNode',
    'CalendarEvent',
    'Announcement',
    'AnnouncementRead',
    'InventoryItem',
    'InventoryCheckout',
    'LMSCourse',
    'CourseEnrollment',
    'Module',
    'Lesson',
    'LessonProgress',
    'Rubric',
    'RubricCriterion',
    'RubricScore',
    'Assignment',
    'AssignmentSubmission',
    'Quiz',
    'Question',
    'QuizAttempt',
    'QuizAnswer',
    'ClassSession',
    'AttendanceRecord',
    'LearningPath',
    'LearningPathStep',
    'ForumThread',
    'ForumPost',
    'Team',
    'TeamMember',
    'Project',
    'Milestone',
    'Task',
    'TaskAssignee',
    'ChecklistItem',
    'TaskActivity',
    'ProjectFile',
]
