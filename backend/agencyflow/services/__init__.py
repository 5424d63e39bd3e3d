"""Service modules - Business logic layer"""
from .notification_service import NotificationService
from .settings_service import SettingsService
from .project_membership import ProjectMembershipService
from .chat_service import ChatService
from .audit_service import AuditService
from .user_lifecycle_service import UserLifecycleService

__all__ = [
    "NotificationService",
    "SettingsService",
    "ProjectMembershipService",
    "ChatService",
    "AuditService",
    "UserLifecycleService",
]
