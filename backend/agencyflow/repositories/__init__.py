"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .user_repo import UserRepository
from .project_repo import ProjectRepository
from .work_item_repo import WorkItemRepository
from .audit_repo import AuditRepository
from .notification_repo import NotificationRepository
from .chat_repo import ChatRepository
from .settings_repo import SettingsRepository

__all__ = [
    "get_database",
    "get_collection",
    "UserRepository",
    "ProjectRepository",
    "WorkItemRepository",
    "AuditRepository",
    "NotificationRepository",
    "ChatRepository",
    "SettingsRepository",
]
