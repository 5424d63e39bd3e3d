"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class Role(str, Enum):
    """Actor role, fixed for the duration of a request"""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    TEAM_LEAD = "TEAM_LEAD"
    DEVELOPER = "DEVELOPER"
    DESIGNER = "DESIGNER"


class WorkItemKind(str, Enum):
    """Kinds of work item sharing the transition pipeline"""
    TASK = "TASK"
    ASSET = "ASSET"
    REVISION = "REVISION"


class EventKind(str, Enum):
    """Subject of a transition event (work item kinds plus PROJECT)"""
    TASK = "TASK"
    ASSET = "ASSET"
    REVISION = "REVISION"
    PROJECT = "PROJECT"


class TaskStatus(str, Enum):
    """Task lifecycle"""
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AssetStatus(str, Enum):
    """Design asset lifecycle"""
    REQUESTED = "REQUESTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RevisionStatus(str, Enum):
    """Revision lifecycle"""
    CREATED = "CREATED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ACCEPTED = "ACCEPTED"


class ProjectStatus(str, Enum):
    """Coarse project lifecycle"""
    NEW = "NEW"
    REQUIREMENTS_PENDING = "REQUIREMENTS_PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    CLIENT_REVIEW = "CLIENT_REVIEW"
    COMPLETED = "COMPLETED"
    ON_HOLD = "ON_HOLD"
    CANCELLED = "CANCELLED"


class ChatPriority(str, Enum):
    """Chat message priority"""
    NORMAL = "NORMAL"
    HIGH = "HIGH"


class NotificationType(str, Enum):
    """Notification types, also the keys of the enabled-types setting"""
    TASK_ASSIGNED = "task_assigned"
    TASK_STARTED = "task_started"
    TASK_SUBMITTED = "task_submitted"
    TASK_APPROVED = "task_approved"
    TASK_REJECTED = "task_rejected"
    ASSET_REQUESTED = "asset_requested"
    ASSET_STARTED = "asset_started"
    ASSET_SUBMITTED = "asset_submitted"
    ASSET_APPROVED = "asset_approved"
    ASSET_REJECTED = "asset_rejected"
    REVISION_CREATED = "revision_created"
    REVISION_STARTED = "revision_started"
    REVISION_COMPLETED = "revision_completed"
    REVISION_ACCEPTED = "revision_accepted"
    REVISION_REOPENED = "revision_reopened"
    PROJECT_STATUS_CHANGED = "project_status_changed"
    CHAT_MESSAGE = "chat_message"


class ReferenceType(str, Enum):
    """What a notification points at"""
    TASK = "task"
    ASSET = "asset"
    REVISION = "revision"
    PROJECT = "project"


class AuditAction(str, Enum):
    """Audit trail actions"""
    CREATE = "CREATE"
    TRANSITION = "TRANSITION"
    TRANSITION_DENIED = "TRANSITION_DENIED"
    PROJECT_STATUS_DERIVED = "PROJECT_STATUS_DERIVED"
    CHAT_SEND = "CHAT_SEND"
    CHAT_EDIT = "CHAT_EDIT"
    CHAT_DELETE = "CHAT_DELETE"
    SETTINGS_UPDATE = "SETTINGS_UPDATE"
    USER_DELETE = "USER_DELETE"


class EntityType(str, Enum):
    """Entity types recorded in the audit trail"""
    TASK = "TASK"
    ASSET = "ASSET"
    REVISION = "REVISION"
    PROJECT = "PROJECT"
    CHAT_MESSAGE = "CHAT_MESSAGE"
    SYSTEM_SETTING = "SYSTEM_SETTING"
    USER = "USER"


# Status set per work item kind
STATUS_ENUMS = {
    WorkItemKind.TASK: TaskStatus,
    WorkItemKind.ASSET: AssetStatus,
    WorkItemKind.REVISION: RevisionStatus,
}

INITIAL_STATUS = {
    WorkItemKind.TASK: TaskStatus.ASSIGNED.value,
    WorkItemKind.ASSET: AssetStatus.REQUESTED.value,
    WorkItemKind.REVISION: RevisionStatus.CREATED.value,
}
