"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator

from .enums import (
    Role, WorkItemKind, EventKind, ProjectStatus, ChatPriority,
    NotificationType, ReferenceType, STATUS_ENUMS
)


# ============================================================================
# Actors
# ============================================================================

class User(BaseModel):
    """Stored actor record; the core only reads id and role"""
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    user_id: str
    name: str
    email: Optional[str] = None
    role: Role
    is_active: bool = True
    created_at: Optional[datetime] = None


class ActorContext(BaseModel):
    """Current actor resolved from a verified token"""
    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    user_id: str = Field(..., description="Actor user ID")
    role: Role = Field(..., description="Role, immutable for the request")
    display_name: str = Field("", description="Display name")


# ============================================================================
# Projects & Work Items
# ============================================================================

class Project(BaseModel):
    """Project with its coarse status and role assignments"""
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    project_id: str
    name: str
    status: ProjectStatus = ProjectStatus.NEW
    manager_id: str
    team_lead_id: Optional[str] = None
    designer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Attachment(BaseModel):
    """File reference attached to a transition or chat message"""
    model_config = ConfigDict(extra="ignore")

    url: str
    file_name: str
    mime_type: Optional[str] = None
    size: Optional[int] = None


class TransitionPayload(BaseModel):
    """Note and attachments stored on the item by a transition"""
    model_config = ConfigDict(extra="forbid")

    note: Optional[str] = Field(None, max_length=5000)
    attachments: List[Attachment] = Field(default_factory=list)


class WorkItem(BaseModel):
    """
    Generalized Task / Asset / Revision.

    Status is always a member of the state set of its kind.
    """
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    work_item_id: str
    kind: WorkItemKind
    project_id: str
    title: str
    description: Optional[str] = None
    status: str
    assigned_actor_id: Optional[str] = None
    created_by_id: str
    note: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    last_transition_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _status_belongs_to_kind(self) -> "WorkItem":
        allowed = {s.value for s in STATUS_ENUMS[WorkItemKind(self.kind)]}
        if self.status not in allowed:
            raise ValueError(f"Status {self.status} is not valid for {self.kind}")
        return self


# ============================================================================
# Events
# ============================================================================

class TransitionEvent(BaseModel):
    """
    A single applied state-graph edge.

    For PROJECT events work_item_id carries the project ID.
    from_status is None when the item was just created.
    """
    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    event_id: str
    kind: EventKind
    work_item_id: str
    project_id: str
    from_status: Optional[str] = None
    to_status: str
    actor_id: str
    occurred_at: datetime


class ChatMessage(BaseModel):
    """Project-scoped chat message"""
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    message_id: str
    project_id: str
    sender_id: str
    body: str
    attachments: List[Attachment] = Field(default_factory=list)
    visible_to_roles: List[Role] = Field(
        default_factory=list,
        description="Empty means every role on the project"
    )
    priority: ChatPriority = ChatPriority.NORMAL
    created_at: datetime
    edited_at: Optional[datetime] = None
    is_deleted: bool = False
    sender_deleted: bool = False

    def is_visible_to(self, role: str) -> bool:
        """Check role visibility (empty set means everyone)"""
        return not self.visible_to_roles or role in self.visible_to_roles


class ChatEvent(BaseModel):
    """A chat message handed to fan-out"""
    model_config = ConfigDict(extra="forbid")

    event_id: str
    message: ChatMessage
    project_name: str


# ============================================================================
# Audit
# ============================================================================

class AuditMetadata(BaseModel):
    """Request context captured with an audit entry"""
    model_config = ConfigDict(extra="ignore")

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    correlation_id: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class AuditEntry(BaseModel):
    """Audit entry (append-only)"""
    model_config = ConfigDict(extra="ignore")

    audit_entry_id: str
    actor_id: str
    action: str
    entity_type: str
    entity_id: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    metadata: AuditMetadata = Field(default_factory=AuditMetadata)
    timestamp: datetime


class AuditFilter(BaseModel):
    """Read-side filter for the operator audit view"""
    model_config = ConfigDict(extra="forbid")

    actor_id: Optional[str] = None
    action: Optional[str] = Field(None, description="Case-insensitive substring")
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=500)


class CountBucket(BaseModel):
    """Grouped count"""
    key: str
    count: int


class AuditStats(BaseModel):
    """Aggregate statistics for the audit view"""
    total_today: int
    total_week: int
    total_month: int
    by_action: List[CountBucket] = Field(default_factory=list)
    by_entity_type: List[CountBucket] = Field(default_factory=list)


class AuditPage(BaseModel):
    """Paged audit entries, newest first"""
    items: List[AuditEntry]
    total: int
    page: int
    limit: int
    total_pages: int


# ============================================================================
# Notifications
# ============================================================================

class Notification(BaseModel):
    """
    One notification per recipient per event.

    Only is_read / read_at ever change after creation.
    """
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    notification_id: str
    event_id: str
    recipient_user_id: str
    type: NotificationType
    title: str
    body: str
    reference_type: Optional[ReferenceType] = None
    reference_id: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None

    # Presentation hints derived from notification settings
    suppressed: bool = False
    play_sound: bool = True
    sound_url: Optional[str] = None

    created_at: datetime
    expires_at: Optional[datetime] = None


class NotificationPage(BaseModel):
    """Paged notifications for one recipient"""
    items: List[Notification]
    total: int
    unread_count: int
    page: int
    limit: int
    total_pages: int


class NotificationSettings(BaseModel):
    """
    Global notification presentation settings.

    Settings change presentation only; notifications are always persisted.
    """
    model_config = ConfigDict(extra="ignore")

    sound_enabled: bool = True
    sound_url: str = ""  # Empty = client built-in chime
    sound_volume: float = Field(0.5, ge=0.0, le=1.0)
    email_notifications_enabled: bool = False
    browser_notifications_enabled: bool = True
    role_sounds: Dict[str, Optional[str]] = Field(
        default_factory=lambda: {role.value: None for role in Role}
    )
    notification_types: Dict[str, bool] = Field(
        default_factory=lambda: {t.value: True for t in NotificationType}
    )

    def is_type_enabled(self, notification_type: str) -> bool:
        """Unknown types count as enabled"""
        return self.notification_types.get(notification_type, True)

    def sound_url_for_role(self, role: Optional[str]) -> str:
        """Per-role override, falling back to the global sound"""
        if role and self.role_sounds.get(role):
            return self.role_sounds[role]
        return self.sound_url
