"""Notification Rules - Who hears about which transition

The recipient table is data, keyed by (kind, from_status, to_status).
from_status None is the creation of the item. Nothing in here talks to
the store; the fan-out service resolves recipient roles to user IDs.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..domain.enums import (
    EventKind, NotificationType, ReferenceType,
    TaskStatus, AssetStatus, RevisionStatus
)


class Recipient:
    """Symbolic recipients, resolved against the item and its project"""
    ASSIGNEE = "ASSIGNEE"
    CREATOR = "CREATOR"
    PROJECT_MANAGER = "PROJECT_MANAGER"
    PROJECT_TEAM_LEAD = "PROJECT_TEAM_LEAD"
    ADMINS = "ADMINS"


@dataclass(frozen=True)
class NotificationRule:
    type: str
    recipients: Tuple[str, ...]
    title: str
    body: str

    def render(self, **context: str) -> Tuple[str, str]:
        """Fill the title and body templates"""
        return self.title.format(**context), self.body.format(**context)


ANY = "*"

REFERENCE_TYPES: Dict[str, str] = {
    EventKind.TASK.value: ReferenceType.TASK.value,
    EventKind.ASSET.value: ReferenceType.ASSET.value,
    EventKind.REVISION.value: ReferenceType.REVISION.value,
    EventKind.PROJECT.value: ReferenceType.PROJECT.value,
}

_T = EventKind.TASK.value
_A = EventKind.ASSET.value
_R = EventKind.REVISION.value

RULES: Dict[Tuple[str, Optional[str], str], NotificationRule] = {
    # Task
    (_T, None, TaskStatus.ASSIGNED.value): NotificationRule(
        NotificationType.TASK_ASSIGNED.value, (Recipient.ASSIGNEE,),
        "New Task Assigned", 'You have been assigned "{title}" on project "{project_name}".'),
    (_T, TaskStatus.ASSIGNED.value, TaskStatus.IN_PROGRESS.value): NotificationRule(
        NotificationType.TASK_STARTED.value, (Recipient.CREATOR,),
        "Task Started", '"{title}" is now in progress.'),
    (_T, TaskStatus.REJECTED.value, TaskStatus.IN_PROGRESS.value): NotificationRule(
        NotificationType.TASK_STARTED.value, (Recipient.CREATOR,),
        "Task Rework Started", 'Rework has started on "{title}".'),
    (_T, TaskStatus.IN_PROGRESS.value, TaskStatus.SUBMITTED.value): NotificationRule(
        NotificationType.TASK_SUBMITTED.value, (Recipient.CREATOR,),
        "Task Submitted for Review", '"{title}" has been submitted for your review.'),
    (_T, TaskStatus.SUBMITTED.value, TaskStatus.APPROVED.value): NotificationRule(
        NotificationType.TASK_APPROVED.value, (Recipient.ASSIGNEE,),
        "Task Approved", 'Your task "{title}" has been approved.'),
    (_T, TaskStatus.SUBMITTED.value, TaskStatus.REJECTED.value): NotificationRule(
        NotificationType.TASK_REJECTED.value, (Recipient.ASSIGNEE,),
        "Task Needs Changes", 'Your task "{title}" was rejected. {note}'),

    # Asset
    (_A, None, AssetStatus.REQUESTED.value): NotificationRule(
        NotificationType.ASSET_REQUESTED.value, (Recipient.ASSIGNEE,),
        "New Asset Request", 'You have been asked for "{title}" on project "{project_name}".'),
    (_A, AssetStatus.REQUESTED.value, AssetStatus.IN_PROGRESS.value): NotificationRule(
        NotificationType.ASSET_STARTED.value, (Recipient.CREATOR,),
        "Asset Started", '"{title}" is now in progress.'),
    (_A, AssetStatus.REJECTED.value, AssetStatus.IN_PROGRESS.value): NotificationRule(
        NotificationType.ASSET_STARTED.value, (Recipient.CREATOR,),
        "Asset Rework Started", 'Rework has started on "{title}".'),
    (_A, AssetStatus.IN_PROGRESS.value, AssetStatus.SUBMITTED.value): NotificationRule(
        NotificationType.ASSET_SUBMITTED.value, (Recipient.CREATOR,),
        "Asset Submitted", '"{title}" has been delivered for your review.'),
    (_A, AssetStatus.SUBMITTED.value, AssetStatus.APPROVED.value): NotificationRule(
        NotificationType.ASSET_APPROVED.value, (Recipient.ASSIGNEE,),
        "Asset Approved", 'Your asset "{title}" has been approved.'),
    (_A, AssetStatus.SUBMITTED.value, AssetStatus.REJECTED.value): NotificationRule(
        NotificationType.ASSET_REJECTED.value, (Recipient.ASSIGNEE,),
        "Asset Needs Changes", 'Your asset "{title}" was rejected. {note}'),

    # Revision
    (_R, None, RevisionStatus.CREATED.value): NotificationRule(
        NotificationType.REVISION_CREATED.value, (Recipient.ASSIGNEE, Recipient.PROJECT_TEAM_LEAD),
        "Revision Assigned", 'A revision "{title}" was opened on project "{project_name}".'),
    (_R, RevisionStatus.CREATED.value, RevisionStatus.IN_PROGRESS.value): NotificationRule(
        NotificationType.REVISION_STARTED.value, (Recipient.CREATOR,),
        "Revision Started", 'Work has started on revision "{title}".'),
    (_R, RevisionStatus.IN_PROGRESS.value, RevisionStatus.COMPLETED.value): NotificationRule(
        NotificationType.REVISION_COMPLETED.value, (Recipient.CREATOR, Recipient.PROJECT_MANAGER),
        "Revision Submitted for Review", 'Revision "{title}" on project "{project_name}" is complete.'),
    (_R, RevisionStatus.COMPLETED.value, RevisionStatus.ACCEPTED.value): NotificationRule(
        NotificationType.REVISION_ACCEPTED.value, (Recipient.ASSIGNEE, Recipient.PROJECT_TEAM_LEAD),
        "Revision Accepted", 'Revision "{title}" has been accepted.'),
    (_R, RevisionStatus.COMPLETED.value, RevisionStatus.IN_PROGRESS.value): NotificationRule(
        NotificationType.REVISION_REOPENED.value, (Recipient.ASSIGNEE,),
        "Revision Reopened", 'Revision "{title}" needs more work. {note}'),

    # Project, any edge
    (EventKind.PROJECT.value, ANY, ANY): NotificationRule(
        NotificationType.PROJECT_STATUS_CHANGED.value, (Recipient.PROJECT_MANAGER, Recipient.ADMINS),
        "Project Status Updated", 'Project "{project_name}" moved from {from_status} to {to_status}.'),
}

CHAT_RULE = NotificationRule(
    NotificationType.CHAT_MESSAGE.value, (),
    "New message in {project_name}", "{sender_name}: {preview}")


def rule_for(kind: str, from_status: Optional[str], to_status: str) -> Optional[NotificationRule]:
    """Exact edge first, then the kind's wildcard"""
    return RULES.get((kind, from_status, to_status)) or RULES.get((kind, ANY, ANY))
