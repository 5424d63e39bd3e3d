"""Audit Writer - Append-only audit entries"""
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..domain.models import AuditEntry, AuditMetadata
from ..domain.enums import AuditAction, EntityType
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_audit_entry_id
from ..utils.time import utc_now
from ..utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


class AuditWriter:
    """
    Write audit entries (append-only)

    Every mutation attempt that reaches business logic produces an entry.
    Writing is best-effort relative to the change it records: a failed
    append is logged and retried once, and never raises to the caller.
    """

    def __init__(self, repo: Optional[AuditRepository] = None):
        self.repo = repo or AuditRepository()

    def append(
        self,
        actor_id: str,
        action: str,
        entity_type: str,
        entity_id: str,
        old_value: Any = None,
        new_value: Any = None,
        metadata: Optional[AuditMetadata] = None
    ) -> Optional[AuditEntry]:
        """Append a single entry. Returns None if it could not be written."""
        metadata = metadata or AuditMetadata()
        if metadata.correlation_id is None:
            metadata = metadata.model_copy(update={"correlation_id": get_correlation_id() or None})

        entry = AuditEntry(
            audit_entry_id=generate_audit_entry_id(),
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_value=old_value,
            new_value=new_value,
            metadata=metadata,
            timestamp=utc_now()
        )

        attempts = 2 if settings.audit_retry_once else 1
        for attempt in range(1, attempts + 1):
            try:
                return self.repo.create_entry(entry)
            except Exception as e:
                logger.error(
                    f"Failed to write audit entry (attempt {attempt}/{attempts}): {e}",
                    extra={"actor_id": actor_id, "action": action}
                )
        return None

    def write_create(
        self,
        actor_id: str,
        entity_type: str,
        entity_id: str,
        new_value: Dict[str, Any],
        metadata: Optional[AuditMetadata] = None
    ) -> Optional[AuditEntry]:
        """Write entity creation"""
        return self.append(
            actor_id=actor_id,
            action=AuditAction.CREATE.value,
            entity_type=entity_type,
            entity_id=entity_id,
            new_value=new_value,
            metadata=metadata
        )

    def write_transition(
        self,
        actor_id: str,
        entity_type: str,
        entity_id: str,
        from_status: str,
        to_status: str,
        note: Optional[str] = None,
        metadata: Optional[AuditMetadata] = None
    ) -> Optional[AuditEntry]:
        """Write an applied transition"""
        new_value: Dict[str, Any] = {"status": to_status}
        if note:
            new_value["note"] = note
        return self.append(
            actor_id=actor_id,
            action=AuditAction.TRANSITION.value,
            entity_type=entity_type,
            entity_id=entity_id,
            old_value={"status": from_status},
            new_value=new_value,
            metadata=metadata
        )

    def write_transition_denied(
        self,
        actor_id: str,
        entity_type: str,
        entity_id: str,
        from_status: str,
        to_status: str,
        error_code: str,
        reason: str,
        metadata: Optional[AuditMetadata] = None
    ) -> Optional[AuditEntry]:
        """Write a refused transition attempt"""
        return self.append(
            actor_id=actor_id,
            action=AuditAction.TRANSITION_DENIED.value,
            entity_type=entity_type,
            entity_id=entity_id,
            old_value={"status": from_status},
            new_value={"requested_status": to_status, "error": error_code, "reason": reason},
            metadata=metadata
        )

    def write_project_derived(
        self,
        actor_id: str,
        project_id: str,
        from_status: str,
        to_status: str,
        metadata: Optional[AuditMetadata] = None
    ) -> Optional[AuditEntry]:
        """Write a project status change computed from its tasks"""
        return self.append(
            actor_id=actor_id,
            action=AuditAction.PROJECT_STATUS_DERIVED.value,
            entity_type=EntityType.PROJECT.value,
            entity_id=project_id,
            old_value={"status": from_status},
            new_value={"status": to_status},
            metadata=metadata
        )

    def write_chat(
        self,
        actor_id: str,
        action: AuditAction,
        message_id: str,
        old_value: Any = None,
        new_value: Any = None,
        metadata: Optional[AuditMetadata] = None
    ) -> Optional[AuditEntry]:
        """Write a chat send / edit / delete"""
        return self.append(
            actor_id=actor_id,
            action=AuditAction(action).value,
            entity_type=EntityType.CHAT_MESSAGE.value,
            entity_id=message_id,
            old_value=old_value,
            new_value=new_value,
            metadata=metadata
        )

    def write_settings_update(
        self,
        actor_id: str,
        key: str,
        old_value: Any,
        new_value: Any,
        metadata: Optional[AuditMetadata] = None
    ) -> Optional[AuditEntry]:
        """Write a system settings change"""
        return self.append(
            actor_id=actor_id,
            action=AuditAction.SETTINGS_UPDATE.value,
            entity_type=EntityType.SYSTEM_SETTING.value,
            entity_id=key,
            old_value=old_value,
            new_value=new_value,
            metadata=metadata
        )

    def write_user_delete(
        self,
        actor_id: str,
        user_id: str,
        summary: Dict[str, int],
        metadata: Optional[AuditMetadata] = None
    ) -> Optional[AuditEntry]:
        """Write actor deletion with the cleanup counts"""
        return self.append(
            actor_id=actor_id,
            action=AuditAction.USER_DELETE.value,
            entity_type=EntityType.USER.value,
            entity_id=user_id,
            new_value=summary,
            metadata=metadata
        )
