"""Settings Service - Global notification presentation settings"""
from typing import Any, Dict, Optional

from ..domain.models import ActorContext, AuditMetadata, NotificationSettings
from ..domain.enums import Role
from ..domain.errors import ForbiddenError, ValidationError
from ..repositories.settings_repo import SettingsRepository
from ..engine.audit_writer import AuditWriter
from ..utils.logger import get_logger

logger = get_logger(__name__)

NOTIFICATION_CONFIG_KEY = "notification_config"


class SettingsService:
    """
    Read and update notification settings.

    Reads always go to the store, so a change made by an admin applies to
    the very next dispatch without any cache to invalidate.
    """

    def __init__(
        self,
        repo: Optional[SettingsRepository] = None,
        audit_writer: Optional[AuditWriter] = None
    ):
        self.repo = repo or SettingsRepository()
        self.audit_writer = audit_writer or AuditWriter()

    def get_notification_settings(self) -> NotificationSettings:
        """Stored settings merged over defaults"""
        stored = self.repo.get_value(NOTIFICATION_CONFIG_KEY) or {}
        defaults = NotificationSettings()

        # Nested maps merge key by key so new types default to enabled
        merged = defaults.model_dump()
        for key, value in stored.items():
            if key in ("role_sounds", "notification_types") and isinstance(value, dict):
                merged[key].update(value)
            elif key in merged:
                merged[key] = value
        return NotificationSettings.model_validate(merged)

    def get_public_settings(self) -> Dict[str, Any]:
        """Subset any authenticated user may read"""
        current = self.get_notification_settings()
        return {
            "sound_enabled": current.sound_enabled,
            "sound_url": current.sound_url,
            "sound_volume": current.sound_volume,
            "browser_notifications_enabled": current.browser_notifications_enabled,
            "role_sounds": current.role_sounds,
        }

    def update_notification_settings(
        self,
        updates: Dict[str, Any],
        actor: ActorContext,
        metadata: Optional[AuditMetadata] = None
    ) -> NotificationSettings:
        """Apply a partial update (admins only)"""
        if actor.role != Role.ADMIN.value:
            raise ForbiddenError("Only admins can change notification settings")

        old = self.get_notification_settings()
        merged = old.model_dump()
        for key, value in updates.items():
            if key not in merged:
                raise ValidationError(f"Unknown notification setting: {key}")
            if key in ("role_sounds", "notification_types") and isinstance(value, dict):
                merged[key].update(value)
            else:
                merged[key] = value

        try:
            new = NotificationSettings.model_validate(merged)
        except ValueError as e:
            raise ValidationError(f"Invalid notification settings: {e}")

        self.repo.upsert_value(
            NOTIFICATION_CONFIG_KEY,
            new.model_dump(),
            category="notifications",
            updated_by=actor.user_id
        )
        self.audit_writer.write_settings_update(
            actor_id=actor.user_id,
            key=NOTIFICATION_CONFIG_KEY,
            old_value=old.model_dump(),
            new_value=new.model_dump(),
            metadata=metadata
        )
        return new
