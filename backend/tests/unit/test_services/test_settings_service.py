"""Notification settings tests"""
import pytest

from agencyflow.domain.models import AuditFilter
from agencyflow.domain.enums import AuditAction
from agencyflow.domain.errors import ForbiddenError, ValidationError
from agencyflow.repositories.audit_repo import AuditRepository
from agencyflow.services.settings_service import NOTIFICATION_CONFIG_KEY, SettingsService


class TestReadSettings:

    def test_defaults_when_nothing_stored(self):
        current = SettingsService().get_notification_settings()
        assert current.sound_enabled is True
        assert current.sound_url == ""
        assert current.is_type_enabled("task_assigned")
        assert set(current.role_sounds) == {"ADMIN", "MANAGER", "TEAM_LEAD", "DEVELOPER", "DESIGNER"}

    def test_public_subset(self):
        public = SettingsService().get_public_settings()
        assert "notification_types" not in public
        assert "email_notifications_enabled" not in public
        assert public["sound_volume"] == 0.5


class TestUpdateSettings:

    def test_admin_partial_update_merges_maps(self, actors):
        service = SettingsService()
        updated = service.update_notification_settings(
            {"sound_volume": 0.8, "notification_types": {"chat_message": False}},
            actors["admin"]
        )

        assert updated.sound_volume == 0.8
        assert updated.is_type_enabled("chat_message") is False
        assert updated.is_type_enabled("task_assigned") is True

        reread = service.get_notification_settings()
        assert reread.sound_volume == 0.8
        assert reread.is_type_enabled("chat_message") is False

    def test_update_is_audited(self, actors):
        SettingsService().update_notification_settings({"sound_enabled": False}, actors["admin"])

        page = AuditRepository().list_entries(AuditFilter(entity_id=NOTIFICATION_CONFIG_KEY))
        assert page.total == 1
        entry = page.items[0]
        assert entry.action == AuditAction.SETTINGS_UPDATE.value
        assert entry.old_value["sound_enabled"] is True
        assert entry.new_value["sound_enabled"] is False

    @pytest.mark.parametrize("key", ["manager", "lead", "dev", "designer"])
    def test_non_admin_is_forbidden(self, actors, key):
        with pytest.raises(ForbiddenError):
            SettingsService().update_notification_settings({"sound_enabled": False}, actors[key])

    def test_unknown_key(self, actors):
        with pytest.raises(ValidationError):
            SettingsService().update_notification_settings({"volume": 1}, actors["admin"])

    def test_out_of_range_volume(self, actors):
        service = SettingsService()
        with pytest.raises(ValidationError):
            service.update_notification_settings({"sound_volume": 3.0}, actors["admin"])
        assert service.get_notification_settings().sound_volume == 0.5
