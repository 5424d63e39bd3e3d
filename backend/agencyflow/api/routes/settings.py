"""System Settings Routes - Notification presentation settings"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_audit_metadata_dep
from ...domain.models import ActorContext, AuditMetadata, NotificationSettings
from ...domain.enums import Role
from ...domain.errors import ForbiddenError
from ...services.settings_service import SettingsService

router = APIRouter()


class UpdateNotificationSettingsRequest(BaseModel):
    """Partial update; omitted keys keep their current value"""
    sound_enabled: Optional[bool] = None
    sound_url: Optional[str] = None
    sound_volume: Optional[float] = Field(None, ge=0.0, le=1.0)
    email_notifications_enabled: Optional[bool] = None
    browser_notifications_enabled: Optional[bool] = None
    role_sounds: Optional[Dict[str, Optional[str]]] = None
    notification_types: Optional[Dict[str, bool]] = None


@router.get("/notifications/public")
async def get_public_notification_settings(
    actor: ActorContext = Depends(get_current_user_dep)
) -> Dict[str, Any]:
    """Sound and browser settings any signed-in user needs"""
    return SettingsService().get_public_settings()


@router.get("/notifications", response_model=NotificationSettings)
async def get_notification_settings(
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Full notification settings (admins only)"""
    if actor.role != Role.ADMIN.value:
        raise ForbiddenError("Admin access required")
    return SettingsService().get_notification_settings()


@router.put("/notifications", response_model=NotificationSettings)
async def update_notification_settings(
    request: UpdateNotificationSettingsRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    metadata: AuditMetadata = Depends(get_audit_metadata_dep)
):
    """Update notification settings (admins only)"""
    service = SettingsService()
    return service.update_notification_settings(
        request.model_dump(exclude_none=True),
        actor,
        metadata=metadata
    )
