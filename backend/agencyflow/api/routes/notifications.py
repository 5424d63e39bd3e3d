"""User Notifications API - In-app notification bell endpoints"""
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from ..deps import get_current_user_dep
from ...domain.models import ActorContext, Notification, NotificationPage
from ...services.notification_service import NotificationService
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================

class UnreadCountResponse(BaseModel):
    """Just the unread count"""
    unread_count: int


class MarkReadResponse(BaseModel):
    """Response after marking notifications read"""
    success: bool
    marked_count: int


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=NotificationPage)
async def get_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Get the current user's notifications, newest first"""
    service = NotificationService()
    return service.list_notifications(actor, page=page, limit=limit, unread_only=unread_only)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Get count of unread notifications (for badge)"""
    service = NotificationService()
    return UnreadCountResponse(unread_count=service.get_unread_count(actor))


@router.post("/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Mark all of the current user's notifications as read"""
    service = NotificationService()
    count = service.mark_all_read(actor)
    logger.info(f"Marked {count} notifications read", extra={"user_id": actor.user_id})
    return MarkReadResponse(success=True, marked_count=count)


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Mark one notification as read (already-read is a no-op)"""
    service = NotificationService()
    return service.mark_read(notification_id, actor)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Delete one of the current user's notifications"""
    service = NotificationService()
    service.delete_notification(notification_id, actor)
