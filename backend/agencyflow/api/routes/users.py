"""User Routes - Presence and account removal"""
from typing import Any, Dict
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import get_current_user_dep, get_audit_metadata_dep
from ...domain.models import ActorContext, AuditMetadata
from ...domain.enums import Role
from ...domain.errors import ForbiddenError
from ...realtime.broker import get_broker
from ...services.user_lifecycle_service import UserLifecycleService

router = APIRouter()


class OnlineStatusResponse(BaseModel):
    user_id: str
    online: bool


class DeleteUserResponse(BaseModel):
    """Rows touched by the retention policy"""
    user_id: str
    notifications_deleted: int
    chat_messages_tombstoned: int
    work_items_unassigned: int
    project_seats_cleared: int


@router.get("/realtime/stats")
async def get_realtime_stats(
    actor: ActorContext = Depends(get_current_user_dep)
) -> Dict[str, Any]:
    """Broker session counts (admins only)"""
    if actor.role != Role.ADMIN.value:
        raise ForbiddenError("Admin access required")
    return get_broker().get_stats()


@router.get("/{user_id}/online", response_model=OnlineStatusResponse)
async def get_online_status(
    user_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Whether the user has at least one live session"""
    return OnlineStatusResponse(user_id=user_id, online=get_broker().is_user_online(user_id))


@router.delete("/{user_id}", response_model=DeleteUserResponse)
async def delete_user(
    user_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    metadata: AuditMetadata = Depends(get_audit_metadata_dep)
):
    """
    Delete a user (admins only).

    Notifications are removed, audit history is kept and chat messages
    stay with a deleted-sender marker.
    """
    service = UserLifecycleService()
    summary = service.delete_user(user_id, actor, metadata=metadata)
    return DeleteUserResponse(user_id=user_id, **summary)
