"""
Project Chat Routes

Messages posted here are broadcast to the project room over the
WebSocket gateway and fanned out as chat notifications.
"""
from typing import List
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_audit_metadata_dep
from ...domain.models import ActorContext, Attachment, AuditMetadata, ChatMessage
from ...domain.enums import ChatPriority, Role
from ...services.chat_service import ChatService

router = APIRouter()


class SendMessageRequest(BaseModel):
    """Request to post a chat message"""
    body: str = Field(..., max_length=10000)
    attachments: List[Attachment] = Field(default_factory=list)
    priority: ChatPriority = ChatPriority.NORMAL
    visible_to_roles: List[Role] = Field(default_factory=list)


class EditMessageRequest(BaseModel):
    """Request to replace a message body"""
    body: str = Field(..., max_length=10000)


class ChatMessageListResponse(BaseModel):
    """One page of a project's chat, oldest first"""
    items: List[ChatMessage]
    page: int
    limit: int


@router.get("/projects/{project_id}/messages", response_model=ChatMessageListResponse)
async def list_messages(
    project_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Messages visible to the current user; page 1 is the most recent"""
    service = ChatService()
    items = service.list_messages(actor, project_id, page=page, limit=limit)
    return ChatMessageListResponse(items=items, page=page, limit=limit)


@router.post(
    "/projects/{project_id}/messages",
    response_model=ChatMessage,
    status_code=status.HTTP_201_CREATED
)
async def send_message(
    project_id: str,
    request: SendMessageRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    metadata: AuditMetadata = Depends(get_audit_metadata_dep)
):
    """Post a message to a project's chat"""
    service = ChatService()
    return service.send_message(
        actor,
        project_id,
        request.body,
        attachments=request.attachments,
        priority=request.priority,
        visible_to_roles=request.visible_to_roles,
        metadata=metadata
    )


@router.patch("/messages/{message_id}", response_model=ChatMessage)
async def edit_message(
    message_id: str,
    request: EditMessageRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    metadata: AuditMetadata = Depends(get_audit_metadata_dep)
):
    """Edit one of your own messages"""
    service = ChatService()
    return service.edit_message(actor, message_id, request.body, metadata=metadata)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    metadata: AuditMetadata = Depends(get_audit_metadata_dep)
):
    """Delete one of your own messages"""
    service = ChatService()
    service.delete_message(actor, message_id, metadata=metadata)
