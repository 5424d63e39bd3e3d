"""
Work Item Routes

Creation, reads and transitions of tasks, asset requests and revisions.
Every status change goes through the workflow engine.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_audit_metadata_dep
from ...domain.models import ActorContext, Attachment, AuditMetadata, TransitionPayload, WorkItem
from ...domain.enums import WorkItemKind
from ...domain.errors import ForbiddenError
from ...engine.engine import WorkflowEngine
from ...repositories.project_repo import ProjectRepository
from ...repositories.work_item_repo import WorkItemRepository
from ...services.project_membership import ProjectMembershipService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================

class CreateWorkItemRequest(BaseModel):
    """Request to create a work item"""
    kind: WorkItemKind
    project_id: str
    assigned_actor_id: str
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=10000)


class TransitionRequest(BaseModel):
    """Request to move a work item (or project) to a new status"""
    target_status: str = Field(..., min_length=1)
    note: Optional[str] = Field(None, max_length=5000)
    attachments: List[Attachment] = Field(default_factory=list)


class WorkItemListResponse(BaseModel):
    """Work items of one project"""
    items: List[WorkItem]
    total: int


def _require_project_access(actor: ActorContext, project_id: str) -> None:
    membership = ProjectMembershipService()
    project = ProjectRepository().get_project_or_raise(project_id)
    if not membership.has_access(actor, project):
        raise ForbiddenError(
            "You do not have access to this project",
            details={"project_id": project_id}
        )


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", response_model=WorkItem, status_code=status.HTTP_201_CREATED)
async def create_work_item(
    request: CreateWorkItemRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    metadata: AuditMetadata = Depends(get_audit_metadata_dep)
):
    """
    Create a task, asset request or revision.

    The item starts in its kind's initial status and the assignee is notified.
    """
    engine = WorkflowEngine()
    return engine.create_work_item(
        actor_id=actor.user_id,
        kind=request.kind,
        project_id=request.project_id,
        assigned_actor_id=request.assigned_actor_id,
        title=request.title,
        description=request.description,
        metadata=metadata
    )


@router.get("", response_model=WorkItemListResponse)
async def list_work_items(
    project_id: str = Query(..., description="Project to list"),
    kind: Optional[WorkItemKind] = Query(None),
    actor: ActorContext = Depends(get_current_user_dep)
):
    """List a project's work items, oldest first"""
    _require_project_access(actor, project_id)
    items = WorkItemRepository().list_for_project(project_id, kind)
    return WorkItemListResponse(items=items, total=len(items))


@router.get("/{work_item_id}", response_model=WorkItem)
async def get_work_item(
    work_item_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Get one work item"""
    item = WorkItemRepository().get_work_item_or_raise(work_item_id)
    _require_project_access(actor, item.project_id)
    return item


@router.post("/{work_item_id}/transition", response_model=WorkItem)
async def transition_work_item(
    work_item_id: str,
    request: TransitionRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    metadata: AuditMetadata = Depends(get_audit_metadata_dep)
):
    """
    Move a work item one edge along its state graph.

    Errors:
        400 INVALID_TRANSITION: not a direct successor
        403 FORBIDDEN / SELF_APPROVAL_FORBIDDEN
        404 WORK_ITEM_NOT_FOUND
        409 CONFLICT: the item changed since it was read
    """
    engine = WorkflowEngine()
    return engine.transition(
        actor_id=actor.user_id,
        work_item_id=work_item_id,
        target_status=request.target_status,
        payload=TransitionPayload(note=request.note, attachments=request.attachments),
        metadata=metadata
    )
