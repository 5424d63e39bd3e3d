"""Project Routes - Reads and manual project transitions"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_audit_metadata_dep
from ...domain.models import ActorContext, AuditMetadata, Project
from ...domain.errors import ForbiddenError
from ...engine.engine import WorkflowEngine
from ...repositories.project_repo import ProjectRepository
from ...services.project_membership import ProjectMembershipService

router = APIRouter()


class ProjectTransitionRequest(BaseModel):
    """Request to move a project to a new status"""
    target_status: str = Field(..., min_length=1)


@router.get("/{project_id}", response_model=Project)
async def get_project(
    project_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Get one project"""
    project = ProjectRepository().get_project_or_raise(project_id)
    if not ProjectMembershipService().has_access(actor, project):
        raise ForbiddenError(
            "You do not have access to this project",
            details={"project_id": project_id}
        )
    return project


@router.post("/{project_id}/transition", response_model=Project)
async def transition_project(
    project_id: str,
    request: ProjectTransitionRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    metadata: AuditMetadata = Depends(get_audit_metadata_dep)
):
    """
    Manually move a project along the project graph.

    Delivery to REVIEW belongs to the project's Team Lead, cancellation
    to admins, everything else to the project's Manager.
    """
    engine = WorkflowEngine()
    return engine.transition_project(
        actor_id=actor.user_id,
        project_id=project_id,
        target_status=request.target_status,
        metadata=metadata
    )
