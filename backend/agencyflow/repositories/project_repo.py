"""Project Repository - Data access for projects"""
from typing import List, Optional
from pymongo.collection import Collection
from pymongo import ReturnDocument

from .mongo_client import get_collection
from ..domain.models import Project
from ..domain.errors import ProjectNotFoundError, ConflictError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ProjectRepository:
    """Repository for project operations"""

    def __init__(self):
        self._projects: Collection = get_collection("projects")

    def create_project(self, project: Project) -> Project:
        """Create a new project"""
        now = utc_now()
        project.created_at = project.created_at or now
        project.updated_at = now
        doc = project.model_dump()
        doc["_id"] = project.project_id
        self._projects.insert_one(doc)
        logger.info(f"Created project: {project.project_id}", extra={"project_id": project.project_id})
        return project

    def get_project(self, project_id: str) -> Optional[Project]:
        """Get project by ID"""
        doc = self._projects.find_one({"project_id": project_id})
        if doc:
            doc.pop("_id", None)
            return Project.model_validate(doc)
        return None

    def get_project_or_raise(self, project_id: str) -> Project:
        """Get project by ID or raise error"""
        project = self.get_project(project_id)
        if not project:
            raise ProjectNotFoundError(
                f"Project {project_id} not found",
                details={"project_id": project_id}
            )
        return project

    def compare_and_set_status(
        self,
        project_id: str,
        expected_status: str,
        new_status: str
    ) -> Project:
        """
        Set status only if it still equals expected_status.

        Raises ConflictError when another writer moved it first.
        """
        result = self._projects.find_one_and_update(
            {"project_id": project_id, "status": expected_status},
            {"$set": {"status": new_status, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            if self._projects.find_one({"project_id": project_id}):
                raise ConflictError(
                    f"Project {project_id} was modified. Please refresh and try again.",
                    details={"project_id": project_id, "expected_status": expected_status}
                )
            raise ProjectNotFoundError(f"Project {project_id} not found")

        result.pop("_id", None)
        logger.info(
            f"Project {project_id}: {expected_status} -> {new_status}",
            extra={"project_id": project_id, "status": new_status}
        )
        return Project.model_validate(result)

    def list_project_ids_managed_by(self, user_id: str) -> List[str]:
        """Projects whose manager seat the user holds"""
        cursor = self._projects.find({"manager_id": user_id}, {"project_id": 1})
        return [doc["project_id"] for doc in cursor]

    def clear_member(self, user_id: str) -> int:
        """Unassign a user from optional project seats. Returns count updated."""
        modified = 0
        for field in ("team_lead_id", "designer_id"):
            result = self._projects.update_many(
                {field: user_id},
                {"$set": {field: None, "updated_at": utc_now()}}
            )
            modified += result.modified_count
        return modified
