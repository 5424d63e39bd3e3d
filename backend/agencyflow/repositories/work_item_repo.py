"""Work Item Repository - Data access for tasks, assets and revisions"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ReturnDocument, ASCENDING

from .mongo_client import get_collection
from ..domain.models import WorkItem, TransitionPayload
from ..domain.enums import WorkItemKind
from ..domain.errors import WorkItemNotFoundError, ConflictError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkItemRepository:
    """Repository for work item operations"""

    def __init__(self):
        self._items: Collection = get_collection("work_items")

    def create_work_item(self, item: WorkItem) -> WorkItem:
        """Create a new work item"""
        doc = item.model_dump()
        doc["_id"] = item.work_item_id
        self._items.insert_one(doc)
        logger.info(
            f"Created {item.kind} {item.work_item_id}",
            extra={"work_item_id": item.work_item_id, "project_id": item.project_id}
        )
        return item

    def get_work_item(self, work_item_id: str) -> Optional[WorkItem]:
        """Get work item by ID"""
        doc = self._items.find_one({"work_item_id": work_item_id})
        if doc:
            doc.pop("_id", None)
            return WorkItem.model_validate(doc)
        return None

    def get_work_item_or_raise(self, work_item_id: str) -> WorkItem:
        """Get work item by ID or raise error"""
        item = self.get_work_item(work_item_id)
        if not item:
            raise WorkItemNotFoundError(
                f"Work item {work_item_id} not found",
                details={"work_item_id": work_item_id}
            )
        return item

    def compare_and_swap_status(
        self,
        work_item_id: str,
        expected_status: str,
        new_status: str,
        payload: Optional[TransitionPayload] = None
    ) -> WorkItem:
        """
        Move status from expected_status to new_status atomically.

        The filter includes the expected status, so a concurrent writer that
        got there first makes this a no-match and we raise ConflictError.
        """
        now = utc_now()
        updates: Dict[str, Any] = {
            "status": new_status,
            "last_transition_at": now,
        }
        if payload is not None:
            if payload.note is not None:
                updates["note"] = payload.note
            if payload.attachments:
                updates["attachments"] = [a.model_dump() for a in payload.attachments]

        result = self._items.find_one_and_update(
            {"work_item_id": work_item_id, "status": expected_status},
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            current = self._items.find_one({"work_item_id": work_item_id}, {"status": 1})
            if current:
                raise ConflictError(
                    f"Work item {work_item_id} was modified concurrently. Please refresh and try again.",
                    details={
                        "work_item_id": work_item_id,
                        "expected_status": expected_status,
                        "current_status": current.get("status"),
                    }
                )
            raise WorkItemNotFoundError(f"Work item {work_item_id} not found")

        result.pop("_id", None)
        return WorkItem.model_validate(result)

    def list_for_project(
        self,
        project_id: str,
        kind: Optional[WorkItemKind] = None
    ) -> List[WorkItem]:
        """List work items of a project, oldest first"""
        query: Dict[str, Any] = {"project_id": project_id}
        if kind:
            query["kind"] = WorkItemKind(kind).value

        items = []
        for doc in self._items.find(query).sort("created_at", ASCENDING):
            doc.pop("_id", None)
            items.append(WorkItem.model_validate(doc))
        return items

    def list_statuses(self, project_id: str, kind: WorkItemKind) -> List[str]:
        """Current statuses of a project's items of one kind"""
        cursor = self._items.find(
            {"project_id": project_id, "kind": WorkItemKind(kind).value},
            {"status": 1}
        )
        return [doc["status"] for doc in cursor]

    def has_assignment(self, project_id: str, user_id: str) -> bool:
        """Check whether the user is assigned any item on the project"""
        return self._items.count_documents(
            {"project_id": project_id, "assigned_actor_id": user_id},
            limit=1
        ) > 0

    def unassign_actor(self, user_id: str) -> int:
        """Clear an actor from every assignment. Returns count updated."""
        result = self._items.update_many(
            {"assigned_actor_id": user_id},
            {"$set": {"assigned_actor_id": None}}
        )
        return result.modified_count
