"""Audit Repository - Data access for audit entries"""
import math
import re
import time
from typing import Any, Dict, List
from pymongo.collection import Collection
from pymongo import DESCENDING

from .mongo_client import get_collection
from ..domain.models import AuditEntry, AuditFilter, AuditPage, AuditStats, CountBucket
from ..utils.time import start_of_day, start_of_week, start_of_month, to_naive_utc, utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for audit entries (append-only)"""

    def __init__(self):
        self._audit_log: Collection = get_collection("audit_log")

    def create_entry(self, entry: AuditEntry) -> AuditEntry:
        """Append an audit entry"""
        doc = entry.model_dump()
        doc["_id"] = entry.audit_entry_id
        doc["_seq"] = time.time_ns()

        self._audit_log.insert_one(doc)
        logger.debug(
            f"Created audit entry: {entry.action}",
            extra={"actor_id": entry.actor_id, "action": entry.action}
        )
        return entry

    def _build_query(self, audit_filter: AuditFilter) -> Dict[str, Any]:
        query: Dict[str, Any] = {}

        if audit_filter.actor_id:
            query["actor_id"] = audit_filter.actor_id
        if audit_filter.action:
            query["action"] = {"$regex": re.escape(audit_filter.action), "$options": "i"}
        if audit_filter.entity_type:
            query["entity_type"] = audit_filter.entity_type
        if audit_filter.entity_id:
            query["entity_id"] = audit_filter.entity_id

        if audit_filter.start_date or audit_filter.end_date:
            time_range: Dict[str, Any] = {}
            if audit_filter.start_date:
                time_range["$gte"] = to_naive_utc(audit_filter.start_date)
            if audit_filter.end_date:
                time_range["$lte"] = to_naive_utc(audit_filter.end_date)
            query["timestamp"] = time_range

        return query

    def list_entries(self, audit_filter: AuditFilter) -> AuditPage:
        """List audit entries matching a filter, newest first"""
        query = self._build_query(audit_filter)
        skip = (audit_filter.page - 1) * audit_filter.limit

        # Insertion order breaks timestamp ties
        cursor = (
            self._audit_log.find(query)
            .sort([("timestamp", DESCENDING), ("_seq", DESCENDING)])
            .skip(skip)
            .limit(audit_filter.limit)
        )

        items = []
        for doc in cursor:
            doc.pop("_id", None)
            items.append(AuditEntry.model_validate(doc))

        total = self._audit_log.count_documents(query)
        return AuditPage(
            items=items,
            total=total,
            page=audit_filter.page,
            limit=audit_filter.limit,
            total_pages=math.ceil(total / audit_filter.limit) if total else 0
        )

    def _top(self, field: str, limit: int = 10) -> List[CountBucket]:
        pipeline = [
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": limit},
        ]
        return [
            CountBucket(key=str(row["_id"]), count=row["count"])
            for row in self._audit_log.aggregate(pipeline)
        ]

    def get_stats(self) -> AuditStats:
        """Counts for today / this week / this month plus top actions and entity types"""
        now = utc_now()

        def count_since(start) -> int:
            return self._audit_log.count_documents({"timestamp": {"$gte": to_naive_utc(start)}})

        return AuditStats(
            total_today=count_since(start_of_day(now)),
            total_week=count_since(start_of_week(now)),
            total_month=count_since(start_of_month(now)),
            by_action=self._top("action"),
            by_entity_type=self._top("entity_type"),
        )

    def count_entries_for_entity(self, entity_type: str, entity_id: str) -> int:
        """Count audit entries for one entity"""
        return self._audit_log.count_documents(
            {"entity_type": entity_type, "entity_id": entity_id}
        )
