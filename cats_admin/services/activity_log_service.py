"""
Activity Logging Service
Read-only queries over the trigger-written audit log
"""

from cats_admin.database import database
from cats_admin.schemas.activity_log import ActivityFilters, AuditLogEntry, AuditOperation, AuditTable
from cats_admin.services.activity_aggregator import has_meaningful_changes
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
import asyncio
import math


class ActivityLogService:
    """Service for audit log queries"""

    @staticmethod
    def build_filters(filters: ActivityFilters, now: Optional[datetime] = None) -> Tuple[str, dict]:
        """
        Build the WHERE clause for an audit log query

        Args:
            filters: Requested filters
            now: Reference time for the recency window

        Returns:
            Tuple of (where clause, query params); the clause is empty
            when no filter applies
        """
        conditions: List[str] = []
        params: dict = {}

        # System/worker updates carry no actor
        if filters.hide_system:
            conditions.append("actor_address IS NOT NULL")

        if filters.table:
            conditions.append("table_name = :table_name")
            params["table_name"] = filters.table.value

        if filters.operation:
            conditions.append("operation = :operation")
            params["operation"] = filters.operation.value

        if filters.actor:
            conditions.append("LOWER(actor_address) = LOWER(:actor)")
            params["actor"] = filters.actor

        if filters.category:
            conditions.append(
                "((table_name = 'clubs' AND record_key = :category)"
                " OR (table_name = 'club_memberships' AND record_key LIKE :category_prefix))"
            )
            params["category"] = filters.category
            params["category_prefix"] = filters.category.replace("%", r"\%").replace("_", r"\_") + ":%"

        if filters.name:
            conditions.append(
                "(table_name = 'club_memberships'"
                " AND LOWER(SPLIT_PART(record_key, ':', 2)) = LOWER(:ens_name))"
            )
            params["ens_name"] = filters.name

        if filters.days:
            since = (now or datetime.now(timezone.utc)) - timedelta(days=filters.days)
            conditions.append("created_at >= :since")
            params["since"] = since

        where_clause = "WHERE " + " AND ".join(conditions) if conditions else ""
        return where_clause, params

    @staticmethod
    async def list_entries(
        filters: ActivityFilters,
        page: int = 1,
        limit: int = 50
    ) -> Tuple[List[AuditLogEntry], dict]:
        """
        Get a page of audit log entries, newest first

        Args:
            filters: Requested filters
            page: 1-based page number
            limit: Entries per page

        Returns:
            Tuple of (entries, pagination)
        """
        where_clause, params = ActivityLogService.build_filters(filters)
        offset = (page - 1) * limit

        count_query = f"SELECT COUNT(*) AS count FROM clubs_audit_log {where_clause}"
        query = f"""
        SELECT
            id, table_name, operation, record_key, old_data, new_data,
            actor_address, db_user, created_at
        FROM clubs_audit_log
        {where_clause}
        ORDER BY created_at DESC, id DESC
        LIMIT :limit OFFSET :offset
        """

        count_result, rows = await asyncio.gather(
            database.fetch_one(count_query, params),
            database.fetch_all(query, {**params, "limit": limit, "offset": offset}),
        )
        total = count_result["count"] if count_result else 0

        pagination = {
            "page": page,
            "limit": limit,
            "total_entries": total,
            "total_pages": math.ceil(total / limit) or 1,
        }
        return [AuditLogEntry.model_validate(dict(row)) for row in rows], pagination

    @staticmethod
    async def list_actors() -> List[str]:
        """Distinct admin addresses that appear in the audit log"""
        rows = await database.fetch_all(
            """
            SELECT DISTINCT actor_address
            FROM clubs_audit_log
            WHERE actor_address IS NOT NULL
            ORDER BY actor_address
            """
        )
        return [row["actor_address"] for row in rows]

    @staticmethod
    def summarize(entries: List[AuditLogEntry]) -> List[dict]:
        """
        Aggregate entries per actor

        Added/removed count unique category:name pairs, updated counts
        categories with at least one real edit.
        """
        actors: dict = {}

        for entry in entries:
            if not entry.actor_address:
                continue
            actor = entry.actor_address.lower()
            data = actors.setdefault(actor, {
                "added": set(),
                "removed": set(),
                "created": 0,
                "updated": set(),
                "deleted": 0,
                "breakdown": {},
            })

            if entry.table_name == AuditTable.MEMBERSHIPS:
                category = entry.category_name
                breakdown = data["breakdown"].setdefault(category, {"added": set(), "removed": set()})
                if entry.operation == AuditOperation.INSERT:
                    data["added"].add(entry.record_key)
                    breakdown["added"].add(entry.ens_name)
                elif entry.operation == AuditOperation.DELETE:
                    data["removed"].add(entry.record_key)
                    breakdown["removed"].add(entry.ens_name)

            elif entry.operation == AuditOperation.INSERT:
                data["created"] += 1
            elif entry.operation == AuditOperation.DELETE:
                data["deleted"] += 1
            elif has_meaningful_changes(entry):
                data["updated"].add(entry.record_key)

        return [
            {
                "actor": actor,
                "added": len(data["added"]),
                "removed": len(data["removed"]),
                "created": data["created"],
                "updated": len(data["updated"]),
                "deleted": data["deleted"],
                "category_breakdown": {
                    category: {"added": len(b["added"]), "removed": len(b["removed"])}
                    for category, b in data["breakdown"].items()
                },
            }
            for actor, data in actors.items()
        ]

    @staticmethod
    async def get_summary(days: int = 7) -> dict:
        """
        Per-actor activity summary for the last N days

        Args:
            days: Number of days to analyze

        Returns:
            Summary with one row per actor
        """
        since = datetime.now(timezone.utc) - timedelta(days=days)

        rows = await database.fetch_all(
            """
            SELECT
                id, table_name, operation, record_key, old_data, new_data,
                actor_address, db_user, created_at
            FROM clubs_audit_log
            WHERE created_at >= :since AND actor_address IS NOT NULL
            ORDER BY actor_address, created_at DESC
            """,
            {"since": since}
        )

        entries = [AuditLogEntry.model_validate(dict(row)) for row in rows]
        return {
            "period_days": days,
            "actors": ActivityLogService.summarize(entries),
        }


# Create singleton instance
activity_log_service = ActivityLogService()
