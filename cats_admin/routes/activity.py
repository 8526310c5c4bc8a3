"""
Activity Routes
Audit log listing, actors and per-actor summaries
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from cats_admin.auth import get_admin
from cats_admin.schemas.activity_log import (
    ActivityFilters,
    ActivityLogResponse,
    ActivitySummaryResponse,
    ActorInfo,
    AuditOperation,
    AuditTable,
)
from cats_admin.services.activity_aggregator import group_entries
from cats_admin.services.activity_log_service import activity_log_service
from cats_admin.services.address_resolver import AddressResolver, get_address_resolver

router = APIRouter()


@router.get("", response_model=ActivityLogResponse)
async def list_activity(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    table: Optional[AuditTable] = Query(None, description="clubs or club_memberships"),
    operation: Optional[AuditOperation] = Query(None),
    actor: Optional[str] = Query(None, description="Admin wallet address"),
    hide_system: bool = Query(False, description="Hide changes with no actor"),
    category: Optional[str] = Query(None),
    name: Optional[str] = Query(None, description="ENS name"),
    days: Optional[int] = Query(None, ge=1, le=365),
    current_admin: dict = Depends(get_admin)
):
    """
    Audit log entries, newest first, with display grouping

    `groups` pairs membership changes with the counter update they
    triggered and hides bookkeeping-only category updates.
    """
    filters = ActivityFilters(
        table=table,
        operation=operation,
        actor=actor,
        hide_system=hide_system,
        category=category,
        name=name,
        days=days,
    )

    entries, pagination = await activity_log_service.list_entries(filters, page, limit)

    return ActivityLogResponse(
        entries=entries,
        groups=group_entries(entries),
        pagination=pagination
    )


@router.get("/actors", response_model=List[ActorInfo])
async def list_actors(
    current_admin: dict = Depends(get_admin),
    resolver: AddressResolver = Depends(get_address_resolver)
):
    """Admins that appear in the audit log, with their ENS names"""
    actors = await activity_log_service.list_actors()
    names = await resolver.resolve_many(actors)
    return [{"address": a, "ens_name": names.get(a.lower())} for a in actors]


@router.get("/summary", response_model=ActivitySummaryResponse)
async def activity_summary(
    days: int = Query(7, ge=1, le=365, description="Number of days to analyze"),
    current_admin: dict = Depends(get_admin),
    resolver: AddressResolver = Depends(get_address_resolver)
):
    """Per-admin activity over the last N days"""
    summary = await activity_log_service.get_summary(days)
    names = await resolver.resolve_many(row["actor"] for row in summary["actors"])
    for row in summary["actors"]:
        row["ens_name"] = names.get(row["actor"])
    return summary
