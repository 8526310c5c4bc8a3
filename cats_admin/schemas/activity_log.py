"""
Activity Log Schemas
Audit log entries, grouped events and summaries
"""

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from enum import Enum
from typing import Annotated, Optional, List, Dict, Literal, Union
import json


class AuditTable(str, Enum):
    """Tables covered by the audit trigger"""
    CATEGORIES = "clubs"
    MEMBERSHIPS = "club_memberships"


class AuditOperation(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class CategorySnapshot(BaseModel):
    """Row image of a clubs row"""
    model_config = {"extra": "ignore"}

    kind: Literal["category"] = "category"
    name: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    classifications: Optional[List[str]] = None
    member_count: Optional[int] = None
    last_sales_update: Optional[datetime] = None
    avatar_image_key: Optional[str] = None
    header_image_key: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MembershipSnapshot(BaseModel):
    """Row image of a club_memberships row"""
    model_config = {"extra": "ignore"}

    kind: Literal["membership"] = "membership"
    club_name: Optional[str] = None
    ens_name: Optional[str] = None
    added_at: Optional[datetime] = None


RowSnapshot = Annotated[Union[CategorySnapshot, MembershipSnapshot], Field(discriminator="kind")]

SNAPSHOT_KINDS = {
    AuditTable.CATEGORIES.value: "category",
    AuditTable.MEMBERSHIPS.value: "membership",
}


class AuditLogEntry(BaseModel):
    """Single audit log row"""
    model_config = {"from_attributes": True}

    id: int
    table_name: AuditTable
    operation: AuditOperation
    record_key: str
    old_data: Optional[RowSnapshot] = None
    new_data: Optional[RowSnapshot] = None
    actor_address: Optional[str] = None
    db_user: Optional[str] = None
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def tag_snapshots(cls, data):
        """Parse JSON snapshots and tag them with the table's snapshot kind"""
        data = dict(data)

        table = data.get("table_name")
        table = table.value if isinstance(table, AuditTable) else table
        kind = SNAPSHOT_KINDS.get(table)

        for key in ("old_data", "new_data"):
            value = data.get(key)
            if isinstance(value, str):
                value = json.loads(value)
            if isinstance(value, dict) and kind:
                value = {**value, "kind": kind}
            data[key] = value
        return data

    @property
    def category_name(self) -> str:
        """Category this entry belongs to"""
        if self.table_name == AuditTable.MEMBERSHIPS:
            return self.record_key.split(":", 1)[0]
        return self.record_key

    @property
    def ens_name(self) -> Optional[str]:
        if self.table_name == AuditTable.MEMBERSHIPS and ":" in self.record_key:
            return self.record_key.split(":", 1)[1]
        return None


class FieldChange(BaseModel):
    """One rendered change, field: old -> new"""
    field: str
    old: Optional[str] = None
    new: Optional[str] = None


class GroupedEvent(BaseModel):
    """A primary change plus the changes it triggered"""
    main: AuditLogEntry
    sub_events: List[AuditLogEntry] = Field(default_factory=list)
    description: str
    changes: List[FieldChange] = Field(default_factory=list)


class ActivityFilters(BaseModel):
    """Filters for the audit log listing"""
    table: Optional[AuditTable] = None
    operation: Optional[AuditOperation] = None
    actor: Optional[str] = None
    hide_system: bool = False
    category: Optional[str] = None
    name: Optional[str] = None
    days: Optional[int] = Field(None, ge=1)


class ActivityPagination(BaseModel):
    page: int
    limit: int
    total_entries: int
    total_pages: int


class ActivityLogResponse(BaseModel):
    """Response with paginated audit log entries and their grouping"""
    entries: List[AuditLogEntry]
    groups: List[GroupedEvent]
    pagination: ActivityPagination


class ActorInfo(BaseModel):
    address: str
    ens_name: Optional[str] = None


class CategoryBreakdown(BaseModel):
    added: int = 0
    removed: int = 0


class ActorSummary(BaseModel):
    """What one admin did over the summary period"""
    actor: str
    ens_name: Optional[str] = None
    added: int
    removed: int
    created: int
    updated: int
    deleted: int
    category_breakdown: Dict[str, CategoryBreakdown]


class ActivitySummaryResponse(BaseModel):
    period_days: int
    actors: List[ActorSummary]
