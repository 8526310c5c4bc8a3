"""
Activity Aggregation
Groups raw audit log rows into display-ready events
"""

import json
from datetime import timedelta
from typing import Iterable, List, Optional, Set

from cats_admin.config import settings
from cats_admin.schemas.activity_log import (
    AuditLogEntry,
    AuditOperation,
    AuditTable,
    FieldChange,
    GroupedEvent,
)

# Columns the triggers touch on their own; a change limited to these is bookkeeping
BOOKKEEPING_FIELDS = frozenset({"created_at", "updated_at", "member_count", "last_sales_update"})

# Also hidden when listing the fields of a newly created category
INSERT_HIDDEN_FIELDS = BOOKKEEPING_FIELDS | {"name", "kind"}

DESCRIPTIONS = {
    (AuditTable.CATEGORIES, AuditOperation.INSERT): "Created category",
    (AuditTable.CATEGORIES, AuditOperation.UPDATE): "Updated category",
    (AuditTable.CATEGORIES, AuditOperation.DELETE): "Deleted category",
    (AuditTable.MEMBERSHIPS, AuditOperation.INSERT): "Added name to category",
    (AuditTable.MEMBERSHIPS, AuditOperation.UPDATE): "Updated membership",
    (AuditTable.MEMBERSHIPS, AuditOperation.DELETE): "Removed name from category",
}


def _canonical(value) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _snapshot_dict(snapshot) -> dict:
    if snapshot is None:
        return {}
    data = snapshot.model_dump(mode="json")
    data.pop("kind", None)
    return data


def changed_fields(entry: AuditLogEntry, ignore: Iterable[str] = BOOKKEEPING_FIELDS) -> List[str]:
    """
    Keys whose value differs between old_data and new_data

    Compares the union of keys on both sides by canonical JSON, so a key
    present on only one side counts as changed. Ignored keys never count.
    """
    old = _snapshot_dict(entry.old_data)
    new = _snapshot_dict(entry.new_data)
    ignored = set(ignore)

    keys = sorted((set(old) | set(new)) - ignored)
    return [key for key in keys if _canonical(old.get(key)) != _canonical(new.get(key))]


def has_meaningful_changes(entry: AuditLogEntry) -> bool:
    return bool(changed_fields(entry))


def _display(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return _canonical(value)
    return str(value)


def describe_changes(entry: AuditLogEntry) -> List[FieldChange]:
    """Rows to render as "field: old -> new" for one entry"""
    # For membership changes the record key tells the story
    if entry.table_name == AuditTable.MEMBERSHIPS:
        return []

    if entry.operation == AuditOperation.INSERT:
        new = _snapshot_dict(entry.new_data)
        return [
            FieldChange(field=key, old=None, new=_display(value))
            for key, value in new.items()
            if key not in INSERT_HIDDEN_FIELDS and value not in (None, "", [])
        ]

    if entry.operation == AuditOperation.DELETE:
        return []

    old = _snapshot_dict(entry.old_data)
    new = _snapshot_dict(entry.new_data)
    return [
        FieldChange(field=key, old=_display(old.get(key)), new=_display(new.get(key)))
        for key in changed_fields(entry)
    ]


def _same_actor(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return a.lower() == b.lower()


def _event(entry: AuditLogEntry, sub_events: Optional[List[AuditLogEntry]] = None) -> GroupedEvent:
    return GroupedEvent(
        main=entry,
        sub_events=sub_events or [],
        description=DESCRIPTIONS.get((entry.table_name, entry.operation), entry.operation.value),
        changes=describe_changes(entry),
    )


def group_entries(
    entries: List[AuditLogEntry],
    window_ms: Optional[int] = None,
) -> List[GroupedEvent]:
    """
    Group a page of audit rows (newest first) into events

    - A membership change absorbs at most one bookkeeping-only UPDATE of the
      same category by the same actor within the window: the member_count
      bump it caused.
    - A category UPDATE that only touched bookkeeping columns is otherwise
      dropped; one with real edits is always its own event.
    - Everything else is its own event.

    Each row is used once, and event order follows the input order.
    """
    window = timedelta(milliseconds=window_ms if window_ms is not None else settings.ACTIVITY_GROUP_WINDOW_MS)
    processed: Set[int] = set()
    groups: List[GroupedEvent] = []

    for entry in entries:
        if entry.id in processed:
            continue

        if entry.table_name == AuditTable.MEMBERSHIPS:
            processed.add(entry.id)
            triggered = next(
                (
                    other for other in entries
                    if other.id not in processed
                    and other.table_name == AuditTable.CATEGORIES
                    and other.operation == AuditOperation.UPDATE
                    and other.record_key == entry.category_name
                    and _same_actor(other.actor_address, entry.actor_address)
                    and abs(other.created_at - entry.created_at) < window
                    and not has_meaningful_changes(other)
                ),
                None,
            )
            if triggered is not None:
                processed.add(triggered.id)
            groups.append(_event(entry, [triggered] if triggered else []))

        elif entry.table_name == AuditTable.CATEGORIES and entry.operation == AuditOperation.UPDATE:
            # Bookkeeping-only updates stay unclaimed so an older membership
            # row on the page can still absorb them
            if has_meaningful_changes(entry):
                processed.add(entry.id)
                groups.append(_event(entry))

        else:
            processed.add(entry.id)
            groups.append(_event(entry))

    return groups
