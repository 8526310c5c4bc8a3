"""
Invalid Name Scanner
Finds names in a category that no longer pass validation
"""

import logging
from typing import Optional

from fastapi import HTTPException, status

from cats_admin.config import settings
from cats_admin.database import database
from cats_admin.services.name_normalizer import normalize_name, ETH_SUFFIX

logger = logging.getLogger(__name__)


def invalid_reason(name: str, min_label_length: Optional[int] = None) -> Optional[str]:
    """
    Why a stored name is invalid, or None if it is fine

    A name can normalize cleanly and still be too short to register.
    """
    minimum = min_label_length if min_label_length is not None else settings.MIN_LABEL_LENGTH

    if normalize_name(name) is None:
        return "Failed ENS normalization"

    if name.endswith(ETH_SUFFIX):
        label = name[: -len(ETH_SUFFIX)]
        if len(label) < minimum:
            return f"Too short ({len(label)} chars, minimum is {minimum})"

    return None


async def scan(category: str) -> dict:
    """
    Scan every name in a category

    Read only; results feed the manual cleanup flow.

    Raises:
        HTTPException: 404 if the category does not exist
    """
    existing = await database.fetch_one(
        "SELECT name FROM clubs WHERE name = :name",
        {"name": category}
    )

    if not existing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found"
        )

    memberships = await database.fetch_all(
        """
        SELECT ens_name, added_at
        FROM club_memberships
        WHERE club_name = :name
        ORDER BY ens_name
        """,
        {"name": category}
    )

    invalid_names = []
    for membership in memberships:
        reason = invalid_reason(membership["ens_name"])
        if reason:
            invalid_names.append({
                "name": membership["ens_name"],
                "reason": reason,
                "added_at": membership["added_at"],
            })

    logger.info(
        f"[invalid-names] Scanned {len(memberships)} names in \"{category}\", "
        f"found {len(invalid_names)} invalid"
    )

    return {
        "success": True,
        "category": category,
        "total_scanned": len(memberships),
        "invalid_count": len(invalid_names),
        "invalid_names": invalid_names,
    }
