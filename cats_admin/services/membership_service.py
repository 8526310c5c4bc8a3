"""
Membership Service
Bulk add/remove of ENS names in a category
"""

import logging
from typing import List

from fastapi import HTTPException, status

from cats_admin.config import settings
from cats_admin.database import database, actor_transaction
from cats_admin.services.name_normalizer import check_name, safe_normalize_name

logger = logging.getLogger(__name__)


class MembershipService:
    """Service for category membership operations"""

    @staticmethod
    def _check_batch_size(names: List[str]) -> None:
        if len(names) > settings.MAX_BULK_NAMES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "batch_too_large",
                    "error": f"Too many names ({len(names)}). Maximum is {settings.MAX_BULK_NAMES} per request.",
                    "limit": settings.MAX_BULK_NAMES,
                }
            )

    @staticmethod
    async def _require_category(category: str) -> None:
        existing = await database.fetch_one(
            "SELECT name FROM clubs WHERE name = :name",
            {"name": category}
        )

        if not existing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )

    @staticmethod
    async def _find_known_names(names: List[str]) -> set:
        """Lowercased names that exist in the ens_names directory"""
        if not names:
            return set()

        rows = await database.fetch_all(
            "SELECT name FROM ens_names WHERE LOWER(name) = ANY(:names)",
            {"names": [n.lower() for n in names]}
        )
        return {row["name"].lower() for row in rows}

    @staticmethod
    async def add_names(category: str, names: List[str], actor_address: str) -> dict:
        """
        Add names to a category

        The batch is validated as a whole: if any name fails normalization,
        is not given in its canonical spelling or is unknown to the name
        directory, nothing is written. Bare labels get the .eth suffix.
        Names that are already members are skipped, not errors.

        Args:
            category: Category name
            names: Names as submitted
            actor_address: Admin wallet recorded by the audit trigger

        Returns:
            Counts of added and skipped names

        Raises:
            HTTPException: 400 for oversized or invalid batches, 404 for an
                unknown category
        """
        MembershipService._check_batch_size(names)
        await MembershipService._require_category(category)

        normalized: List[str] = []
        invalid_format: List[str] = []
        not_canonical: List[dict] = []
        for raw in names:
            result = check_name(raw)
            if not result.is_valid:
                invalid_format.append(raw)
            elif not result.is_canonical:
                not_canonical.append({"name": raw, "normalized": result.normalized, "reason": result.reason})
            else:
                normalized.append(result.normalized)

        known = await MembershipService._find_known_names(normalized)
        not_in_database = [n for n in normalized if n.lower() not in known]

        invalid_names = invalid_format + [n["name"] for n in not_canonical] + not_in_database
        if invalid_names:
            logger.info(
                f"[cats] Rejected add to {category}: "
                f"{len(invalid_format)} invalid format, {len(not_canonical)} not canonical, "
                f"{len(not_in_database)} not in database"
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "invalid_names",
                    "error": "Some ENS names are not valid or not found",
                    "valid_names": [n for n in normalized if n.lower() in known],
                    "invalid_names": invalid_names,
                    "details": {
                        "invalid_format": invalid_format,
                        "not_canonical": not_canonical,
                        "not_in_database": not_in_database,
                    },
                }
            )

        added = 0
        async with actor_transaction(actor_address) as db:
            for name in normalized:
                inserted = await db.fetch_one(
                    """
                    INSERT INTO club_memberships (club_name, ens_name, added_at)
                    VALUES (:club_name, :ens_name, NOW())
                    ON CONFLICT (club_name, ens_name) DO NOTHING
                    RETURNING ens_name
                    """,
                    {"club_name": category, "ens_name": name}
                )
                if inserted:
                    added += 1

        # member_count is maintained by the update_club_member_count trigger
        skipped = len(normalized) - added
        logger.info(f"[cats] Added {added} names to {category} ({skipped} already present) by {actor_address}")

        return {
            "success": True,
            "message": f"Added {added} names",
            "added": added,
            "skipped": skipped,
        }

    @staticmethod
    def _removal_keys(names: List[str]) -> List[str]:
        """
        Lowercased spellings to match stored names against

        Names that no longer normalize are still matched on their trimmed,
        lowercased form so they can be cleaned up.
        """
        keys = []
        for raw in names:
            for key in (safe_normalize_name(raw), (raw or "").strip().lower()):
                if key and key not in keys:
                    keys.append(key)
        return keys

    @staticmethod
    async def remove_names(category: str, names: List[str], actor_address: str) -> dict:
        """
        Remove names from a category

        Names that are not members are ignored.

        Returns:
            Number of memberships actually deleted
        """
        MembershipService._check_batch_size(names)
        await MembershipService._require_category(category)

        keys = MembershipService._removal_keys(names)
        if not keys:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No valid names provided"
            )

        async with actor_transaction(actor_address) as db:
            deleted = await db.fetch_all(
                """
                DELETE FROM club_memberships
                WHERE club_name = :club_name AND LOWER(ens_name) = ANY(:names)
                RETURNING ens_name
                """,
                {"club_name": category, "names": keys}
            )

        removed = len(deleted)
        logger.info(f"[cats] Removed {removed} names from {category} by {actor_address}")

        return {
            "success": True,
            "message": f"Removed {removed} names",
            "removed": removed,
        }

    @staticmethod
    async def remove_name_from_categories(name: str, categories: List[str], actor_address: str) -> dict:
        """
        Remove one name from several categories

        Works for orphaned names that are not in the name directory.

        Raises:
            HTTPException: 404 if the name is not in any category
        """
        keys = MembershipService._removal_keys([name])

        stored = await database.fetch_one(
            "SELECT ens_name FROM club_memberships WHERE LOWER(ens_name) = ANY(:names) LIMIT 1",
            {"names": keys}
        )

        if not stored:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="ENS name not found in any category"
            )

        db_name = stored["ens_name"]
        removed = 0
        async with actor_transaction(actor_address) as db:
            for category in categories:
                deleted = await db.fetch_all(
                    """
                    DELETE FROM club_memberships
                    WHERE club_name = :club_name AND LOWER(ens_name) = ANY(:names)
                    RETURNING ens_name
                    """,
                    {"club_name": category, "names": [db_name.lower()]}
                )
                if deleted:
                    removed += 1

        logger.info(f"[names] Removed {removed} categories from {db_name} by {actor_address}")

        return {
            "success": True,
            "message": f"Removed {removed} category membership(s)",
            "removed": removed,
        }


# Create singleton instance
membership_service = MembershipService()
