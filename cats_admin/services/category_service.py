"""
Category Service
Business logic for category management
"""

import asyncio
import logging
import math
from typing import List, Optional, Tuple

from fastapi import HTTPException, status

from cats_admin.database import database, actor_transaction
from cats_admin.schemas.category import CreateCategoryRequest, UpdateCategoryRequest
from cats_admin.services.grails_client import grails_client
from cats_admin.services.image_validator import image_validator
from cats_admin.services.storage_service import StorageService

logger = logging.getLogger(__name__)

IMAGE_TYPES = ("avatar", "header")

CATEGORY_COLUMNS = """
    name,
    display_name,
    description,
    member_count AS name_count,
    COALESCE(classifications, ARRAY[]::TEXT[]) AS classifications,
    avatar_image_key,
    header_image_key,
    created_at,
    updated_at
"""


def image_url(name: str, image_type: str) -> str:
    return f"/api/cats/{name}/images?type={image_type}"


def _with_image_urls(row) -> dict:
    category = dict(row)
    category["classifications"] = list(category.get("classifications") or [])
    for image_type in IMAGE_TYPES:
        key = category.get(f"{image_type}_image_key")
        category[f"{image_type}_url"] = image_url(category["name"], image_type) if key else None
    return category


def _key_column(image_type: str) -> str:
    if image_type not in IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='type must be "avatar" or "header"'
        )
    return f"{image_type}_image_key"


class CategoryService:
    """Service for category management operations"""

    @staticmethod
    async def list_categories() -> dict:
        """List all categories by name"""

        categories = await database.fetch_all(
            f"SELECT {CATEGORY_COLUMNS} FROM clubs ORDER BY name ASC"
        )

        return {
            "total": len(categories),
            "categories": [_with_image_urls(c) for c in categories]
        }

    @staticmethod
    async def get_category(name: str, page: int = 1, limit: int = 50) -> dict:
        """Get a category with one page of its names, newest first"""

        category = await database.fetch_one(
            f"SELECT {CATEGORY_COLUMNS} FROM clubs WHERE name = :name",
            {"name": name}
        )

        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )

        names = await database.fetch_all(
            """
            SELECT ens_name, added_at
            FROM club_memberships
            WHERE club_name = :name
            ORDER BY added_at DESC, ens_name
            LIMIT :limit OFFSET :offset
            """,
            {"name": name, "limit": limit, "offset": (page - 1) * limit}
        )

        result = _with_image_urls(category)
        total = result["name_count"] or 0
        result["names"] = [dict(n) for n in names]
        result["pagination"] = {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) or 1,
        }
        return result

    @staticmethod
    async def create_category(
        data: CreateCategoryRequest,
        actor_address: str,
        images: Optional[List[Tuple[str, bytes, str]]] = None
    ) -> dict:
        """
        Create a new category, optionally with avatar/header images

        Args:
            data: Validated category fields
            actor_address: Admin wallet recorded by the audit trigger
            images: (type, content, content type) tuples to upload

        Raises:
            HTTPException: 400 for a bad image, 409 if the name is taken
        """
        images = [img for img in (images or []) if img[1]]

        for image_type, content, content_type in images:
            error = image_validator.validate(content, content_type)
            if error:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{image_type.capitalize()}: {error}"
                )

        existing = await database.fetch_one(
            "SELECT name FROM clubs WHERE name = :name",
            {"name": data.name}
        )

        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Category already exists"
            )

        classifications = [c.value for c in data.classifications]

        # The row is written only after its image objects exist
        keys = {"avatar_image_key": None, "header_image_key": None}
        uploaded: List[str] = []
        try:
            if images and StorageService.is_enabled():
                for image_type, content, content_type in images:
                    key = f"clubs/{data.name}/{image_type}.{image_validator.extension_for(content_type)}"
                    await StorageService.upload_bytes(key, content, content_type)
                    uploaded.append(key)
                    keys[f"{image_type}_image_key"] = key

            async with actor_transaction(actor_address) as db:
                created = await db.fetch_one(
                    f"""
                    INSERT INTO clubs (name, display_name, description, classifications,
                                       avatar_image_key, header_image_key, member_count, created_at, updated_at)
                    VALUES (:name, :display_name, :description, :classifications,
                            :avatar_image_key, :header_image_key, 0, NOW(), NOW())
                    RETURNING {CATEGORY_COLUMNS}
                    """,
                    {
                        "name": data.name,
                        "display_name": data.display_name or None,
                        "description": data.description or None,
                        "classifications": classifications or None,
                        **keys,
                    }
                )
        except Exception:
            for key in uploaded:
                await StorageService.delete_quietly(key)
            raise

        category = _with_image_urls(created)

        logger.info(f"[cats] Created category: {data.name} by {actor_address}")
        return category

    @staticmethod
    async def update_category(name: str, data: UpdateCategoryRequest, actor_address: str) -> dict:
        """Update the fields that were provided; the rest stay as they are"""

        existing = await database.fetch_one(
            "SELECT name FROM clubs WHERE name = :name",
            {"name": name}
        )

        if not existing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )

        changes = data.model_dump(exclude_unset=True)
        if "classifications" in changes:
            changes["classifications"] = [c.value for c in data.classifications or []] or None
        for field in ("display_name", "description"):
            if field in changes:
                changes[field] = changes[field] or None

        set_clause = ", ".join([f"{column} = :{column}" for column in changes] + ["updated_at = NOW()"])

        async with actor_transaction(actor_address) as db:
            updated = await db.fetch_one(
                f"UPDATE clubs SET {set_clause} WHERE name = :name RETURNING {CATEGORY_COLUMNS}",
                {"name": name, **changes}
            )

        logger.info(f"[cats] Updated category: {name} ({', '.join(changes) or 'no fields'}) by {actor_address}")
        return _with_image_urls(updated)

    @staticmethod
    async def delete_category(name: str, actor_address: str) -> dict:
        """
        Delete a category and its memberships

        Memberships go through the FK cascade, so each one is audit logged
        under the same actor.
        """

        async with actor_transaction(actor_address) as db:
            deleted = await db.fetch_one(
                "DELETE FROM clubs WHERE name = :name RETURNING avatar_image_key, header_image_key",
                {"name": name}
            )

        if not deleted:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )

        if StorageService.is_enabled():
            for key in (deleted["avatar_image_key"], deleted["header_image_key"]):
                if key:
                    await StorageService.delete_quietly(key)

        logger.info(f"[cats] Deleted category: {name} by {actor_address}")
        return {"success": True, "message": f"Category {name} deleted"}

    @staticmethod
    async def get_image(name: str, image_type: str) -> Tuple[bytes, str]:
        """Image bytes and content type for a category"""
        key_column = _key_column(image_type)
        StorageService.ensure_configured()

        category = await database.fetch_one(
            f"SELECT {key_column} FROM clubs WHERE name = :name",
            {"name": name}
        )

        if not category or not category[key_column]:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found"
            )

        stored = await StorageService.fetch_object(category[key_column])
        if stored is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found in storage"
            )
        return stored

    @staticmethod
    async def upload_image(
        name: str,
        image_type: str,
        content: bytes,
        content_type: Optional[str],
        actor_address: str
    ) -> dict:
        """
        Upload or replace a category image

        A replaced object stored under a different key is deleted
        best-effort after the upload.
        """
        key_column = _key_column(image_type)
        StorageService.ensure_configured()

        error = image_validator.validate(content, content_type)
        if error:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=error
            )

        category = await database.fetch_one(
            "SELECT name, avatar_image_key, header_image_key FROM clubs WHERE name = :name",
            {"name": name}
        )

        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )

        old_key = category[key_column]
        new_key = f"clubs/{name}/{image_type}.{image_validator.extension_for(content_type)}"
        await StorageService.upload_bytes(new_key, content, content_type)

        if old_key and old_key != new_key:
            await StorageService.delete_quietly(old_key)

        async with actor_transaction(actor_address) as db:
            await db.execute(
                f"UPDATE clubs SET {key_column} = :key, updated_at = NOW() WHERE name = :name",
                {"name": name, "key": new_key}
            )

        logger.info(f"[images] Uploaded {image_type} for {name} by {actor_address}")

        keys = {
            "avatar_image_key": category["avatar_image_key"],
            "header_image_key": category["header_image_key"],
            key_column: new_key,
        }
        return {
            "success": True,
            key_column: new_key,
            "avatar_url": image_url(name, "avatar") if keys["avatar_image_key"] else None,
            "header_url": image_url(name, "header") if keys["header_image_key"] else None,
        }

    @staticmethod
    async def delete_image(name: str, image_type: str, actor_address: str) -> dict:
        """Remove a category image and clear its key"""
        key_column = _key_column(image_type)

        category = await database.fetch_one(
            "SELECT name, avatar_image_key, header_image_key FROM clubs WHERE name = :name",
            {"name": name}
        )

        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )

        existing_key = category[key_column]
        if not existing_key:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No {image_type} image to delete"
            )

        if StorageService.is_enabled():
            await StorageService.delete_quietly(existing_key)

        async with actor_transaction(actor_address) as db:
            await db.execute(
                f"UPDATE clubs SET {key_column} = NULL, updated_at = NOW() WHERE name = :name",
                {"name": name}
            )

        logger.info(f"[images] Deleted {image_type} for {name} by {actor_address}")
        return {"success": True}

    @staticmethod
    async def get_stats() -> dict:
        """Dashboard statistics"""

        total_categories, categories_last_30d, names_in_categories, recent, total_names = await asyncio.gather(
            database.fetch_val("SELECT COUNT(*) FROM clubs"),
            database.fetch_val("SELECT COUNT(*) FROM clubs WHERE created_at >= NOW() - INTERVAL '30 days'"),
            database.fetch_val("SELECT COALESCE(SUM(member_count), 0) FROM clubs"),
            database.fetch_all(
                """
                SELECT name, description, member_count AS name_count, created_at
                FROM clubs
                ORDER BY created_at DESC
                LIMIT 5
                """
            ),
            grails_client.fetch_total_names(),
        )

        names_in_categories = int(names_in_categories or 0)
        percent = f"{names_in_categories / total_names * 100:.2f}" if total_names > 0 else "0"

        return {
            "total_categories": int(total_categories or 0),
            "categories_last_30d": int(categories_last_30d or 0),
            "names_in_categories": names_in_categories,
            "total_names": total_names,
            "percent_in_categories": percent,
            "recent_categories": [dict(r) for r in recent],
        }


# Create singleton instance
category_service = CategoryService()
