"""
Storage Service
Supabase Storage integration for category avatar/header images
"""

from typing import Optional, Tuple
import logging
import httpx
from fastapi import HTTPException, status
from cats_admin.config import settings

logger = logging.getLogger(__name__)


class StorageService:
    """Supabase Storage helper; objects are addressed by opaque keys"""

    @staticmethod
    def is_enabled() -> bool:
        return bool(settings.SUPABASE_URL and settings.SUPABASE_KEY and settings.STORAGE_BUCKET)

    @staticmethod
    def ensure_configured():
        if not StorageService.is_enabled():
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Storage is not configured"
            )

    @staticmethod
    def _object_url(key: str) -> str:
        base = settings.SUPABASE_URL.rstrip("/")
        return f"{base}/storage/v1/object/{settings.STORAGE_BUCKET}/{key}"

    @staticmethod
    def _auth_headers() -> dict:
        return {
            "Authorization": f"Bearer {settings.SUPABASE_KEY}",
            "apikey": settings.SUPABASE_KEY,
        }

    @staticmethod
    async def upload_bytes(key: str, content: bytes, content_type: str) -> str:
        StorageService.ensure_configured()

        headers = {
            **StorageService._auth_headers(),
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "true"
        }

        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.post(StorageService._object_url(key), headers=headers, content=content)

        if resp.status_code not in (200, 201):
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Storage upload failed: {resp.text}"
            )

        return key

    @staticmethod
    async def fetch_object(key: str) -> Optional[Tuple[bytes, str]]:
        """Return (content, content type), or None if the object is missing"""
        StorageService.ensure_configured()

        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.get(StorageService._object_url(key), headers=StorageService._auth_headers())

        if resp.status_code in (400, 404):
            return None
        if resp.status_code != 200:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Storage read failed: {resp.text}"
            )
        return resp.content, resp.headers.get("content-type", "application/octet-stream")

    @staticmethod
    async def delete_path(key: str) -> None:
        StorageService.ensure_configured()

        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.delete(StorageService._object_url(key), headers=StorageService._auth_headers())

        if resp.status_code not in (200, 204, 404):
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Storage delete failed: {resp.text}"
            )

    @staticmethod
    async def delete_quietly(key: str) -> None:
        """Delete an object, logging instead of failing"""
        try:
            await StorageService.delete_path(key)
        except (HTTPException, httpx.HTTPError) as e:
            logger.warning(f"[images] Failed to delete {key}: {e}")
