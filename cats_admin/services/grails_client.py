"""
Grails Marketplace Client
Upstream marketplace API: name lookups, signature verification, market totals
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import HTTPException, status

from cats_admin.config import settings

logger = logging.getLogger(__name__)


class GrailsClient:
    """Thin httpx wrapper around the marketplace API and site"""

    @staticmethod
    def _timeout() -> httpx.Timeout:
        return httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS)

    @staticmethod
    async def verify_signature(message: str, signature: str) -> dict:
        """
        Forward a signed login message to the marketplace auth endpoint

        Returns:
            Dict with the verified wallet `address` and upstream `token`

        Raises:
            HTTPException: upstream status on rejection, 502 on a malformed reply
        """
        async with httpx.AsyncClient(timeout=GrailsClient._timeout()) as client:
            resp = await client.post(
                f"{settings.GRAILS_API_URL}/auth/verify",
                json={"message": message, "signature": signature}
            )

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code >= 400:
            raise HTTPException(
                status_code=resp.status_code,
                detail=data.get("error") or "Failed to verify signature"
            )

        payload = data.get("data") or {}
        token = payload.get("token") or data.get("token")
        address = (payload.get("user") or {}).get("address") or payload.get("address")

        if not token or not address:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Invalid response from auth server"
            )

        return {"address": address, "token": token}

    @staticmethod
    async def fetch_name(name: str) -> Optional[dict]:
        """
        Look up a name on the marketplace

        Returns:
            The upstream `data` object, or None if the marketplace does not
            know the name
        """
        url = f"{settings.GRAILS_API_URL}/names/{quote(name, safe='')}"

        async with httpx.AsyncClient(timeout=GrailsClient._timeout()) as client:
            resp = await client.get(url, headers={"Accept": "application/json"})

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to fetch name from backend"
            )

        data = resp.json()
        if not data.get("success"):
            return None
        return data.get("data")

    @staticmethod
    async def fetch_total_names() -> int:
        """Total names tracked by the marketplace; 0 when unavailable"""
        try:
            async with httpx.AsyncClient(timeout=GrailsClient._timeout()) as client:
                resp = await client.get(
                    f"{settings.GRAILS_API_URL}/analytics/market",
                    params={"period": "all"}
                )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[stats] Market totals unavailable: {e}")
            return 0

        overview = (data.get("data") or {}).get("overview") or {}
        return int(overview.get("total_names") or 0)

    @staticmethod
    async def _exists(client: httpx.AsyncClient, url: str) -> bool:
        try:
            resp = await client.head(url)
        except httpx.HTTPError:
            return False
        return resp.is_success

    @staticmethod
    async def check_category_live(slug: str) -> dict:
        """
        Check whether the marketplace site serves the category's images

        A category is live once both an avatar and a header are reachable.
        """
        base = f"{settings.GRAILS_SITE_URL.rstrip('/')}/clubs/{quote(slug, safe='')}"
        header_urls = [f"{base}/header.{ext}" for ext in ("jpeg", "jpg", "png")]

        async with httpx.AsyncClient(timeout=httpx.Timeout(5.0), follow_redirects=True) as client:
            avatar, *headers = await asyncio.gather(
                GrailsClient._exists(client, f"{base}/avatar.jpg"),
                *(GrailsClient._exists(client, url) for url in header_urls),
            )

        header = any(headers)
        return {
            "slug": slug,
            "is_live": avatar and header,
            "checks": {"avatar": avatar, "header": header},
        }


# Singleton
grails_client = GrailsClient()
