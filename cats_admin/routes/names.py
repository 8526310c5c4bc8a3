"""
Name Routes
ENS name lookup and per-name category removal
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from cats_admin.auth import get_admin
from cats_admin.config import settings
from cats_admin.database import database
from cats_admin.schemas.membership import RemoveCategoriesRequest, RemoveMembersResponse
from cats_admin.services.grails_client import grails_client
from cats_admin.services.membership_service import membership_service
from cats_admin.services.name_normalizer import normalize_name, safe_normalize_name

logger = logging.getLogger(__name__)

router = APIRouter()

# Fields passed through from the marketplace record
NAME_FIELDS = (
    "name", "token_id", "owner", "expiry_date", "registration_date", "clubs",
    "has_numbers", "has_emoji", "listings", "highest_offer_wei", "highest_offer_currency",
    "last_sale_price", "last_sale_price_usd", "last_sale_currency", "last_sale_date",
    "view_count", "watchers_count",
)


async def _local_name_data(name: str):
    """Categories for a name from the local tables, or None if unknown here"""
    ens_name = await database.fetch_one(
        "SELECT name, clubs FROM ens_names WHERE LOWER(name) = LOWER(:name)",
        {"name": name}
    )

    if ens_name:
        return {"name": ens_name["name"], "clubs": list(ens_name["clubs"] or [])}

    # Orphaned names are only present in memberships
    memberships = await database.fetch_all(
        "SELECT DISTINCT club_name FROM club_memberships WHERE LOWER(ens_name) = LOWER(:name) ORDER BY club_name",
        {"name": name}
    )

    if memberships:
        return {"name": name, "clubs": [m["club_name"] for m in memberships]}

    return None


@router.get("/{name}")
async def get_name(name: str, current_admin: dict = Depends(get_admin)):
    """
    Name details from the marketplace, falling back to local data

    Names that no longer normalize are looked up by their lowercased form.
    """
    normalized = normalize_name(name) or safe_normalize_name(name)

    if not settings.GRAILS_API_URL:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="GRAILS_API_URL not configured"
        )

    data = await grails_client.fetch_name(normalized)
    if data is not None:
        result = {field: data.get(field) for field in NAME_FIELDS}
        result["clubs"] = result["clubs"] or []
        result["listings"] = result["listings"] or []
        result["local_only"] = False
        return result

    local = await _local_name_data(normalized)
    if local is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="ENS name not found"
        )

    logger.info(f"[names] Using local fallback for: {normalized}")
    result = {field: None for field in NAME_FIELDS}
    result.update({
        "name": local["name"],
        "clubs": local["clubs"],
        "has_numbers": False,
        "has_emoji": False,
        "listings": [],
        "view_count": 0,
        "watchers_count": 0,
        "local_only": True,
    })
    return result


@router.delete("/{name}/categories", response_model=RemoveMembersResponse)
async def remove_name_from_categories(
    name: str,
    request: RemoveCategoriesRequest,
    current_admin: dict = Depends(get_admin)
):
    """Remove one name from several categories"""
    return await membership_service.remove_name_from_categories(
        name, request.categories, current_admin["address"]
    )
