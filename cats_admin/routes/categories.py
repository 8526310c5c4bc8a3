"""
Category Routes
Category CRUD, membership, invalid-name scans and images
"""

import json
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from pydantic import ValidationError
from cats_admin.auth import get_admin
from cats_admin.schemas.category import (
    CreateCategoryRequest,
    UpdateCategoryRequest,
    CategoryResponse,
    CategoryListResponse,
    CategoryDetailResponse,
    CategoryLiveCheckResponse,
)
from cats_admin.schemas.membership import (
    MembersRequest,
    AddMembersResponse,
    RemoveMembersResponse,
    InvalidNameScanResponse,
)
from cats_admin.services.category_service import category_service
from cats_admin.services.membership_service import membership_service
from cats_admin.services.grails_client import grails_client
from cats_admin.services import invalid_name_scanner

router = APIRouter()


def _validation_detail(e: ValidationError) -> str:
    first = e.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return f"{field}: {first['msg']}"


@router.get("", response_model=CategoryListResponse)
async def list_categories(current_admin: dict = Depends(get_admin)):
    """List all categories"""
    return await category_service.list_categories()


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    name: str = Form(...),
    display_name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    classifications: str = Form("[]"),
    avatar: Optional[UploadFile] = File(None),
    header: Optional[UploadFile] = File(None),
    current_admin: dict = Depends(get_admin)
):
    """
    Create a category (multipart)

    - **name**: Slug, lowercase alphanumeric with underscores (2-50 chars)
    - **classifications**: JSON array of classification tags
    - **avatar** / **header**: Optional JPEG/PNG images
    """

    try:
        parsed = json.loads(classifications or "[]")
    except json.JSONDecodeError:
        parsed = None

    if not isinstance(parsed, list):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="classifications must be a JSON array"
        )

    try:
        data = CreateCategoryRequest(
            name=name,
            display_name=display_name,
            description=description,
            classifications=parsed,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_validation_detail(e)
        )

    images = []
    for image_type, upload in (("avatar", avatar), ("header", header)):
        if upload is not None:
            images.append((image_type, await upload.read(), upload.content_type))

    return await category_service.create_category(data, current_admin["address"], images)


@router.get("/check", response_model=CategoryLiveCheckResponse)
async def check_category_live(
    slug: str = Query(..., min_length=1),
    current_admin: dict = Depends(get_admin)
):
    """Whether the marketplace site already serves this category's images"""
    return await grails_client.check_category_live(slug)


@router.get("/{name}", response_model=CategoryDetailResponse)
async def get_category(
    name: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    current_admin: dict = Depends(get_admin)
):
    """Category details with a page of its names"""
    return await category_service.get_category(name, page, limit)


@router.put("/{name}", response_model=CategoryResponse)
async def update_category(
    name: str,
    request: UpdateCategoryRequest,
    current_admin: dict = Depends(get_admin)
):
    """Update display name, description or classifications"""
    return await category_service.update_category(name, request, current_admin["address"])


@router.delete("/{name}")
async def delete_category(name: str, current_admin: dict = Depends(get_admin)):
    """Delete a category and all of its memberships"""
    return await category_service.delete_category(name, current_admin["address"])


@router.post("/{name}/members", response_model=AddMembersResponse)
async def add_members(
    name: str,
    request: MembersRequest,
    current_admin: dict = Depends(get_admin)
):
    """
    Add names to a category

    The batch is all-or-nothing on validity; names already present are
    counted as skipped.
    """
    return await membership_service.add_names(name, request.names, current_admin["address"])


@router.delete("/{name}/members", response_model=RemoveMembersResponse)
async def remove_members(
    name: str,
    request: MembersRequest,
    current_admin: dict = Depends(get_admin)
):
    """Remove names from a category"""
    return await membership_service.remove_names(name, request.names, current_admin["address"])


@router.get("/{name}/invalid-names", response_model=InvalidNameScanResponse)
async def scan_invalid_names(name: str, current_admin: dict = Depends(get_admin)):
    """Names in the category that no longer pass validation"""
    return await invalid_name_scanner.scan(name)


@router.get("/{name}/images")
async def get_image(name: str, type: str = Query(...)):
    """
    Serve a category image

    Public: avatars and headers are displayed on the marketplace.
    """
    content, content_type = await category_service.get_image(name, type)
    return Response(
        content=content,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=3600, stale-while-revalidate=86400"}
    )


@router.post("/{name}/images")
async def upload_image(
    name: str,
    type: str = Form(...),
    file: UploadFile = File(...),
    current_admin: dict = Depends(get_admin)
):
    """Upload or replace the avatar or header image"""
    content = await file.read()
    return await category_service.upload_image(name, type, content, file.content_type, current_admin["address"])


@router.delete("/{name}/images")
async def delete_image(
    name: str,
    type: str = Query(...),
    current_admin: dict = Depends(get_admin)
):
    """Remove the avatar or header image"""
    return await category_service.delete_image(name, type, current_admin["address"])
