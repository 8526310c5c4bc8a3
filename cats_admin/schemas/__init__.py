"""
Pydantic schemas for request/response validation
"""

from cats_admin.schemas.category import (
    Classification,
    CreateCategoryRequest,
    UpdateCategoryRequest,
    CategoryResponse,
    CategoryListResponse,
    CategoryDetailResponse,
)
from cats_admin.schemas.membership import (
    MembersRequest,
    AddMembersResponse,
    RemoveMembersResponse,
    InvalidNameScanResponse,
)

__all__ = [
    "Classification",
    "CreateCategoryRequest",
    "UpdateCategoryRequest",
    "CategoryResponse",
    "CategoryListResponse",
    "CategoryDetailResponse",
    "MembersRequest",
    "AddMembersResponse",
    "RemoveMembersResponse",
    "InvalidNameScanResponse",
]
