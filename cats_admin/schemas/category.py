"""
Category Request/Response Models
For category (club) management
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum


class Classification(str, Enum):
    """Fixed vocabulary of meta-categories a category can belong to"""
    ETHMOJIS = "ethmojis"
    DIGITS = "digits"
    PALINDROMES = "palindromes"
    PREPUNK = "prepunk"
    GEO = "geo"
    LETTERS = "letters"
    FANTASY = "fantasy"
    CRYPTO = "crypto"


class CreateCategoryRequest(BaseModel):
    """Request to create a new category"""
    name: str = Field(
        ...,
        min_length=2,
        max_length=50,
        pattern=r"^[a-z0-9_]+$",
        description="Slug (lowercase alphanumeric with underscores)"
    )
    display_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    classifications: List[Classification] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "three_digits",
                "display_name": "999 Club",
                "description": "All 3-digit .eth names",
                "classifications": ["digits"]
            }
        }
    }

    @field_validator("classifications")
    @classmethod
    def dedupe_classifications(cls, v):
        return list(dict.fromkeys(v))


class UpdateCategoryRequest(BaseModel):
    """Request to update category details; omitted fields are left unchanged"""
    display_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    classifications: Optional[List[Classification]] = None

    @field_validator("classifications")
    @classmethod
    def dedupe_classifications(cls, v):
        return list(dict.fromkeys(v)) if v is not None else v


class CategoryResponse(BaseModel):
    """Category details response"""
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    name_count: int = 0
    classifications: List[str] = Field(default_factory=list)
    avatar_image_key: Optional[str] = None
    header_image_key: Optional[str] = None
    avatar_url: Optional[str] = None
    header_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CategoryListResponse(BaseModel):
    """List of categories response"""
    total: int
    categories: List[CategoryResponse]


class CategoryMember(BaseModel):
    """One name in a category"""
    ens_name: str
    added_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CategoryDetailResponse(CategoryResponse):
    """Category with a page of its names"""
    names: List[CategoryMember]
    pagination: Pagination


class CategoryLiveCheckResponse(BaseModel):
    """Whether the marketplace already serves the category's images"""
    slug: str
    is_live: bool
    checks: dict


class RecentCategory(BaseModel):
    name: str
    description: Optional[str] = None
    name_count: int = 0
    created_at: datetime


class StatsResponse(BaseModel):
    """Dashboard statistics response"""
    total_categories: int
    categories_last_30d: int
    names_in_categories: int
    total_names: int
    percent_in_categories: str
    recent_categories: List[RecentCategory]
