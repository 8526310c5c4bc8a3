"""
Membership Request/Response Models
Bulk add/remove and invalid-name scanning
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class MembersRequest(BaseModel):
    """Names to add to or remove from a category"""
    names: List[str] = Field(..., min_length=1, description="ENS names, one per entry")

    model_config = {
        "json_schema_extra": {
            "example": {"names": ["vitalik.eth", "nick.eth"]}
        }
    }


class NonCanonicalName(BaseModel):
    """A name that normalizes but was not typed in its canonical form"""
    name: str
    normalized: str
    reason: str


class InvalidNameDetails(BaseModel):
    """Why a batch was rejected"""
    invalid_format: List[str] = Field(default_factory=list)
    not_canonical: List[NonCanonicalName] = Field(default_factory=list)
    not_in_database: List[str] = Field(default_factory=list)


class AddMembersResponse(BaseModel):
    success: bool = True
    message: str
    added: int
    skipped: int
    invalid_names: Optional[List[str]] = None
    details: Optional[InvalidNameDetails] = None


class RemoveMembersResponse(BaseModel):
    success: bool = True
    message: str
    removed: int


class RemoveCategoriesRequest(BaseModel):
    """Categories to remove a single name from"""
    categories: List[str] = Field(..., min_length=1)


class InvalidName(BaseModel):
    name: str
    reason: str
    added_at: Optional[datetime] = None


class InvalidNameScanResponse(BaseModel):
    """Result of scanning a category for names that no longer pass validation"""
    success: bool = True
    category: str
    total_scanned: int
    invalid_count: int
    invalid_names: List[InvalidName]
