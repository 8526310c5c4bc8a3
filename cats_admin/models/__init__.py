"""
Database Models
Import all models here for Alembic migrations
"""

from cats_admin.models.category import Category
from cats_admin.models.membership import CategoryMembership
from cats_admin.models.ens_name import EnsName
from cats_admin.models.audit_log import AuditLog

__all__ = [
    "Category",
    "CategoryMembership",
    "EnsName",
    "AuditLog",
]
