"""
ENS Name Model
Directory of known names, populated outside this service
"""

from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.dialects.postgresql import ARRAY
from cats_admin.database import Base


class EnsName(Base):
    __tablename__ = "ens_names"

    name = Column(String(255), primary_key=True)
    # Synced from club_memberships by trigger
    clubs = Column(ARRAY(String), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
