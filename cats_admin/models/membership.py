"""
Membership Model
One (category, ENS name) pairing
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from cats_admin.database import Base


class CategoryMembership(Base):
    __tablename__ = "club_memberships"

    club_name = Column(String(50), ForeignKey("clubs.name", ondelete="CASCADE"), primary_key=True)
    ens_name = Column(String(255), primary_key=True, index=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationship
    category = relationship("Category", backref="memberships")
