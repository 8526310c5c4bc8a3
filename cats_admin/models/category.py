"""
Category Model
Curated collections of ENS names (stored as "clubs")
"""

from sqlalchemy import Column, String, Integer, DateTime, Text, func
from sqlalchemy.dialects.postgresql import ARRAY
from cats_admin.database import Base


class Category(Base):
    __tablename__ = "clubs"

    name = Column(String(50), primary_key=True)
    display_name = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    classifications = Column(ARRAY(String), nullable=True)

    # Maintained by the update_club_member_count trigger
    member_count = Column(Integer, nullable=False, server_default="0")
    last_sales_update = Column(DateTime(timezone=True), nullable=True)

    # Storage keys
    avatar_image_key = Column(String, nullable=True)
    header_image_key = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
