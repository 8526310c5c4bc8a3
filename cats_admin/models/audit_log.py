"""
Audit Log Model
Append-only change ledger written by database triggers
"""

from sqlalchemy import Column, BigInteger, String, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from cats_admin.database import Base


class AuditLog(Base):
    __tablename__ = "clubs_audit_log"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    table_name = Column(String(50), nullable=False, index=True)
    operation = Column(String(10), nullable=False)
    record_key = Column(String, nullable=False)
    old_data = Column(JSONB, nullable=True)
    new_data = Column(JSONB, nullable=True)
    actor_address = Column(String(42), nullable=True, index=True)
    db_user = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
