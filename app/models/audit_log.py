# app/models/audit_log.py
from sqlalchemy import Column, Integer, String, Text, DateTime

from app.db.base import Base, utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    studio_id = Column(Integer, nullable=True, index=True)
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    entity_type = Column(String(64), nullable=True)
    entity_id = Column(String(64), nullable=True)
    meta = Column(Text, nullable=True)  # JSON text
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
