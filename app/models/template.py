# app/models/template.py
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, JSON, text

from app.db.base import Base, utcnow


class Template(Base):
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    studio_id = Column(Integer, ForeignKey("studios.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, index=True)  # unique per studio
    description = Column(Text, nullable=True)

    # {"fields": [{"id", "type", "label", "required", ...}]}
    schema = Column(JSON, nullable=False, default=lambda: {"fields": []})

    is_default = Column(Boolean, nullable=False, default=False, server_default=text("0"))
    is_active = Column(Boolean, nullable=False, default=True, server_default=text("1"))

    created_by = Column(String(36), ForeignKey("auth_identities.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
