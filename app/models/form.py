# app/models/form.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.db.base import Base, utcnow

FORM_STATUSES = ("draft", "completed", "signed", "archived")


class Form(Base):
    __tablename__ = "forms"

    id = Column(Integer, primary_key=True, index=True)
    studio_id = Column(Integer, ForeignKey("studios.id", ondelete="CASCADE"), nullable=False, index=True)
    template_id = Column(Integer, ForeignKey("templates.id"), nullable=False, index=True)

    # client
    client_name = Column(String(255), nullable=False, index=True)
    client_email = Column(String(255), nullable=True)
    client_phone = Column(String(50), nullable=True)
    client_fiscal_code = Column(String(16), nullable=True)

    # {field_id: value}
    form_data = Column(JSON, nullable=False, default=dict)
    # [{"fieldId", "imageData", "timestamp"}]
    signatures = Column(JSON, nullable=False, default=list)

    status = Column(String(20), nullable=False, default="draft", index=True)
    form_number = Column(String(50), unique=True, nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(String(36), ForeignKey("auth_identities.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)
    signed_at = Column(DateTime, nullable=True)

    template = relationship("Template")
