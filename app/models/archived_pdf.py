# app/models/archived_pdf.py
from sqlalchemy import Column, Integer, String, DateTime, Date, Boolean, ForeignKey, JSON, text
from sqlalchemy.orm import relationship

from app.db.base import Base, utcnow


class ArchivedPDF(Base):
    __tablename__ = "archived_pdfs"

    id = Column(Integer, primary_key=True, index=True)
    studio_id = Column(Integer, ForeignKey("studios.id", ondelete="CASCADE"), nullable=False, index=True)
    form_id = Column(Integer, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    template_id = Column(Integer, ForeignKey("templates.id"), nullable=False)

    # file
    file_path = Column(String(1024), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    file_hash = Column(String(128), nullable=True)
    mime_type = Column(String(100), nullable=False, default="application/pdf")

    # searchable metadata
    client_name = Column(String(255), nullable=False, index=True)
    client_email = Column(String(255), nullable=True)
    client_fiscal_code = Column(String(16), nullable=True)
    form_date = Column(Date, nullable=False, index=True)
    form_type = Column(String(255), nullable=False)

    # "metadata" is reserved on declarative classes
    pdf_metadata = Column("metadata", JSON, nullable=False, default=dict)
    is_encrypted = Column(Boolean, nullable=False, default=False, server_default=text("0"))

    created_at = Column(DateTime, nullable=False, default=utcnow)
    created_by = Column(String(36), ForeignKey("auth_identities.id"), nullable=True)

    form = relationship("Form")
    template = relationship("Template")
