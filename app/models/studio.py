# app/models/studio.py
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, JSON, text

from app.db.base import Base, utcnow


class Studio(Base):
    __tablename__ = "studios"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    # unique among active studios (checked in crud, soft-deleted rows keep theirs)
    slug = Column(String(255), nullable=False, index=True)
    owner_id = Column(String(36), ForeignKey("auth_identities.id"), nullable=False, index=True)

    # contact
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    website = Column(String(255), nullable=True)

    # address
    address_street = Column(String(255), nullable=True)
    address_city = Column(String(255), nullable=True)
    address_province = Column(String(255), nullable=True)
    address_postal_code = Column(String(20), nullable=True)
    address_country = Column(String(2), nullable=False, default="IT")

    # business
    partita_iva = Column(String(11), nullable=True)
    codice_fiscale = Column(String(16), nullable=True)
    business_name = Column(String(255), nullable=True)

    settings = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True, server_default=text("1"))

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
