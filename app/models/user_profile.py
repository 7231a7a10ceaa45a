# app/models/user_profile.py
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from app.db.base import Base, utcnow

ROLE_STUDIO_ADMIN = "studio_admin"
ROLE_STUDIO_MEMBER = "studio_member"
ROLES = (ROLE_STUDIO_ADMIN, ROLE_STUDIO_MEMBER)

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUSES = (STATUS_PENDING, STATUS_ACTIVE, STATUS_INACTIVE)


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id = Column(
        String(36),
        ForeignKey("auth_identities.id", ondelete="CASCADE"),
        primary_key=True,
    )

    # Tenancy / RBAC
    role = Column(String(30), nullable=False, default=ROLE_STUDIO_ADMIN, index=True)
    studio_id = Column(Integer, ForeignKey("studios.id"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)

    # Invitation lineage
    invited_by = Column(String(36), ForeignKey("auth_identities.id"), nullable=True)
    invited_at = Column(DateTime, nullable=True)
    accepted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    identity = relationship("Identity", foreign_keys=[user_id])
    studio = relationship("Studio", foreign_keys=[studio_id])
