# app/models/invitation.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, utcnow

INVITE_PENDING = "pending"
INVITE_ACCEPTED = "accepted"
INVITE_DECLINED = "declined"
INVITE_EXPIRED = "expired"


class StudioInvitation(Base):
    __tablename__ = "studio_invitations"

    id = Column(Integer, primary_key=True, index=True)
    studio_id = Column(Integer, ForeignKey("studios.id", ondelete="CASCADE"), nullable=False, index=True)
    invited_email = Column(String(255), nullable=False, index=True)
    invited_by = Column(String(36), ForeignKey("auth_identities.id"), nullable=False)

    role = Column(String(30), nullable=False, default="studio_member")
    status = Column(String(20), nullable=False, default=INVITE_PENDING, index=True)  # pending / accepted / declined / expired
    token = Column(String(64), unique=True, nullable=False, index=True)
    message = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    declined_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    studio = relationship("Studio")
