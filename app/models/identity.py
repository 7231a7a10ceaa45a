# app/models/identity.py
from uuid import uuid4

from sqlalchemy import Column, String, DateTime

from app.db.base import Base, utcnow


def _new_id() -> str:
    return str(uuid4())


class Identity(Base):
    """
    Authentication identity (the provider's user record).
    The rest of the app only references `id` and `email`.
    """

    __tablename__ = "auth_identities"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # null until the invited user sets a password
    hashed_password = Column(String, nullable=True)
    full_name = Column(String(255), nullable=True)

    invited_at = Column(DateTime, nullable=True)
    last_sign_in_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
