# app/crud/user_profile.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.base import utcnow
from app.models.identity import Identity
from app.models.studio import Studio
from app.models.user_profile import (
    UserProfile,
    ROLE_STUDIO_ADMIN,
    STATUS_ACTIVE,
    STATUS_PENDING,
)
from app.schemas.user_profile import ProfileCreate, ProfileUpdate

logger = logging.getLogger("app.profiles")


class ProfileError(Exception):
    pass


def get_profile(db: Session, user_id: Optional[str]) -> Optional[UserProfile]:
    """Profile for a user, or None. Never raises for a missing row."""
    if not user_id:
        return None
    return db.get(UserProfile, user_id)


def create_profile(db: Session, data: ProfileCreate) -> UserProfile:
    profile = UserProfile(**data.model_dump())
    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ProfileError("Errore durante la creazione del profilo")
    db.refresh(profile)
    return profile


def update_profile(
    db: Session, user_id: str, data: ProfileUpdate, commit: bool = True
) -> Optional[UserProfile]:
    """
    Partial update: only fields present in `data` are written, as a single
    UPDATE on those columns. Concurrent writers touching different fields
    both persist; the same field is last-write-wins.
    """
    values = data.model_dump(exclude_unset=True)
    if not values:
        return get_profile(db, user_id)
    values["updated_at"] = utcnow()
    n = (
        db.query(UserProfile)
        .filter(UserProfile.user_id == user_id)
        .update(values, synchronize_session=False)
    )
    if n == 0:
        return None
    if commit:
        db.commit()
    else:
        db.flush()
    profile = get_profile(db, user_id)
    if profile is not None:
        db.refresh(profile)
    return profile


def activate_profile(db: Session, user_id: str) -> Optional[UserProfile]:
    """Mark the profile active after the user set a password."""
    return update_profile(
        db, user_id, ProfileUpdate(status=STATUS_ACTIVE, accepted_at=utcnow())
    )


def delete_profile(db: Session, user_id: str) -> bool:
    n = db.query(UserProfile).filter(UserProfile.user_id == user_id).delete(
        synchronize_session=False
    )
    db.commit()
    return bool(n)


def can_create_studio(db: Session, user_id: Optional[str]) -> bool:
    """studio_admin, not bound to a studio, active."""
    profile = get_profile(db, user_id)
    return bool(
        profile is not None
        and profile.role == ROLE_STUDIO_ADMIN
        and profile.studio_id is None
        and profile.status == STATUS_ACTIVE
    )


def can_access_studio(db: Session, studio_id: int, user_id: Optional[str]) -> bool:
    if not user_id:
        return False
    studio = db.get(Studio, studio_id)
    if studio is not None and studio.owner_id == user_id:
        return True
    profile = get_profile(db, user_id)
    return bool(
        profile is not None
        and profile.studio_id == studio_id
        and profile.status == STATUS_ACTIVE
    )


def get_studio_role(db: Session, studio_id: int, user_id: Optional[str]) -> Optional[str]:
    """Owner counts as studio_admin; otherwise the active member's role."""
    if not user_id:
        return None
    studio = db.get(Studio, studio_id)
    if studio is not None and studio.owner_id == user_id:
        return ROLE_STUDIO_ADMIN
    profile = get_profile(db, user_id)
    if profile is None or profile.studio_id != studio_id or profile.status != STATUS_ACTIVE:
        return None
    return profile.role


def list_studio_profiles(db: Session, studio_id: int) -> List[UserProfile]:
    return (
        db.query(UserProfile)
        .filter(
            UserProfile.studio_id == studio_id,
            UserProfile.status == STATUS_ACTIVE,
        )
        .order_by(UserProfile.created_at.asc())
        .all()
    )


def list_studio_members(db: Session, studio_id: int) -> List[dict]:
    """Active members joined with their identity (email, name)."""
    rows = (
        db.query(UserProfile, Identity)
        .join(Identity, Identity.id == UserProfile.user_id)
        .filter(
            UserProfile.studio_id == studio_id,
            UserProfile.status == STATUS_ACTIVE,
        )
        .order_by(UserProfile.created_at.asc())
        .all()
    )
    out = []
    for profile, identity in rows:
        out.append(
            {
                "user_id": profile.user_id,
                "role": profile.role,
                "studio_id": profile.studio_id,
                "status": profile.status,
                "invited_by": profile.invited_by,
                "invited_at": profile.invited_at,
                "accepted_at": profile.accepted_at,
                "created_at": profile.created_at,
                "updated_at": profile.updated_at,
                "email": identity.email,
                "full_name": identity.full_name,
            }
        )
    return out


def list_pending_profiles(db: Session) -> List[UserProfile]:
    return (
        db.query(UserProfile)
        .filter(UserProfile.status == STATUS_PENDING)
        .order_by(UserProfile.invited_at.asc())
        .all()
    )
