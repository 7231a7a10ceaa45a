# app/services/cleanup.py
"""
Removal of abandoned invited accounts.

An invited identity whose profile is still `pending` after N days (the
invitee never set a password) is deleted together with its profile, and its
pending invitations are marked `expired`.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.crud.invitation import expire_invitations_for_email
from app.db.base import utcnow
from app.models.user_profile import UserProfile, STATUS_PENDING
from app.services.audit import audit_log
from app.services.identity import IdentityProvider

logger = logging.getLogger("app.cleanup")

CLEANUP_EXPIRATION_DAYS = int(os.getenv("CLEANUP_EXPIRATION_DAYS", "7"))


@dataclass
class CleanupResult:
    success: bool = True
    deleted_users: int = 0
    deleted_profiles: int = 0
    expired_invitations: int = 0
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


def find_expired_pending_profiles(
    db: Session, expiration_days: int = CLEANUP_EXPIRATION_DAYS, now: Optional[datetime] = None
) -> List[UserProfile]:
    cutoff = (now or utcnow()) - timedelta(days=expiration_days)
    return (
        db.query(UserProfile)
        .filter(
            UserProfile.status == STATUS_PENDING,
            UserProfile.invited_at.isnot(None),
            UserProfile.invited_at < cutoff,
        )
        .all()
    )


def _cleanup_one(db: Session, provider: IdentityProvider, user_id: str, result: CleanupResult) -> None:
    identity = provider.get(user_id)
    if identity is not None:
        result.expired_invitations += expire_invitations_for_email(db, identity.email)
    else:
        logger.warning("no identity for pending profile %s, skipping invitation cleanup", user_id)

    n = db.query(UserProfile).filter(UserProfile.user_id == user_id).delete(
        synchronize_session=False
    )
    if identity is not None:
        provider.delete_identity(user_id)
    db.commit()

    result.deleted_profiles += n
    if identity is not None:
        result.deleted_users += 1


def cleanup_expired_invitations(
    db: Session,
    expiration_days: int = CLEANUP_EXPIRATION_DAYS,
    now: Optional[datetime] = None,
) -> CleanupResult:
    """
    Each user is cleaned up in its own transaction; a failure is recorded in
    `errors` and the run continues with the next user.
    """
    result = CleanupResult()
    try:
        profiles = find_expired_pending_profiles(db, expiration_days, now)
    except Exception as e:
        logger.exception("cleanup: could not list pending profiles")
        result.success = False
        result.errors.append(f"Failed to find expired profiles: {e}")
        return result

    if not profiles:
        logger.info("cleanup: no expired invitations found")
        return result

    user_ids = [p.user_id for p in profiles]
    logger.info("cleanup: %d expired pending profiles (older than %d days)", len(user_ids), expiration_days)

    provider = IdentityProvider(db)
    for user_id in user_ids:
        try:
            _cleanup_one(db, provider, user_id, result)
            logger.info("cleanup: removed user %s", user_id)
        except Exception as e:
            db.rollback()
            msg = f"Failed to cleanup user {user_id}: {e}"
            logger.error(msg)
            result.errors.append(msg)

    audit_log(
        db,
        studio_id=None,
        user_id=None,
        action="CLEANUP_RUN",
        entity_type="user_profile",
        entity_id=None,
        meta=result.as_dict(),
    )
    logger.info(
        "cleanup done: users=%d profiles=%d invitations=%d errors=%d",
        result.deleted_users,
        result.deleted_profiles,
        result.expired_invitations,
        len(result.errors),
    )
    return result
