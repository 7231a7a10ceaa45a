# app/crud/invitation.py
from __future__ import annotations

import logging
import os
import secrets
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.security import create_invite_access_token
from app.crud.studio import get_owned_studio, get_studio
from app.crud.user_profile import get_profile, get_studio_role
from app.db.base import utcnow
from app.models.identity import Identity
from app.models.invitation import (
    StudioInvitation,
    INVITE_PENDING,
    INVITE_ACCEPTED,
    INVITE_DECLINED,
    INVITE_EXPIRED,
)
from app.models.user_profile import (
    UserProfile,
    ROLE_STUDIO_ADMIN,
    ROLE_STUDIO_MEMBER,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    STATUS_PENDING,
)
from app.services.audit import audit_log
from app.services.identity import IdentityProvider, normalize_email
from app.services.notifications import send_invitation_email

logger = logging.getLogger("app.invitations")

INVITATION_EXPIRY_DAYS = int(os.getenv("INVITATION_EXPIRY_DAYS", "7"))
_TOKEN_ATTEMPTS = 3
_RESENDABLE = (INVITE_PENDING, INVITE_EXPIRED)

ERR_NOT_AUTHENTICATED = "Utente non autenticato"
ERR_NOT_FOUND_OR_EXPIRED = "Invito non trovato o scaduto"
ERR_NOT_FOUND = "Invito non trovato"
ERR_STUDIO_NOT_FOUND = "Studio non trovato"
ERR_CANNOT_INVITE = "Non hai i permessi per invitare membri a questo studio"
ERR_ALREADY_MEMBER = "L'utente è già membro di uno studio"
ERR_DUPLICATE = "Esiste già un invito pendente per questo indirizzo email"
ERR_TOKEN = "Errore durante la generazione del token di invito"
ERR_WRONG_EMAIL = "Questo invito non è destinato al tuo indirizzo email"
ERR_SELF_MEMBER = "Sei già membro di uno studio"
ERR_CANNOT_CANCEL = "Non hai i permessi per annullare questo invito"
ERR_CANNOT_RESEND = "Non hai i permessi per reinviare questo invito"
ERR_NOT_RESENDABLE = "Questo invito non può più essere reinviato"
ERR_CANNOT_LIST = "Non hai i permessi per visualizzare gli inviti dello studio"


# --- helpers ---
def _generate_token() -> str:
    return secrets.token_urlsafe(32)


def _unused_token(db: Session) -> Optional[str]:
    for _ in range(_TOKEN_ATTEMPTS):
        token = _generate_token()
        exists = db.query(StudioInvitation.id).filter(StudioInvitation.token == token).first()
        if exists is None:
            return token
    return None


def is_fresh(invitation: Optional[StudioInvitation], now: Optional[datetime] = None) -> bool:
    """pending and not past expires_at; expiry is derived, never needs a write."""
    if invitation is None or invitation.status != INVITE_PENDING:
        return False
    return (now or utcnow()) < invitation.expires_at


def _can_manage_invitations(db: Session, studio_id: int, user_id: Optional[str]) -> bool:
    return get_studio_role(db, studio_id, user_id) == ROLE_STUDIO_ADMIN


def _belongs_to_other_studio(db: Session, user_id: str, target_studio_id: Optional[int]) -> bool:
    """
    Active membership anywhere, or a pending profile provisioned for another
    studio. A pending profile provisioned for the target studio does not count.
    """
    profile = get_profile(db, user_id)
    if profile is None or profile.studio_id is None:
        return False
    if profile.status == STATUS_INACTIVE:
        return False
    if profile.status == STATUS_PENDING and profile.studio_id == target_studio_id:
        return False
    return True


def _signin_token_for(db: Session, email: str) -> Optional[str]:
    """Fresh invite-link token for a provisioned account that never set a password."""
    identity = IdentityProvider(db).get_by_email(email)
    if identity is None or identity.hashed_password:
        return None
    profile = get_profile(db, identity.id)
    if profile is None or profile.status != STATUS_PENDING:
        return None
    return create_invite_access_token(identity.id, identity.email)


def _pending_for(db: Session, studio_id: int, email: str, now: datetime) -> Optional[StudioInvitation]:
    return (
        db.query(StudioInvitation)
        .filter(
            StudioInvitation.studio_id == studio_id,
            func.lower(StudioInvitation.invited_email) == email.lower(),
            StudioInvitation.status == INVITE_PENDING,
            StudioInvitation.expires_at > now,
        )
        .first()
    )


# --- queries ---
def get_invitation(db: Session, invitation_id: int) -> Optional[StudioInvitation]:
    return db.get(StudioInvitation, invitation_id)


def get_invitation_by_token(
    db: Session, token: str, now: Optional[datetime] = None
) -> Tuple[Optional[StudioInvitation], Optional[str]]:
    """
    Pending, unexpired invitation for a token. Expired, used and unknown
    tokens all get the same message.
    """
    invitation = (
        db.query(StudioInvitation).filter(StudioInvitation.token == token).first()
        if token
        else None
    )
    if not is_fresh(invitation, now):
        return None, ERR_NOT_FOUND_OR_EXPIRED
    return invitation, None


def get_invitation_details(
    db: Session, token: str, now: Optional[datetime] = None
) -> Tuple[Optional[dict], Optional[str]]:
    """Invitation plus studio summary and inviter, for the invitation page."""
    invitation, err = get_invitation_by_token(db, token, now)
    if err:
        return None, err
    studio = get_studio(db, invitation.studio_id)
    inviter = db.get(Identity, invitation.invited_by)
    return {
        "invitation": invitation,
        "studio": studio,
        "inviter": inviter,
    }, None


def list_studio_invitations(
    db: Session, studio_id: int, actor_id: Optional[str]
) -> Tuple[Optional[List[StudioInvitation]], Optional[str]]:
    if not actor_id:
        return None, ERR_NOT_AUTHENTICATED
    if not _can_manage_invitations(db, studio_id, actor_id):
        return None, ERR_CANNOT_LIST
    rows = (
        db.query(StudioInvitation)
        .filter(StudioInvitation.studio_id == studio_id)
        .order_by(StudioInvitation.created_at.desc(), StudioInvitation.id.desc())
        .all()
    )
    return rows, None


def list_invitations_for_email(
    db: Session, email: str, now: Optional[datetime] = None
) -> List[StudioInvitation]:
    now = now or utcnow()
    return (
        db.query(StudioInvitation)
        .filter(
            StudioInvitation.invited_email == normalize_email(email),
            StudioInvitation.status == INVITE_PENDING,
            StudioInvitation.expires_at > now,
        )
        .order_by(StudioInvitation.created_at.desc())
        .all()
    )


# --- mutations ---
def send_invitation(
    db: Session,
    studio_id: int,
    email: str,
    role: str,
    sender_id: Optional[str],
    message: Optional[str] = None,
    full_name: Optional[str] = None,
    now: Optional[datetime] = None,
    notify: bool = True,
) -> Tuple[Optional[StudioInvitation], Optional[str]]:
    """
    Invite `email` to join a studio. When no identity exists for the email a
    password-less identity and a pending profile bound to the studio are
    provisioned in the same transaction, and the e-mail carries a sign-in link.
    """
    if not sender_id:
        return None, ERR_NOT_AUTHENTICATED
    now = now or utcnow()
    email = normalize_email(email)
    role = role or ROLE_STUDIO_MEMBER

    studio = get_studio(db, studio_id)
    if studio is None or not studio.is_active:
        return None, ERR_STUDIO_NOT_FOUND
    if not _can_manage_invitations(db, studio_id, sender_id):
        return None, ERR_CANNOT_INVITE

    provider = IdentityProvider(db)
    existing = provider.get_by_email(email)
    if existing is not None and (
        get_owned_studio(db, existing.id) is not None
        or _belongs_to_other_studio(db, existing.id, studio_id)
    ):
        return None, ERR_ALREADY_MEMBER

    if _pending_for(db, studio_id, email, now) is not None:
        return None, ERR_DUPLICATE

    token = _unused_token(db)
    if token is None:
        logger.error("could not generate a unique invitation token (studio_id=%s)", studio_id)
        return None, ERR_TOKEN

    access_token = None
    try:
        invitation = StudioInvitation(
            studio_id=studio_id,
            invited_email=email,
            invited_by=sender_id,
            role=role,
            status=INVITE_PENDING,
            token=token,
            message=message,
            created_at=now,
            expires_at=now + timedelta(days=INVITATION_EXPIRY_DAYS),
        )
        db.add(invitation)
        if existing is None:
            _, access_token = provider.provision_invited_identity(
                email,
                full_name=full_name,
                role=role,
                studio_id=studio_id,
                invited_by=sender_id,
            )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("send_invitation failed (studio_id=%s, email=%s)", studio_id, email)
        return None, "Errore durante la creazione dell'invito"

    db.refresh(invitation)
    logger.info("invitation sent id=%s studio_id=%s to=%s", invitation.id, studio_id, email)

    audit_log(
        db,
        studio_id=studio_id,
        user_id=sender_id,
        action="INVITATION_SENT",
        entity_type="studio_invitation",
        entity_id=invitation.id,
        meta={"email": email, "role": role, "provisioned": existing is None},
    )
    if notify:
        sender = db.get(Identity, sender_id)
        send_invitation_email(
            db,
            invitation=invitation,
            studio_name=studio.name,
            inviter_email=getattr(sender, "email", None),
            inviter_name=getattr(sender, "full_name", None),
            access_token=access_token,
        )
    return invitation, None


def accept_invitation(
    db: Session, token: str, identity: Optional[Identity], now: Optional[datetime] = None
) -> Tuple[bool, Optional[str]]:
    """
    Join the invitation's studio. The invitation status and the profile are
    written in one transaction; any failure rolls both back.
    """
    if identity is None:
        return False, ERR_NOT_AUTHENTICATED
    now = now or utcnow()

    invitation, err = get_invitation_by_token(db, token, now)
    if err:
        return False, err
    if identity.email != invitation.invited_email:
        return False, ERR_WRONG_EMAIL

    owned = get_owned_studio(db, identity.id)
    if owned is not None:
        return False, (
            f'Sei già proprietario dello studio "{owned.name}". '
            "Un utente può possedere solo uno studio."
        )
    if _belongs_to_other_studio(db, identity.id, invitation.studio_id):
        return False, ERR_SELF_MEMBER

    try:
        # guarded on status so a concurrent accept of the same token loses
        n = (
            db.query(StudioInvitation)
            .filter(
                StudioInvitation.id == invitation.id,
                StudioInvitation.status == INVITE_PENDING,
            )
            .update(
                {"status": INVITE_ACCEPTED, "accepted_at": now, "updated_at": now},
                synchronize_session=False,
            )
        )
        if n != 1:
            db.rollback()
            return False, ERR_NOT_FOUND_OR_EXPIRED

        profile = db.get(UserProfile, identity.id)
        if profile is None:
            profile = UserProfile(
                user_id=identity.id,
                invited_by=invitation.invited_by,
                invited_at=invitation.created_at,
            )
        profile.studio_id = invitation.studio_id
        profile.role = invitation.role
        profile.status = STATUS_ACTIVE
        profile.accepted_at = now
        profile.updated_at = now
        db.add(profile)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("accept_invitation failed (invitation_id=%s, user_id=%s)", invitation.id, identity.id)
        return False, "Errore durante l'accettazione dell'invito"

    db.expire_all()
    logger.info("invitation accepted id=%s user_id=%s", invitation.id, identity.id)
    audit_log(
        db,
        studio_id=invitation.studio_id,
        user_id=identity.id,
        action="INVITATION_ACCEPTED",
        entity_type="studio_invitation",
        entity_id=invitation.id,
        meta={"email": identity.email, "role": invitation.role},
    )
    return True, None


def decline_invitation(
    db: Session, token: str, identity: Optional[Identity], now: Optional[datetime] = None
) -> Tuple[bool, Optional[str]]:
    if identity is None:
        return False, ERR_NOT_AUTHENTICATED
    now = now or utcnow()

    invitation, err = get_invitation_by_token(db, token, now)
    if err:
        return False, err
    if identity.email != invitation.invited_email:
        return False, ERR_WRONG_EMAIL

    try:
        invitation.status = INVITE_DECLINED
        invitation.declined_at = now
        db.add(invitation)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("decline_invitation failed (invitation_id=%s)", invitation.id)
        return False, "Errore durante il rifiuto dell'invito"

    audit_log(
        db,
        studio_id=invitation.studio_id,
        user_id=identity.id,
        action="INVITATION_DECLINED",
        entity_type="studio_invitation",
        entity_id=invitation.id,
        meta={"email": identity.email},
    )
    return True, None


def _can_touch(db: Session, invitation: StudioInvitation, actor_id: str) -> bool:
    """Owner, admin of the studio, or the original sender."""
    if invitation.invited_by == actor_id:
        return True
    return _can_manage_invitations(db, invitation.studio_id, actor_id)


def cancel_invitation(
    db: Session, invitation_id: int, actor_id: Optional[str]
) -> Tuple[bool, Optional[str]]:
    """Hard delete of a still-pending invitation."""
    if not actor_id:
        return False, ERR_NOT_AUTHENTICATED
    invitation = get_invitation(db, invitation_id)
    if invitation is None or invitation.status != INVITE_PENDING:
        return False, ERR_NOT_FOUND
    if not _can_touch(db, invitation, actor_id):
        return False, ERR_CANNOT_CANCEL

    studio_id = invitation.studio_id
    try:
        db.delete(invitation)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("cancel_invitation failed (invitation_id=%s)", invitation_id)
        return False, "Errore durante l'annullamento dell'invito"

    audit_log(
        db,
        studio_id=studio_id,
        user_id=actor_id,
        action="INVITATION_CANCELLED",
        entity_type="studio_invitation",
        entity_id=invitation_id,
    )
    return True, None


def resend_invitation(
    db: Session,
    invitation_id: int,
    actor_id: Optional[str],
    now: Optional[datetime] = None,
    notify: bool = True,
) -> Tuple[Optional[StudioInvitation], Optional[str]]:
    """
    New token, new expiry, status back to pending. Only pending or expired
    invitations can be resent, and never next to another live one for the
    same address. Password-less invitees get a new sign-in link.
    """
    if not actor_id:
        return None, ERR_NOT_AUTHENTICATED
    now = now or utcnow()
    invitation = get_invitation(db, invitation_id)
    if invitation is None:
        return None, ERR_NOT_FOUND
    if not _can_touch(db, invitation, actor_id):
        return None, ERR_CANNOT_RESEND
    if invitation.status not in _RESENDABLE:
        return None, ERR_NOT_RESENDABLE
    live = _pending_for(db, invitation.studio_id, invitation.invited_email, now)
    if live is not None and live.id != invitation.id:
        return None, ERR_DUPLICATE

    token = _unused_token(db)
    if token is None:
        return None, ERR_TOKEN

    try:
        invitation.token = token
        invitation.expires_at = now + timedelta(days=INVITATION_EXPIRY_DAYS)
        invitation.status = INVITE_PENDING
        db.add(invitation)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("resend_invitation failed (invitation_id=%s)", invitation_id)
        return None, "Errore durante il reinvio dell'invito"

    db.refresh(invitation)
    audit_log(
        db,
        studio_id=invitation.studio_id,
        user_id=actor_id,
        action="INVITATION_RESENT",
        entity_type="studio_invitation",
        entity_id=invitation.id,
    )
    if notify:
        studio = get_studio(db, invitation.studio_id)
        sender = db.get(Identity, actor_id)
        send_invitation_email(
            db,
            invitation=invitation,
            studio_name=getattr(studio, "name", None),
            inviter_email=getattr(sender, "email", None),
            inviter_name=getattr(sender, "full_name", None),
            access_token=_signin_token_for(db, invitation.invited_email),
        )
    return invitation, None


def expire_invitations_for_email(db: Session, email: str) -> int:
    """Persist `expired` on every pending invitation for an email. Does not commit."""
    return (
        db.query(StudioInvitation)
        .filter(
            StudioInvitation.invited_email == email,
            StudioInvitation.status == INVITE_PENDING,
        )
        .update(
            {"status": INVITE_EXPIRED, "updated_at": utcnow()},
            synchronize_session="fetch",
        )
    )


def expire_stale_invitations(db: Session, now: Optional[datetime] = None) -> int:
    """Persist `expired` on pending invitations past their expiry."""
    now = now or utcnow()
    n = (
        db.query(StudioInvitation)
        .filter(
            StudioInvitation.status == INVITE_PENDING,
            StudioInvitation.expires_at <= now,
        )
        .update(
            {"status": INVITE_EXPIRED, "updated_at": now},
            synchronize_session="fetch",
        )
    )
    db.commit()
    return n
