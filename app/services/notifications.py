# app/services/notifications.py
from __future__ import annotations

import logging
import os
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from app.services.audit import audit_log

logger = logging.getLogger("app.notifications")


# ---------------------------------
# Helpers
# ---------------------------------
def app_base_url() -> str:
    return (os.getenv("APP_BASE_URL") or "http://localhost:8000").rstrip("/")


def invitation_urls(token: str, access_token: Optional[str] = None) -> Dict[str, str]:
    base = app_base_url()
    # accept/decline are POST actions on the invitation page
    urls = {"view_url": f"{base}/invitation/{token}"}
    if access_token:
        # new accounts go through the sign-in link first, then land on the invitation
        urls["signin_url"] = (
            f"{base}/auth/invitation?access_token={access_token}&next=/invitation/{token}"
        )
    return urls


def render_message(notif_type: str, payload: Dict[str, Any]) -> Dict[str, str]:
    """
    Lightweight templates for transport/audit. User-facing text is Italian.
    """
    if notif_type == "studio_invitation":
        studio = payload.get("studio_name") or "uno studio"
        inviter = payload.get("inviter_name") or payload.get("inviter_email") or "Un membro del team"
        subject = f"Invito a unirti a {studio}"
        lines = [
            f"{inviter} ti ha invitato a unirti a \"{studio}\" come {_role_label(payload.get('role'))}.",
        ]
        if payload.get("message"):
            lines.append(f"Messaggio: {payload['message']}")
        if payload.get("signin_url"):
            lines.append(f"Accedi e imposta la tua password: {payload['signin_url']}")
        lines.append(f"Apri l'invito per accettarlo o rifiutarlo: {payload.get('view_url') or '-'}")
        lines.append(f"L'invito scade il {payload.get('expires_at') or '-'}.")
        return {"subject": subject, "body": "\n".join(lines)}

    if notif_type == "platform_invitation":
        name = payload.get("name") or ""
        subject = "Sei stato invitato a creare il tuo studio"
        body = (
            f"Ciao {name},\n"
            "sei stato invitato a configurare il tuo studio.\n"
            f"Accedi e imposta la tua password: {payload.get('signin_url') or '-'}"
        )
        return {"subject": subject, "body": body}

    # Fallback
    return {
        "subject": f"[Notifica] {notif_type}",
        "body": f"Notifica di tipo '{notif_type}'.",
    }


def _role_label(role: Optional[str]) -> str:
    return {"studio_admin": "amministratore", "studio_member": "membro"}.get(role or "", "membro")


# ---------------------------------
# Send phase (log channel + audit)
# ---------------------------------
def deliver(
    db: Session,
    *,
    notif_type: str,
    recipient: str,
    payload: Dict[str, Any],
    studio_id: Optional[int] = None,
    user_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
) -> Dict[str, str]:
    """
    Transport-agnostic delivery: renders the message, writes it to the
    `app.notifications` log and records a NOTIFICATION_SENT audit entry.
    """
    templ = render_message(notif_type, payload)
    logger.info(
        "notification type=%s to=%s subject=%r\n%s",
        notif_type,
        recipient,
        templ["subject"],
        templ["body"],
    )
    audit_log(
        db,
        studio_id=studio_id,
        user_id=user_id,
        action="NOTIFICATION_SENT",
        entity_type=entity_type,
        entity_id=entity_id,
        meta={
            "type": notif_type,
            "to": recipient,
            "subject": templ["subject"],
            "channel": "log",
        },
    )
    return templ


def send_invitation_email(
    db: Session,
    *,
    invitation,
    studio_name: Optional[str],
    inviter_email: Optional[str] = None,
    inviter_name: Optional[str] = None,
    access_token: Optional[str] = None,
) -> Dict[str, str]:
    payload: Dict[str, Any] = {
        "studio_name": studio_name,
        "inviter_email": inviter_email,
        "inviter_name": inviter_name,
        "role": invitation.role,
        "message": invitation.message,
        "expires_at": invitation.expires_at.strftime("%d/%m/%Y %H:%M") if invitation.expires_at else None,
    }
    payload.update(invitation_urls(invitation.token, access_token))
    return deliver(
        db,
        notif_type="studio_invitation",
        recipient=invitation.invited_email,
        payload=payload,
        studio_id=invitation.studio_id,
        user_id=invitation.invited_by,
        entity_type="studio_invitation",
        entity_id=invitation.id,
    )


def send_platform_invitation_email(
    db: Session, *, email: str, name: Optional[str], user_id: str, access_token: str
) -> Dict[str, str]:
    base = app_base_url()
    return deliver(
        db,
        notif_type="platform_invitation",
        recipient=email,
        payload={
            "name": name,
            "signin_url": f"{base}/auth/invitation?access_token={access_token}&next=/auth/set-password",
        },
        user_id=user_id,
        entity_type="identity",
        entity_id=user_id,
    )
