# app/services/identity.py
"""
Thin identity-provider adapter.

Everything else in the app talks to authentication through IdentityProvider:
credentials, session tokens, invite links. Identities live in the local
`auth_identities` table; passwords are bcrypt hashes and sessions are JWTs.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from fastapi import Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.security import (
    TOKEN_INVITE,
    create_access_token,
    create_invite_access_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from app.db.base import utcnow
from app.models.identity import Identity
from app.models.user_profile import UserProfile, ROLE_STUDIO_ADMIN, STATUS_PENDING, STATUS_ACTIVE

logger = logging.getLogger("app.identity")

SESSION_COOKIE = "session"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip()


class IdentityProvider:
    def __init__(self, db: Session):
        self.db = db

    # --- lookups ---
    def get(self, user_id: Optional[str]) -> Optional[Identity]:
        if not user_id:
            return None
        return self.db.get(Identity, user_id)

    def get_by_email(self, email: str) -> Optional[Identity]:
        email = normalize_email(email)
        if not email:
            return None
        return (
            self.db.query(Identity)
            .filter(func.lower(Identity.email) == email.lower())
            .first()
        )

    def get_current_identity(self, token: Optional[str]) -> Optional[Identity]:
        """Resolve a session token to its identity; None if absent/invalid/expired."""
        if not token:
            return None
        claims = decode_token(token)
        if not claims:
            return None
        return self.get(claims["sub"])

    # --- sessions ---
    def issue_session(self, identity: Identity) -> str:
        return create_access_token({"sub": identity.id, "email": identity.email})

    @staticmethod
    def set_session_cookie(response: Response, token: str, secure: bool = False) -> None:
        response.set_cookie(
            SESSION_COOKIE,
            token,
            httponly=True,
            samesite="lax",
            secure=secure,
            path="/",
        )

    @staticmethod
    def sign_out(response: Response) -> None:
        response.delete_cookie(SESSION_COOKIE, path="/")

    # --- registration / credentials ---
    def register(
        self, email: str, password: str, full_name: Optional[str] = None
    ) -> Tuple[Optional[Identity], Optional[str]]:
        """
        Self sign-up. Creates the identity and its profile (studio_admin, no
        studio). The password is set here, so the profile starts active.
        """
        email = normalize_email(email)
        if self.get_by_email(email):
            return None, "Esiste già un account con questo indirizzo email"

        now = utcnow()
        identity = Identity(
            email=email,
            hashed_password=get_password_hash(password),
            full_name=full_name,
        )
        self.db.add(identity)
        self.db.flush()
        self.db.add(
            UserProfile(
                user_id=identity.id,
                role=ROLE_STUDIO_ADMIN,
                status=STATUS_ACTIVE,
                accepted_at=now,
            )
        )
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("register failed for %s", email)
            return None, "Errore durante la registrazione"
        self.db.refresh(identity)
        return identity, None

    def sign_in(self, email: str, password: str) -> Tuple[Optional[Identity], Optional[str]]:
        identity = self.get_by_email(email)
        # same message for unknown email and wrong password
        if identity is None or not verify_password(password, identity.hashed_password):
            return None, "Email o password non validi"
        identity.last_sign_in_at = utcnow()
        self.db.add(identity)
        self.db.commit()
        return identity, None

    def set_credential(self, identity: Identity, secret: str) -> Optional[str]:
        try:
            identity.hashed_password = get_password_hash(secret)
            self.db.add(identity)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("set_credential failed for user_id=%s", identity.id)
            return "Errore nell'impostazione della password"
        return None

    # --- invitations ---
    def provision_invited_identity(
        self,
        email: str,
        *,
        full_name: Optional[str] = None,
        role: str = ROLE_STUDIO_ADMIN,
        studio_id: Optional[int] = None,
        invited_by: Optional[str] = None,
    ) -> Tuple[Identity, str]:
        """
        Create a password-less identity plus a pending profile, and return it
        with a one-off access token for the invitation link. Does not commit.
        """
        now = utcnow()
        identity = Identity(email=normalize_email(email), full_name=full_name, invited_at=now)
        self.db.add(identity)
        self.db.flush()
        self.db.add(
            UserProfile(
                user_id=identity.id,
                role=role,
                studio_id=studio_id,
                status=STATUS_PENDING,
                invited_by=invited_by,
                invited_at=now,
            )
        )
        self.db.flush()
        return identity, create_invite_access_token(identity.id, identity.email)

    def exchange_invite_token(
        self, access_token: str
    ) -> Tuple[Optional[Identity], Optional[str], Optional[str]]:
        """Swap an invitation-link token for a regular session token."""
        claims = decode_token(access_token, expected_type=TOKEN_INVITE)
        if not claims:
            return None, None, "Link di invito non valido o scaduto"
        identity = self.get(claims["sub"])
        if identity is None:
            return None, None, "Link di invito non valido o scaduto"
        return identity, self.issue_session(identity), None

    def delete_identity(self, user_id: str) -> bool:
        """Hard delete; the profile goes with it (FK cascade). Does not commit."""
        identity = self.get(user_id)
        if identity is None:
            return False
        self.db.query(UserProfile).filter(UserProfile.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.delete(identity)
        self.db.flush()
        return True
