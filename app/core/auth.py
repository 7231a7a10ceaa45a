# app/core/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.models.identity import Identity
from app.models.user_profile import UserProfile
from app.services.identity import IdentityProvider, SESSION_COOKIE


def get_db():
    """Yield a DB session and make sure it's closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def session_token_from_request(request: Request) -> Optional[str]:
    """Session JWT from the `session` cookie, else from `Authorization: Bearer`."""
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    auth = request.headers.get("authorization") or ""
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


@dataclass
class AuthContext:
    """Identity + profile of the caller, resolved once per request."""

    identity: Identity
    profile: Optional[UserProfile]

    @property
    def user_id(self) -> str:
        return self.identity.id

    @property
    def email(self) -> str:
        return self.identity.email

    @property
    def role(self) -> Optional[str]:
        return self.profile.role if self.profile else None

    @property
    def studio_id(self) -> Optional[int]:
        return self.profile.studio_id if self.profile else None


def get_optional_identity(
    request: Request, db: Session = Depends(get_db)
) -> Optional[Identity]:
    return IdentityProvider(db).get_current_identity(session_token_from_request(request))


def get_auth_context(
    request: Request,
    db: Session = Depends(get_db),
) -> AuthContext:
    """
    Resolve the session into an AuthContext or return 401.
    Side-effect: stores user context on request.state (for request logging).
    """
    identity = IdentityProvider(db).get_current_identity(session_token_from_request(request))
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Utente non autenticato",
            headers={"WWW-Authenticate": "Bearer"},
        )

    profile = db.get(UserProfile, identity.id)

    # Expose user context to middleware/loggers
    request.state.user_id = identity.id
    request.state.studio_id = profile.studio_id if profile else None

    return AuthContext(identity=identity, profile=profile)
