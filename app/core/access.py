# app/core/access.py
"""
Route gating rules applied to every request by AccessControlMiddleware.

`decide_access` is a pure function: it receives what the middleware knows
about the caller and returns either "allow" or a redirect target.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.models.user_profile import ROLE_STUDIO_ADMIN

LOGIN_PATH = "/auth/login"
STUDIO_CREATE_PATH = "/studio/create"
WAITING_PATH = "/waiting"

EXEMPT_PREFIXES = (
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/healthz",
    "/api/readyz",
    "/favicon.ico",
)


@dataclass(frozen=True)
class ProfileView:
    """The two profile fields the rules look at."""

    role: Optional[str]
    studio_id: Optional[int]


@dataclass(frozen=True)
class AccessDecision:
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


ALLOW = AccessDecision()


def _redirect(path: str) -> AccessDecision:
    return AccessDecision(redirect_to=path)


# --- path helpers ---
def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_exempt_path(path: str) -> bool:
    return any(_under(path, p) for p in EXEMPT_PREFIXES)


def is_invitation_path(path: str) -> bool:
    return _under(path, "/auth/invitation") or path.startswith("/invitation/")


def is_auth_path(path: str) -> bool:
    return path.startswith("/auth")


def decide_access(
    path: str,
    has_session: bool,
    profile: Optional[ProfileView] = None,
    profile_error: bool = False,
    fail_closed: bool = False,
) -> AccessDecision:
    """
    First matching rule wins:
      1. no session: invitation and /auth paths pass, everything else → login
      2. profile missing or unreadable → allow (or login when fail_closed)
      3. no studio: /auth and invitation paths pass; studio_admin is confined to /studio/create,
         other roles to /waiting
      4. has studio: only studio_admin may stay on /studio/create
      5. allow
    """
    if not has_session:
        if is_invitation_path(path) or is_auth_path(path):
            return ALLOW
        return _redirect(LOGIN_PATH)

    if profile is None or profile_error:
        if fail_closed and not is_auth_path(path):
            return _redirect(LOGIN_PATH)
        return ALLOW

    if profile.studio_id is None:
        # invitations are how a studio-less user joins one
        if is_auth_path(path) or is_invitation_path(path):
            return ALLOW
        if profile.role == ROLE_STUDIO_ADMIN:
            return ALLOW if _under(path, STUDIO_CREATE_PATH) else _redirect(STUDIO_CREATE_PATH)
        return ALLOW if _under(path, WAITING_PATH) else _redirect(WAITING_PATH)

    if _under(path, STUDIO_CREATE_PATH) and profile.role != ROLE_STUDIO_ADMIN:
        return _redirect(WAITING_PATH)

    return ALLOW
