# app/middleware/access_control.py
from __future__ import annotations

import logging
import os
from typing import Optional, Tuple

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from app.core.access import ProfileView, decide_access, is_exempt_path
from app.core.auth import session_token_from_request
from app.core.security import decode_token
from app.db.session import SessionLocal
from app.models.identity import Identity
from app.models.user_profile import UserProfile

logger = logging.getLogger("app.access")


def _lookup(user_id: str) -> Tuple[Optional[str], Optional[ProfileView]]:
    """Identity + profile for a session subject. Runs in the threadpool; raises on store errors."""
    db = SessionLocal()
    try:
        identity = db.get(Identity, user_id)
        if identity is None:
            return None, None
        profile = db.get(UserProfile, identity.id)
        if profile is None:
            return identity.id, None
        return identity.id, ProfileView(role=profile.role, studio_id=profile.studio_id)
    finally:
        db.close()


class AccessControlMiddleware(BaseHTTPMiddleware):
    """
    Resolves session + profile once per request and applies decide_access.
    Redirects use 303 so form POSTs land on a GET.

    A failed identity/profile lookup lets the request through (logged at
    WARNING) unless ACCESS_FAIL_CLOSED=1.
    """

    def __init__(self, app, fail_closed: Optional[bool] = None):
        super().__init__(app)
        if fail_closed is None:
            fail_closed = os.getenv("ACCESS_FAIL_CLOSED", "0") == "1"
        self.fail_closed = fail_closed

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if request.method.upper() == "OPTIONS" or is_exempt_path(path):
            return await call_next(request)

        has_session = False
        profile_view = None
        profile_error = False

        token = session_token_from_request(request)
        claims = decode_token(token) if token else None
        if claims:
            try:
                user_id, profile_view = await run_in_threadpool(_lookup, claims["sub"])
                has_session = user_id is not None
                if user_id is not None:
                    request.state.user_id = user_id
                if profile_view is not None:
                    request.state.studio_id = profile_view.studio_id
            except Exception:
                # token is valid, the store is not answering
                has_session = True
                profile_error = True
                logger.warning(
                    "profile lookup failed for sub=%s path=%s",
                    claims.get("sub"),
                    path,
                    exc_info=True,
                )

        decision = decide_access(
            path,
            has_session=has_session,
            profile=profile_view,
            profile_error=profile_error,
            fail_closed=self.fail_closed,
        )
        if not decision.allowed:
            logger.info("access redirect %s %s -> %s", request.method, path, decision.redirect_to)
            return RedirectResponse(decision.redirect_to, status_code=303)

        return await call_next(request)
