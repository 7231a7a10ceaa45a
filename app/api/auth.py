# app/api/auth.py
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request, Query
from sqlalchemy.orm import Session

from app.api.deps import action_error, action_ok, parse_form, redirect
from app.core.auth import AuthContext, get_auth_context, get_db, get_optional_identity
from app.crud.user_profile import activate_profile
from app.models.identity import Identity
from app.schemas.auth import SignUpRequest, LoginRequest, SetPasswordRequest
from app.services.audit import audit_log, ip_from_request
from app.services.identity import IdentityProvider

logger = logging.getLogger("app.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


# --- helpers ---
def _cookie_secure() -> bool:
    return os.getenv("SESSION_COOKIE_SECURE", "0") == "1"


def _safe_next(next_url: Optional[str], default: str) -> str:
    # only local paths; "//host" would leave the site
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return default


@router.get("/login", operation_id="auth_login_page")
def login_page(identity: Optional[Identity] = Depends(get_optional_identity)):
    return {"page": "login", "signed_in": identity is not None}


@router.post("/sign-up", operation_id="auth_sign_up")
def sign_up(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    full_name: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    payload, err = parse_form(
        SignUpRequest, {"email": email, "password": password, "full_name": full_name}
    )
    if err:
        return err

    provider = IdentityProvider(db)
    identity, error = provider.register(payload.email, payload.password, payload.full_name)
    if error:
        return action_error(error)

    audit_log(
        db,
        studio_id=None,
        user_id=identity.id,
        action="SIGN_UP",
        entity_type="identity",
        entity_id=identity.id,
        meta={"email": identity.email},
        ip=ip_from_request(request),
    )

    response = redirect("/studio/create")
    provider.set_session_cookie(response, provider.issue_session(identity), secure=_cookie_secure())
    return response


@router.post("/login", operation_id="auth_login")
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    payload, err = parse_form(LoginRequest, {"email": email, "password": password})
    if err:
        return err

    provider = IdentityProvider(db)
    identity, error = provider.sign_in(payload.email, payload.password)
    if error:
        logger.info("login failed for %s", payload.email)
        return action_error(error, status_code=401)

    audit_log(
        db,
        studio_id=None,
        user_id=identity.id,
        action="LOGIN_SUCCESS",
        entity_type="auth",
        entity_id=identity.id,
        meta={"email": identity.email, "method": "password"},
        ip=ip_from_request(request),
    )

    response = redirect(_safe_next(next, "/studio"))
    provider.set_session_cookie(response, provider.issue_session(identity), secure=_cookie_secure())
    return response


@router.post("/logout", operation_id="auth_logout")
def logout():
    response = redirect("/auth/login")
    IdentityProvider.sign_out(response)
    return response


@router.get("/set-password", operation_id="auth_set_password_page")
def set_password_page(ctx: AuthContext = Depends(get_auth_context)):
    return {
        "page": "set_password",
        "email": ctx.email,
        "status": ctx.profile.status if ctx.profile else None,
    }


@router.post("/set-password", operation_id="auth_set_password")
def set_password(
    request: Request,
    password: str = Form(""),
    confirm_password: Optional[str] = Form(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    payload, err = parse_form(
        SetPasswordRequest, {"password": password, "confirm_password": confirm_password}
    )
    if err:
        return err
    if payload.confirm_password is not None and payload.confirm_password != payload.password:
        return action_error(
            "Le password non coincidono",
            status_code=422,
            field_errors={"confirm_password": "Le password non coincidono"},
        )

    error = IdentityProvider(db).set_credential(ctx.identity, payload.password)
    if error:
        return action_error(error)

    if activate_profile(db, ctx.user_id) is None:
        logger.error("set-password: no profile for user_id=%s", ctx.user_id)
        return action_error("Errore nell'aggiornamento dello stato del profilo utente")

    audit_log(
        db,
        studio_id=ctx.studio_id,
        user_id=ctx.user_id,
        action="PROFILE_ACTIVATED",
        entity_type="user_profile",
        entity_id=ctx.user_id,
        ip=ip_from_request(request),
    )
    return action_ok({"message": "Password impostata con successo"})


@router.get("/invitation", operation_id="auth_invitation_exchange")
def invitation_exchange(
    access_token: str = Query(""),
    next: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Landing page of the e-mail link: trade the invite token for a session."""
    provider = IdentityProvider(db)
    identity, session_token, error = provider.exchange_invite_token(access_token)
    if error:
        return action_error(error, status_code=400)

    response = redirect(_safe_next(next, "/auth/set-password"))
    provider.set_session_cookie(response, session_token, secure=_cookie_secure())
    return response
