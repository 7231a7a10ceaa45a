# app/api/members.py
from typing import Optional

from fastapi import APIRouter, Depends, Form
from sqlalchemy.orm import Session

from app.api.deps import action_error, action_ok, get_current_studio, parse_form
from app.core.auth import AuthContext, get_auth_context, get_db
from app.core import rbac
from app.crud.invitation import (
    ERR_CANNOT_CANCEL,
    ERR_CANNOT_INVITE,
    ERR_CANNOT_RESEND,
    cancel_invitation,
    get_invitation,
    list_studio_invitations,
    resend_invitation,
    send_invitation,
)
from app.crud.user_profile import list_studio_members
from app.models.studio import Studio
from app.schemas.invitation import InvitationCreate, InvitationOut
from app.schemas.user_profile import MemberOut

router = APIRouter(prefix="/studio", tags=["members"])

_FORBIDDEN = (ERR_CANNOT_INVITE, ERR_CANNOT_CANCEL, ERR_CANNOT_RESEND)


def _status_for(error: str) -> int:
    return 403 if error in _FORBIDDEN else 400


@router.get("/members", operation_id="studio_members")
def members_page(
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.VIEW_STUDIO)
    can_manage = rbac.can(db, studio, ctx.user_id, rbac.MANAGE_MEMBERS)

    invitations = []
    if can_manage:
        rows, _ = list_studio_invitations(db, studio.id, ctx.user_id)
        invitations = [InvitationOut.model_validate(r) for r in rows or []]

    return {
        "page": "members",
        "studio_id": studio.id,
        "owner_id": studio.owner_id,
        "can_manage": can_manage,
        "members": [MemberOut(**m) for m in list_studio_members(db, studio.id)],
        "invitations": invitations,
    }


@router.post("/members/invite", operation_id="studio_members_invite")
def invite(
    email: str = Form(""),
    name: Optional[str] = Form(None),
    role: Optional[str] = Form(None),
    message: Optional[str] = Form(None),
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    payload, err = parse_form(
        InvitationCreate, {"email": email, "name": name, "role": role, "message": message}
    )
    if err:
        return err

    invitation, error = send_invitation(
        db,
        studio.id,
        payload.email,
        payload.role,
        ctx.user_id,
        message=payload.message or (f"Invito da {payload.name}" if payload.name else None),
        full_name=payload.name,
    )
    if error:
        return action_error(error, status_code=_status_for(error))
    return action_ok(InvitationOut.model_validate(invitation), status_code=201)


@router.post("/invitations/{invitation_id}/cancel", operation_id="studio_invitation_cancel")
def cancel(
    invitation_id: int,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    invitation = get_invitation(db, invitation_id)
    if invitation is None or invitation.studio_id != studio.id:
        return action_error("Invito non trovato", status_code=404)

    ok, error = cancel_invitation(db, invitation_id, ctx.user_id)
    if not ok:
        return action_error(error, status_code=_status_for(error))
    return action_ok({"id": invitation_id})


@router.post("/invitations/{invitation_id}/resend", operation_id="studio_invitation_resend")
def resend(
    invitation_id: int,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    invitation = get_invitation(db, invitation_id)
    if invitation is None or invitation.studio_id != studio.id:
        return action_error("Invito non trovato", status_code=404)

    updated, error = resend_invitation(db, invitation_id, ctx.user_id)
    if error:
        return action_error(error, status_code=_status_for(error))
    return action_ok(InvitationOut.model_validate(updated))
