# app/api/invitations.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import action_error, action_ok, redirect
from app.core.auth import get_db, get_optional_identity
from app.crud.invitation import (
    accept_invitation,
    decline_invitation,
    get_invitation_details,
)
from app.models.identity import Identity
from app.schemas.invitation import InvitationDetails, InviterOut
from app.schemas.studio import StudioSummary

router = APIRouter(prefix="/invitation", tags=["invitations"])


@router.get("/{token}", operation_id="invitation_view")
def view_invitation(
    token: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    details, error = get_invitation_details(db, token)
    if error:
        return action_error(error, status_code=404)

    invitation = details["invitation"]
    inviter = details["inviter"]
    out = InvitationDetails.model_validate(invitation).model_copy(
        update={
            "studio": StudioSummary.model_validate(details["studio"]) if details["studio"] else None,
            "inviter": (
                InviterOut(id=inviter.id, email=inviter.email, full_name=inviter.full_name)
                if inviter
                else None
            ),
        }
    )
    return {
        "page": "invitation",
        "invitation": out,
        "signed_in": identity is not None,
        "email_matches": identity is not None and identity.email == invitation.invited_email,
    }


@router.post("/{token}/accept", operation_id="invitation_accept")
def accept(
    token: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    if identity is None:
        return redirect(f"/auth/login?next=/invitation/{token}")
    ok, error = accept_invitation(db, token, identity)
    if not ok:
        return action_error(error)
    return redirect("/studio")


@router.post("/{token}/decline", operation_id="invitation_decline")
def decline(
    token: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    if identity is None:
        return redirect(f"/auth/login?next=/invitation/{token}")
    ok, error = decline_invitation(db, token, identity)
    if not ok:
        return action_error(error)
    return action_ok({"message": "Invito rifiutato"})
