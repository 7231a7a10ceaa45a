# app/api/pages.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import redirect
from app.core.auth import AuthContext, get_auth_context, get_db
from app.crud.invitation import list_invitations_for_email
from app.schemas.invitation import InvitationOut

router = APIRouter(tags=["pages"])


@router.get("/", operation_id="home")
def home():
    # the access middleware forwards to login / studio creation / waiting room
    return redirect("/studio")


@router.get("/waiting", operation_id="waiting_room")
def waiting(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Waiting room for members not (yet) bound to a studio."""
    return {
        "page": "waiting",
        "email": ctx.email,
        "status": ctx.profile.status if ctx.profile else None,
        "pending_invitations": [
            InvitationOut.model_validate(i) for i in list_invitations_for_email(db, ctx.email)
        ],
    }
