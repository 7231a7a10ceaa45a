# app/api/deps.py
from __future__ import annotations

from typing import Any, Dict, Optional, Type, TypeVar

from fastapi import Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from app.core.auth import AuthContext, get_auth_context, get_db
from app.core.errors import VALIDATION_ERROR, field_errors_from
from app.crud.studio import get_owned_studio, get_studio
from app.models.studio import Studio
from app.schemas.common import ActionResult

M = TypeVar("M", bound=BaseModel)


# --- form-submission results ---
def action_ok(data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(ActionResult(success=True, data=data)),
    )


def action_error(
    message: str, status_code: int = 400, field_errors: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            ActionResult(success=False, error=message, field_errors=field_errors or {})
        ),
    )


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def parse_form(model: Type[M], raw: Dict[str, Any]):
    """
    Validate form fields into `model`.
    Returns (instance, None) or (None, error response with field_errors).
    Empty strings count as missing for optional fields only; required fields
    keep them so the model reports its own message.
    """
    fields = model.model_fields
    data = {
        k: v
        for k, v in raw.items()
        if v is not None and (v != "" or (k in fields and fields[k].is_required()))
    }
    try:
        return model(**data), None
    except ValidationError as e:
        return None, action_error(VALIDATION_ERROR, 422, field_errors_from(e.errors()))


# --- studio resolution ---
def resolve_user_studio(db: Session, ctx: AuthContext) -> Optional[Studio]:
    """The studio the caller works in: profile binding first, then ownership."""
    if ctx.studio_id is not None:
        studio = get_studio(db, ctx.studio_id)
        if studio is not None and studio.is_active:
            return studio
    return get_owned_studio(db, ctx.user_id)


def get_current_studio(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> Studio:
    studio = resolve_user_studio(db, ctx)
    if studio is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Studio non trovato")
    return studio
