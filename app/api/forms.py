# app/api/forms.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_studio
from app.core.auth import AuthContext, get_auth_context, get_db
from app.core import rbac
from app.crud.form import (
    create_form,
    delete_form,
    get_form,
    get_form_with_template,
    get_forms_by_date_range,
    list_forms,
    search_forms_by_client_name,
    update_form,
)
from app.crud.template import get_template
from app.models.form import Form
from app.models.studio import Studio
from app.schemas.form import FormCreate, FormOut, FormUpdate, FormStatus
from app.schemas.template import TemplateOut
from app.services.audit import audit_log, ip_from_request

router = APIRouter(prefix="/studio/forms", tags=["forms"])


# --- helpers ---
def _form_in_studio(db: Session, form_id: int, studio: Studio, with_template: bool = False) -> Form:
    form = get_form_with_template(db, form_id) if with_template else get_form(db, form_id)
    if form is None or form.studio_id != studio.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Modulo non trovato")
    return form


@router.get("", response_model=List[FormOut], operation_id="forms_list")
def list_(
    status_: Optional[FormStatus] = Query(None, alias="status"),
    client_name: Optional[str] = Query(None, min_length=1),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.VIEW_FORMS)
    if client_name:
        return search_forms_by_client_name(db, studio.id, client_name)
    if start and end:
        return get_forms_by_date_range(db, studio.id, start, end)
    return list_forms(db, studio.id, status=status_)


@router.post("", response_model=FormOut, status_code=201, operation_id="forms_create")
def create(
    payload: FormCreate,
    request: Request,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.CREATE_FORMS)
    template = get_template(db, payload.template_id)
    if template is None or template.studio_id != studio.id or not template.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Template non trovato")

    form, error = create_form(db, studio.id, payload, ctx.user_id)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="FORM_CREATED",
        entity_type="form",
        entity_id=form.id,
        meta={"form_number": form.form_number, "template_id": form.template_id},
        ip=ip_from_request(request),
    )
    return form


@router.get("/{form_id}", operation_id="forms_get")
def get(
    form_id: int,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.VIEW_FORMS)
    form = _form_in_studio(db, form_id, studio, with_template=True)
    return {
        "form": FormOut.model_validate(form),
        "template": TemplateOut.model_validate(form.template) if form.template else None,
    }


@router.put("/{form_id}", response_model=FormOut, operation_id="forms_update")
def update(
    form_id: int,
    payload: FormUpdate,
    request: Request,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.EDIT_FORMS)
    form = _form_in_studio(db, form_id, studio)
    previous_status = form.status
    updated, error = update_form(db, form, payload)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="FORM_UPDATED",
        entity_type="form",
        entity_id=form_id,
        meta={"status": [previous_status, updated.status]},
        ip=ip_from_request(request),
    )
    return updated


@router.delete("/{form_id}", status_code=204, operation_id="forms_delete")
def delete(
    form_id: int,
    request: Request,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.DELETE_FORMS)
    form = _form_in_studio(db, form_id, studio)
    ok, error = delete_form(db, form)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="FORM_DELETED",
        entity_type="form",
        entity_id=form_id,
        ip=ip_from_request(request),
    )
    return None
