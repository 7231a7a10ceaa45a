# app/api/templates.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_studio
from app.core.auth import AuthContext, get_auth_context, get_db
from app.core import rbac
from app.crud.template import (
    create_template,
    delete_template,
    get_template,
    list_templates,
    update_template,
)
from app.models.studio import Studio
from app.models.template import Template
from app.schemas.template import TemplateCreate, TemplateOut, TemplateUpdate
from app.services.audit import audit_log, ip_from_request

router = APIRouter(prefix="/studio/templates", tags=["templates"])


# --- helpers ---
def _template_in_studio(db: Session, template_id: int, studio: Studio) -> Template:
    template = get_template(db, template_id)
    if template is None or template.studio_id != studio.id or not template.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template non trovato")
    return template


@router.get("", response_model=List[TemplateOut], operation_id="templates_list")
def list_(
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.VIEW_TEMPLATES)
    return list_templates(db, studio.id)


@router.post("", response_model=TemplateOut, status_code=201, operation_id="templates_create")
def create(
    payload: TemplateCreate,
    request: Request,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.CREATE_TEMPLATES)
    template, error = create_template(db, studio.id, payload, ctx.user_id)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="TEMPLATE_CREATED",
        entity_type="template",
        entity_id=template.id,
        meta={"name": template.name, "slug": template.slug},
        ip=ip_from_request(request),
    )
    return template


@router.get("/{template_id}", response_model=TemplateOut, operation_id="templates_get")
def get(
    template_id: int,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.VIEW_TEMPLATES)
    return _template_in_studio(db, template_id, studio)


@router.put("/{template_id}", response_model=TemplateOut, operation_id="templates_update")
def update(
    template_id: int,
    payload: TemplateUpdate,
    request: Request,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.EDIT_TEMPLATES)
    template = _template_in_studio(db, template_id, studio)
    updated, error = update_template(db, template, payload)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="TEMPLATE_UPDATED",
        entity_type="template",
        entity_id=template_id,
        ip=ip_from_request(request),
    )
    return updated


@router.delete("/{template_id}", status_code=204, operation_id="templates_delete")
def delete(
    template_id: int,
    request: Request,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.DELETE_TEMPLATES)
    template = _template_in_studio(db, template_id, studio)
    ok, error = delete_template(db, template)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="TEMPLATE_DELETED",
        entity_type="template",
        entity_id=template_id,
        ip=ip_from_request(request),
    )
    return None
