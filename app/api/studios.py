# app/api/studios.py
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.orm import Session

from app.api.deps import action_error, action_ok, get_current_studio, parse_form, redirect
from app.core.auth import AuthContext, get_auth_context, get_db
from app.core import rbac
from app.crud.archived_pdf import get_storage_stats
from app.crud.form import list_forms
from app.crud.studio import (
    ERR_NOT_OWNER_DELETE,
    ERR_NOT_OWNER_UPDATE,
    create_studio,
    delete_studio,
    update_studio,
)
from app.crud.template import list_templates
from app.crud.user_profile import can_create_studio, list_studio_profiles
from app.models.studio import Studio
from app.schemas.studio import StudioCreate, StudioOut, StudioUpdate
from app.services.audit import audit_log, ip_from_request

router = APIRouter(prefix="/studio", tags=["studios"])

@router.get("/create", operation_id="studio_create_page")
def create_page(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return {"page": "studio_create", "can_create": can_create_studio(db, ctx.user_id)}


@router.post("/create", operation_id="studio_create")
def create(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    phone: Optional[str] = Form(None),
    website: Optional[str] = Form(None),
    address_street: Optional[str] = Form(None),
    address_city: Optional[str] = Form(None),
    address_province: Optional[str] = Form(None),
    address_postal_code: Optional[str] = Form(None),
    address_country: Optional[str] = Form(None),
    partita_iva: Optional[str] = Form(None),
    codice_fiscale: Optional[str] = Form(None),
    business_name: Optional[str] = Form(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    raw = {
        "name": name,
        "email": email,
        "phone": phone,
        "website": website,
        "address_street": address_street,
        "address_city": address_city,
        "address_province": address_province,
        "address_postal_code": address_postal_code,
        "address_country": address_country,
        "partita_iva": partita_iva,
        "codice_fiscale": codice_fiscale,
        "business_name": business_name,
    }
    payload, err = parse_form(StudioCreate, raw)
    if err:
        return err

    studio, error = create_studio(db, payload, ctx.user_id)
    if error:
        return action_error(error)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="STUDIO_CREATED",
        entity_type="studio",
        entity_id=studio.id,
        meta={"name": studio.name, "slug": studio.slug},
        ip=ip_from_request(request),
    )
    return redirect("/studio")


@router.get("", operation_id="studio_dashboard")
def dashboard(
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    perms = rbac.studio_permissions(db, studio, ctx.user_id)
    if rbac.VIEW_STUDIO not in perms:
        return action_error("Non hai accesso a questo studio", status_code=403)
    return {
        "page": "dashboard",
        "studio": StudioOut.model_validate(studio),
        "is_owner": rbac.is_owner(studio, ctx.user_id),
        "role": ctx.role,
        "permissions": sorted(perms),
        "member_count": len(list_studio_profiles(db, studio.id)),
        "template_count": len(list_templates(db, studio.id)),
        "form_count": len(list_forms(db, studio.id)),
        "archive": get_storage_stats(db, studio.id),
    }


@router.get("/settings", operation_id="studio_settings_page")
def settings_page(
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.VIEW_STUDIO)
    return {
        "page": "studio_settings",
        "studio": StudioOut.model_validate(studio),
        "can_edit": rbac.is_owner(studio, ctx.user_id),
    }


@router.post("/settings", operation_id="studio_update")
def update(
    request: Request,
    name: Optional[str] = Form(None),
    slug: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    website: Optional[str] = Form(None),
    address_street: Optional[str] = Form(None),
    address_city: Optional[str] = Form(None),
    address_province: Optional[str] = Form(None),
    address_postal_code: Optional[str] = Form(None),
    address_country: Optional[str] = Form(None),
    partita_iva: Optional[str] = Form(None),
    codice_fiscale: Optional[str] = Form(None),
    business_name: Optional[str] = Form(None),
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    raw = {
        "name": name,
        "slug": slug,
        "email": email,
        "phone": phone,
        "website": website,
        "address_street": address_street,
        "address_city": address_city,
        "address_province": address_province,
        "address_postal_code": address_postal_code,
        "address_country": address_country,
        "partita_iva": partita_iva,
        "codice_fiscale": codice_fiscale,
        "business_name": business_name,
    }
    payload, err = parse_form(StudioUpdate, raw)
    if err:
        return err

    updated, error = update_studio(db, studio.id, payload, ctx.user_id)
    if error:
        return action_error(error, status_code=403 if error == ERR_NOT_OWNER_UPDATE else 400)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="STUDIO_UPDATED",
        entity_type="studio",
        entity_id=studio.id,
        meta={"fields": sorted(payload.model_dump(exclude_unset=True).keys())},
        ip=ip_from_request(request),
    )
    return action_ok(StudioOut.model_validate(updated))


@router.post("/delete", operation_id="studio_delete")
def delete(
    request: Request,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    studio_id = studio.id
    ok, error = delete_studio(db, studio_id, ctx.user_id)
    if not ok:
        return action_error(error, status_code=403 if error == ERR_NOT_OWNER_DELETE else 400)

    audit_log(
        db,
        studio_id=studio_id,
        user_id=ctx.user_id,
        action="STUDIO_DELETED",
        entity_type="studio",
        entity_id=studio_id,
        ip=ip_from_request(request),
    )
    return action_ok({"message": "Studio eliminato"})
