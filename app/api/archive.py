# app/api/archive.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_studio
from app.core.auth import AuthContext, get_auth_context, get_db
from app.core import rbac
from app.crud.archived_pdf import (
    MAX_SEARCH_LIMIT,
    create_archived_pdf,
    delete_archived_pdf,
    get_archived_pdf,
    get_storage_stats,
    search_archived_pdfs,
    update_archived_pdf,
)
from app.crud.form import get_form
from app.models.archived_pdf import ArchivedPDF
from app.models.studio import Studio
from app.schemas.archived_pdf import (
    ArchivedPDFCreate,
    ArchivedPDFOut,
    ArchivedPDFPage,
    ArchivedPDFUpdate,
    StorageStats,
)
from app.services.audit import audit_log, ip_from_request

router = APIRouter(prefix="/studio/archive", tags=["archive"])


# --- helpers ---
def _pdf_in_studio(db: Session, pdf_id: int, studio: Studio) -> ArchivedPDF:
    pdf = get_archived_pdf(db, pdf_id)
    if pdf is None or pdf.studio_id != studio.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="PDF non trovato")
    return pdf


@router.get("", response_model=ArchivedPDFPage, operation_id="archive_search")
def search(
    client_name: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    template_id: Optional[int] = Query(None),
    form_type: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=MAX_SEARCH_LIMIT),
    offset: int = Query(0, ge=0),
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.VIEW_ARCHIVED_PDFS)
    rows, total = search_archived_pdfs(
        db,
        studio.id,
        client_name=client_name,
        start_date=start_date,
        end_date=end_date,
        template_id=template_id,
        form_type=form_type,
        limit=limit,
        offset=offset,
    )
    return {"data": rows, "count": total}


@router.get("/stats", response_model=StorageStats, operation_id="archive_stats")
def stats(
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.VIEW_ARCHIVED_PDFS)
    return get_storage_stats(db, studio.id)


@router.post("", response_model=ArchivedPDFOut, status_code=201, operation_id="archive_create")
def create(
    payload: ArchivedPDFCreate,
    request: Request,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.CREATE_ARCHIVED_PDFS)
    form = get_form(db, payload.form_id)
    if form is None or form.studio_id != studio.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Modulo non trovato")

    pdf, error = create_archived_pdf(db, studio.id, payload, ctx.user_id)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="PDF_ARCHIVED",
        entity_type="archived_pdf",
        entity_id=pdf.id,
        meta={"form_id": pdf.form_id, "file_name": pdf.file_name, "file_size": pdf.file_size},
        ip=ip_from_request(request),
    )
    return pdf


@router.get("/{pdf_id}", response_model=ArchivedPDFOut, operation_id="archive_get")
def get(
    pdf_id: int,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.VIEW_ARCHIVED_PDFS)
    return _pdf_in_studio(db, pdf_id, studio)


@router.patch("/{pdf_id}", response_model=ArchivedPDFOut, operation_id="archive_update")
def update(
    pdf_id: int,
    payload: ArchivedPDFUpdate,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.EDIT_ARCHIVED_PDFS)
    pdf = _pdf_in_studio(db, pdf_id, studio)
    updated, error = update_archived_pdf(db, pdf, payload)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    return updated


@router.delete("/{pdf_id}", status_code=204, operation_id="archive_delete")
def delete(
    pdf_id: int,
    request: Request,
    studio: Studio = Depends(get_current_studio),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rbac.ensure_studio_permission(db, studio, ctx.user_id, rbac.DELETE_ARCHIVED_PDFS)
    pdf = _pdf_in_studio(db, pdf_id, studio)
    ok, error = delete_archived_pdf(db, pdf)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    audit_log(
        db,
        studio_id=studio.id,
        user_id=ctx.user_id,
        action="PDF_DELETED",
        entity_type="archived_pdf",
        entity_id=pdf_id,
        ip=ip_from_request(request),
    )
    return None
