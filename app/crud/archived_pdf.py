# app/crud/archived_pdf.py
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.archived_pdf import ArchivedPDF
from app.schemas.archived_pdf import ArchivedPDFCreate, ArchivedPDFUpdate

logger = logging.getLogger("app.archive")

DEFAULT_SEARCH_LIMIT = 20
MAX_SEARCH_LIMIT = 100


def search_archived_pdfs(
    db: Session,
    studio_id: int,
    *,
    client_name: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    template_id: Optional[int] = None,
    form_type: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[List[ArchivedPDF], int]:
    """Filtered page of a studio's archive, newest form_date first, plus the total count."""
    q = db.query(ArchivedPDF).filter(ArchivedPDF.studio_id == studio_id)
    if client_name:
        q = q.filter(ArchivedPDF.client_name.ilike(f"%{client_name}%"))
    if start_date:
        q = q.filter(ArchivedPDF.form_date >= start_date)
    if end_date:
        q = q.filter(ArchivedPDF.form_date <= end_date)
    if template_id:
        q = q.filter(ArchivedPDF.template_id == template_id)
    if form_type:
        q = q.filter(ArchivedPDF.form_type.ilike(f"%{form_type}%"))

    total = q.count()
    limit = min(limit or DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT)
    rows = (
        q.order_by(ArchivedPDF.form_date.desc(), ArchivedPDF.id.desc())
        .offset(max(offset, 0))
        .limit(limit)
        .all()
    )
    return rows, total


def get_archived_pdf(db: Session, pdf_id: int) -> Optional[ArchivedPDF]:
    return db.get(ArchivedPDF, pdf_id)


def get_archived_pdf_by_form(db: Session, form_id: int) -> Optional[ArchivedPDF]:
    return (
        db.query(ArchivedPDF)
        .filter(ArchivedPDF.form_id == form_id)
        .order_by(ArchivedPDF.created_at.desc(), ArchivedPDF.id.desc())
        .first()
    )


def create_archived_pdf(
    db: Session, studio_id: int, data: ArchivedPDFCreate, created_by: Optional[str]
) -> Tuple[Optional[ArchivedPDF], Optional[str]]:
    values = data.model_dump(exclude={"metadata"})
    pdf = ArchivedPDF(
        **values,
        studio_id=studio_id,
        pdf_metadata=data.metadata,
        created_by=created_by,
    )
    try:
        db.add(pdf)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("create_archived_pdf failed (studio_id=%s, form_id=%s)", studio_id, data.form_id)
        return None, "Errore durante il salvataggio del PDF"
    db.refresh(pdf)
    return pdf, None


def update_archived_pdf(
    db: Session, pdf: ArchivedPDF, data: ArchivedPDFUpdate
) -> Tuple[Optional[ArchivedPDF], Optional[str]]:
    values = data.model_dump(exclude_unset=True)
    if values.get("metadata") is not None:
        pdf.pdf_metadata = values["metadata"]
    if values.get("is_encrypted") is not None:
        pdf.is_encrypted = values["is_encrypted"]
    try:
        db.add(pdf)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("update_archived_pdf failed (pdf_id=%s)", pdf.id)
        return None, "Errore durante l'aggiornamento del PDF"
    db.refresh(pdf)
    return pdf, None


def delete_archived_pdf(db: Session, pdf: ArchivedPDF) -> Tuple[bool, Optional[str]]:
    try:
        db.delete(pdf)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("delete_archived_pdf failed (pdf_id=%s)", pdf.id)
        return False, "Errore durante l'eliminazione del PDF"
    return True, None


def get_storage_stats(db: Session, studio_id: int) -> dict:
    total_files, total_size, oldest, newest = (
        db.query(
            func.count(ArchivedPDF.id),
            func.coalesce(func.sum(ArchivedPDF.file_size), 0),
            func.min(ArchivedPDF.created_at),
            func.max(ArchivedPDF.created_at),
        )
        .filter(ArchivedPDF.studio_id == studio_id)
        .one()
    )
    return {
        "total_files": int(total_files or 0),
        "total_size_bytes": int(total_size or 0),
        "oldest_file": oldest,
        "newest_file": newest,
    }
