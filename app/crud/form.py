# app/crud/form.py
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.db.base import utcnow
from app.models.form import Form
from app.schemas.form import FormCreate, FormUpdate

logger = logging.getLogger("app.forms")

ERR_DUPLICATE_NUMBER = "Numero modulo già esistente"
CLIENT_SEARCH_LIMIT = 50


def generate_form_number(ms: Optional[int] = None) -> str:
    return f"F-{ms if ms is not None else int(time.time() * 1000)}"


def list_forms(db: Session, studio_id: int, status: Optional[str] = None) -> List[Form]:
    q = db.query(Form).filter(Form.studio_id == studio_id)
    if status:
        q = q.filter(Form.status == status)
    return q.order_by(Form.created_at.desc(), Form.id.desc()).all()


def get_form(db: Session, form_id: int) -> Optional[Form]:
    return db.get(Form, form_id)


def get_form_with_template(db: Session, form_id: int) -> Optional[Form]:
    return (
        db.query(Form)
        .options(joinedload(Form.template))
        .filter(Form.id == form_id)
        .first()
    )


def search_forms_by_client_name(db: Session, studio_id: int, client_name: str) -> List[Form]:
    return (
        db.query(Form)
        .filter(Form.studio_id == studio_id, Form.client_name.ilike(f"%{client_name}%"))
        .order_by(Form.created_at.desc())
        .limit(CLIENT_SEARCH_LIMIT)
        .all()
    )


def get_forms_by_date_range(
    db: Session, studio_id: int, start: datetime, end: datetime
) -> List[Form]:
    return (
        db.query(Form)
        .filter(
            Form.studio_id == studio_id,
            Form.created_at >= start,
            Form.created_at <= end,
        )
        .order_by(Form.created_at.desc())
        .all()
    )


def _number_taken(db: Session, form_number: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(Form.id).filter(Form.form_number == form_number)
    if exclude_id is not None:
        q = q.filter(Form.id != exclude_id)
    return q.first() is not None


def create_form(
    db: Session, studio_id: int, data: FormCreate, created_by: Optional[str]
) -> Tuple[Optional[Form], Optional[str]]:
    form_number = data.form_number
    if form_number is None:
        # millisecond clock; bump on collision
        ms = int(time.time() * 1000)
        while _number_taken(db, generate_form_number(ms)):
            ms += 1
        form_number = generate_form_number(ms)
    elif _number_taken(db, form_number):
        return None, ERR_DUPLICATE_NUMBER

    values = data.model_dump(exclude={"form_number", "signatures"})
    form = Form(
        **values,
        studio_id=studio_id,
        signatures=[s.model_dump() for s in data.signatures],
        form_number=form_number,
        created_by=created_by,
    )
    now = utcnow()
    if form.status == "completed":
        form.completed_at = now
    elif form.status == "signed":
        form.signed_at = now
    try:
        db.add(form)
        db.commit()
    except IntegrityError:
        db.rollback()
        return None, ERR_DUPLICATE_NUMBER
    except Exception:
        db.rollback()
        logger.exception("create_form failed (studio_id=%s)", studio_id)
        return None, "Errore durante la creazione del modulo"
    db.refresh(form)
    return form, None


def update_form(
    db: Session, form: Form, data: FormUpdate
) -> Tuple[Optional[Form], Optional[str]]:
    values = data.model_dump(exclude_unset=True)
    if values.get("form_number") and _number_taken(db, values["form_number"], exclude_id=form.id):
        return None, ERR_DUPLICATE_NUMBER

    # status transitions stamp their timestamp unless the caller supplied one
    status = values.get("status")
    if status == "completed" and not values.get("completed_at"):
        values["completed_at"] = utcnow()
    if status == "signed" and not values.get("signed_at"):
        values["signed_at"] = utcnow()
    if "signatures" in values and values["signatures"] is not None:
        values["signatures"] = [s.model_dump() for s in data.signatures]

    for field, value in values.items():
        setattr(form, field, value)
    try:
        db.add(form)
        db.commit()
    except IntegrityError:
        db.rollback()
        return None, ERR_DUPLICATE_NUMBER
    except Exception:
        db.rollback()
        logger.exception("update_form failed (form_id=%s)", form.id)
        return None, "Errore durante l'aggiornamento del modulo"
    db.refresh(form)
    return form, None


def delete_form(db: Session, form: Form) -> Tuple[bool, Optional[str]]:
    try:
        db.delete(form)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("delete_form failed (form_id=%s)", form.id)
        return False, "Errore durante l'eliminazione del modulo"
    return True, None
