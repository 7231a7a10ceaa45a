# app/crud/template.py
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.crud.studio import generate_slug
from app.models.template import Template
from app.schemas.template import TemplateCreate, TemplateUpdate

logger = logging.getLogger("app.templates")

ERR_SLUG_TAKEN = "Questo identificativo URL è già in uso"
ERR_NOT_FOUND = "Template non trovato"


def list_templates(db: Session, studio_id: int) -> List[Template]:
    return (
        db.query(Template)
        .filter(Template.studio_id == studio_id, Template.is_active.is_(True))
        .order_by(Template.created_at.desc(), Template.id.desc())
        .all()
    )


def get_template(db: Session, template_id: int) -> Optional[Template]:
    return db.get(Template, template_id)


def get_template_by_slug(db: Session, studio_id: int, slug: str) -> Optional[Template]:
    return (
        db.query(Template)
        .filter(Template.studio_id == studio_id, Template.slug == slug)
        .first()
    )


def _slug_taken(db: Session, studio_id: int, slug: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(Template.id).filter(Template.studio_id == studio_id, Template.slug == slug)
    if exclude_id is not None:
        q = q.filter(Template.id != exclude_id)
    return q.first() is not None


def create_template(
    db: Session, studio_id: int, data: TemplateCreate, created_by: Optional[str]
) -> Tuple[Optional[Template], Optional[str]]:
    slug = generate_slug(data.slug or data.name)
    if not slug or _slug_taken(db, studio_id, slug):
        return None, ERR_SLUG_TAKEN

    template = Template(
        studio_id=studio_id,
        name=data.name.strip(),
        slug=slug,
        description=data.description,
        schema=data.schema_.model_dump(exclude_none=True),
        is_default=data.is_default,
        is_active=data.is_active,
        created_by=created_by,
    )
    try:
        db.add(template)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("create_template failed (studio_id=%s, slug=%s)", studio_id, slug)
        return None, "Errore durante la creazione del template"
    db.refresh(template)
    return template, None


def update_template(
    db: Session, template: Template, data: TemplateUpdate
) -> Tuple[Optional[Template], Optional[str]]:
    values = data.model_dump(exclude_unset=True, by_alias=False)
    if "slug" in values and values["slug"] is not None:
        values["slug"] = generate_slug(values["slug"])
        if not values["slug"] or _slug_taken(db, template.studio_id, values["slug"], exclude_id=template.id):
            return None, ERR_SLUG_TAKEN

    if "schema_" in values:
        schema = values.pop("schema_")
        if schema is not None:
            template.schema = data.schema_.model_dump(exclude_none=True)

    for field, value in values.items():
        if value is None and field in ("name", "slug", "is_default", "is_active"):
            continue
        setattr(template, field, value)
    try:
        db.add(template)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("update_template failed (template_id=%s)", template.id)
        return None, "Errore durante l'aggiornamento del template"
    db.refresh(template)
    return template, None


def delete_template(db: Session, template: Template) -> Tuple[bool, Optional[str]]:
    """Soft delete: forms keep pointing at the template."""
    try:
        template.is_active = False
        db.add(template)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("delete_template failed (template_id=%s)", template.id)
        return False, "Errore durante l'eliminazione del template"
    return True, None
