# app/crud/studio.py
from __future__ import annotations

import logging
import re
import unicodedata
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.db.base import utcnow
from app.models.studio import Studio
from app.models.user_profile import (
    UserProfile,
    ROLE_STUDIO_ADMIN,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
)
from app.schemas.studio import StudioCreate, StudioUpdate

logger = logging.getLogger("app.studios")

ERR_NOT_ADMIN = "Solo gli amministratori studio possono creare uno studio."
ERR_ALREADY_HAS_STUDIO = "Hai già uno studio. Un utente può creare solo uno studio."
ERR_NOT_ACTIVE = "Completa la configurazione del tuo account prima di creare uno studio."
ERR_SLUG_TAKEN = "Questo identificativo URL è già in uso"
ERR_NOT_FOUND = "Studio non trovato"
ERR_NOT_OWNER_UPDATE = "Solo il proprietario può modificare lo studio"
ERR_NOT_OWNER_DELETE = "Solo il proprietario può eliminare lo studio"


# --- slug ---
# characters NFKD does not decompose to ASCII, plus the common accented ones
_TRANSLIT = {
    "à": "a", "á": "a", "â": "a", "ã": "a", "ä": "a", "å": "a", "æ": "a",
    "ç": "c", "č": "c", "ć": "c",
    "è": "e", "é": "e", "ê": "e", "ë": "e",
    "ì": "i", "í": "i", "î": "i", "ï": "i",
    "ñ": "n",
    "ò": "o", "ó": "o", "ô": "o", "õ": "o", "ö": "o", "ø": "o", "œ": "o",
    "ù": "u", "ú": "u", "û": "u", "ü": "u",
    "ý": "y", "ÿ": "y",
    "đ": "d", "ł": "l", "ż": "z", "ź": "z", "ž": "z",
    "ś": "s", "š": "s", "ș": "s", "ş": "s", "ț": "t", "ţ": "t",
    "ß": "ss",
}

_NON_WORD = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def generate_slug(name: str) -> str:
    """
    "Ink & Art" -> "ink-art", "Tattoo Città" -> "tattoo-citta".
    Deterministic and idempotent: generate_slug(generate_slug(x)) == generate_slug(x).
    """
    s = (name or "").lower()
    s = "".join(_TRANSLIT.get(ch, ch) for ch in s)
    # anything else with a decomposition falls back to its base letter
    s = unicodedata.normalize("NFKD", s).encode("ascii", "ignore").decode("ascii")
    s = _NON_WORD.sub("", s)
    s = _SEPARATORS.sub("-", s)
    return s.strip("-")


# --- queries ---
def get_studio(db: Session, studio_id: int) -> Optional[Studio]:
    return db.get(Studio, studio_id)


def get_studio_by_slug(db: Session, slug: str) -> Optional[Studio]:
    return (
        db.query(Studio)
        .filter(Studio.slug == slug, Studio.is_active.is_(True))
        .first()
    )


def slug_in_use(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(Studio.id).filter(Studio.slug == slug, Studio.is_active.is_(True))
    if exclude_id is not None:
        q = q.filter(Studio.id != exclude_id)
    return q.first() is not None


def get_owned_studio(db: Session, user_id: str) -> Optional[Studio]:
    return (
        db.query(Studio)
        .filter(Studio.owner_id == user_id, Studio.is_active.is_(True))
        .first()
    )


def list_user_studios(db: Session, user_id: str) -> List[Studio]:
    """Active studios the user owns or is an active member of."""
    profile = db.get(UserProfile, user_id)
    member_of = (
        profile.studio_id
        if profile is not None and profile.status == STATUS_ACTIVE
        else None
    )
    q = db.query(Studio).filter(Studio.is_active.is_(True))
    if member_of is not None:
        q = q.filter(or_(Studio.owner_id == user_id, Studio.id == member_of))
    else:
        q = q.filter(Studio.owner_id == user_id)
    return q.order_by(Studio.created_at.desc()).all()


# --- mutations ---
def create_studio(
    db: Session, data: StudioCreate, creator_id: Optional[str]
) -> Tuple[Optional[Studio], Optional[str]]:
    """
    Create a studio owned by `creator_id` and bind the creator's profile to it.
    Returns (studio, None) or (None, error message); nothing is written on error.
    """
    if not creator_id:
        return None, "Utente non autenticato"

    profile = db.get(UserProfile, creator_id)
    if profile is None or profile.role != ROLE_STUDIO_ADMIN:
        return None, ERR_NOT_ADMIN
    if profile.studio_id is not None or get_owned_studio(db, creator_id) is not None:
        return None, ERR_ALREADY_HAS_STUDIO
    if profile.status != STATUS_ACTIVE:
        return None, ERR_NOT_ACTIVE

    slug = generate_slug(data.name)
    if not slug or slug_in_use(db, slug):
        return None, ERR_SLUG_TAKEN

    studio = Studio(
        **data.model_dump(exclude={"name"}),
        name=data.name.strip(),
        slug=slug,
        owner_id=creator_id,
    )
    try:
        db.add(studio)
        db.flush()
        profile.studio_id = studio.id
        profile.updated_at = utcnow()
        db.add(profile)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("create_studio failed (creator=%s, slug=%s)", creator_id, slug)
        return None, "Errore durante la creazione dello studio"

    db.refresh(studio)
    logger.info("studio created id=%s slug=%s owner=%s", studio.id, slug, creator_id)
    return studio, None


def update_studio(
    db: Session, studio_id: int, data: StudioUpdate, actor_id: Optional[str]
) -> Tuple[Optional[Studio], Optional[str]]:
    studio = get_studio(db, studio_id)
    if studio is None or not studio.is_active:
        return None, ERR_NOT_FOUND
    if studio.owner_id != actor_id:
        return None, ERR_NOT_OWNER_UPDATE

    values = data.model_dump(exclude_unset=True)
    new_slug = values.get("slug")
    if new_slug is not None and new_slug != studio.slug and slug_in_use(db, new_slug, exclude_id=studio.id):
        return None, ERR_SLUG_TAKEN

    for field, value in values.items():
        setattr(studio, field, value)
    try:
        db.add(studio)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("update_studio failed (studio_id=%s)", studio_id)
        return None, "Errore durante l'aggiornamento dello studio"
    db.refresh(studio)
    return studio, None


def delete_studio(
    db: Session, studio_id: int, actor_id: Optional[str]
) -> Tuple[bool, Optional[str]]:
    """Owner-only soft delete; every profile bound to the studio becomes inactive."""
    studio = get_studio(db, studio_id)
    if studio is None or not studio.is_active:
        return False, ERR_NOT_FOUND
    if studio.owner_id != actor_id:
        return False, ERR_NOT_OWNER_DELETE

    now = utcnow()
    try:
        studio.is_active = False
        studio.updated_at = now
        db.add(studio)
        db.query(UserProfile).filter(UserProfile.studio_id == studio.id).update(
            {"status": STATUS_INACTIVE, "updated_at": now},
            synchronize_session=False,
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("delete_studio failed (studio_id=%s)", studio_id)
        return False, "Errore durante l'eliminazione dello studio"

    # drop cached profile state so callers see the bulk update
    db.expire_all()
    logger.info("studio soft-deleted id=%s by=%s", studio_id, actor_id)
    return True, None
