# app/core/rbac.py
from __future__ import annotations

from typing import FrozenSet, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.studio import Studio
from app.models.user_profile import (
    UserProfile,
    ROLE_STUDIO_ADMIN,
    ROLE_STUDIO_MEMBER,
    STATUS_ACTIVE,
)

# -----------------------------
# Operation names
# -----------------------------
VIEW_STUDIO = "view_studio"
EDIT_STUDIO = "edit_studio"
DELETE_STUDIO = "delete_studio"
MANAGE_MEMBERS = "manage_members"

VIEW_TEMPLATES = "view_templates"
CREATE_TEMPLATES = "create_templates"
EDIT_TEMPLATES = "edit_templates"
DELETE_TEMPLATES = "delete_templates"

VIEW_FORMS = "view_forms"
CREATE_FORMS = "create_forms"
EDIT_FORMS = "edit_forms"
DELETE_FORMS = "delete_forms"

VIEW_ARCHIVED_PDFS = "view_archived_pdfs"
CREATE_ARCHIVED_PDFS = "create_archived_pdfs"
EDIT_ARCHIVED_PDFS = "edit_archived_pdfs"
DELETE_ARCHIVED_PDFS = "delete_archived_pdfs"

_CONTENT_OPS = frozenset(
    {
        VIEW_TEMPLATES,
        CREATE_TEMPLATES,
        EDIT_TEMPLATES,
        DELETE_TEMPLATES,
        VIEW_FORMS,
        CREATE_FORMS,
        EDIT_FORMS,
        DELETE_FORMS,
        VIEW_ARCHIVED_PDFS,
        CREATE_ARCHIVED_PDFS,
        EDIT_ARCHIVED_PDFS,
        DELETE_ARCHIVED_PDFS,
    }
)

ALL_OPERATIONS: FrozenSet[str] = _CONTENT_OPS | {
    VIEW_STUDIO,
    EDIT_STUDIO,
    DELETE_STUDIO,
    MANAGE_MEMBERS,
}

# Static role -> operations. Deleting a studio is reserved to its owner.
ROLE_PERMISSIONS = {
    ROLE_STUDIO_ADMIN: _CONTENT_OPS | {VIEW_STUDIO, EDIT_STUDIO, MANAGE_MEMBERS},
    ROLE_STUDIO_MEMBER: _CONTENT_OPS | {VIEW_STUDIO},
}


# -----------------------------
# Role table
# -----------------------------
def permissions_for(role: Optional[str]) -> FrozenSet[str]:
    """Operations granted by a role. Unknown roles get nothing."""
    return ROLE_PERMISSIONS.get(role or "", frozenset())


def has_permission(role: Optional[str], operation: str) -> bool:
    return operation in permissions_for(role)


# -----------------------------
# Studio-level checks
# -----------------------------
def is_owner(studio: Optional[Studio], user_id: Optional[str]) -> bool:
    return bool(studio is not None and user_id and studio.owner_id == user_id)


def studio_permissions(db: Session, studio: Optional[Studio], user_id: Optional[str]) -> FrozenSet[str]:
    """
    Effective permissions of a user on a studio:
      - owner → every operation (including delete_studio)
      - active profile bound to the studio → role table
      - otherwise → nothing
    """
    if studio is None or not user_id:
        return frozenset()
    if is_owner(studio, user_id):
        return ALL_OPERATIONS

    profile = db.get(UserProfile, user_id)
    if (
        profile is None
        or profile.studio_id != studio.id
        or profile.status != STATUS_ACTIVE
    ):
        return frozenset()
    return permissions_for(profile.role)


def can(db: Session, studio: Optional[Studio], user_id: Optional[str], operation: str) -> bool:
    return operation in studio_permissions(db, studio, user_id)


def ensure_studio_permission(
    db: Session, studio: Optional[Studio], user_id: Optional[str], operation: str
) -> None:
    """Raise 403 unless the user may perform `operation` on the studio."""
    if studio is None or not studio.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Studio non trovato"
        )
    if not can(db, studio, user_id, operation):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Non hai i permessi per questa operazione",
        )
