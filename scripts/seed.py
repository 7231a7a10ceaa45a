#!/usr/bin/env python3
"""
Demo seed:
- Ensures a studio admin with a studio, one active member and a consent template.
- Safe to run multiple times (idempotent).
"""
import os
import sys

# enable 'app.' imports
sys.path.append(os.getcwd())

from dotenv import load_dotenv  # noqa: E402

load_dotenv()

from sqlalchemy.orm import Session  # noqa: E402

from app.crud.studio import create_studio, get_owned_studio  # noqa: E402
from app.crud.template import create_template, get_template_by_slug  # noqa: E402
from app.crud.user_profile import get_profile, update_profile  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.models import Base  # noqa: E402
from app.models.identity import Identity  # noqa: E402
from app.models.studio import Studio  # noqa: E402
from app.models.user_profile import ROLE_STUDIO_MEMBER, STATUS_ACTIVE  # noqa: E402
from app.schemas.studio import StudioCreate  # noqa: E402
from app.schemas.template import TemplateCreate  # noqa: E402
from app.schemas.user_profile import ProfileUpdate  # noqa: E402
from app.services.identity import IdentityProvider  # noqa: E402

CONSENT_FIELDS = [
    {"id": "client_name", "type": "text", "label": "Nome e cognome", "required": True},
    {"id": "birth_date", "type": "date", "label": "Data di nascita", "required": True},
    {
        "id": "consent",
        "type": "checkbox",
        "label": "Acconsento al trattamento",
        "required": True,
        "text": "Dichiaro di aver letto l'informativa e acconsento al trattamento.",
    },
    {"id": "signature", "type": "signature", "label": "Firma del cliente", "required": True},
]


def ensure_identity(db: Session, email: str, password: str, full_name: str) -> Identity:
    provider = IdentityProvider(db)
    identity = provider.get_by_email(email)
    if identity:
        return identity
    identity, err = provider.register(email, password, full_name)
    if err:
        raise SystemExit(f"ERROR: {email}: {err}")
    return identity


def ensure_studio(db: Session, owner: Identity, name: str) -> Studio:
    studio = get_owned_studio(db, owner.id)
    if studio:
        return studio
    studio, err = create_studio(db, StudioCreate(name=name, email=owner.email), owner.id)
    if err:
        raise SystemExit(f"ERROR: studio {name!r}: {err}")
    return studio


def ensure_member(db: Session, studio: Studio, identity: Identity) -> None:
    profile = get_profile(db, identity.id)
    if profile and profile.studio_id == studio.id and profile.status == STATUS_ACTIVE:
        return
    update_profile(
        db,
        identity.id,
        ProfileUpdate(role=ROLE_STUDIO_MEMBER, studio_id=studio.id, status=STATUS_ACTIVE),
    )


def ensure_template(db: Session, studio: Studio, owner: Identity) -> None:
    if get_template_by_slug(db, studio.id, "consenso-tatuaggio"):
        return
    data = TemplateCreate(
        name="Consenso tatuaggio",
        description="Modulo di consenso informato standard",
        schema={"fields": CONSENT_FIELDS},
        is_default=True,
    )
    _, err = create_template(db, studio.id, data, owner.id)
    if err:
        raise SystemExit(f"ERROR: template: {err}")


def main():
    admin_email = os.environ.get("SEED_ADMIN_EMAIL", "admin@example.com")
    admin_password = os.environ.get("SEED_ADMIN_PASSWORD", "ChangeMe123!")
    member_email = os.environ.get("SEED_MEMBER_EMAIL", "member@example.com")
    member_password = os.environ.get("SEED_MEMBER_PASSWORD", "ChangeMe123!")
    studio_name = os.environ.get("SEED_STUDIO_NAME", "Ink & Art")

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        admin = ensure_identity(db, admin_email, admin_password, "Studio Admin")
        studio = ensure_studio(db, admin, studio_name)
        member = ensure_identity(db, member_email, member_password, "Studio Member")
        ensure_member(db, studio, member)
        ensure_template(db, studio, admin)
        print(f"OK: studio {studio.name!r} (slug={studio.slug}, id={studio.id})")
        print(f"OK: admin  -> {admin.email}")
        print(f"OK: member -> {member.email}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
