#!/usr/bin/env python3
"""
Send an invitation from the command line.

    python scripts/send_invitation.py <email> <name>
        onboarding invite: creates a password-less studio_admin account and
        sends the sign-in link; the invitee then creates their own studio.

    python scripts/send_invitation.py <email> <name> --studio <slug> [--role studio_member]
        studio invite sent on behalf of the studio owner.
"""
import argparse
import os
import sys

# enable 'app.' imports
sys.path.append(os.getcwd())

from dotenv import load_dotenv  # noqa: E402

load_dotenv()

from app.crud.invitation import send_invitation  # noqa: E402
from app.crud.studio import get_studio_by_slug  # noqa: E402
from app.db.session import SessionLocal  # noqa: E402
from app.models.user_profile import ROLES, ROLE_STUDIO_ADMIN, ROLE_STUDIO_MEMBER  # noqa: E402
from app.services.identity import IdentityProvider  # noqa: E402
from app.services.notifications import invitation_urls, send_platform_invitation_email  # noqa: E402


def invite_to_platform(db, email: str, name: str) -> int:
    provider = IdentityProvider(db)
    if provider.get_by_email(email):
        print(f"ERROR: an account for {email} already exists")
        return 1
    identity, access_token = provider.provision_invited_identity(
        email, full_name=name, role=ROLE_STUDIO_ADMIN
    )
    db.commit()
    send_platform_invitation_email(
        db, email=identity.email, name=name, user_id=identity.id, access_token=access_token
    )
    print(f"OK: invited {identity.email} (user_id={identity.id})")
    return 0


def invite_to_studio(db, email: str, name: str, slug: str, role: str) -> int:
    studio = get_studio_by_slug(db, slug)
    if studio is None:
        print(f"ERROR: no active studio with slug {slug!r}")
        return 1
    invitation, err = send_invitation(
        db, studio.id, email, role, studio.owner_id, full_name=name
    )
    if err:
        print(f"ERROR: {err}")
        return 1
    print(f"OK: invitation {invitation.id} for {invitation.invited_email} -> {studio.name}")
    print(f"    {invitation_urls(invitation.token)['view_url']}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send a studio or onboarding invitation")
    parser.add_argument("email")
    parser.add_argument("name")
    parser.add_argument("--studio", help="studio slug; omit for an onboarding invite")
    parser.add_argument("--role", choices=ROLES, default=ROLE_STUDIO_MEMBER)
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        if args.studio:
            return invite_to_studio(db, args.email, args.name, args.studio, args.role)
        return invite_to_platform(db, args.email, args.name)
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
