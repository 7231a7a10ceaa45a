# tests/test_invitations.py
import json
from datetime import datetime, timedelta

from app.core.security import TOKEN_INVITE, decode_token
from app.crud.invitation import (
    ERR_ALREADY_MEMBER,
    ERR_CANNOT_CANCEL,
    ERR_CANNOT_INVITE,
    ERR_CANNOT_LIST,
    ERR_DUPLICATE,
    ERR_NOT_FOUND,
    ERR_NOT_FOUND_OR_EXPIRED,
    ERR_NOT_RESENDABLE,
    ERR_WRONG_EMAIL,
    accept_invitation,
    cancel_invitation,
    decline_invitation,
    expire_stale_invitations,
    get_invitation,
    get_invitation_by_token,
    get_invitation_details,
    list_invitations_for_email,
    list_studio_invitations,
    resend_invitation,
    send_invitation,
)
from app.crud.studio import create_studio
from app.crud.user_profile import get_profile
from app.db.session import SessionLocal
from app.models.identity import Identity
from app.schemas.studio import StudioCreate
from app.services.audit import list_audit_logs
from app.services.identity import IdentityProvider
from app.services.notifications import render_message

T0 = datetime(2026, 3, 2, 10, 0, 0)


def _invite(db, studio, email, sender, role="studio_member", now=T0, notify=False):
    return send_invitation(db, studio.id, email, role, sender.id, now=now, notify=notify)


def test_invite_unknown_email_provisions_pending_account(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)

    inv, err = _invite(db, studio, "bob@inkart.it", alice)

    assert err is None
    assert inv.status == "pending"
    assert inv.role == "studio_member"
    assert inv.invited_by == alice.id
    assert inv.expires_at == T0 + timedelta(days=7)
    assert len(inv.token) >= 32

    bob = IdentityProvider(db).get_by_email("bob@inkart.it")
    assert bob is not None
    assert bob.hashed_password is None
    profile = get_profile(db, bob.id)
    assert profile.status == "pending"
    assert profile.studio_id == studio.id
    assert profile.invited_by == alice.id


def test_accept_joins_studio(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    bob = IdentityProvider(db).get_by_email("bob@inkart.it")

    ok, err = accept_invitation(db, inv.token, bob, now=T0 + timedelta(days=1))

    assert (ok, err) == (True, None)
    inv = get_invitation(db, inv.id)
    assert inv.status == "accepted"
    assert inv.accepted_at == T0 + timedelta(days=1)
    profile = get_profile(db, bob.id)
    assert profile.status == "active"
    assert profile.role == "studio_member"
    assert profile.studio_id == studio.id


def test_accepted_token_cannot_be_reused(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    bob = IdentityProvider(db).get_by_email("bob@inkart.it")

    assert accept_invitation(db, inv.token, bob, now=T0) == (True, None)
    assert accept_invitation(db, inv.token, bob, now=T0) == (False, ERR_NOT_FOUND_OR_EXPIRED)


def test_racing_accepts_only_one_wins(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    bob = IdentityProvider(db).get_by_email("bob@inkart.it")

    other = SessionLocal()
    try:
        # second request read the invitation and profile before the first committed
        stale, err = get_invitation_by_token(other, inv.token, now=T0)
        assert err is None
        stale_profile = get_profile(other, bob.id)
        assert stale_profile.status == "pending"
        other_bob = other.get(Identity, bob.id)

        assert accept_invitation(db, inv.token, bob, now=T0) == (True, None)
        assert accept_invitation(other, inv.token, other_bob, now=T0) == (
            False,
            ERR_NOT_FOUND_OR_EXPIRED,
        )
    finally:
        other.close()

    accepted = list_audit_logs(db, studio_id=studio.id, action="INVITATION_ACCEPTED")
    assert len(accepted) == 1


def test_expired_invitation(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    bob = IdentityProvider(db).get_by_email("bob@inkart.it")
    later = T0 + timedelta(days=8)

    assert get_invitation_by_token(db, inv.token, now=later) == (None, ERR_NOT_FOUND_OR_EXPIRED)
    assert accept_invitation(db, inv.token, bob, now=later) == (False, ERR_NOT_FOUND_OR_EXPIRED)
    assert get_profile(db, bob.id).status == "pending"


def test_unknown_token(db):
    assert get_invitation_by_token(db, "nope") == (None, ERR_NOT_FOUND_OR_EXPIRED)
    assert get_invitation_by_token(db, "") == (None, ERR_NOT_FOUND_OR_EXPIRED)


def test_accept_with_other_email_is_refused(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    charlie = make_user("charlie@inkart.it")

    assert accept_invitation(db, inv.token, charlie, now=T0) == (False, ERR_WRONG_EMAIL)
    assert get_invitation(db, inv.id).status == "pending"


def test_owner_cannot_accept(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    dave = make_user("dave@blackwork.it")
    inv, err = _invite(db, studio, "dave@blackwork.it", alice)
    assert err is None

    # dave opens his own studio before answering
    create_studio(db, StudioCreate(name="Black Work", email="dave@blackwork.it"), dave.id)

    ok, err = accept_invitation(db, inv.token, dave, now=T0)
    assert not ok
    assert err == (
        'Sei già proprietario dello studio "Black Work". '
        "Un utente può possedere solo uno studio."
    )


def test_cannot_invite_members_of_other_studios(db, make_user, make_studio, make_member):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    dave = make_user("dave@blackwork.it")
    other = make_studio(dave, "Black Work")
    make_member(other, "erin@blackwork.it")

    assert _invite(db, studio, "dave@blackwork.it", alice) == (None, ERR_ALREADY_MEMBER)
    assert _invite(db, studio, "erin@blackwork.it", alice) == (None, ERR_ALREADY_MEMBER)


def test_duplicate_pending_invitation(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    _invite(db, studio, "bob@inkart.it", alice)

    assert _invite(db, studio, "bob@inkart.it", alice) == (None, ERR_DUPLICATE)
    assert _invite(db, studio, "BOB@inkart.it", alice) == (None, ERR_DUPLICATE)


def test_members_cannot_invite(db, make_user, make_studio, make_member):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    bob = make_member(studio, "bob@inkart.it")
    carol = make_member(studio, "carol@inkart.it", role="studio_admin")

    assert _invite(db, studio, "frank@inkart.it", bob) == (None, ERR_CANNOT_INVITE)
    inv, err = _invite(db, studio, "frank@inkart.it", carol)
    assert err is None


def test_decline(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    bob = IdentityProvider(db).get_by_email("bob@inkart.it")

    assert decline_invitation(db, inv.token, bob, now=T0) == (True, None)
    inv = get_invitation(db, inv.id)
    assert inv.status == "declined"
    assert inv.declined_at == T0
    assert accept_invitation(db, inv.token, bob, now=T0) == (False, ERR_NOT_FOUND_OR_EXPIRED)


def test_cancel(db, make_user, make_studio, make_member):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    bob = make_member(studio, "bob@inkart.it")
    inv, _ = _invite(db, studio, "frank@inkart.it", alice)

    assert cancel_invitation(db, inv.id, bob.id) == (False, ERR_CANNOT_CANCEL)
    assert cancel_invitation(db, inv.id, alice.id) == (True, None)
    assert get_invitation(db, inv.id) is None
    assert cancel_invitation(db, inv.id, alice.id) == (False, ERR_NOT_FOUND)


def test_resend_rotates_token_and_expiry(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    old_token = inv.token
    later = T0 + timedelta(days=10)
    assert expire_stale_invitations(db, now=later) == 1

    resent, err = resend_invitation(db, inv.id, alice.id, now=later, notify=False)

    assert err is None
    assert resent.status == "pending"
    assert resent.token != old_token
    assert resent.expires_at == later + timedelta(days=7)
    assert get_invitation_by_token(db, old_token, now=later) == (None, ERR_NOT_FOUND_OR_EXPIRED)
    found, err = get_invitation_by_token(db, resent.token, now=later)
    assert err is None and found.id == inv.id


def test_list_invitations(db, make_user, make_studio, make_member):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    bob = make_member(studio, "bob@inkart.it")
    _invite(db, studio, "frank@inkart.it", alice)
    _invite(db, studio, "gina@inkart.it", alice)

    rows, err = list_studio_invitations(db, studio.id, alice.id)
    assert err is None
    assert {r.invited_email for r in rows} == {"frank@inkart.it", "gina@inkart.it"}
    assert list_studio_invitations(db, studio.id, bob.id) == (None, ERR_CANNOT_LIST)

    pending = list_invitations_for_email(db, "frank@inkart.it", now=T0)
    assert [p.invited_email for p in pending] == ["frank@inkart.it"]
    assert list_invitations_for_email(db, "frank@inkart.it", now=T0 + timedelta(days=8)) == []


def test_invitation_details(db, make_user, make_studio):
    alice = make_user("alice@inkart.it", full_name="Alice Rossi")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)

    details, err = get_invitation_details(db, inv.token, now=T0)
    assert err is None
    assert details["studio"].slug == "ink-art"
    assert details["inviter"].full_name == "Alice Rossi"


def test_invitation_email_is_logged_and_audited(db, make_user, make_studio):
    alice = make_user("alice@inkart.it", full_name="Alice Rossi")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice, notify=True)

    sent = list_audit_logs(db, studio_id=studio.id, action="NOTIFICATION_SENT")
    assert len(sent) == 1
    meta = json.loads(sent[0].meta)
    assert meta["to"] == "bob@inkart.it"
    assert meta["subject"] == "Invito a unirti a Ink & Art"
    assert sent[0].entity_id == str(inv.id)


def test_render_invitation_message():
    msg = render_message(
        "studio_invitation",
        {
            "studio_name": "Ink & Art",
            "inviter_name": "Alice Rossi",
            "role": "studio_member",
            "view_url": "http://localhost:8000/invitation/tok",
            "expires_at": "09/03/2026 10:00",
        },
    )
    assert msg["subject"] == "Invito a unirti a Ink & Art"
    assert 'Alice Rossi ti ha invitato a unirti a "Ink & Art" come membro.' in msg["body"]
    assert "http://localhost:8000/invitation/tok\n" in msg["body"]
    assert "/accept" not in msg["body"]


def test_used_invitations_cannot_be_resent(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    bob = IdentityProvider(db).get_by_email("bob@inkart.it")
    assert accept_invitation(db, inv.token, bob, now=T0) == (True, None)

    assert resend_invitation(db, inv.id, alice.id, now=T0, notify=False) == (None, ERR_NOT_RESENDABLE)
    db.expire_all()
    assert get_invitation(db, inv.id).status == "accepted"

    declined, _ = _invite(db, studio, "frank@inkart.it", alice)
    frank = IdentityProvider(db).get_by_email("frank@inkart.it")
    decline_invitation(db, declined.token, frank, now=T0)
    assert resend_invitation(db, declined.id, alice.id, now=T0, notify=False) == (
        None,
        ERR_NOT_RESENDABLE,
    )


def test_resend_refused_next_to_a_live_invitation(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    old, _ = _invite(db, studio, "bob@inkart.it", alice, now=T0 - timedelta(days=8))
    new, err = _invite(db, studio, "bob@inkart.it", alice, now=T0)
    assert err is None

    assert resend_invitation(db, old.id, alice.id, now=T0, notify=False) == (None, ERR_DUPLICATE)
    assert len(list_invitations_for_email(db, "bob@inkart.it", now=T0)) == 1

    # a still-pending invitation can be resent on its own
    resent, err = resend_invitation(db, new.id, alice.id, now=T0, notify=False)
    assert err is None and resent.id == new.id


def test_resend_mails_a_new_sign_in_link(db, monkeypatch, make_user, make_studio):
    sent = []
    monkeypatch.setattr(
        "app.crud.invitation.send_invitation_email", lambda db, **kw: sent.append(kw)
    )
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    bob = IdentityProvider(db).get_by_email("bob@inkart.it")

    resend_invitation(db, inv.id, alice.id, now=T0 + timedelta(days=3))
    claims = decode_token(sent[-1]["access_token"], expected_type=TOKEN_INVITE)
    assert claims["sub"] == bob.id

    # once the password is set the mail carries only the invitation link
    IdentityProvider(db).set_credential(bob, "segreta123")
    resend_invitation(db, inv.id, alice.id, now=T0 + timedelta(days=3))
    assert sent[-1]["access_token"] is None


def test_expiry_boundary_is_the_same_everywhere(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, _ = _invite(db, studio, "bob@inkart.it", alice)
    at_expiry = inv.expires_at

    assert get_invitation_by_token(db, inv.token, now=at_expiry) == (None, ERR_NOT_FOUND_OR_EXPIRED)
    assert list_invitations_for_email(db, "bob@inkart.it", now=at_expiry) == []
    assert expire_stale_invitations(db, now=at_expiry) == 1
    assert get_invitation(db, inv.id).status == "expired"

    again, err = _invite(db, studio, "bob@inkart.it", alice, now=at_expiry)
    assert err is None and again.id != inv.id
