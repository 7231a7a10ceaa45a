# tests/test_cleanup.py
from datetime import timedelta

from app.crud.invitation import get_invitation, send_invitation
from app.crud.user_profile import activate_profile, get_profile
from app.db.base import utcnow
from app.services.audit import list_audit_logs
from app.services.cleanup import cleanup_expired_invitations, find_expired_pending_profiles
from app.services.identity import IdentityProvider
from app.worker.scheduler import make_scheduler


def test_nothing_to_clean(db, make_user):
    make_user("alice@inkart.it")
    result = cleanup_expired_invitations(db, expiration_days=7)
    assert result.success
    assert result.as_dict() == {
        "success": True,
        "deleted_users": 0,
        "deleted_profiles": 0,
        "expired_invitations": 0,
        "errors": [],
    }


def test_abandoned_invites_are_removed(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    inv, err = send_invitation(db, studio.id, "bob@inkart.it", "studio_member", alice.id, notify=False)
    assert err is None
    bob_id = IdentityProvider(db).get_by_email("bob@inkart.it").id

    # still within the grace period
    assert find_expired_pending_profiles(db, 7) == []

    result = cleanup_expired_invitations(db, expiration_days=7, now=utcnow() + timedelta(days=8))

    assert result.success
    assert result.errors == []
    assert result.deleted_users == 1
    assert result.deleted_profiles == 1
    assert result.expired_invitations == 1

    db.expire_all()
    assert IdentityProvider(db).get(bob_id) is None
    assert get_profile(db, bob_id) is None
    assert get_invitation(db, inv.id).status == "expired"
    # active users are untouched
    assert get_profile(db, alice.id).status == "active"
    assert len(list_audit_logs(db, action="CLEANUP_RUN")) == 1


def test_set_password_users_survive(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    send_invitation(db, studio.id, "bob@inkart.it", "studio_member", alice.id, notify=False)
    provider = IdentityProvider(db)
    bob = provider.get_by_email("bob@inkart.it")
    provider.set_credential(bob, "segreta123")
    activate_profile(db, bob.id)

    result = cleanup_expired_invitations(db, expiration_days=7, now=utcnow() + timedelta(days=30))
    assert result.deleted_users == 0
    db.expire_all()
    assert provider.get(bob.id) is not None


def test_scheduler_registers_daily_job(monkeypatch):
    monkeypatch.setenv("APP_TIMEZONE", "Europe/Rome")
    monkeypatch.setenv("APP_SCHEDULER_HOUR", "4")
    sched = make_scheduler()
    job = sched.get_job("cleanup_expired_invitations")
    assert job is not None
    assert str(sched.timezone) == "Europe/Rome"
    assert "hour='4'" in str(job.trigger)
