# tests/test_user_profile.py
import pytest

from app.crud.user_profile import (
    ProfileError,
    activate_profile,
    can_access_studio,
    can_create_studio,
    create_profile,
    delete_profile,
    get_profile,
    get_studio_role,
    list_pending_profiles,
    list_studio_members,
    update_profile,
)
from app.db.session import SessionLocal
from app.models.user_profile import STATUS_ACTIVE, STATUS_PENDING
from app.schemas.user_profile import ProfileCreate, ProfileUpdate
from app.services.identity import IdentityProvider


def test_get_profile_missing_returns_none(db):
    assert get_profile(db, "does-not-exist") is None
    assert get_profile(db, None) is None


def test_sign_up_creates_active_admin_profile(db, make_user):
    alice = make_user("alice@inkart.it")
    profile = get_profile(db, alice.id)
    assert profile.role == "studio_admin"
    assert profile.status == STATUS_ACTIVE
    assert profile.studio_id is None
    assert can_create_studio(db, alice.id)


def test_create_profile_twice_raises(db):
    identity, _ = IdentityProvider(db).provision_invited_identity("eve@inkart.it")
    db.commit()
    # provisioning already created the profile row
    other = SessionLocal()
    try:
        with pytest.raises(ProfileError):
            create_profile(other, ProfileCreate(user_id=identity.id, role="studio_member"))
    finally:
        other.close()


def test_partial_update_only_touches_given_fields(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    bob = make_user("bob@inkart.it")

    update_profile(db, bob.id, ProfileUpdate(studio_id=studio.id))
    profile = get_profile(db, bob.id)
    assert profile.studio_id == studio.id
    assert profile.role == "studio_admin"
    assert profile.status == STATUS_ACTIVE


def test_update_unknown_profile_returns_none(db):
    assert update_profile(db, "nobody", ProfileUpdate(role="studio_member")) is None


def test_concurrent_updates_on_different_fields_both_persist(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    bob = make_user("bob@inkart.it")

    s1, s2 = SessionLocal(), SessionLocal()
    try:
        # both sessions hold the old row before writing
        assert get_profile(s1, bob.id).role == "studio_admin"
        assert get_profile(s2, bob.id).studio_id is None
        update_profile(s1, bob.id, ProfileUpdate(role="studio_member"))
        update_profile(s2, bob.id, ProfileUpdate(studio_id=studio.id))
    finally:
        s1.close()
        s2.close()

    db.expire_all()
    profile = get_profile(db, bob.id)
    assert profile.role == "studio_member"
    assert profile.studio_id == studio.id


def test_same_field_last_write_wins(db, make_user):
    bob = make_user("bob@inkart.it")
    s1, s2 = SessionLocal(), SessionLocal()
    try:
        update_profile(s1, bob.id, ProfileUpdate(status=STATUS_PENDING))
        update_profile(s2, bob.id, ProfileUpdate(status="inactive"))
    finally:
        s1.close()
        s2.close()

    db.expire_all()
    assert get_profile(db, bob.id).status == "inactive"


def test_activate_profile(db):
    identity, _ = IdentityProvider(db).provision_invited_identity("eve@inkart.it")
    db.commit()
    assert get_profile(db, identity.id).status == STATUS_PENDING
    assert [p.user_id for p in list_pending_profiles(db)] == [identity.id]

    profile = activate_profile(db, identity.id)
    assert profile.status == STATUS_ACTIVE
    assert profile.accepted_at is not None
    assert list_pending_profiles(db) == []


def test_studio_role_and_access(db, make_user, make_studio, make_member):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    bob = make_member(studio, "bob@inkart.it")
    dave = make_user("dave@other.it")

    assert get_studio_role(db, studio.id, alice.id) == "studio_admin"
    assert get_studio_role(db, studio.id, bob.id) == "studio_member"
    assert get_studio_role(db, studio.id, dave.id) is None
    assert can_access_studio(db, studio.id, bob.id)
    assert not can_access_studio(db, studio.id, dave.id)
    assert not can_create_studio(db, alice.id)


def test_list_studio_members_joins_identity(db, make_user, make_studio, make_member):
    alice = make_user("alice@inkart.it", full_name="Alice Rossi")
    studio = make_studio(alice)
    make_member(studio, "bob@inkart.it")

    members = list_studio_members(db, studio.id)
    assert {m["email"] for m in members} == {"alice@inkart.it", "bob@inkart.it"}
    alice_row = next(m for m in members if m["user_id"] == alice.id)
    assert alice_row["full_name"] == "Alice Rossi"


def test_delete_profile(db, make_user):
    bob = make_user("bob@inkart.it")
    assert delete_profile(db, bob.id)
    db.expire_all()
    assert get_profile(db, bob.id) is None
    assert not delete_profile(db, bob.id)
