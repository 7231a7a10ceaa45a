# tests/test_rbac.py
import pytest
from fastapi import HTTPException

from app.core import rbac
from app.crud.studio import delete_studio
from app.crud.user_profile import update_profile
from app.models.user_profile import ROLE_STUDIO_ADMIN, STATUS_PENDING
from app.schemas.user_profile import ProfileUpdate


def test_role_table():
    assert rbac.has_permission("studio_admin", rbac.MANAGE_MEMBERS)
    assert rbac.has_permission("studio_admin", rbac.EDIT_STUDIO)
    assert not rbac.has_permission("studio_admin", rbac.DELETE_STUDIO)

    assert rbac.has_permission("studio_member", rbac.CREATE_FORMS)
    assert rbac.has_permission("studio_member", rbac.VIEW_STUDIO)
    assert not rbac.has_permission("studio_member", rbac.MANAGE_MEMBERS)
    assert not rbac.has_permission("studio_member", rbac.EDIT_STUDIO)


def test_unknown_role_gets_nothing():
    assert rbac.permissions_for(None) == frozenset()
    assert rbac.permissions_for("super_admin") == frozenset()


def test_owner_has_every_operation(db, make_user, make_studio):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    assert rbac.studio_permissions(db, studio, alice.id) == rbac.ALL_OPERATIONS
    assert rbac.can(db, studio, alice.id, rbac.DELETE_STUDIO)


def test_member_and_outsider(db, make_user, make_studio, make_member):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    bob = make_member(studio, "bob@inkart.it")
    carol = make_member(studio, "carol@inkart.it", role=ROLE_STUDIO_ADMIN)
    dave = make_user("dave@other.it")

    assert rbac.can(db, studio, bob.id, rbac.VIEW_TEMPLATES)
    assert not rbac.can(db, studio, bob.id, rbac.MANAGE_MEMBERS)
    assert rbac.can(db, studio, carol.id, rbac.MANAGE_MEMBERS)
    assert not rbac.can(db, studio, carol.id, rbac.DELETE_STUDIO)
    assert rbac.studio_permissions(db, studio, dave.id) == frozenset()
    assert rbac.studio_permissions(db, studio, None) == frozenset()


def test_pending_member_has_no_permissions(db, make_user, make_studio, make_member):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    bob = make_member(studio, "bob@inkart.it")
    update_profile(db, bob.id, ProfileUpdate(status=STATUS_PENDING))

    assert not rbac.can(db, studio, bob.id, rbac.VIEW_STUDIO)


def test_ensure_studio_permission(db, make_user, make_studio, make_member):
    alice = make_user("alice@inkart.it")
    studio = make_studio(alice)
    bob = make_member(studio, "bob@inkart.it")

    rbac.ensure_studio_permission(db, studio, bob.id, rbac.VIEW_FORMS)

    with pytest.raises(HTTPException) as exc:
        rbac.ensure_studio_permission(db, studio, bob.id, rbac.MANAGE_MEMBERS)
    assert exc.value.status_code == 403

    ok, _ = delete_studio(db, studio.id, alice.id)
    assert ok
    db.refresh(studio)
    with pytest.raises(HTTPException) as exc:
        rbac.ensure_studio_permission(db, studio, alice.id, rbac.VIEW_STUDIO)
    assert exc.value.status_code == 404
