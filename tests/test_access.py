# tests/test_access.py
import pytest

from app.core.access import (
    LOGIN_PATH,
    STUDIO_CREATE_PATH,
    WAITING_PATH,
    ProfileView,
    decide_access,
    is_exempt_path,
)

ADMIN_NO_STUDIO = ProfileView(role="studio_admin", studio_id=None)
MEMBER_NO_STUDIO = ProfileView(role="studio_member", studio_id=None)
ADMIN_WITH_STUDIO = ProfileView(role="studio_admin", studio_id=1)
MEMBER_WITH_STUDIO = ProfileView(role="studio_member", studio_id=1)


@pytest.mark.parametrize(
    "path, has_session, profile, expected",
    [
        # no session
        ("/studio", False, None, LOGIN_PATH),
        ("/", False, None, LOGIN_PATH),
        ("/waiting", False, None, LOGIN_PATH),
        ("/auth/login", False, None, None),
        ("/auth/sign-up", False, None, None),
        ("/auth/invitation", False, None, None),
        ("/invitation/abc", False, None, None),
        # session, no profile row
        ("/studio", True, None, None),
        # admin without studio is confined to studio creation
        ("/studio", True, ADMIN_NO_STUDIO, STUDIO_CREATE_PATH),
        ("/studio/templates", True, ADMIN_NO_STUDIO, STUDIO_CREATE_PATH),
        ("/waiting", True, ADMIN_NO_STUDIO, STUDIO_CREATE_PATH),
        ("/studio/create", True, ADMIN_NO_STUDIO, None),
        ("/auth/set-password", True, ADMIN_NO_STUDIO, None),
        ("/invitation/abc/accept", True, ADMIN_NO_STUDIO, None),
        # member without studio waits
        ("/studio", True, MEMBER_NO_STUDIO, WAITING_PATH),
        ("/studio/create", True, MEMBER_NO_STUDIO, WAITING_PATH),
        ("/waiting", True, MEMBER_NO_STUDIO, None),
        ("/invitation/abc", True, MEMBER_NO_STUDIO, None),
        # bound to a studio
        ("/studio", True, ADMIN_WITH_STUDIO, None),
        ("/studio/create", True, ADMIN_WITH_STUDIO, None),
        ("/studio", True, MEMBER_WITH_STUDIO, None),
        ("/studio/forms", True, MEMBER_WITH_STUDIO, None),
        ("/studio/create", True, MEMBER_WITH_STUDIO, WAITING_PATH),
    ],
)
def test_decide_access(path, has_session, profile, expected):
    decision = decide_access(path, has_session=has_session, profile=profile)
    assert decision.redirect_to == expected
    assert decision.allowed is (expected is None)


def test_prefix_match_is_segment_aware():
    # "/studio/created" is not under "/studio/create"
    decision = decide_access("/studio/created", True, ADMIN_NO_STUDIO)
    assert decision.redirect_to == STUDIO_CREATE_PATH
    decision = decide_access("/waitinglist", True, MEMBER_NO_STUDIO)
    assert decision.redirect_to == WAITING_PATH


def test_profile_lookup_failure_fails_open_by_default():
    assert decide_access("/studio", True, None, profile_error=True).allowed


def test_profile_lookup_failure_can_fail_closed():
    decision = decide_access("/studio", True, None, profile_error=True, fail_closed=True)
    assert decision.redirect_to == LOGIN_PATH
    # /auth stays reachable so the user can sign in again
    assert decide_access("/auth/login", True, None, profile_error=True, fail_closed=True).allowed


def test_exempt_paths():
    assert is_exempt_path("/api/healthz")
    assert is_exempt_path("/docs")
    assert is_exempt_path("/openapi.json")
    assert not is_exempt_path("/studio")
    assert not is_exempt_path("/documents")
