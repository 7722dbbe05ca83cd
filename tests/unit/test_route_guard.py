"""Unit tests for the route guard and navigation selection."""

import pytest
from services.portal_service.app.tests.stubs import context_for
from services.portal_service.models import AppRole
from services.portal_service.services import AuthContext
from services.portal_service.services.route_guard import (
    ADMIN_LINKS,
    PORTAL_LINKS,
    SUPERADMIN_LINKS,
    GuardOutcome,
    Scope,
    authorize,
    authorize_path,
    build_navigation,
    scope_for_path,
)
from tests.factories import ProfileFactory


def _ctx(role: AppRole):
    return context_for(ProfileFactory.create(primary_role=role))


# ---------------------------------------------------------------------------
# authorize
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("scope", list(Scope))
def test_no_session_redirects_to_login(scope):
    decision = authorize(AuthContext.anonymous(), scope)
    assert decision.outcome == GuardOutcome.DENY
    assert decision.redirect_to == "/auth"


@pytest.mark.parametrize("scope", list(Scope))
def test_loading_renders_nothing(scope):
    decision = authorize(AuthContext.loading(), scope)
    assert decision.outcome == GuardOutcome.LOADING
    assert decision.redirect_to is None
    assert decision.navigation is None


@pytest.mark.parametrize(
    "role", [AppRole.MEMBER, AppRole.PASTOR, AppRole.DISTRICT_ADMIN, AppRole.WORKER]
)
def test_non_admin_on_admin_scope_goes_to_portal(role):
    decision = authorize(_ctx(role), Scope.ADMIN)
    assert decision.outcome == GuardOutcome.DENY
    assert decision.redirect_to == "/portal"


def test_admin_on_superadmin_scope_goes_to_admin():
    decision = authorize(_ctx(AppRole.ADMIN), Scope.SUPERADMIN)
    assert decision.outcome == GuardOutcome.DENY
    assert decision.redirect_to == "/admin"


def test_member_on_superadmin_scope_goes_to_admin():
    # The superadmin check comes first; /admin then bounces a member to /portal
    decision = authorize(_ctx(AppRole.MEMBER), Scope.SUPERADMIN)
    assert decision.redirect_to == "/admin"


def test_super_admin_is_allowed_everywhere():
    ctx = _ctx(AppRole.SUPER_ADMIN)
    for scope in Scope:
        assert authorize(ctx, scope).allowed


def test_member_is_allowed_in_portal():
    decision = authorize(_ctx(AppRole.MEMBER), Scope.ANY)
    assert decision.allowed
    assert decision.navigation.section == "portal"


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


def test_navigation_is_chosen_by_path_prefix():
    ctx = _ctx(AppRole.SUPER_ADMIN)
    assert build_navigation(ctx, "/superadmin/users").links == SUPERADMIN_LINKS
    assert build_navigation(ctx, "/admin/transfers").links == ADMIN_LINKS
    assert build_navigation(ctx, "/portal/settings").links == PORTAL_LINKS


def test_admin_sees_admin_switch_in_portal_only():
    ctx = _ctx(AppRole.ADMIN)
    portal = build_navigation(ctx, "/portal")
    admin = build_navigation(ctx, "/admin")

    assert [s.name for s in portal.switchers] == ["Admin Panel"]
    assert admin.switchers == []


def test_super_admin_sees_systems_control_outside_superadmin():
    ctx = _ctx(AppRole.SUPER_ADMIN)
    portal = build_navigation(ctx, "/portal")
    admin = build_navigation(ctx, "/admin")
    superadmin = build_navigation(ctx, "/superadmin")

    assert [s.name for s in portal.switchers] == ["Admin Panel", "Systems Control"]
    assert [s.name for s in admin.switchers] == ["Systems Control"]
    assert superadmin.switchers == []


def test_member_has_no_switchers():
    assert build_navigation(_ctx(AppRole.MEMBER), "/portal").switchers == []


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def test_scope_for_path():
    assert scope_for_path("/") is None
    assert scope_for_path("/auth") is None
    assert scope_for_path("/portal/transfers") == Scope.ANY
    assert scope_for_path("/admin/") == Scope.ADMIN
    assert scope_for_path("/superadmin/audit-logs") == Scope.SUPERADMIN
    # Prefix match is by segment, not by string
    with pytest.raises(LookupError):
        scope_for_path("/administrator")


def test_query_string_and_fragment_do_not_change_the_scope():
    admin = _ctx(AppRole.ADMIN)

    decision = authorize_path(admin, "/admin?tab=pending#queue")

    assert decision.allowed
    assert decision.navigation.section == "admin"
    assert scope_for_path("/portal/transfers?status=pending") == Scope.ANY
    assert authorize_path(AuthContext.anonymous(), "/auth?mode=reset").allowed


def test_unknown_path_redirects_to_landing():
    decision = authorize_path(_ctx(AppRole.MEMBER), "/nowhere")
    assert decision.outcome == GuardOutcome.DENY
    assert decision.redirect_to == "/"


def test_public_path_is_allowed_without_session():
    assert authorize_path(AuthContext.anonymous(), "/auth").allowed


def test_super_admin_visits_admin_and_superadmin_while_admin_is_bounced():
    super_admin = _ctx(AppRole.SUPER_ADMIN)
    admin = _ctx(AppRole.ADMIN)

    assert authorize_path(super_admin, "/admin").allowed
    assert authorize_path(super_admin, "/superadmin").allowed

    denied = authorize_path(admin, "/superadmin")
    assert denied.outcome == GuardOutcome.DENY
    assert denied.redirect_to == "/admin"
