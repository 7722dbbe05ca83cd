"""
Route guard for the three UI scopes (member portal, branch admin, super admin).

Denials are never errors: every denial carries a redirect target. The
navigation exposed on an allowed decision is chosen by URL prefix, not by
role, so a super admin browsing the member portal sees portal links plus the
manual switches back to the admin surfaces.
"""

import enum
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

from services.portal_service.services.identity import AuthContext, SessionStatus

LANDING_PATH = "/"
LOGIN_PATH = "/auth"
PORTAL_PATH = "/portal"
ADMIN_PATH = "/admin"
SUPERADMIN_PATH = "/superadmin"

PUBLIC_PATHS = frozenset({LANDING_PATH, LOGIN_PATH})


class Scope(str, enum.Enum):
    ANY = "any"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class GuardOutcome(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    LOADING = "loading"


@dataclass(frozen=True)
class NavLink:
    name: str
    path: str


@dataclass
class Navigation:
    section: str
    links: list[NavLink]
    switchers: list[NavLink] = field(default_factory=list)


@dataclass
class GuardDecision:
    outcome: GuardOutcome
    redirect_to: Optional[str] = None
    navigation: Optional[Navigation] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == GuardOutcome.ALLOW


PORTAL_LINKS = [
    NavLink("Dashboard", "/portal"),
    NavLink("Live Stream", "/portal/streaming"),
    NavLink("Calendar", "/portal/calendar"),
    NavLink("Groups", "/portal/groups"),
    NavLink("Directory", "/portal/directory"),
    NavLink("Departments", "/portal/departments"),
    NavLink("Attendance", "/portal/attendance"),
    NavLink("Registrations", "/portal/registrations"),
    NavLink("Notifications", "/portal/notifications"),
    NavLink("Request Transfer", "/portal/transfer-request"),
    NavLink("My Transfers", "/portal/transfers"),
    NavLink("Share", "/portal/share"),
    NavLink("Settings", "/portal/settings"),
]

ADMIN_LINKS = [
    NavLink("Overview", "/admin"),
    NavLink("Members", "/admin/members"),
    NavLink("Transfers", "/admin/transfers"),
    NavLink("Streaming", "/admin/streaming"),
    NavLink("Settings", "/admin/settings"),
]

SUPERADMIN_LINKS = [
    NavLink("Overview", "/superadmin"),
    NavLink("Branches", "/superadmin/branches"),
    NavLink("Users", "/superadmin/users"),
    NavLink("Audit Logs", "/superadmin/audit-logs"),
]

ADMIN_SWITCH = NavLink("Admin Panel", ADMIN_PATH)
SUPERADMIN_SWITCH = NavLink("Systems Control", SUPERADMIN_PATH)


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def _normalize(path: Optional[str]) -> str:
    path = (path or "").strip().lstrip("/")
    path = "/" + urlsplit("/" + path).path.lstrip("/")
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def navigation_section(path: Optional[str]) -> str:
    path = _normalize(path)
    if _under(path, SUPERADMIN_PATH):
        return "superadmin"
    if _under(path, ADMIN_PATH):
        return "admin"
    return "portal"


def build_navigation(ctx: AuthContext, path: Optional[str]) -> Navigation:
    section = navigation_section(path)
    if section == "superadmin":
        links = SUPERADMIN_LINKS
    elif section == "admin":
        links = ADMIN_LINKS
    else:
        links = PORTAL_LINKS

    switchers = []
    if ctx.is_admin and section == "portal":
        switchers.append(ADMIN_SWITCH)
    if ctx.is_super_admin and section != "superadmin":
        switchers.append(SUPERADMIN_SWITCH)
    return Navigation(section=section, links=list(links), switchers=switchers)


def authorize(
    ctx: AuthContext, required_scope: Scope, path: Optional[str] = None
) -> GuardDecision:
    """Decide whether ``ctx`` may enter ``required_scope``."""
    if ctx.status == SessionStatus.LOADING:
        return GuardDecision(outcome=GuardOutcome.LOADING)

    if not ctx.has_session:
        return GuardDecision(outcome=GuardOutcome.DENY, redirect_to=LOGIN_PATH)

    if required_scope == Scope.SUPERADMIN and not ctx.is_super_admin:
        return GuardDecision(outcome=GuardOutcome.DENY, redirect_to=ADMIN_PATH)

    if required_scope == Scope.ADMIN and not ctx.is_admin:
        return GuardDecision(outcome=GuardOutcome.DENY, redirect_to=PORTAL_PATH)

    if path is None:
        path = {
            Scope.ANY: PORTAL_PATH,
            Scope.ADMIN: ADMIN_PATH,
            Scope.SUPERADMIN: SUPERADMIN_PATH,
        }[required_scope]
    return GuardDecision(
        outcome=GuardOutcome.ALLOW, navigation=build_navigation(ctx, path)
    )


def scope_for_path(path: Optional[str]) -> Optional[Scope]:
    """
    Map a UI path to the scope protecting it.

    Returns None for public paths. Raises LookupError for paths outside every
    known surface.
    """
    path = _normalize(path)
    if path in PUBLIC_PATHS:
        return None
    if _under(path, SUPERADMIN_PATH):
        return Scope.SUPERADMIN
    if _under(path, ADMIN_PATH):
        return Scope.ADMIN
    if _under(path, PORTAL_PATH):
        return Scope.ANY
    raise LookupError(path)


def authorize_path(ctx: AuthContext, path: Optional[str]) -> GuardDecision:
    """Guard decision for a concrete UI path; unknown paths go to the landing page."""
    try:
        scope = scope_for_path(path)
    except LookupError:
        return GuardDecision(outcome=GuardOutcome.DENY, redirect_to=LANDING_PATH)

    if scope is None:
        return GuardDecision(outcome=GuardOutcome.ALLOW)
    return authorize(ctx, scope, _normalize(path))
