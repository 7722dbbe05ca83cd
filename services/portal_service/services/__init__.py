"""Portal service business logic."""

from services.portal_service.services.administration import (  # noqa: F401
    Administration,
    SelfService,
)
from services.portal_service.services.audit import AuditPage, AuditRecorder  # noqa: F401
from services.portal_service.services.identity import (  # noqa: F401
    AuthContext,
    IdentityProvider,
    SessionResolver,
    SessionStatus,
    build_fallback_profile,
)
from services.portal_service.services.roles import (  # noqa: F401
    RoleFlags,
    evaluate_roles,
    has_branch_scope,
)
from services.portal_service.services.route_guard import (  # noqa: F401
    GuardDecision,
    GuardOutcome,
    Scope,
    authorize,
    authorize_path,
)
from services.portal_service.services.streams import StreamControl  # noqa: F401
from services.portal_service.services.transfers import (  # noqa: F401
    InvalidTransitionError,
    TransferWorkflow,
    transition_transfer,
)
