"""Portal Service schemas package.

Schema files:
  - schemas/identity.py: auth, profile and route-guard schemas
  - schemas/transfer.py: transfer request schemas
  - schemas/admin.py   : branch, user, import, stream, notification, audit
"""

from services.portal_service.schemas.admin import (  # noqa: F401
    AuditLogResponse,
    AuditPageResponse,
    BranchCreate,
    BranchResponse,
    BranchUpdate,
    ManagedUserCreate,
    MemberImportRequest,
    MemberImportResponse,
    MemberImportRow,
    NotificationResponse,
    StreamResponse,
    StreamViewerCountResponse,
    UserUpdate,
)
from services.portal_service.schemas.identity import (  # noqa: F401
    GuardDecisionResponse,
    MeResponse,
    NavigationResponse,
    NavLinkResponse,
    PasswordResetRequest,
    ProfileResponse,
    ProfileUpdate,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
)
from services.portal_service.schemas.transfer import (  # noqa: F401
    BranchSummary,
    ProfileSummary,
    TransferCreate,
    TransferReject,
    TransferResponse,
)
