"""Organization services."""

from printshop.services.organization.access import (
    Role,
    MemberContext,
    require_role,
    require_organization,
    parse_assignable_role,
)
from printshop.services.organization.organization_service import OrganizationService
from printshop.services.organization.session_resolver import (
    SessionResolver,
    SessionState,
    ACTIVE_MEMBER,
    PENDING_INVITE,
    UNASSIGNED,
)
from printshop.services.organization.invitation_service import InvitationService
from printshop.services.organization.membership_service import MembershipService

__all__ = [
    "Role",
    "MemberContext",
    "require_role",
    "require_organization",
    "parse_assignable_role",
    "OrganizationService",
    "SessionResolver",
    "SessionState",
    "ACTIVE_MEMBER",
    "PENDING_INVITE",
    "UNASSIGNED",
    "InvitationService",
    "MembershipService",
]
