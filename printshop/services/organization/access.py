"""
Roles and the authorization gate.

Every mutation in the service layer receives a MemberContext produced by the
session resolver and calls ``require_role`` before touching the store, so a
viewer is read-only no matter which client talks to the API.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from common.utils.exceptions import ForbiddenException, ValidationException

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Organization roles, declared from least to most privileged."""

    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def level(self) -> int:
        return _ROLE_LEVELS[self]

    def at_least(self, other: "Role") -> bool:
        return self.level >= other.level


_ROLE_LEVELS = {role: index for index, role in enumerate(Role)}

# Roles the owner may hand out; ownership itself is fixed at creation.
ASSIGNABLE_ROLES = (Role.ADMIN, Role.EDITOR, Role.VIEWER)


def parse_assignable_role(value) -> Role:
    """
    Parse a role a member can be given by invite or role change.

    Raises:
        ValidationException: For unknown roles and for "owner"
    """
    try:
        role = Role(value)
    except ValueError:
        role = None

    if role not in ASSIGNABLE_ROLES:
        raise ValidationException(
            message="Role must be one of: admin, editor, viewer",
            code="INVALID_ROLE",
        )
    return role


def stored_role(value) -> Role:
    """Role read from a stored document. Unknown values fall back to viewer."""
    try:
        return Role(value)
    except ValueError:
        logger.warning(f"Unknown stored role {value!r}, treating as viewer")
        return Role.VIEWER


@dataclass(frozen=True)
class MemberContext:
    """The resolved identity acting inside one organization."""

    uid: str
    email: str
    organization_id: str
    role: Role
    organization_name: Optional[str] = None

    @property
    def can_write(self) -> bool:
        return self.role.at_least(Role.EDITOR)

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER


def require_role(context: MemberContext, minimum: Role, action: str = "perform this action") -> None:
    """
    Reject the call unless the member's role is at least ``minimum``.

    Raises:
        ForbiddenException: INSUFFICIENT_ROLE, or OWNER_ONLY for owner actions
    """
    if context.role.at_least(minimum):
        return

    if minimum is Role.OWNER:
        raise ForbiddenException(
            message=f"Only the organization owner can {action}",
            code="OWNER_ONLY",
        )

    raise ForbiddenException(
        message=f"Role '{context.role.value}' cannot {action}",
        code="INSUFFICIENT_ROLE",
        details={"requiredRole": minimum.value},
    )


def require_organization(context: MemberContext, organization_id: str) -> None:
    """
    Reject access to an organization other than the one the member belongs to.

    Raises:
        ForbiddenException: NOT_A_MEMBER
    """
    if context.organization_id != organization_id:
        raise ForbiddenException(
            message="You are not a member of this organization",
            code="NOT_A_MEMBER",
        )
