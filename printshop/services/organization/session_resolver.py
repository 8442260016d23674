"""
Session resolver.

Decides, for a signed-in identity, which of three states the client is in:

    active_member   the identity is in some organization's memberUIDs
    pending_invite  the identity's email is in some organization's pendingInvites
    unassigned      neither

The first match wins in that order. When several organizations match a step,
the oldest one (createdAt ascending) is used.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from pymongo.errors import PyMongoError

from common.auth import Identity
from common.utils.exceptions import ServiceUnavailableException
from printshop.services.organization.access import MemberContext, Role, stored_role
from printshop.services.organization.organization_service import (
    OrganizationService,
    find_member,
)

logger = logging.getLogger(__name__)


ACTIVE_MEMBER = "active_member"
PENDING_INVITE = "pending_invite"
UNASSIGNED = "unassigned"

SESSION_RETRY_AFTER_SECONDS = 2


@dataclass
class SessionState:
    """Result of resolving an identity."""

    status: str
    identity: Identity
    organization: Optional[Dict[str, Any]] = None
    role: Optional[Role] = None

    @property
    def is_member(self) -> bool:
        return self.status == ACTIVE_MEMBER

    def member_context(self) -> Optional[MemberContext]:
        if not self.is_member:
            return None
        return MemberContext(
            uid=self.identity.uid,
            email=self.identity.normalized_email,
            organization_id=str(self.organization["_id"]),
            role=self.role,
            organization_name=self.organization.get("name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": self.status,
            "user": {
                "uid": self.identity.uid,
                "email": self.identity.normalized_email,
                "displayName": self.identity.display_name,
            },
            "organization": None,
            "role": None,
            "invitation": None,
        }

        if self.status == ACTIVE_MEMBER:
            data["organization"] = {
                "id": str(self.organization["_id"]),
                "name": self.organization.get("name"),
                "ownerId": self.organization.get("ownerId"),
            }
            data["role"] = self.role.value
        elif self.status == PENDING_INVITE:
            # Invitees only learn which organization invited them
            data["invitation"] = {
                "organizationId": str(self.organization["_id"]),
                "organizationName": self.organization.get("name"),
            }

        return data


class SessionResolver:
    """
    Resolves identities to organization membership.
    """

    def __init__(self, organization_service: OrganizationService):
        self._organizations = organization_service

    async def resolve(self, identity: Identity) -> SessionState:
        """
        Resolve the session state of an identity.

        Args:
            identity: Verified identity

        Returns:
            SessionState

        Raises:
            ServiceUnavailableException: If the store could not be queried.
                The caller must retry; a failed lookup is never reported as
                unassigned.
        """
        try:
            org = await self._organizations.find_by_member(identity.uid)
            if org:
                member = find_member(org, identity.uid)
                if member is None:
                    # memberUIDs lists the uid but members does not
                    logger.warning(
                        f"Organization {org['_id']} lists {identity.uid} in memberUIDs only"
                    )
                    await self._organizations.repair_member_uids(org)
                else:
                    return SessionState(
                        status=ACTIVE_MEMBER,
                        identity=identity,
                        organization=org,
                        role=stored_role(member.get("role", Role.VIEWER.value)),
                    )

            org = await self._organizations.find_by_pending_invite(identity.normalized_email)
            if org:
                return SessionState(
                    status=PENDING_INVITE,
                    identity=identity,
                    organization=org,
                )

        except PyMongoError as e:
            logger.error(f"Failed to resolve session for {identity.uid}: {e}")
            raise ServiceUnavailableException(
                message="Session could not be resolved, please retry",
                code="SESSION_UNAVAILABLE",
                retry_after=SESSION_RETRY_AFTER_SECONDS,
            )

        return SessionState(status=UNASSIGNED, identity=identity)

    async def resolve_member(self, identity: Identity) -> Optional[MemberContext]:
        """Shortcut returning the MemberContext, or None for non-members."""
        state = await self.resolve(identity)
        return state.member_context()
