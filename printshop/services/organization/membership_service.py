"""
Membership mutations: listing the team, changing roles, removing members.

Only the owner changes roles or removes members. Neither operation may target
the acting member or the owner row, and every write touching ``members``
updates ``memberUIDs`` in the same statement.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Any

from common.utils.exceptions import (
    ForbiddenException,
    NotFoundException,
)
from printshop.services.organization.access import (
    MemberContext,
    Role,
    parse_assignable_role,
    require_organization,
    require_role,
)
from printshop.services.organization.organization_service import (
    OrganizationService,
    find_member,
)

logger = logging.getLogger(__name__)


class MembershipService:
    """
    Manages the members of an organization.
    """

    def __init__(self, organization_service: OrganizationService):
        self._organizations = organization_service
        self._orgs_collection = organization_service.collection

    async def get_team(self, context: MemberContext, organization_id: str) -> Dict[str, Any]:
        """
        Members and pending invitations of the caller's organization.

        Any member may read the team.
        """
        require_organization(context, organization_id)
        org = await self._organizations.get_organization_document(organization_id)
        formatted = self._organizations.format_organization(org)
        recorded = {entry["email"]: entry for entry in formatted["pendingInviteRoles"]}

        return {
            "organizationId": formatted["id"],
            "name": formatted["name"],
            "ownerId": formatted["ownerId"],
            "members": formatted["members"],
            "pendingInvites": [
                recorded.get(email) or {"email": email, "role": Role.VIEWER.value, "invitedBy": None}
                for email in formatted["pendingInvites"]
            ],
        }

    async def _load_target(
        self,
        context: MemberContext,
        organization_id: str,
        target_uid: str,
        action: str,
    ) -> Dict[str, Any]:
        require_organization(context, organization_id)
        require_role(context, Role.OWNER, action)

        if target_uid == context.uid:
            raise ForbiddenException(
                message="You cannot change your own membership",
                code="CANNOT_MODIFY_SELF",
            )

        org = await self._organizations.get_organization_document(organization_id)
        member = find_member(org, target_uid)

        if member is None:
            raise NotFoundException(
                message="Member not found",
                code="MEMBER_NOT_FOUND",
            )

        if member.get("role") == Role.OWNER.value or org.get("ownerId") == target_uid:
            raise ForbiddenException(
                message="The organization owner cannot be modified",
                code="CANNOT_MODIFY_OWNER",
            )

        return org

    async def change_role(
        self,
        context: MemberContext,
        organization_id: str,
        target_uid: str,
        new_role: str,
    ) -> Dict[str, Any]:
        """
        Change a member's role.

        Args:
            context: Acting member (must be the owner)
            organization_id: Organization id
            target_uid: Member to change
            new_role: One of admin, editor, viewer

        Returns:
            Updated member dict
        """
        role = parse_assignable_role(new_role)
        org = await self._load_target(context, organization_id, target_uid, "change member roles")

        result = await self._orgs_collection.update_one(
            {
                "_id": org["_id"],
                "members": {"$elemMatch": {"uid": target_uid, "role": {"$ne": Role.OWNER.value}}},
            },
            {
                "$set": {
                    "members.$.role": role.value,
                    "updatedAt": datetime.now(timezone.utc),
                }
            },
        )

        if result.matched_count == 0:
            raise NotFoundException(
                message="Member not found",
                code="MEMBER_NOT_FOUND",
            )

        logger.info(f"Changed role of {target_uid} in {organization_id} to {role.value}")

        member = find_member(org, target_uid)
        return {"uid": target_uid, "email": member.get("email"), "role": role.value}

    async def remove_member(
        self,
        context: MemberContext,
        organization_id: str,
        target_uid: str,
    ) -> None:
        """
        Remove a member from the organization.

        ``members`` and ``memberUIDs`` lose the uid in the same update.
        """
        org = await self._load_target(context, organization_id, target_uid, "remove members")

        result = await self._orgs_collection.update_one(
            {
                "_id": org["_id"],
                "members": {"$elemMatch": {"uid": target_uid, "role": {"$ne": Role.OWNER.value}}},
            },
            {
                "$pull": {
                    "members": {"uid": target_uid},
                    "memberUIDs": target_uid,
                },
                "$set": {"updatedAt": datetime.now(timezone.utc)},
            },
        )

        if result.modified_count == 0:
            raise NotFoundException(
                message="Member not found",
                code="MEMBER_NOT_FOUND",
            )

        logger.info(f"Removed member {target_uid} from organization {organization_id}")
