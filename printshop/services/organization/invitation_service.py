"""
Invitation lifecycle.

An invitation is an email address in one organization's ``pendingInvites``
with a matching ``pendingInviteRoles`` entry. Transitions:

    create   owner/admin add the email (conditional single update)
    cancel   owner/admin remove it
    accept   invitee joins: members, memberUIDs and pendingInvites change in
             one update
    decline  invitee removes the email, then gets an organization of their own
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from pydantic import EmailStr, TypeAdapter, ValidationError
from pymongo.errors import PyMongoError

from common.auth import Identity
from common.utils.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from printshop.services.email.mail_queue import MailQueue
from printshop.services.organization.access import (
    MemberContext,
    Role,
    parse_assignable_role,
    require_organization,
    require_role,
    stored_role,
)
from printshop.services.organization.organization_service import (
    OrganizationService,
    to_object_id,
)
from printshop.services.organization.session_resolver import (
    ACTIVE_MEMBER,
    PENDING_INVITE,
    UNASSIGNED,
    SessionResolver,
    SessionState,
)

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)


def normalize_email(email: Optional[str]) -> str:
    """Strip and lower-case an email, rejecting anything that is not one."""
    try:
        validated = _email_adapter.validate_python((email or "").strip())
    except ValidationError:
        raise ValidationException(
            message="A valid email address is required",
            code="INVALID_EMAIL",
        )
    return validated.lower()


def invited_role(organization: Dict[str, Any], email: str) -> Role:
    """Role recorded for a pending email, viewer when none was recorded."""
    for entry in organization.get("pendingInviteRoles") or []:
        if entry.get("email") == email:
            return stored_role(entry.get("role"))
    return Role.VIEWER


class InvitationService:
    """
    Manages organization invitations.
    """

    def __init__(
        self,
        organization_service: OrganizationService,
        session_resolver: SessionResolver,
        mail_queue: Optional[MailQueue] = None,
    ):
        """
        Initialize InvitationService.

        Args:
            organization_service: Organization document access
            session_resolver: Used to check the invitee's current state
            mail_queue: Outbound mail, skipped when None
        """
        self._organizations = organization_service
        self._orgs_collection = organization_service.collection
        self._resolver = session_resolver
        self._mail_queue = mail_queue

    # ─────────────────────────────────────────────────────────────────
    # Inviter side
    # ─────────────────────────────────────────────────────────────────

    async def create_invite(
        self,
        context: MemberContext,
        organization_id: str,
        email: str,
        role: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Invite an email address to the organization.

        Args:
            context: Acting member (owner or admin)
            organization_id: Organization to invite to
            email: Invitee email, normalized before storage
            role: Role to grant on accept, defaults to viewer

        Returns:
            dict with email, role and organizationId

        Raises:
            ConflictException: ALREADY_MEMBER, INVITE_ALREADY_PENDING or
                INVITE_PENDING_ELSEWHERE
        """
        require_organization(context, organization_id)
        require_role(context, Role.ADMIN, "invite members")

        email = normalize_email(email)
        invite_role = parse_assignable_role(role or Role.VIEWER.value)

        org = await self._organizations.get_organization_document(organization_id)

        if any(m.get("email") == email for m in org.get("members", [])):
            raise ConflictException(
                message="This person is already a member of the organization",
                code="ALREADY_MEMBER",
            )

        if email in (org.get("pendingInvites") or []):
            raise ConflictException(
                message="An invitation is already pending for this email",
                code="INVITE_ALREADY_PENDING",
            )

        elsewhere = await self._organizations.find_by_pending_invite(email, exclude_id=org["_id"])
        if elsewhere:
            raise ConflictException(
                message="This email already has a pending invitation to another organization",
                code="INVITE_PENDING_ELSEWHERE",
            )

        now = datetime.now(timezone.utc)
        result = await self._orgs_collection.update_one(
            {
                "_id": org["_id"],
                "pendingInvites": {"$ne": email},
                "members.email": {"$ne": email},
            },
            {
                "$push": {
                    "pendingInvites": email,
                    "pendingInviteRoles": {
                        "email": email,
                        "role": invite_role.value,
                        "invitedBy": context.uid,
                        "invitedAt": now,
                    },
                },
                "$set": {"updatedAt": now},
            },
        )

        if result.modified_count == 0:
            raise ConflictException(
                message="An invitation is already pending for this email",
                code="INVITE_ALREADY_PENDING",
            )

        logger.info(f"Invited {email} to organization {organization_id} as {invite_role.value}")

        # The invite stands even if the mail record cannot be queued
        if self._mail_queue is not None:
            try:
                await self._mail_queue.enqueue_invitation(
                    to=email,
                    organization_name=org.get("name", ""),
                    inviter_email=context.email,
                    role=invite_role.value,
                )
            except PyMongoError as e:
                logger.warning(f"Failed to queue invitation email to {email}: {e}")

        return {
            "email": email,
            "role": invite_role.value,
            "organizationId": organization_id,
        }

    async def cancel_invite(
        self,
        context: MemberContext,
        organization_id: str,
        email: str,
    ) -> None:
        """
        Withdraw a pending invitation.

        Raises:
            NotFoundException: If the email is not pending on this organization
        """
        require_organization(context, organization_id)
        require_role(context, Role.ADMIN, "cancel invitations")

        email = (email or "").strip().lower()
        result = await self._orgs_collection.update_one(
            {"_id": to_object_id(organization_id), "pendingInvites": email},
            {
                "$pull": {
                    "pendingInvites": email,
                    "pendingInviteRoles": {"email": email},
                },
                "$set": {"updatedAt": datetime.now(timezone.utc)},
            },
        )

        if result.modified_count == 0:
            raise NotFoundException(
                message="Invitation not found",
                code="INVITE_NOT_FOUND",
            )

        logger.info(f"Cancelled invitation of {email} to organization {organization_id}")

    # ─────────────────────────────────────────────────────────────────
    # Invitee side
    # ─────────────────────────────────────────────────────────────────

    async def _require_pending(self, identity: Identity) -> SessionState:
        state = await self._resolver.resolve(identity)
        if state.status == ACTIVE_MEMBER:
            raise ConflictException(
                message="You are already a member of an organization",
                code="ALREADY_MEMBER",
            )
        if state.status != PENDING_INVITE:
            raise NotFoundException(
                message="No pending invitation",
                code="INVITE_NOT_FOUND",
            )
        return state

    async def accept(self, identity: Identity) -> SessionState:
        """
        Accept the pending invitation of the signed-in identity.

        The member entry, the memberUIDs entry and the removal of the pending
        email happen in a single conditional update, so the organization never
        shows the email as both pending and a member.

        Returns:
            The new session state (active member)
        """
        state = await self._require_pending(identity)
        org = state.organization
        email = identity.normalized_email
        role = invited_role(org, email)

        result = await self._orgs_collection.update_one(
            {
                "_id": org["_id"],
                "pendingInvites": email,
                "memberUIDs": {"$ne": identity.uid},
            },
            {
                "$push": {"members": {"uid": identity.uid, "email": email, "role": role.value}},
                "$addToSet": {"memberUIDs": identity.uid},
                "$pull": {
                    "pendingInvites": email,
                    "pendingInviteRoles": {"email": email},
                },
                "$set": {"updatedAt": datetime.now(timezone.utc)},
            },
        )

        if result.modified_count == 0:
            raise ConflictException(
                message="The invitation is no longer pending",
                code="INVITE_NO_LONGER_PENDING",
            )

        logger.info(f"{identity.uid} accepted invitation to {org['_id']} as {role.value}")
        return await self._resolver.resolve(identity)

    async def decline(self, identity: Identity) -> SessionState:
        """
        Decline the pending invitation and create an organization of one's own.

        Two writes: the first removes the pending email, the second creates the
        new organization. If the second fails the identity is left unassigned
        and may call ``provision`` to retry.

        Returns:
            The new session state (owner of the new organization)
        """
        state = await self._require_pending(identity)
        org = state.organization
        email = identity.normalized_email

        await self._orgs_collection.update_one(
            {"_id": org["_id"], "pendingInvites": email},
            {
                "$pull": {
                    "pendingInvites": email,
                    "pendingInviteRoles": {"email": email},
                },
                "$set": {"updatedAt": datetime.now(timezone.utc)},
            },
        )
        logger.info(f"{identity.uid} declined invitation to {org['_id']}")

        await self._organizations.create_organization(identity.uid, email)
        return await self._resolver.resolve(identity)

    async def provision(self, identity: Identity, name: Optional[str] = None) -> SessionState:
        """
        Create an organization for an unassigned identity.

        Raises:
            ConflictException: ALREADY_ASSIGNED if the identity is a member or
                has a pending invitation
        """
        state = await self._resolver.resolve(identity)
        if state.status != UNASSIGNED:
            raise ConflictException(
                message="You already belong to or are invited to an organization",
                code="ALREADY_ASSIGNED",
                details={"status": state.status},
            )

        await self._organizations.create_organization(identity.uid, identity.normalized_email, name)
        return await self._resolver.resolve(identity)
