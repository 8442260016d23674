"""
FastAPI router for organization and team management.

Provides endpoints for invitations, roles, member removal and the owner-only
organization delete. Permission checks run in the services.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from common.utils import success_response
from printshop.dependencies import (
    CurrentMember,
    get_invitation_service,
    get_membership_service,
    get_organization_service,
    get_subscription_service,
)
from printshop.schemas.organization import (
    ChangeRoleRequest,
    DeleteOrganizationRequest,
    InviteRequest,
)
from printshop.services.live.subscription_service import SubscriptionService
from printshop.services.organization.invitation_service import InvitationService
from printshop.services.organization.membership_service import MembershipService
from printshop.services.organization.organization_service import OrganizationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("/{organization_id}")
async def get_organization(
    organization_id: str,
    member: CurrentMember,
    org_service: Annotated[OrganizationService, Depends(get_organization_service)],
):
    """Get the caller's organization."""
    org = await org_service.get_organization(member, organization_id)
    return success_response(org)


@router.get("/{organization_id}/team")
async def get_team(
    organization_id: str,
    member: CurrentMember,
    membership_service: Annotated[MembershipService, Depends(get_membership_service)],
):
    """Get members and pending invitations."""
    team = await membership_service.get_team(member, organization_id)
    return success_response(team)


@router.post("/{organization_id}/invites", status_code=201)
async def create_invite(
    organization_id: str,
    body: InviteRequest,
    member: CurrentMember,
    invitation_service: Annotated[InvitationService, Depends(get_invitation_service)],
):
    """Invite an email address. Owner or admin."""
    invite = await invitation_service.create_invite(
        member,
        organization_id,
        email=body.email,
        role=body.role,
    )
    return success_response(invite, message="Invitation sent")


@router.delete("/{organization_id}/invites/{email}")
async def cancel_invite(
    organization_id: str,
    email: str,
    member: CurrentMember,
    invitation_service: Annotated[InvitationService, Depends(get_invitation_service)],
):
    """Withdraw a pending invitation. Owner or admin."""
    await invitation_service.cancel_invite(member, organization_id, email)
    return success_response(message="Invitation cancelled")


@router.put("/{organization_id}/members/{member_uid}/role")
async def change_member_role(
    organization_id: str,
    member_uid: str,
    body: ChangeRoleRequest,
    member: CurrentMember,
    membership_service: Annotated[MembershipService, Depends(get_membership_service)],
):
    """Change a member's role. Owner only."""
    updated = await membership_service.change_role(member, organization_id, member_uid, body.role)
    return success_response(updated)


@router.delete("/{organization_id}/members/{member_uid}")
async def remove_member(
    organization_id: str,
    member_uid: str,
    member: CurrentMember,
    membership_service: Annotated[MembershipService, Depends(get_membership_service)],
    subscriptions: Annotated[SubscriptionService, Depends(get_subscription_service)],
):
    """Remove a member. Owner only."""
    await membership_service.remove_member(member, organization_id, member_uid)
    await subscriptions.release_member(organization_id, member_uid)
    return success_response(message="Member removed")


@router.delete("/{organization_id}")
async def delete_organization(
    organization_id: str,
    body: DeleteOrganizationRequest,
    member: CurrentMember,
    org_service: Annotated[OrganizationService, Depends(get_organization_service)],
    subscriptions: Annotated[SubscriptionService, Depends(get_subscription_service)],
):
    """
    Delete the organization and all of its data. Owner only.

    The body must repeat the organization name exactly.
    """
    counts = await org_service.delete_organization(member, organization_id, body.confirmationName)
    await subscriptions.release_organization(organization_id)
    return success_response({"deleted": counts}, message="Organization deleted")
