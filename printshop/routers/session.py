"""
FastAPI router for the session: who am I, and what do I do next.

    GET  /session                     resolve active member / pending / unassigned
    POST /session/invitation/accept   join the inviting organization
    POST /session/invitation/decline  decline and get an organization of one's own
    POST /session/organization        provision an organization when unassigned
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends

from common.utils import success_response
from printshop.dependencies import (
    CurrentIdentity,
    get_invitation_service,
    get_session_resolver,
)
from printshop.schemas.organization import CreateOrganizationRequest
from printshop.services.organization.invitation_service import InvitationService
from printshop.services.organization.session_resolver import SessionResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


@router.get("")
async def get_session(
    identity: CurrentIdentity,
    resolver: Annotated[SessionResolver, Depends(get_session_resolver)],
):
    """Resolve the signed-in identity. A store failure is 503, never "unassigned"."""
    state = await resolver.resolve(identity)
    return success_response(state.to_dict())


@router.post("/invitation/accept")
async def accept_invitation(
    identity: CurrentIdentity,
    invitations: Annotated[InvitationService, Depends(get_invitation_service)],
):
    state = await invitations.accept(identity)
    return success_response(state.to_dict(), message="Invitation accepted")


@router.post("/invitation/decline")
async def decline_invitation(
    identity: CurrentIdentity,
    invitations: Annotated[InvitationService, Depends(get_invitation_service)],
):
    state = await invitations.decline(identity)
    return success_response(state.to_dict(), message="Invitation declined")


@router.post("/organization")
async def create_own_organization(
    identity: CurrentIdentity,
    invitations: Annotated[InvitationService, Depends(get_invitation_service)],
    body: Optional[CreateOrganizationRequest] = Body(None),
):
    """Create an organization for an identity with no membership and no invite."""
    state = await invitations.provision(identity, body.name if body else None)
    return success_response(state.to_dict(), message="Organization created")
