"""
FastAPI dependencies for the print shop API.

Services are built once per application by ``build_services`` and stored on
``app.state.services``. Route dependencies read them from the request, so tests
and scripts build their own container over any database handle.
"""

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from starlette.requests import HTTPConnection

from common.auth import AuthProvider, Identity, create_identity_dependency
from common.utils.exceptions import ForbiddenException, ServiceUnavailableException
from printshop.config import Settings
from printshop.services.email.email_service import EmailService
from printshop.services.email.mail_queue import MailQueue
from printshop.services.live.subscription_service import SubscriptionService
from printshop.services.organization.access import MemberContext
from printshop.services.organization.invitation_service import InvitationService
from printshop.services.organization.membership_service import MembershipService
from printshop.services.organization.organization_service import OrganizationService
from printshop.services.organization.session_resolver import SessionResolver
from printshop.services.resources.dashboard_service import DashboardService
from printshop.services.resources.pricing_service import PricingService
from printshop.services.resources.resource_service import ResourceService


@dataclass
class ServiceContainer:
    """Every service the API uses, wired to one database and auth provider."""

    db: AsyncIOMotorDatabase
    auth: AuthProvider
    organizations: OrganizationService
    session_resolver: SessionResolver
    invitations: InvitationService
    memberships: MembershipService
    resources: ResourceService
    pricing: PricingService
    dashboard: DashboardService
    subscriptions: SubscriptionService
    mail_queue: MailQueue
    email: Optional[EmailService] = None


def build_services(
    db: AsyncIOMotorDatabase,
    auth_provider: AuthProvider,
    settings: Settings,
) -> ServiceContainer:
    """
    Build all services.

    Args:
        db: MongoDB database connection
        auth_provider: Identity provider
        settings: Application settings

    Returns:
        ServiceContainer
    """
    organizations = OrganizationService(db, delete_batch_size=settings.DELETE_BATCH_SIZE)
    resolver = SessionResolver(organizations)
    mail_queue = MailQueue(db, app_url=settings.APP_URL)
    resources = ResourceService(db)

    return ServiceContainer(
        db=db,
        auth=auth_provider,
        organizations=organizations,
        session_resolver=resolver,
        invitations=InvitationService(organizations, resolver, mail_queue),
        memberships=MembershipService(organizations),
        resources=resources,
        pricing=PricingService(
            resources,
            hourly_design_rate=settings.DESIGN_HOURLY_RATE,
            default_margin_percent=settings.DEFAULT_MARGIN_PERCENT,
        ),
        dashboard=DashboardService(resources),
        subscriptions=SubscriptionService(
            db,
            retry_seconds=settings.SUBSCRIPTION_RETRY_SECONDS,
            max_retry_seconds=settings.SUBSCRIPTION_MAX_RETRY_SECONDS,
        ),
        mail_queue=mail_queue,
        email=EmailService.from_settings(settings),
    )


# ─────────────────────────────────────────────────────────────────
# Service getters
# ─────────────────────────────────────────────────────────────────

def get_services(connection: HTTPConnection) -> ServiceContainer:
    """Get the container of the running application."""
    services = getattr(connection.app.state, "services", None)
    if services is None:
        raise ServiceUnavailableException(
            message="Services not initialized",
            code="SERVICES_NOT_INITIALIZED",
        )
    return services


def get_auth_provider(services: Annotated[ServiceContainer, Depends(get_services)]) -> AuthProvider:
    return services.auth


def get_session_resolver(services: Annotated[ServiceContainer, Depends(get_services)]) -> SessionResolver:
    return services.session_resolver


def get_organization_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> OrganizationService:
    return services.organizations


def get_invitation_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> InvitationService:
    return services.invitations


def get_membership_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> MembershipService:
    return services.memberships


def get_resource_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> ResourceService:
    return services.resources


def get_pricing_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> PricingService:
    return services.pricing


def get_dashboard_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> DashboardService:
    return services.dashboard


def get_subscription_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> SubscriptionService:
    return services.subscriptions


# ─────────────────────────────────────────────────────────────────
# Identity and membership
# ─────────────────────────────────────────────────────────────────

require_identity = create_identity_dependency(get_auth_provider)


async def get_member_context(
    identity: Annotated[Identity, Depends(require_identity)],
    resolver: Annotated[SessionResolver, Depends(get_session_resolver)],
) -> MemberContext:
    """
    Dependency that requires an active organization membership.

    Raises:
        ForbiddenException: NO_ORGANIZATION for pending or unassigned identities
    """
    context = await resolver.resolve_member(identity)
    if context is None:
        raise ForbiddenException(
            message="You are not a member of any organization",
            code="NO_ORGANIZATION",
        )
    return context


CurrentIdentity = Annotated[Identity, Depends(require_identity)]
CurrentMember = Annotated[MemberContext, Depends(get_member_context)]
