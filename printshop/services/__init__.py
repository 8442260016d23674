"""
Print shop services.

All service classes organized by feature.
"""

# Organization services
from printshop.services.organization.organization_service import OrganizationService
from printshop.services.organization.session_resolver import SessionResolver
from printshop.services.organization.invitation_service import InvitationService
from printshop.services.organization.membership_service import MembershipService

# Resource services
from printshop.services.resources.resource_service import ResourceService
from printshop.services.resources.pricing_service import PricingService
from printshop.services.resources.dashboard_service import DashboardService

# Live query services
from printshop.services.live.subscription_service import SubscriptionService

# Email services
from printshop.services.email.email_service import EmailService
from printshop.services.email.mail_queue import MailQueue

__all__ = [
    "OrganizationService",
    "SessionResolver",
    "InvitationService",
    "MembershipService",
    "ResourceService",
    "PricingService",
    "DashboardService",
    "SubscriptionService",
    "EmailService",
    "MailQueue",
]
