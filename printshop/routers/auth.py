"""
FastAPI router for authentication endpoints.

Sign-up and email/password sign-in go through the identity provider; OAuth
sign-in happens in the client, which then sends the provider's ID token.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from common.auth import AuthProvider
from common.utils import success_response
from common.utils.exceptions import (
    ConflictException,
    UnauthorizedException,
    ValidationException,
)
from printshop.dependencies import (
    CurrentIdentity,
    get_auth_provider,
    get_subscription_service,
)
from printshop.schemas.auth import SignInRequest, SignUpRequest
from printshop.services.live.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-up")
async def sign_up(
    body: SignUpRequest,
    auth: Annotated[AuthProvider, Depends(get_auth_provider)],
):
    """
    Create an account and sign it in.

    The new identity is unassigned until it accepts an invitation or
    provisions its own organization.
    """
    email = body.email.strip().lower()

    try:
        uid = await auth.create_user(email=email, password=body.password, display_name=body.displayName)
    except ValueError as e:
        if "already registered" in str(e):
            raise ConflictException(message="An account with this email already exists", code="EMAIL_EXISTS")
        raise ValidationException(message=str(e), code="SIGN_UP_FAILED")

    logger.info(f"Created account {uid}")

    try:
        tokens = await auth.verify_credentials(email, body.password)
    except ValueError as e:
        raise UnauthorizedException(message=str(e), code="INVALID_CREDENTIALS")

    return success_response(tokens)


@router.post("/sign-in")
async def sign_in(
    body: SignInRequest,
    auth: Annotated[AuthProvider, Depends(get_auth_provider)],
):
    """Sign in with email and password."""
    try:
        tokens = await auth.verify_credentials(body.email.strip().lower(), body.password)
    except ValueError as e:
        raise UnauthorizedException(message=str(e), code="INVALID_CREDENTIALS")

    return success_response(tokens)


@router.post("/sign-out")
async def sign_out(
    identity: CurrentIdentity,
    auth: Annotated[AuthProvider, Depends(get_auth_provider)],
    subscriptions: Annotated[SubscriptionService, Depends(get_subscription_service)],
):
    """Revoke the identity's tokens and close its live subscriptions."""
    released = await subscriptions.release_identity(identity.uid)

    try:
        await auth.revoke_sessions(identity.uid)
    except ValueError as e:
        logger.warning(f"Failed to revoke sessions of {identity.uid}: {e}")

    logger.info(f"{identity.uid} signed out, released {released} subscriptions")
    return success_response(message="Signed out")
