"""
FastAPI authentication dependencies.

Provides factory functions that build identity dependencies for any
AuthProvider. The provider itself is resolved through another dependency,
so applications decide where it lives (``app.state``, test overrides).

Example:
    from common.auth import create_identity_dependency

    require_identity = create_identity_dependency(get_auth_provider)

    @app.get("/profile")
    async def get_profile(identity: Identity = Depends(require_identity)):
        return {"uid": identity.uid}
"""

from typing import Callable, Optional

from fastapi import Depends, Header

from common.auth.base import AuthProvider, Identity
from common.utils.exceptions import UnauthorizedException


def extract_bearer_token(
    authorization: Optional[str],
    scheme: str = "Bearer",
) -> str:
    """
    Extract the token from an ``Authorization: <scheme> <token>`` header value.

    Raises:
        UnauthorizedException: If the header is missing, malformed, or empty
    """
    if not authorization:
        raise UnauthorizedException(
            message="Missing authorization header",
            code="UNAUTHORIZED",
        )

    prefix = f"{scheme} "
    if not authorization.startswith(prefix):
        raise UnauthorizedException(
            message=f"Invalid authorization scheme. Expected: {scheme}",
            code="INVALID_AUTH_SCHEME",
        )

    token = authorization[len(prefix):].strip()
    if not token:
        raise UnauthorizedException(message="Token is empty", code="EMPTY_TOKEN")

    return token


async def resolve_identity(auth: AuthProvider, token: str) -> Identity:
    """
    Verify a raw token with the provider.

    Raises:
        UnauthorizedException: If the provider rejects the token
    """
    try:
        return await auth.get_identity(token)
    except ValueError as e:
        raise UnauthorizedException(message=str(e), code="INVALID_TOKEN")


def create_identity_dependency(
    get_auth_provider: Callable[..., AuthProvider],
    header_name: str = "Authorization",
    scheme: str = "Bearer",
):
    """
    Factory to create a FastAPI dependency returning the signed-in Identity.

    Args:
        get_auth_provider: Dependency that returns the AuthProvider instance
        header_name: Header to extract token from (default: Authorization)
        scheme: Auth scheme prefix (default: Bearer)
    """

    async def require_identity(
        authorization: Optional[str] = Header(None, alias=header_name),
        auth: AuthProvider = Depends(get_auth_provider),
    ) -> Identity:
        token = extract_bearer_token(authorization, scheme)
        return await resolve_identity(auth, token)

    return require_identity
