"""
Abstract identity provider interface.

Defines the contract the application needs from a managed authentication
service: turn a bearer token into an identity, sign users up and in, revoke
their sessions, and list them for maintenance jobs.

Example:
    from common.auth import AuthProvider, FirebaseAuth

    def get_auth_provider(settings) -> AuthProvider:
        return FirebaseAuth(credentials_path=settings.FIREBASE_CREDENTIALS_PATH)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any, List


@dataclass(frozen=True)
class Identity:
    """An authenticated end-user as seen by the application."""

    uid: str
    email: str
    display_name: Optional[str] = None

    @property
    def normalized_email(self) -> str:
        return (self.email or "").strip().lower()


class AuthProvider(ABC):
    """
    Abstract authentication provider.

    All methods are async so that blocking SDKs and HTTP-based providers share
    one calling convention.
    """

    @abstractmethod
    async def create_user(
        self,
        email: str,
        password: str,
        **kwargs: Any,
    ) -> str:
        """
        Create a new user account.

        Returns:
            The created user's ID

        Raises:
            ValueError: If email already exists or validation fails
        """
        pass

    @abstractmethod
    async def verify_credentials(
        self,
        email: str,
        password: str,
    ) -> Dict[str, Any]:
        """
        Verify email and password credentials.

        Returns:
            Dictionary with at least uid, email and an idToken

        Raises:
            ValueError: If credentials are invalid
        """
        pass

    @abstractmethod
    async def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify an ID token.

        Returns:
            Decoded claims (at minimum: uid/sub and email)

        Raises:
            ValueError: If token is invalid, expired, or revoked
        """
        pass

    @abstractmethod
    async def revoke_sessions(self, user_id: str) -> None:
        """Invalidate every refresh token of a user (sign-out everywhere)."""
        pass

    @abstractmethod
    async def list_users(self) -> List[Dict[str, Any]]:
        """List every user known to the provider."""
        pass

    async def get_identity(self, token: str) -> Identity:
        """
        Verify a token and build the Identity it belongs to.

        Raises:
            ValueError: If the token is invalid or carries no uid/email
        """
        claims = await self.verify_token(token)
        uid = claims.get("uid") or claims.get("sub")
        email = claims.get("email")

        if not uid:
            raise ValueError("Token missing user ID")
        if not email:
            raise ValueError("Token missing email")

        return Identity(uid=uid, email=email, display_name=claims.get("name"))
