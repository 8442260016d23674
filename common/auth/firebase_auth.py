"""
Firebase Admin SDK identity provider.

Uses Firebase Authentication for token verification and user management,
and the Identity Toolkit REST API for email/password sign-in.

Example:
    auth = FirebaseAuth(credentials_path="path/to/serviceAccount.json")

    # Verify ID token from client (email/password or OAuth sign-in)
    identity = await auth.get_identity(id_token)
    print(identity.uid, identity.email)

    # Sign in with email/password (via REST API)
    session = await auth.verify_credentials("user@example.com", "password123")
"""

import os
from typing import Dict, Any, Optional, List

import httpx

from common.auth.base import AuthProvider


def _get_firebase_credentials_from_env() -> Optional[Dict[str, Any]]:
    """
    Build service-account credentials from environment variables.

    Returns None unless PROJECT_ID, PRIVATE_KEY and CLIENT_EMAIL are all set.
    """
    required_fields = [
        "PROJECT_ID",
        "PRIVATE_KEY",
        "CLIENT_EMAIL",
    ]

    for field in required_fields:
        if not os.environ.get(field):
            return None

    def _env(name: str, default: str = "") -> str:
        return os.environ.get(name, default).strip('"').strip(",")

    return {
        "type": _env("TYPE", "service_account"),
        "project_id": _env("PROJECT_ID"),
        "private_key_id": _env("PRIVATE_KEY_ID"),
        "private_key": _env("PRIVATE_KEY").replace("\\n", "\n"),
        "client_email": _env("CLIENT_EMAIL"),
        "client_id": _env("CLIENT_ID"),
        "auth_uri": _env("AUTH_URI", "https://accounts.google.com/o/oauth2/auth"),
        "token_uri": _env("TOKEN_URI", "https://oauth2.googleapis.com/token"),
        "auth_provider_x509_cert_url": _env(
            "AUTH_PROVIDER_X509_CERT_URL", "https://www.googleapis.com/oauth2/v1/certs"
        ),
        "client_x509_cert_url": _env("CLIENT_X509_CERT_URL"),
    }


class FirebaseAuth(AuthProvider):
    """
    Firebase Admin SDK authentication provider.

    Handles:
    - ID token verification (tokens from email/password and OAuth sign-in)
    - Email/password sign-up and sign-in
    - Refresh token revocation on sign-out
    - User listing for maintenance scripts
    """

    # Firebase REST API base URL
    FIREBASE_AUTH_URL = "https://identitytoolkit.googleapis.com/v1/accounts"

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        credentials_dict: Optional[Dict[str, Any]] = None,
        project_id: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        """
        Initialize Firebase auth provider.

        Args:
            credentials_path: Path to service account JSON file
            credentials_dict: Service account credentials as dict (alternative to path)
            project_id: Firebase project ID (optional, can be inferred from credentials)
            api_key: Firebase Web API Key (for REST API sign-in)
        """
        self._api_key = api_key or os.environ.get("FIREBASE_API_KEY")

        import firebase_admin
        from firebase_admin import auth, credentials

        # Initialize Firebase app if not already done
        if not firebase_admin._apps:
            if credentials_path:
                cred = credentials.Certificate(credentials_path)
            elif credentials_dict:
                cred = credentials.Certificate(credentials_dict)
            else:
                env_credentials = _get_firebase_credentials_from_env()
                if env_credentials:
                    cred = credentials.Certificate(env_credentials)
                else:
                    # Use default credentials (for GCP environments)
                    cred = credentials.ApplicationDefault()

            options = {}
            if project_id:
                options["projectId"] = project_id

            firebase_admin.initialize_app(cred, options)

        self._auth = auth

    async def create_user(
        self,
        email: str,
        password: str,
        **kwargs: Any,
    ) -> str:
        """Create a new Firebase user."""
        try:
            user_record = self._auth.create_user(
                email=email,
                password=password,
                display_name=kwargs.get("display_name"),
            )
            return user_record.uid
        except self._auth.EmailAlreadyExistsError:
            raise ValueError("Email already registered")
        except Exception as e:
            raise ValueError(f"Failed to create user: {e}")

    async def verify_credentials(
        self,
        email: str,
        password: str,
    ) -> Dict[str, Any]:
        """
        Sign in with email and password using the Firebase REST API.

        Returns:
            Dict containing uid, email, displayName, idToken, refreshToken, expiresIn

        Raises:
            ValueError: If credentials are invalid or API key is missing
        """
        if not self._api_key:
            raise ValueError(
                "Firebase API key is required for email/password authentication. "
                "Set FIREBASE_API_KEY environment variable."
            )

        url = f"{self.FIREBASE_AUTH_URL}:signInWithPassword?key={self._api_key}"

        async with httpx.AsyncClient() as client:
            response = await client.post(
                url,
                json={
                    "email": email,
                    "password": password,
                    "returnSecureToken": True,
                },
            )

        if response.status_code != 200:
            error_message = response.json().get("error", {}).get("message", "Unknown error")

            if error_message in ["EMAIL_NOT_FOUND", "INVALID_PASSWORD", "INVALID_LOGIN_CREDENTIALS"]:
                raise ValueError("Invalid email or password")
            elif error_message == "USER_DISABLED":
                raise ValueError("Account has been disabled")
            elif error_message == "TOO_MANY_ATTEMPTS_TRY_LATER":
                raise ValueError("Too many failed attempts. Please try again later.")
            raise ValueError(f"Authentication failed: {error_message}")

        data = response.json()

        return {
            "uid": data.get("localId"),
            "email": data.get("email"),
            "displayName": data.get("displayName"),
            "idToken": data.get("idToken"),
            "refreshToken": data.get("refreshToken"),
            "expiresIn": data.get("expiresIn"),
        }

    async def verify_token(self, token: str) -> Dict[str, Any]:
        """Verify a Firebase ID token, including the revocation check."""
        try:
            decoded = self._auth.verify_id_token(token, check_revoked=True)
            decoded["sub"] = decoded.get("uid")
            return decoded
        except self._auth.RevokedIdTokenError:
            raise ValueError("Token has been revoked")
        except self._auth.ExpiredIdTokenError:
            raise ValueError("Token has expired")
        except self._auth.InvalidIdTokenError as e:
            raise ValueError(f"Invalid token: {e}")
        except Exception as e:
            raise ValueError(f"Token verification failed: {e}")

    async def revoke_sessions(self, user_id: str) -> None:
        """Revoke all refresh tokens for a user."""
        try:
            self._auth.revoke_refresh_tokens(user_id)
        except self._auth.UserNotFoundError:
            raise ValueError("User not found")
        except Exception as e:
            raise ValueError(f"Failed to revoke sessions: {e}")

    async def list_users(self) -> List[Dict[str, Any]]:
        """Page through every Firebase user."""
        users = []
        page = self._auth.list_users()
        while page:
            users.extend(self._format_user(user) for user in page.users)
            page = page.get_next_page()
        return users

    def _format_user(self, user) -> Dict[str, Any]:
        return {
            "uid": user.uid,
            "email": user.email,
            "display_name": user.display_name,
            "disabled": user.disabled,
        }
