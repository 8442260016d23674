"""
Authentication module - Pluggable identity provider (Firebase).
"""

from common.auth.base import AuthProvider, Identity
from common.auth.firebase_auth import FirebaseAuth
from common.auth.dependencies import (
    create_identity_dependency,
    extract_bearer_token,
    resolve_identity,
)

__all__ = [
    "AuthProvider",
    "Identity",
    "FirebaseAuth",
    "create_identity_dependency",
    "extract_bearer_token",
    "resolve_identity",
]
