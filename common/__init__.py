"""
Common library for reusable infrastructure components.

- database: Async MongoDB connection (Motor)
- auth: Pluggable identity provider (Firebase) and FastAPI dependencies
- utils: Standard responses and API exceptions
- config: Base settings class
"""

from common.database import MongoDB
from common.auth import AuthProvider, Identity, FirebaseAuth, create_identity_dependency
from common.utils import (
    success_response,
    APIException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    ValidationException,
    ServiceUnavailableException,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    # Auth
    "AuthProvider",
    "Identity",
    "FirebaseAuth",
    "create_identity_dependency",
    # Utils
    "success_response",
    "APIException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "ValidationException",
    "ServiceUnavailableException",
    # Config
    "BaseAppSettings",
]
