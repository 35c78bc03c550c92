"""
Authentication module for Grid Auth.

This module resolves each request to a principal, either a machine client
holding an API key or a user holding a federated session, and lets route
handlers forward that principal's credentials to downstream services.
"""

from .authentication import Authentication, OnBehalfOfPrincipal, Proceed, Reject
from .middleware import AuthenticationMiddleware
from .models import ApiKeyAccessor, AuthConfig, PandaUser, Principal
from .providers import (
    ApiAuthenticationProvider,
    AuthenticationProviders,
    UserAuthenticationProvider
)
from .exceptions import (
    AuthenticationError,
    SessionTokenError,
    FederationError,
    OnBehalfOfError
)

__all__ = [
    "Authentication",
    "AuthenticationMiddleware",
    "OnBehalfOfPrincipal",
    "Proceed",
    "Reject",
    "AuthConfig",
    "Principal",
    "PandaUser",
    "ApiKeyAccessor",
    "ApiAuthenticationProvider",
    "UserAuthenticationProvider",
    "AuthenticationProviders",
    "AuthenticationError",
    "SessionTokenError",
    "FederationError",
    "OnBehalfOfError"
]
