"""Authentication providers: the contracts and the bundled implementations."""

from ..models.auth_config import make_api_key
from .api_key import ORIGINAL_SERVICE_HEADER, ApiKeyAuthenticationProvider
from .base import (
    ApiAuthenticationProvider,
    AuthenticationProvider,
    AuthenticationProviders,
    Enriched,
    EnrichmentFailed,
    EnrichmentResult,
    RequestEnricher,
    UserAuthenticationProvider
)
from .panda import IdentityFederation, PandaAuthenticationProvider

__all__ = [
    "AuthenticationProvider",
    "ApiAuthenticationProvider",
    "UserAuthenticationProvider",
    "AuthenticationProviders",
    "Enriched",
    "EnrichmentFailed",
    "EnrichmentResult",
    "RequestEnricher",
    "ApiKeyAuthenticationProvider",
    "make_api_key",
    "ORIGINAL_SERVICE_HEADER",
    "IdentityFederation",
    "PandaAuthenticationProvider",
]
