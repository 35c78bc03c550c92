"""
Authentication models package.

The models are organized into focused modules:
- principal: resolved caller identities
- status: outcomes reported by authentication providers
- auth_config: configuration for providers and the resolver

Example Usage:
    from grid_auth.auth.models import (
        Authenticated,
        PandaUser,
        GridUser
    )

    status = Authenticated(
        principal=PandaUser(user=GridUser(email="a@guardian.co.uk", first_name="A", last_name="B"))
    )
"""

from .auth_config import ApiKeyRecord, AuthConfig
from .principal import (
    ApiAccessor,
    ApiKeyAccessor,
    GridUser,
    PandaUser,
    Principal,
    Tier,
    get_identity,
    validate_user
)
from .status import (
    NOT_AUTHENTICATED,
    ApiAuthenticationStatus,
    Authenticated,
    AuthenticationStatus,
    Expired,
    GracePeriod,
    Invalid,
    NotAuthenticated,
    NotAuthorised
)

__all__ = [
    # Configuration
    "AuthConfig",
    "ApiKeyRecord",

    # Principals
    "ApiAccessor",
    "ApiKeyAccessor",
    "GridUser",
    "PandaUser",
    "Principal",
    "Tier",
    "get_identity",
    "validate_user",

    # Statuses
    "ApiAuthenticationStatus",
    "AuthenticationStatus",
    "Authenticated",
    "Expired",
    "GracePeriod",
    "Invalid",
    "NotAuthenticated",
    "NotAuthorised",
    "NOT_AUTHENTICATED",
]
