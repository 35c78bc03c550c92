"""
Principal models.

This module contains the identities a request can resolve to. A principal
is either a human user authenticated through a federated session
(``PandaUser``) or a machine client authenticated with an API key
(``ApiKeyAccessor``). Both expose an ``ApiAccessor`` so permission checks
can treat them uniformly.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Tier(str, Enum):
    """Access tier of an accessor, used by the permission checker."""

    INTERNAL = "internal"
    READ_ONLY = "readonly"
    SYNDICATION = "syndication"


class ApiAccessor(BaseModel):
    """Identity and tier pair shared by every principal variant."""

    model_config = ConfigDict(frozen=True)

    identity: str = Field(..., min_length=1, description="Accessor identity (email or key name)")
    tier: Tier = Field(..., description="Access tier")


class GridUser(BaseModel):
    """
    User record established by the federated identity provider.

    Example:
        user = GridUser(
            email="jane.doe@guardian.co.uk",
            first_name="Jane",
            last_name="Doe"
        )
    """

    model_config = ConfigDict(frozen=True)

    email: str = Field(..., min_length=3, description="User's email address")
    first_name: str = Field(..., description="User's first name")
    last_name: str = Field(..., description="User's last name")
    avatar_url: Optional[str] = Field(None, description="URL of the user's avatar")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PandaUser(BaseModel):
    """Principal for a human user holding a valid session."""

    model_config = ConfigDict(frozen=True)

    user: GridUser
    multifactor: bool = False

    @property
    def accessor(self) -> ApiAccessor:
        return ApiAccessor(identity=self.user.email, tier=Tier.INTERNAL)

    @property
    def identity(self) -> str:
        return self.accessor.identity

    @property
    def tier(self) -> Tier:
        return self.accessor.tier


class ApiKeyAccessor(BaseModel):
    """Principal for a machine client holding a valid API key."""

    model_config = ConfigDict(frozen=True)

    accessor: ApiAccessor

    @property
    def identity(self) -> str:
        return self.accessor.identity

    @property
    def tier(self) -> Tier:
        return self.accessor.tier


Principal = Union[PandaUser, ApiKeyAccessor]


def get_identity(principal: Principal) -> str:
    """Return the identity used for logging and permission checks."""
    return principal.accessor.identity


def validate_user(user: GridUser, multifactor: bool, email_domain: str, require_multifactor: bool) -> bool:
    """
    Check that a federated user has the standing to use the service.

    The user must belong to ``email_domain`` and, when multifactor is
    required, must have completed a second factor.

    Args:
        user: The federated user
        multifactor: Whether the session was established with a second factor
        email_domain: Domain the user's email must belong to
        require_multifactor: Whether a second factor is mandatory

    Returns:
        bool: True if the user may proceed
    """
    is_valid_domain = user.email.endswith("@" + email_domain)
    passes_multifactor = multifactor if require_multifactor else True

    return is_valid_domain and passes_multifactor
