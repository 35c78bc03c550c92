"""
Authentication status models.

These are the outcomes a provider reports for a single request. User
providers may return any ``AuthenticationStatus``; API providers are
restricted to ``ApiAuthenticationStatus`` since API keys have no expiry
window and cannot be sent through an interactive login.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .principal import Principal


class _Status(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class NotAuthenticated(_Status):
    """No credential was found on the request."""

    kind: Literal["not_authenticated"] = "not_authenticated"


class Authenticated(_Status):
    """The credential is valid and resolved to a principal."""

    kind: Literal["authenticated"] = "authenticated"
    principal: Principal


class Expired(_Status):
    """The credential was valid but has expired beyond the grace window."""

    kind: Literal["expired"] = "expired"
    principal: Principal


class GracePeriod(_Status):
    """The credential has expired but is still honoured for this request."""

    kind: Literal["grace_period"] = "grace_period"
    principal: Principal


class Invalid(_Status):
    """The credential is malformed or corrupted and should be flushed."""

    kind: Literal["invalid"] = "invalid"
    message: str
    cause: Optional[BaseException] = Field(None, description="Underlying error, if any")


class NotAuthorised(_Status):
    """The credential is valid but the caller lacks the required standing."""

    kind: Literal["not_authorised"] = "not_authorised"
    message: str


AuthenticationStatus = Union[NotAuthenticated, Authenticated, Expired, GracePeriod, Invalid, NotAuthorised]

ApiAuthenticationStatus = Union[NotAuthenticated, Authenticated, Invalid, NotAuthorised]

NOT_AUTHENTICATED = NotAuthenticated()
