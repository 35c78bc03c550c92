"""
Authentication provider contracts.

Providers are the only extension point of the authentication engine. An
application is configured with exactly one API provider and one user
provider, bundled into ``AuthenticationProviders`` at startup.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

import httpx
from starlette.requests import Request
from starlette.responses import Response

from ..models import ApiAuthenticationStatus, AuthenticationStatus, Principal


@dataclass(frozen=True)
class Enriched:
    """An outbound request that now carries forwarded credentials."""

    request: httpx.Request


@dataclass(frozen=True)
class EnrichmentFailed:
    """The inbound request lacked what was needed to forward credentials."""

    message: str


EnrichmentResult = Union[Enriched, EnrichmentFailed]
RequestEnricher = Callable[[httpx.Request], EnrichmentResult]

SendForAuthentication = Callable[[Request, Optional[Principal]], Awaitable[Response]]
ProcessAuthentication = Callable[[Request], Awaitable[Response]]
FlushToken = Callable[[Request, Response], Response]


class AuthenticationProvider(ABC):
    """Behaviour shared by both provider kinds."""

    def initialise(self) -> None:
        """Called once when the application starts."""

    async def shutdown(self) -> None:
        """Called once when the application stops."""

    @abstractmethod
    def on_behalf_of(self, request: Request) -> RequestEnricher:
        """
        Build a function that lets downstream calls reuse this request's credentials.

        Args:
            request: The in-flight request

        Returns:
            RequestEnricher: Stamps an outbound request with forwarding
            credentials, or reports why it cannot
        """


class ApiAuthenticationProvider(AuthenticationProvider):
    """Authenticates machine clients, typically by API key."""

    @abstractmethod
    async def authenticate_request(self, request: Request) -> ApiAuthenticationStatus:
        """
        Establish the authentication status of a request.

        Must only return NotAuthenticated, Authenticated, Invalid or
        NotAuthorised.
        """


class UserAuthenticationProvider(AuthenticationProvider):
    """Authenticates human users, typically by session cookie."""

    @abstractmethod
    async def authenticate_request(self, request: Request) -> AuthenticationStatus:
        """
        Establish the authentication status of a request.

        May return any status, including Expired and GracePeriod.
        """

    @property
    def send_for_authentication(self) -> Optional[SendForAuthentication]:
        """
        Sends an unauthenticated user to the federated identity provider.

        Receives the request and, when the user's identity is known from an
        expired credential, the stale principal. None if this provider
        cannot start an interactive login.
        """
        return None

    @property
    def process_authentication(self) -> Optional[ProcessAuthentication]:
        """
        Handles a user returning from the federated identity provider.

        On success it must leave the client in a state where a later
        ``authenticate_request`` succeeds, e.g. by setting a cookie. On
        failure it returns an appropriate 4xx response.
        """
        return None

    @property
    def flush_token(self) -> Optional[FlushToken]:
        """
        Strips the user's credential from a response, e.g. by expiring a cookie.

        Used on logout and when a credential is found to be invalid.
        """
        return None


@dataclass(frozen=True)
class AuthenticationProviders:
    """The API and user providers the resolver consults, in that order."""

    api_provider: ApiAuthenticationProvider
    user_provider: UserAuthenticationProvider
