"""
Authentication resolver.

This module decides, for each request, who the caller is. The API
provider is always consulted first and any conclusive answer from it,
including a failure, is final. The user provider is only consulted when
the request carries no API credential at all, so a malformed API key is
never mistaken for a user who needs to log in.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import httpx
from fastapi import status
from starlette.requests import Request
from starlette.responses import Response

from .exceptions import OnBehalfOfError
from .models import (
    ApiKeyAccessor,
    Authenticated,
    AuthConfig,
    Expired,
    GracePeriod,
    Invalid,
    NotAuthenticated,
    NotAuthorised,
    PandaUser,
    Principal,
    get_identity
)
from .providers.base import AuthenticationProviders, EnrichmentFailed, RequestEnricher
from .responses import Link, respond_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Proceed:
    """The request is authenticated as ``principal``."""

    principal: Principal


@dataclass(frozen=True)
class Reject:
    """The request ends here with ``response`` (an error or a redirect)."""

    response: Response


AuthenticationOutcome = Union[Proceed, Reject]


class OnBehalfOfPrincipal:
    """
    Stamps outbound requests with the credentials of an authenticated principal.

    Apply ``enrich`` exactly once per outbound request.
    """

    def __init__(self, principal: Principal, enricher: RequestEnricher):
        self.principal = principal
        self._enricher = enricher

    def enrich(self, outbound: httpx.Request) -> httpx.Request:
        """
        Add forwarding credentials to an outbound request.

        Raises:
            OnBehalfOfError: If the provider cannot forward this principal's credentials
        """
        result = self._enricher(outbound)
        if isinstance(result, EnrichmentFailed):
            identity = get_identity(self.principal)
            logger.error(
                "Unable to enrich request on behalf of principal",
                extra={"identity": identity, "error": result.message}
            )
            raise OnBehalfOfError(result.message, identity)
        return result.request


class Authentication:
    """
    Resolves requests to principals using an API and a user provider.

    The providers are fixed at construction and only read afterwards, so a
    single instance serves concurrent requests without coordination.
    """

    def __init__(self, auth_config: AuthConfig, providers: AuthenticationProviders):
        """
        Initialize the resolver.

        Args:
            auth_config: Authentication configuration
            providers: The API and user providers to consult
        """
        self.config = auth_config
        self.providers = providers
        self.login_links = [Link(rel="login", href=auth_config.login_uri_template)]

    def unauthorised(self, error_message: str, cause: Optional[BaseException] = None) -> Response:
        logger.info(f"Authentication failure {error_message}", exc_info=cause)
        return respond_error(
            status.HTTP_401_UNAUTHORIZED,
            "authentication-failure",
            "Authentication failure",
            self.login_links
        )

    def forbidden(self, error_message: str) -> Response:
        logger.info(f"User not authorised: {error_message}")
        return respond_error(
            status.HTTP_403_FORBIDDEN,
            "principal-not-authorised",
            "Principal not authorised",
            self.login_links
        )

    async def _send_for_auth(self, request: Request, principal: Optional[Principal]) -> Response:
        send_for_authentication = self.providers.user_provider.send_for_authentication
        if send_for_authentication is None:
            return self.unauthorised("No path to authenticate user")
        return await send_for_authentication(request, principal)

    def _flush_token(self, request: Request, response: Response) -> Response:
        flush_token = self.providers.user_provider.flush_token
        if flush_token is None:
            return response
        return flush_token(request, response)

    async def authentication_status(self, request: Request) -> AuthenticationOutcome:
        """
        Authenticate a request, trying the API provider and then the user provider.

        Args:
            request: The inbound request

        Returns:
            AuthenticationOutcome: Proceed with a principal, or Reject with the
            response to send instead
        """
        api_status = await self.providers.api_provider.authenticate_request(request)

        if isinstance(api_status, Authenticated):
            return Proceed(api_status.principal)
        if isinstance(api_status, Invalid):
            return Reject(self.unauthorised(api_status.message, api_status.cause))
        if isinstance(api_status, NotAuthorised):
            return Reject(self.forbidden(f"Principal not authorised: {api_status.message}"))
        if not isinstance(api_status, NotAuthenticated):
            raise TypeError(f"API provider returned unsupported status {api_status!r}")

        user_status = await self.providers.user_provider.authenticate_request(request)

        if isinstance(user_status, NotAuthenticated):
            return Reject(await self._send_for_auth(request, None))
        if isinstance(user_status, Expired):
            return Reject(await self._send_for_auth(request, user_status.principal))
        if isinstance(user_status, (GracePeriod, Authenticated)):
            return Proceed(user_status.principal)
        if isinstance(user_status, Invalid):
            response = self.unauthorised(user_status.message, user_status.cause)
            return Reject(self._flush_token(request, response))
        if isinstance(user_status, NotAuthorised):
            return Reject(self.forbidden(f"Principal not authorised: {user_status.message}"))
        raise TypeError(f"User provider returned unsupported status {user_status!r}")

    def get_on_behalf_of_principal(self, principal: Principal, original_request: Request) -> OnBehalfOfPrincipal:
        """
        Build an enricher that forwards ``principal``'s credentials downstream.

        The provider that authenticated the principal supplies the credentials.
        """
        if isinstance(principal, ApiKeyAccessor):
            enricher = self.providers.api_provider.on_behalf_of(original_request)
        elif isinstance(principal, PandaUser):
            enricher = self.providers.user_provider.on_behalf_of(original_request)
        else:
            raise TypeError(f"Unsupported principal {principal!r}")
        return OnBehalfOfPrincipal(principal, enricher)
