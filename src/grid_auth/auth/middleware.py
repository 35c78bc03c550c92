"""
Authentication middleware for FastAPI.

This module runs the authentication resolver for every protected request
and exposes the resolved principal to route handlers through dependencies.
"""

import logging
from typing import Callable, Optional

from fastapi import HTTPException, Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from .authentication import Authentication, OnBehalfOfPrincipal, Proceed
from .models import Principal, get_identity

logger = logging.getLogger(__name__)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for API key and session authentication.

    This middleware:
    1. Skips authentication for health, callback and documentation endpoints
    2. Resolves the request to a principal using the configured providers
    3. Stores the principal in request state for route handlers
    4. Returns the resolver's response (401, 403 or a login redirect) otherwise
    """

    def __init__(self, app, authentication: Authentication):
        """
        Initialize the authentication middleware.

        Args:
            app: FastAPI application instance
            authentication: The resolver used for every protected request
        """
        super().__init__(app)
        self.authentication = authentication

        # Endpoints that don't require authentication
        self.public_endpoints = {
            "/health",
            "/oauthCallback",
            "/docs",
            "/redoc",
            "/openapi.json"
        }

        logger.info(
            "Authentication middleware initialized",
            extra={
                "public_endpoints": len(self.public_endpoints)
            }
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process incoming requests and handle authentication.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in the chain

        Returns:
            Response: HTTP response
        """
        if self._is_public_endpoint(request.url.path):
            logger.debug(f"Skipping authentication for public endpoint: {request.url.path}")
            return await call_next(request)

        # Skip authentication for OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        outcome = await self.authentication.authentication_status(request)

        if not isinstance(outcome, Proceed):
            logger.debug(
                "Request not authenticated",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": outcome.response.status_code
                }
            )
            return outcome.response

        request.state.principal = outcome.principal
        request.state.authentication = self.authentication

        logger.debug(
            "Request authenticated successfully",
            extra={
                "identity": get_identity(outcome.principal),
                "tier": outcome.principal.tier.value,
                "path": request.url.path,
                "method": request.method
            }
        )

        return await call_next(request)

    def _is_public_endpoint(self, path: str) -> bool:
        """
        Check if an endpoint is public (doesn't require authentication).

        Args:
            path: Request path

        Returns:
            bool: True if endpoint is public
        """
        return path in self.public_endpoints


def get_principal(request: Request) -> Optional[Principal]:
    """
    Dependency function to get the current principal.

    Args:
        request: FastAPI request object

    Returns:
        Optional[Principal]: Current principal if authenticated
    """
    return getattr(request.state, 'principal', None)


def require_principal(request: Request) -> Principal:
    """
    Dependency function that requires authentication.

    Raises:
        HTTPException: If request is not authenticated
    """
    principal = get_principal(request)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return principal


def get_on_behalf_of(request: Request) -> OnBehalfOfPrincipal:
    """
    Dependency function returning an enricher for calls made on behalf of the caller.

    Use it to forward the caller's credentials to other media services:

        outbound = client.build_request("GET", url)
        response = await client.send(on_behalf_of.enrich(outbound))
    """
    principal = require_principal(request)
    authentication: Authentication = request.state.authentication
    return authentication.get_on_behalf_of_principal(principal, request)
