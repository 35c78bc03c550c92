"""
Session cookie authentication provider for human users.

Users sign in through a federated identity provider. Once the callback
has been processed the user holds a signed session token in a cookie;
every request is authenticated by verifying that token and checking its
expiry against the configured grace window.
"""

import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import httpx
from authlib.jose import JoseError, JsonWebToken
from fastapi import status
from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response

from ..exceptions import FederationError, SessionTokenError
from ..models import (
    NOT_AUTHENTICATED,
    Authenticated,
    AuthConfig,
    AuthenticationStatus,
    Expired,
    GracePeriod,
    GridUser,
    Invalid,
    NotAuthorised,
    PandaUser,
    Principal,
    validate_user
)
from ..responses import Link, respond_error
from .api_key import ORIGINAL_SERVICE_HEADER
from .base import (
    Enriched,
    EnrichmentFailed,
    EnrichmentResult,
    FlushToken,
    ProcessAuthentication,
    RequestEnricher,
    SendForAuthentication,
    UserAuthenticationProvider
)

logger = logging.getLogger(__name__)

STATE_TTL = 600


class IdentityFederation(ABC):
    """
    The federated identity provider users sign in with.

    Implementations own the provider's wire protocol. They receive the
    callback request and return the user it identifies.
    """

    @abstractmethod
    async def exchange(self, request: Request) -> PandaUser:
        """
        Resolve the user a federation callback refers to.

        Raises:
            FederationError: If the identity provider rejects the callback
        """


class PandaAuthenticationProvider(UserAuthenticationProvider):
    """
    User provider backed by a signed session cookie.

    This provider:
    1. Verifies the session token carried in the session cookie
    2. Classifies it as valid, in its grace period or expired
    3. Checks the user's email domain and multifactor standing
    4. Redirects users without a usable session to the federated login
    5. Issues a fresh session when the user returns from the federated login
    """

    def __init__(
        self,
        auth_config: AuthConfig,
        federation: Optional[IdentityFederation] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the session provider.

        Args:
            auth_config: Authentication configuration
            federation: Federated identity provider used for interactive login
            clock: Source of the current unix time
        """
        if not auth_config.session_secret:
            raise ValueError("A session secret is required for session authentication")

        self.config = auth_config
        self.federation = federation
        self.clock = clock
        self.jwt = JsonWebToken(['HS256'])
        self._key = auth_config.session_secret.encode("utf-8")
        self._login_links = [Link(rel="login", href=auth_config.login_uri_template)]

        logger.info(
            "Session provider initialized",
            extra={
                "cookie": self.config.session_cookie_name,
                "grace_period": self.config.grace_period,
                "interactive_login": self._can_send_for_authentication
            }
        )

    @property
    def _can_send_for_authentication(self) -> bool:
        return self.federation is not None and self.config.federation_login_url is not None

    def _encode(self, claims: Dict[str, Any]) -> str:
        return self.jwt.encode({"alg": "HS256"}, claims, self._key).decode("ascii")

    def _decode(self, token: str) -> Dict[str, Any]:
        try:
            return dict(self.jwt.decode(token, self._key))
        except JoseError as e:
            raise SessionTokenError(f"Session token could not be verified: {e}", str(e)) from e
        except ValueError as e:
            raise SessionTokenError(f"Session token is not a valid JWT: {e}", str(e)) from e

    def issue_token(self, panda_user: PandaUser) -> str:
        """
        Create a signed session token for a user.

        Args:
            panda_user: The user and their multifactor standing

        Returns:
            str: Session token suitable for the session cookie
        """
        now = int(self.clock())
        user = panda_user.user
        claims = {
            "sub": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "avatar_url": user.avatar_url,
            "multifactor": panda_user.multifactor,
            "iat": now,
            "exp": now + self.config.session_ttl
        }
        return self._encode(claims)

    def _principal_from_claims(self, claims: Dict[str, Any]) -> PandaUser:
        try:
            user = GridUser(
                email=claims["sub"],
                first_name=claims["first_name"],
                last_name=claims["last_name"],
                avatar_url=claims.get("avatar_url")
            )
        except (KeyError, ValueError) as e:
            raise SessionTokenError(f"Session token is missing user claims: {e}", str(e)) from e
        return PandaUser(user=user, multifactor=bool(claims.get("multifactor", False)))

    async def authenticate_request(self, request: Request) -> AuthenticationStatus:
        token = request.cookies.get(self.config.session_cookie_name)
        if not token:
            return NOT_AUTHENTICATED

        try:
            claims = self._decode(token)
            principal = self._principal_from_claims(claims)
            expires_at = int(claims["exp"])
        except SessionTokenError as e:
            return Invalid(message=e.message, cause=e)
        except (KeyError, TypeError, ValueError) as e:
            return Invalid(message="Session token has no valid expiry", cause=e)

        now = self.clock()
        if now > expires_at + self.config.grace_period:
            logger.debug(
                "Session expired",
                extra={"identity": principal.identity, "expired_for": int(now - expires_at)}
            )
            return Expired(principal=principal)

        if not validate_user(
            principal.user,
            principal.multifactor,
            self.config.user_email_domain,
            self.config.require_multifactor
        ):
            return NotAuthorised(message=f"{principal.identity} is not valid for use with this service")

        if now > expires_at:
            return GracePeriod(principal=principal)

        return Authenticated(principal=principal)

    @property
    def send_for_authentication(self) -> Optional[SendForAuthentication]:
        if not self._can_send_for_authentication:
            return None
        return self._send_for_authentication

    async def _send_for_authentication(self, request: Request, principal: Optional[Principal]) -> Response:
        now = int(self.clock())
        state = self._encode({
            "return_to": str(request.url),
            "nonce": secrets.token_urlsafe(16),
            "exp": now + STATE_TTL
        })
        params = {
            "redirect_uri": self.config.callback_uri,
            "state": state
        }
        if principal is not None:
            params["login_hint"] = principal.identity

        location = f"{self.config.federation_login_url}?{urlencode(params)}"
        logger.debug(
            "Sending user for authentication",
            extra={"path": request.url.path, "login_hint": params.get("login_hint")}
        )
        return RedirectResponse(location, status_code=status.HTTP_302_FOUND)

    @property
    def process_authentication(self) -> Optional[ProcessAuthentication]:
        if self.federation is None:
            return None
        return self._process_authentication

    def _return_to(self, request: Request) -> Optional[str]:
        state = request.query_params.get("state")
        if not state:
            raise FederationError("Federation callback has no state", "missing_state")
        try:
            claims = self._decode(state)
        except SessionTokenError as e:
            raise FederationError("Federation callback state is not valid", e.token_error) from e
        if int(claims.get("exp", 0)) < self.clock():
            raise FederationError("Federation callback state has expired", "expired_state")
        return claims.get("return_to")

    async def _process_authentication(self, request: Request) -> Response:
        try:
            return_to = self._return_to(request)
            panda_user = await self.federation.exchange(request)
        except FederationError as e:
            logger.info(
                "Federated authentication failed",
                extra={"error": e.message, "federation_error": e.federation_error}
            )
            return respond_error(
                status.HTTP_401_UNAUTHORIZED,
                "authentication-failure",
                "Authentication failure",
                self._login_links
            )

        if not validate_user(
            panda_user.user,
            panda_user.multifactor,
            self.config.user_email_domain,
            self.config.require_multifactor
        ):
            logger.info("Federated user not authorised", extra={"identity": panda_user.identity})
            return respond_error(
                status.HTTP_403_FORBIDDEN,
                "principal-not-authorised",
                "Principal not authorised",
                self._login_links
            )

        if return_to:
            response: Response = RedirectResponse(return_to, status_code=status.HTTP_302_FOUND)
        else:
            response = PlainTextResponse("logged in")

        response.set_cookie(
            self.config.session_cookie_name,
            self.issue_token(panda_user),
            max_age=self.config.session_ttl + self.config.grace_period,
            domain=self.config.domain_root or None,
            secure=True,
            httponly=True,
            samesite="lax"
        )
        logger.info("User authenticated", extra={"identity": panda_user.identity})
        return response

    @property
    def flush_token(self) -> Optional[FlushToken]:
        return self._flush_token

    def _flush_token(self, request: Request, response: Response) -> Response:
        response.delete_cookie(
            self.config.session_cookie_name,
            domain=self.config.domain_root or None,
            secure=True,
            httponly=True,
            samesite="lax"
        )
        return response

    def on_behalf_of(self, request: Request) -> RequestEnricher:
        cookie_name = self.config.session_cookie_name
        token = request.cookies.get(cookie_name)
        service_name = self.config.service_name

        def enrich(outbound: httpx.Request) -> EnrichmentResult:
            if not token:
                return EnrichmentFailed(message=f"Session cookie {cookie_name} not found in request")
            outbound.headers["Cookie"] = f"{cookie_name}={token}"
            outbound.headers[ORIGINAL_SERVICE_HEADER] = service_name
            return Enriched(request=outbound)

        return enrich
