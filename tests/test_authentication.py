"""
Test suite for the authentication resolver.

These tests drive the resolver with stub providers so every combination of
API and user outcomes can be checked in isolation.
"""

import json
from unittest.mock import AsyncMock, Mock
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from starlette.responses import Response

from grid_auth.auth.authentication import Authentication, OnBehalfOfPrincipal, Proceed, Reject
from grid_auth.auth.exceptions import OnBehalfOfError
from grid_auth.auth.models import (
    NOT_AUTHENTICATED,
    Authenticated,
    Expired,
    GracePeriod,
    Invalid,
    NotAuthorised
)
from grid_auth.auth.providers import (
    ApiAuthenticationProvider,
    ApiKeyAuthenticationProvider,
    AuthenticationProviders,
    Enriched,
    EnrichmentFailed,
    IdentityFederation,
    PandaAuthenticationProvider,
    UserAuthenticationProvider,
    make_api_key
)

from conftest import NOW, VALID_KEY, make_request

LOGIN_HREF = "https://media-auth.test.dev-gutools.co.uk/login{?redirectUri}"


class StubApiProvider(ApiAuthenticationProvider):
    def __init__(self, status):
        self.status = status
        self.enricher = Mock(side_effect=lambda outbound: Enriched(request=outbound))

    async def authenticate_request(self, request):
        return self.status

    def on_behalf_of(self, request):
        return self.enricher


class StubUserProvider(UserAuthenticationProvider):
    def __init__(self, status=None, send_for_authentication=None, flush_token=None):
        self.status = status
        self.calls = 0
        self._send_for_authentication = send_for_authentication
        self._flush_token = flush_token
        self.enricher = Mock(side_effect=lambda outbound: Enriched(request=outbound))

    async def authenticate_request(self, request):
        self.calls += 1
        return self.status

    @property
    def send_for_authentication(self):
        return self._send_for_authentication

    @property
    def flush_token(self):
        return self._flush_token

    def on_behalf_of(self, request):
        return self.enricher


class ExplodingUserProvider(UserAuthenticationProvider):
    """Fails the test if the resolver consults the user channel."""

    async def authenticate_request(self, request):
        pytest.fail("user provider must not be consulted")

    @property
    def flush_token(self):
        pytest.fail("user provider must not flush tokens")

    def on_behalf_of(self, request):
        pytest.fail("user provider must not enrich API key requests")


class NoFederation(IdentityFederation):
    async def exchange(self, request):
        raise AssertionError("not used")


def resolver(auth_config, api_provider, user_provider) -> Authentication:
    return Authentication(auth_config, AuthenticationProviders(api_provider, user_provider))


def error_body(response: Response) -> dict:
    return json.loads(response.body)


class TestApiChannel:
    """The API provider is consulted first and its conclusive answers are final."""

    @pytest.mark.asyncio
    async def test_authenticated_proceeds_without_user_provider(self, auth_config, api_key_accessor):
        auth = resolver(auth_config, StubApiProvider(Authenticated(principal=api_key_accessor)), ExplodingUserProvider())

        outcome = await auth.authentication_status(make_request())

        assert outcome == Proceed(api_key_accessor)

    @pytest.mark.asyncio
    async def test_invalid_is_401_without_flush(self, auth_config):
        auth = resolver(auth_config, StubApiProvider(Invalid(message="API key not valid")), ExplodingUserProvider())

        outcome = await auth.authentication_status(make_request())

        assert isinstance(outcome, Reject)
        assert outcome.response.status_code == 401
        assert "set-cookie" not in outcome.response.headers
        body = error_body(outcome.response)
        assert body["errorKey"] == "authentication-failure"
        assert body["links"] == [{"rel": "login", "href": LOGIN_HREF}]

    @pytest.mark.asyncio
    async def test_not_authorised_is_403(self, auth_config):
        auth = resolver(auth_config, StubApiProvider(NotAuthorised(message="key disabled")), ExplodingUserProvider())

        outcome = await auth.authentication_status(make_request())

        assert isinstance(outcome, Reject)
        assert outcome.response.status_code == 403
        body = error_body(outcome.response)
        assert body["errorKey"] == "principal-not-authorised"
        assert body["links"] == [{"rel": "login", "href": LOGIN_HREF}]

    @pytest.mark.asyncio
    async def test_unsupported_status_is_rejected_loudly(self, auth_config, panda_user):
        auth = resolver(auth_config, StubApiProvider(GracePeriod(principal=panda_user)), ExplodingUserProvider())

        with pytest.raises(TypeError):
            await auth.authentication_status(make_request())


class TestUserChannel:
    """The user provider decides when the request carries no API credential."""

    @pytest.mark.asyncio
    async def test_authenticated(self, auth_config, panda_user):
        user_provider = StubUserProvider(Authenticated(principal=panda_user))
        auth = resolver(auth_config, StubApiProvider(NOT_AUTHENTICATED), user_provider)

        outcome = await auth.authentication_status(make_request())

        assert outcome == Proceed(panda_user)
        assert user_provider.calls == 1

    @pytest.mark.asyncio
    async def test_grace_period_proceeds(self, auth_config, panda_user):
        auth = resolver(
            auth_config,
            StubApiProvider(NOT_AUTHENTICATED),
            StubUserProvider(GracePeriod(principal=panda_user))
        )

        outcome = await auth.authentication_status(make_request())

        assert outcome == Proceed(panda_user)

    @pytest.mark.asyncio
    async def test_not_authenticated_sends_for_authentication(self, auth_config):
        redirect = Response(status_code=302, headers={"location": "https://login.example"})
        send = AsyncMock(return_value=redirect)
        auth = resolver(
            auth_config,
            StubApiProvider(NOT_AUTHENTICATED),
            StubUserProvider(NOT_AUTHENTICATED, send_for_authentication=send)
        )
        request = make_request()

        outcome = await auth.authentication_status(request)

        assert outcome == Reject(redirect)
        send.assert_awaited_once_with(request, None)

    @pytest.mark.asyncio
    async def test_expired_sends_for_authentication_with_principal(self, auth_config, panda_user):
        redirect = Response(status_code=302, headers={"location": "https://login.example"})
        send = AsyncMock(return_value=redirect)
        auth = resolver(
            auth_config,
            StubApiProvider(NOT_AUTHENTICATED),
            StubUserProvider(Expired(principal=panda_user), send_for_authentication=send)
        )
        request = make_request()

        outcome = await auth.authentication_status(request)

        assert outcome == Reject(redirect)
        send.assert_awaited_once_with(request, panda_user)

    @pytest.mark.asyncio
    async def test_no_path_to_authenticate_is_generic_401(self, auth_config):
        auth = resolver(auth_config, StubApiProvider(NOT_AUTHENTICATED), StubUserProvider(NOT_AUTHENTICATED))

        outcome = await auth.authentication_status(make_request())

        assert isinstance(outcome, Reject)
        assert outcome.response.status_code == 401
        assert error_body(outcome.response)["errorKey"] == "authentication-failure"

    @pytest.mark.asyncio
    async def test_expired_without_path_to_authenticate_is_401(self, auth_config, panda_user):
        auth = resolver(
            auth_config,
            StubApiProvider(NOT_AUTHENTICATED),
            StubUserProvider(Expired(principal=panda_user))
        )

        outcome = await auth.authentication_status(make_request())

        assert outcome.response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_flushes_token(self, auth_config):
        def flush(request, response):
            response.headers["x-flushed"] = "true"
            return response

        flush_token = Mock(side_effect=flush)
        auth = resolver(
            auth_config,
            StubApiProvider(NOT_AUTHENTICATED),
            StubUserProvider(Invalid(message="bad signature", cause=ValueError("sig")), flush_token=flush_token)
        )

        outcome = await auth.authentication_status(make_request())

        assert isinstance(outcome, Reject)
        assert outcome.response.status_code == 401
        assert outcome.response.headers["x-flushed"] == "true"
        flush_token.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalid_without_flush_capability(self, auth_config):
        auth = resolver(
            auth_config,
            StubApiProvider(NOT_AUTHENTICATED),
            StubUserProvider(Invalid(message="bad signature"))
        )

        outcome = await auth.authentication_status(make_request())

        assert outcome.response.status_code == 401

    @pytest.mark.asyncio
    async def test_not_authorised_is_403_without_flush(self, auth_config):
        flush_token = Mock()
        auth = resolver(
            auth_config,
            StubApiProvider(NOT_AUTHENTICATED),
            StubUserProvider(NotAuthorised(message="wrong domain"), flush_token=flush_token)
        )

        outcome = await auth.authentication_status(make_request())

        assert outcome.response.status_code == 403
        flush_token.assert_not_called()


class TestOnBehalfOf:
    """On-behalf-of enrichment is routed to the provider that matches the principal."""

    def test_api_key_accessor_routes_to_api_provider(self, auth_config, api_key_accessor):
        api_provider = StubApiProvider(NOT_AUTHENTICATED)
        auth = resolver(auth_config, api_provider, ExplodingUserProvider())
        outbound = httpx.Request("GET", "https://api.media.test.dev-gutools.co.uk/images")

        on_behalf_of = auth.get_on_behalf_of_principal(api_key_accessor, make_request())

        assert isinstance(on_behalf_of, OnBehalfOfPrincipal)
        assert on_behalf_of.enrich(outbound) is outbound
        api_provider.enricher.assert_called_once_with(outbound)

    def test_panda_user_routes_to_user_provider(self, auth_config, panda_user):
        api_provider = StubApiProvider(NOT_AUTHENTICATED)
        user_provider = StubUserProvider()
        auth = resolver(auth_config, api_provider, user_provider)
        outbound = httpx.Request("GET", "https://api.media.test.dev-gutools.co.uk/images")

        auth.get_on_behalf_of_principal(panda_user, make_request()).enrich(outbound)

        user_provider.enricher.assert_called_once_with(outbound)
        api_provider.enricher.assert_not_called()

    def test_enrichment_failure_is_fatal(self, auth_config, panda_user):
        user_provider = StubUserProvider()
        user_provider.enricher = Mock(return_value=EnrichmentFailed(message="no cookie"))
        auth = resolver(auth_config, StubApiProvider(NOT_AUTHENTICATED), user_provider)
        on_behalf_of = auth.get_on_behalf_of_principal(panda_user, make_request())

        with pytest.raises(OnBehalfOfError) as exc_info:
            on_behalf_of.enrich(httpx.Request("GET", "https://api.media.test.dev-gutools.co.uk/images"))

        assert isinstance(exc_info.value, RuntimeError)
        assert exc_info.value.principal_identity == "jane.doe@guardian.co.uk"


class TestScenarios:
    """End to end resolution with the bundled providers."""

    def _resolver(self, auth_config):
        return resolver(
            auth_config,
            ApiKeyAuthenticationProvider(auth_config),
            PandaAuthenticationProvider(auth_config, federation=NoFederation(), clock=lambda: NOW)
        )

    @pytest.mark.asyncio
    async def test_expired_session_redirects_with_stale_principal(self, auth_config, panda_user):
        issuer = PandaAuthenticationProvider(
            auth_config,
            clock=lambda: NOW - 600 - auth_config.session_ttl
        )
        token = issuer.issue_token(panda_user)

        outcome = await self._resolver(auth_config).authentication_status(
            make_request(path="/images", cookies={"gutoolsAuth-assym": token})
        )

        assert isinstance(outcome, Reject)
        assert outcome.response.status_code == 302
        params = parse_qs(urlparse(outcome.response.headers["location"]).query)
        assert params["login_hint"] == ["jane.doe@guardian.co.uk"]

    @pytest.mark.asyncio
    async def test_bad_api_key_checksum_never_reaches_user_provider(self, auth_config):
        auth = resolver(auth_config, ApiKeyAuthenticationProvider(auth_config), ExplodingUserProvider())
        secret = make_api_key("composer123").split("-")[0]

        outcome = await auth.authentication_status(
            make_request(headers=[("X-Gu-Media-Key", f"{secret}-ffffffff")])
        )

        assert isinstance(outcome, Reject)
        assert outcome.response.status_code == 401
        assert error_body(outcome.response)["errorKey"] == "authentication-failure"

    @pytest.mark.asyncio
    async def test_api_key_wins_over_session(self, auth_config, panda_user):
        token = PandaAuthenticationProvider(auth_config, clock=lambda: NOW).issue_token(panda_user)

        outcome = await self._resolver(auth_config).authentication_status(
            make_request(headers=[("X-Gu-Media-Key", VALID_KEY)], cookies={"gutoolsAuth-assym": token})
        )

        assert isinstance(outcome, Proceed)
        assert outcome.principal.identity == "composer"
