"""Shared fixtures for the authentication test suite."""

from typing import List, Optional, Tuple

import pytest
from starlette.requests import Request

from grid_auth.auth.models import (
    ApiAccessor,
    ApiKeyAccessor,
    ApiKeyRecord,
    AuthConfig,
    GridUser,
    PandaUser,
    Tier
)
from grid_auth.auth.providers import make_api_key

NOW = 1_700_000_000
SESSION_SECRET = "test-session-secret-which-is-long-enough"
VALID_KEY = make_api_key("composer123")
DISABLED_KEY = make_api_key("retired456")


def make_request(
    path: str = "/",
    headers: Optional[List[Tuple[str, str]]] = None,
    query_string: str = "",
    cookies: Optional[dict] = None
) -> Request:
    """Build a bare Starlette request for provider and resolver tests."""
    raw_headers = [(name.lower().encode(), value.encode()) for name, value in (headers or [])]
    if cookies:
        cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
        raw_headers.append((b"cookie", cookie_header.encode()))

    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "https",
        "server": ("media-auth.test.dev-gutools.co.uk", 443),
        "root_path": "",
        "path": path,
        "query_string": query_string.encode(),
        "headers": raw_headers
    }
    return Request(scope)


@pytest.fixture
def auth_config():
    """Create test authentication configuration."""
    return AuthConfig(
        root_uri="https://media-auth.test.dev-gutools.co.uk/",
        media_api_uri="https://api.media.test.dev-gutools.co.uk",
        domain_root="test.dev-gutools.co.uk",
        login_uri_template="https://media-auth.test.dev-gutools.co.uk/login{?redirectUri}",
        service_name="media-api",
        api_keys=[
            ApiKeyRecord(key=VALID_KEY, accessor=ApiAccessor(identity="composer", tier=Tier.INTERNAL)),
            ApiKeyRecord(
                key=DISABLED_KEY,
                accessor=ApiAccessor(identity="retired-app", tier=Tier.READ_ONLY),
                enabled=False
            )
        ],
        session_secret=SESSION_SECRET,
        session_ttl=3600,
        grace_period=300,
        federation_login_url="https://login.test.dev-gutools.co.uk/auth",
        user_email_domain="guardian.co.uk"
    )


@pytest.fixture
def grid_user():
    return GridUser(
        email="jane.doe@guardian.co.uk",
        first_name="Jane",
        last_name="Doe",
        avatar_url="https://avatars.test/jane.png"
    )


@pytest.fixture
def panda_user(grid_user):
    return PandaUser(user=grid_user, multifactor=True)


@pytest.fixture
def api_key_accessor():
    return ApiKeyAccessor(accessor=ApiAccessor(identity="composer", tier=Tier.INTERNAL))
