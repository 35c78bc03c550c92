"""
Authentication configuration model.

This module contains the AuthConfig model which holds everything the
authentication providers and the resolver need: the login link handed
back to clients, the known API keys and the session token policy.
"""

import hashlib
import hmac
import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .principal import ApiAccessor, Tier

_KEY_PATTERN = re.compile(r"^(?P<secret>[A-Za-z0-9]+)-(?P<checksum>[0-9a-f]{8})$")


def key_checksum(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()[:8]


def make_api_key(secret: str) -> str:
    """Build a well-formed API key from an alphanumeric secret."""
    return f"{secret}-{key_checksum(secret)}"


def is_well_formed(key: str) -> bool:
    match = _KEY_PATTERN.match(key)
    if not match:
        return False
    return hmac.compare_digest(match.group("checksum"), key_checksum(match.group("secret")))


class ApiKeyRecord(BaseModel):
    """
    A known API key and the accessor it authenticates as.

    Example:
        record = ApiKeyRecord.parse("abc123-6ca13d52:composer:internal")
    """

    key: str = Field(..., min_length=1, description="The full API key value")
    accessor: ApiAccessor
    enabled: bool = Field(default=True, description="Disabled keys are recognised but refused")

    @classmethod
    def parse(cls, entry: str) -> "ApiKeyRecord":
        """
        Parse a ``key:identity:tier[:disabled]`` configuration entry.

        Args:
            entry: Configuration string

        Returns:
            ApiKeyRecord: Parsed record

        Raises:
            ValueError: If the entry does not have the expected shape or the key fails its checksum
        """
        parts = entry.strip().split(":")
        if len(parts) not in (3, 4) or (len(parts) == 4 and parts[3] != "disabled"):
            raise ValueError(f"API key entry must be key:identity:tier[:disabled], got {entry!r}")
        if not is_well_formed(parts[0]):
            raise ValueError(f"API key for {parts[1]} is malformed")

        return cls(
            key=parts[0],
            accessor=ApiAccessor(identity=parts[1], tier=Tier(parts[2].lower())),
            enabled=len(parts) == 3
        )


class AuthConfig(BaseModel):
    """
    Configuration for the authentication engine.

    Example:
        auth_config = AuthConfig(
            root_uri="https://media-auth.example.com",
            login_uri_template="https://media-auth.example.com/login{?redirectUri}",
            session_secret="change-me",
            grace_period=300
        )
    """

    # Service URIs
    root_uri: str = Field(..., description="Public root URI of the auth service")
    media_api_uri: str = Field(default="", description="Media API root URI")
    domain_root: str = Field(default="", description="Domain post-login redirects must belong to")
    login_uri_template: str = Field(..., description="Login link returned with 401/403 responses")
    service_name: str = Field(default="auth", min_length=1, description="Name stamped on on-behalf-of requests")

    # API key settings
    api_key_header: str = Field(default="X-Gu-Media-Key", description="Header carrying the API key")
    api_key_query_param: str = Field(default="api_key", description="Query parameter carrying the API key")
    api_keys: list[ApiKeyRecord] = Field(default_factory=list, description="Known API keys")

    # Session settings
    session_cookie_name: str = Field(default="gutoolsAuth-assym", description="Session cookie name")
    session_secret: Optional[str] = Field(
        None,
        description="Secret used to sign session tokens; sessions are disabled without it"
    )
    session_ttl: int = Field(default=3600, ge=60, description="Session lifetime in seconds")
    grace_period: int = Field(
        default=300,
        ge=0,
        le=86400,
        description="Seconds after expiry during which a session is still honoured"
    )
    federation_login_url: Optional[str] = Field(None, description="Federated login endpoint")
    user_email_domain: str = Field(default="guardian.co.uk", description="Required user email domain")
    require_multifactor: bool = Field(default=False, description="Reject sessions without a second factor")

    @field_validator('root_uri', 'media_api_uri')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Ensure URIs don't end with a slash."""
        return v.rstrip('/')

    @property
    def logout_uri(self) -> str:
        return f"{self.root_uri}/logout"

    @property
    def session_uri(self) -> str:
        return f"{self.root_uri}/session"

    @property
    def callback_uri(self) -> str:
        """Federation callback handled by ``process_authentication``."""
        return f"{self.root_uri}/oauthCallback"
