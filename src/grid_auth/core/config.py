"""Configuration management for Grid Auth."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the authentication service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Server configuration
    HOST: str = Field(default="127.0.0.1", description="Server host")
    PORT: int = Field(default=9011, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Logging format: json or text")

    # Service URIs
    ROOT_URI: str = Field(default="https://media-auth.local.dev-gutools.co.uk", description="Public root URI of this service")
    MEDIA_API_URI: str = Field(default="https://api.media.local.dev-gutools.co.uk", description="Media API root URI")
    DOMAIN_ROOT: str = Field(default="local.dev-gutools.co.uk", description="Domain that post-login redirects must belong to")
    LOGIN_URI_TEMPLATE: str = Field(
        default="https://media-auth.local.dev-gutools.co.uk/login{?redirectUri}",
        description="Login link template returned with 401/403 responses"
    )
    SERVICE_NAME: str = Field(default="auth", description="Name stamped on on-behalf-of requests")

    # API key authentication
    API_KEY_HEADER: str = Field(default="X-Gu-Media-Key", description="API key header name")
    API_KEYS: list[str] = Field(
        default_factory=list,
        description="Known API keys as key:identity:tier[:disabled]"
    )

    # Session (panda) authentication
    SESSION_COOKIE_NAME: str = Field(default="gutoolsAuth-assym", description="Session cookie name")
    SESSION_SECRET: str = Field(default="", description="Secret used to sign session tokens")
    SESSION_TTL: int = Field(default=3600, description="Session lifetime in seconds")
    GRACE_PERIOD: int = Field(default=300, description="Grace window after session expiry in seconds")
    FEDERATION_LOGIN_URL: Optional[str] = Field(default=None, description="Federated login endpoint")
    USER_EMAIL_DOMAIN: str = Field(default="guardian.co.uk", description="Email domain users must belong to")
    REQUIRE_MULTIFACTOR: bool = Field(default=False, description="Reject sessions without multifactor")

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format"""
        valid_formats = ['json', 'text']
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()

    def get_auth_config(self):
        """Create AuthConfig from settings"""
        from grid_auth.auth.models import ApiKeyRecord, AuthConfig

        return AuthConfig(
            root_uri=self.ROOT_URI,
            media_api_uri=self.MEDIA_API_URI,
            domain_root=self.DOMAIN_ROOT,
            login_uri_template=self.LOGIN_URI_TEMPLATE,
            service_name=self.SERVICE_NAME,
            api_key_header=self.API_KEY_HEADER,
            api_keys=[ApiKeyRecord.parse(entry) for entry in self.API_KEYS],
            session_cookie_name=self.SESSION_COOKIE_NAME,
            session_secret=self.SESSION_SECRET or None,
            session_ttl=self.SESSION_TTL,
            grace_period=self.GRACE_PERIOD,
            federation_login_url=self.FEDERATION_LOGIN_URL,
            user_email_domain=self.USER_EMAIL_DOMAIN,
            require_multifactor=self.REQUIRE_MULTIFACTOR
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings (for dependency injection)"""
    return settings
