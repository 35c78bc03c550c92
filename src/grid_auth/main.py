"""Main entry point for the Grid Auth application."""

import logging
import secrets
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from grid_auth.api.routes import router
from grid_auth.auth.authentication import Authentication
from grid_auth.auth.middleware import AuthenticationMiddleware
from grid_auth.auth.models import AuthConfig
from grid_auth.auth.providers import (
    ApiKeyAuthenticationProvider,
    AuthenticationProviders,
    IdentityFederation,
    PandaAuthenticationProvider
)
from grid_auth.core.config import Settings, settings as default_settings
from grid_auth.core.logging import setup_logging

logger = logging.getLogger(__name__)


def create_providers(
    auth_config: AuthConfig,
    federation: Optional[IdentityFederation] = None
) -> AuthenticationProviders:
    """Build the default API key and session providers"""
    if not auth_config.session_secret:
        logger.warning("No session secret configured - sessions will not survive a restart")
        auth_config = auth_config.model_copy(update={"session_secret": secrets.token_urlsafe(32)})

    return AuthenticationProviders(
        api_provider=ApiKeyAuthenticationProvider(auth_config),
        user_provider=PandaAuthenticationProvider(auth_config, federation=federation)
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management
    Initialises and shuts down the authentication providers
    """
    providers: AuthenticationProviders = app.state.authentication.providers

    logger.info("Starting Grid Auth...")
    providers.api_provider.initialise()
    providers.user_provider.initialise()

    yield

    logger.info("Shutting down Grid Auth...")
    await providers.api_provider.shutdown()
    await providers.user_provider.shutdown()


async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler for unhandled errors"""
    logger.error(
        "Unhandled exception",
        extra={
            "url": str(request.url),
            "method": request.method,
            "error": str(exc)
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "errorKey": "internal-server-error",
            "errorMessage": "Internal server error occurred"
        }
    )


def create_app(
    settings: Optional[Settings] = None,
    providers: Optional[AuthenticationProviders] = None,
    federation: Optional[IdentityFederation] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings, the process-wide settings by default
        providers: Authentication providers, built from settings by default
        federation: Federated identity provider for the default session provider
    """
    settings = settings or default_settings
    auth_config = settings.get_auth_config()
    if providers is None:
        providers = create_providers(auth_config, federation)

    authentication = Authentication(auth_config, providers)

    app = FastAPI(
        title="Grid Auth",
        description="Authentication service for the media API",
        version="0.1.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan
    )
    app.state.authentication = authentication

    app.add_middleware(AuthenticationMiddleware, authentication=authentication)

    # CORS must see requests before authentication so preflights succeed
    escaped_domain_root = settings.DOMAIN_ROOT.replace('.', r'\.')
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[f"https://{settings.DOMAIN_ROOT}"],
        allow_origin_regex=rf"https://.*\.{escaped_domain_root}",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(router)

    logger.info(
        "Grid Auth configured",
        extra={
            "root_uri": auth_config.root_uri,
            "api_provider": type(providers.api_provider).__name__,
            "user_provider": type(providers.user_provider).__name__
        }
    )

    return app


# Create app instance for uvicorn to find
app = create_app()


def main() -> None:
    """Main entry point for the application."""
    setup_logging()

    uvicorn.run(
        app,
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
        access_log=True,
        server_header=False,
        date_header=True,
    )


if __name__ == "__main__":
    main()
