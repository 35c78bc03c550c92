"""
Grid Auth API Routes
Login, logout and session endpoints backed by the authentication resolver
"""
import logging
from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import PlainTextResponse, RedirectResponse

from grid_auth.auth.authentication import Authentication
from grid_auth.auth.middleware import require_principal
from grid_auth.auth.models import PandaUser, Principal
from grid_auth.auth.responses import Link, respond

logger = logging.getLogger(__name__)

# Create API router
router = APIRouter()


def get_authentication(request: Request) -> Authentication:
    """Dependency injection for the resolver configured on the application"""
    return request.app.state.authentication


def is_valid_redirect(uri: str, domain_root: str) -> bool:
    """Only https URIs on our own domain are followed after login."""
    try:
        parsed = urlparse(uri)
    except ValueError:
        return False
    host = parsed.hostname or ""
    on_domain = host == domain_root or host.endswith("." + domain_root)
    return parsed.scheme == "https" and bool(domain_root) and on_domain


@router.get("/health",
           summary="Health Check",
           description="Check if the service is running and healthy")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "grid-auth"
    }


@router.get("/", summary="API index")
async def index(
    principal: Principal = Depends(require_principal),
    authentication: Authentication = Depends(get_authentication)
):
    config = authentication.config
    links = [
        Link(rel="root", href=config.media_api_uri),
        Link(rel="login", href=config.login_uri_template),
        Link(rel="ui:logout", href=config.logout_uri),
        Link(rel="session", href=config.session_uri)
    ]
    return respond({"description": "This is the Auth API"}, links)


@router.get("/session", summary="Current user session")
async def session(principal: Principal = Depends(require_principal)):
    if not isinstance(principal, PandaUser):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot get session for {principal.identity}"
        )

    user = principal.user
    return respond({
        "user": {
            "name": user.display_name,
            "firstName": user.first_name,
            "lastName": user.last_name,
            "email": user.email,
            "avatarUrl": user.avatar_url
        }
    })


@router.get("/login", summary="Trigger the login cycle")
async def login(
    redirect_uri: Optional[str] = Query(None, alias="redirectUri"),
    principal: Principal = Depends(require_principal),
    authentication: Authentication = Depends(get_authentication)
) -> Response:
    """
    Reached only once the user is authenticated. Redirects to ``redirectUri``
    when it is on our own domain, otherwise acknowledges the login so the
    endpoint can be used to re-authenticate in the background.
    """
    if redirect_uri is None:
        return PlainTextResponse("logged in")

    if is_valid_redirect(redirect_uri, authentication.config.domain_root):
        return RedirectResponse(redirect_uri, status_code=status.HTTP_302_FOUND)

    logger.info(
        "Refusing to redirect to external URI after login",
        extra={"redirect_uri": redirect_uri, "identity": principal.identity}
    )
    return PlainTextResponse("logged in (not redirecting to external redirectUri)")


@router.get("/oauthCallback", summary="Federated login callback")
async def oauth_callback(
    request: Request,
    authentication: Authentication = Depends(get_authentication)
) -> Response:
    process_authentication = authentication.providers.user_provider.process_authentication
    if process_authentication is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Interactive login is not supported"
        )
    return await process_authentication(request)


@router.get("/logout", summary="Log the current user out")
async def logout(
    request: Request,
    principal: Principal = Depends(require_principal),
    authentication: Authentication = Depends(get_authentication)
) -> Response:
    response: Response = PlainTextResponse("logged out")
    flush_token = authentication.providers.user_provider.flush_token
    if flush_token is not None:
        response = flush_token(request, response)

    logger.info("User logged out", extra={"identity": principal.identity})
    return response
