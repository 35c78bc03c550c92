"""
API key authentication provider.

Machine clients present a key either in a header or as a query parameter.
Keys have the shape ``<secret>-<checksum>`` where the checksum is the
first eight hex characters of the SHA-256 digest of the secret, so a
truncated or mistyped key is rejected before it is looked up.
"""

import logging
from typing import Dict, Optional

import httpx
from starlette.requests import Request

from ..models import (
    NOT_AUTHENTICATED,
    ApiAuthenticationStatus,
    ApiKeyAccessor,
    ApiKeyRecord,
    Authenticated,
    AuthConfig,
    Invalid,
    NotAuthorised
)
from ..models.auth_config import is_well_formed
from .base import ApiAuthenticationProvider, Enriched, EnrichmentFailed, EnrichmentResult, RequestEnricher

logger = logging.getLogger(__name__)

ORIGINAL_SERVICE_HEADER = "X-Gu-Original-Service"


class ApiKeyAuthenticationProvider(ApiAuthenticationProvider):
    """
    Authenticates requests against a fixed set of known API keys.

    The key registry is built once from configuration and never changes,
    so a single instance can serve concurrent requests.
    """

    def __init__(self, auth_config: AuthConfig):
        """
        Initialize the API key provider.

        Args:
            auth_config: Authentication configuration containing the known keys
        """
        self.config = auth_config
        self.header_name = auth_config.api_key_header
        self._keys: Dict[str, ApiKeyRecord] = {record.key: record for record in auth_config.api_keys}

        logger.info(
            "API key provider initialized",
            extra={
                "header": self.header_name,
                "known_keys": len(self._keys)
            }
        )

    def _extract_key(self, request: Request) -> Optional[str]:
        key = request.headers.get(self.header_name) or request.query_params.get(self.config.api_key_query_param)
        if key is None:
            return None
        key = key.strip()
        return key if key else None

    async def authenticate_request(self, request: Request) -> ApiAuthenticationStatus:
        key = self._extract_key(request)
        if key is None:
            return NOT_AUTHENTICATED

        if not is_well_formed(key):
            return Invalid(message="API key is malformed")

        record = self._keys.get(key)
        if record is None:
            return Invalid(message="API key not valid")

        if not record.enabled:
            return NotAuthorised(message=f"API key for {record.accessor.identity} is disabled")

        logger.debug(
            "API key accepted",
            extra={"identity": record.accessor.identity, "tier": record.accessor.tier.value}
        )
        return Authenticated(principal=ApiKeyAccessor(accessor=record.accessor))

    def on_behalf_of(self, request: Request) -> RequestEnricher:
        key = self._extract_key(request)
        service_name = self.config.service_name
        header_name = self.header_name

        def enrich(outbound: httpx.Request) -> EnrichmentResult:
            if key is None:
                return EnrichmentFailed(message=f"API key not found in request, no {header_name} header")
            outbound.headers[header_name] = key
            outbound.headers[ORIGINAL_SERVICE_HEADER] = service_name
            return Enriched(request=outbound)

        return enrich
