"""
Custom exceptions for authentication.

Expected authentication outcomes are reported as status values, never as
exceptions. The types here cover provider internals that are converted
into statuses before they leave the provider, and the one fatal case:
failing to build on-behalf-of credentials for an accepted principal.
"""

from typing import Optional


class AuthenticationError(Exception):
    """
    Base exception for authentication failures.
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "authentication-failure"


class SessionTokenError(AuthenticationError):
    """
    Exception raised when a session token cannot be trusted.

    This includes scenarios like:
    - Token is not a decodable JWT
    - Invalid signature
    - Missing required claims
    """

    def __init__(self, message: str, token_error: Optional[str] = None):
        super().__init__(message, "session-token-invalid")
        self.token_error = token_error


class FederationError(AuthenticationError):
    """
    Exception raised when the federated login callback cannot be completed.

    This occurs when the identity provider rejects the callback, or when
    the callback state does not match a login this service initiated.
    """

    def __init__(self, message: str, federation_error: Optional[str] = None):
        super().__init__(message, "federation-failure")
        self.federation_error = federation_error


class OnBehalfOfError(AuthenticationError, RuntimeError):
    """
    Exception raised when a provider cannot enrich an outbound request.

    This only happens after a principal has been accepted, so it indicates
    a misconfigured deployment rather than a bad request. It is not
    handled by the authentication layer.
    """

    def __init__(self, message: str, principal_identity: Optional[str] = None):
        super().__init__(message, "on-behalf-of-failure")
        self.principal_identity = principal_identity
