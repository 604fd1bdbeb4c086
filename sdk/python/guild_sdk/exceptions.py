"""
Guild SDK exceptions.

All SDK exceptions inherit from GuildSDKError. A missing resource is never
raised: lookups return None and collection queries return an empty list.
"""
from typing import Any, Dict, List, Optional


class GuildSDKError(Exception):
    """Base exception for Guild SDK errors."""

    def __init__(self, message: str, code: str = "GUILD_SDK_ERROR"):
        super().__init__(message)
        self.code = code
        self.message = message


class SigningRejected(GuildSDKError):
    """The signer failed or refused to sign; nothing was sent."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, "SIGNING_REJECTED")
        self.cause = cause


class TransportError(GuildSDKError):
    """Network-level failure (connection refused, timeout, TLS, ...)."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, "TRANSPORT_ERROR")
        self.url = url


class APIError(GuildSDKError):
    """The API answered with an unexpected status or an unreadable body."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: str = "API_ERROR"):
        super().__init__(message, code)
        self.status_code = status_code


class ValidationError(APIError):
    """The API rejected the request parameters (HTTP 400)."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, 400, "VALIDATION_ERROR")
        self.errors = errors or []


class AuthenticationError(APIError):
    """The API did not accept the signed request (HTTP 401/403)."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, status_code, "AUTHENTICATION_ERROR")
