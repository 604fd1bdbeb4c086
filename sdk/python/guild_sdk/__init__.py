import logging

__version__ = "0.1.0"

from .client import GuildClient
from .config import ClientConfig, configure_logging
from .exceptions import (
    APIError,
    AuthenticationError,
    GuildSDKError,
    SigningRejected,
    TransportError,
    ValidationError,
)
from .message import create_authenticated_request, create_signable_message
from .signers import EthAccountSigner, resolve_signature

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "GuildClient",
    "ClientConfig",
    "configure_logging",
    "EthAccountSigner",
    "resolve_signature",
    "create_signable_message",
    "create_authenticated_request",
    "GuildSDKError",
    "SigningRejected",
    "TransportError",
    "ValidationError",
    "AuthenticationError",
    "APIError",
]
