"""API client, transport and authentication."""

from .exceptions import (
    APIError,
    AuthenticationError,
    AuthorizationError,
    ConfigError,
    MalformedResponse,
    NotFoundError,
    OrkaError,
    TransportError,
    ValidationError,
)
from .request import LICENSE_AUTH, TOKEN_AUTH, AuthType, Request
from .connection import OrkaConnection
from .auth import AuthHandler
from .client import OrkaClient

__all__ = [
    "APIError",
    "AuthHandler",
    "AuthType",
    "AuthenticationError",
    "AuthorizationError",
    "ConfigError",
    "LICENSE_AUTH",
    "MalformedResponse",
    "NotFoundError",
    "OrkaClient",
    "OrkaConnection",
    "OrkaError",
    "Request",
    "TOKEN_AUTH",
    "TransportError",
    "ValidationError",
]
