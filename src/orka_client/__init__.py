"""Async client library for the Orka virtualization API."""

__version__ = "0.1.0"

from .api import (
    APIError,
    AuthenticationError,
    AuthorizationError,
    ConfigError,
    MalformedResponse,
    NotFoundError,
    OrkaClient,
    OrkaConnection,
    OrkaError,
    TransportError,
    ValidationError,
)
from .config import ConfigManager
from .models import (
    AuthConfig,
    Disk,
    Image,
    LazyRef,
    Node,
    PortMapping,
    ProfileConfig,
    User,
    VMConfiguration,
    VMInstance,
)

__all__ = [
    "APIError",
    "AuthConfig",
    "AuthenticationError",
    "AuthorizationError",
    "ConfigError",
    "ConfigManager",
    "Disk",
    "Image",
    "LazyRef",
    "MalformedResponse",
    "Node",
    "NotFoundError",
    "OrkaClient",
    "OrkaConnection",
    "OrkaError",
    "PortMapping",
    "ProfileConfig",
    "TransportError",
    "User",
    "VMConfiguration",
    "VMInstance",
    "ValidationError",
]
