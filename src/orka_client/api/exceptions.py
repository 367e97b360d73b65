"""Custom exceptions for Orka API interactions."""


class OrkaError(Exception):
    """Base exception for orka_client."""

    pass


class ConfigError(OrkaError):
    """Configuration related errors."""

    pass


class MalformedResponse(OrkaError):
    """Server payload is missing a required field or cannot be parsed."""

    pass


class AuthorizationError(OrkaError):
    """Request needs credentials the client was not configured with."""

    pass


class APIError(OrkaError):
    """General API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code if applicable
        """
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failures (401/403)."""

    pass


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, identifier: str) -> None:
        """Initialize resource not found error.

        Args:
            resource: Type of resource (vm, node, image, etc.)
            identifier: Resource identifier
        """
        super().__init__(f"{resource} '{identifier}' not found", status_code=404)
        self.resource = resource
        self.identifier = identifier


class ValidationError(APIError):
    """Request rejected by the server with a described reason (4xx)."""

    pass


class TransportError(APIError):
    """Network failures, timeouts and server errors (5xx)."""

    pass
