"""HTTP transport for the Orka API."""

import asyncio
import logging
from typing import Any

import httpx

from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    MalformedResponse,
    NotFoundError,
    TransportError,
    ValidationError,
)
from .request import AuthType, Request

logger = logging.getLogger(__name__)


def _can_retry(request: Request, error: Exception) -> bool:
    """Whether a failed attempt may be sent again.

    Only GET is safe to repeat once the request may have reached the server.
    Other methods are retried only when the request never left the client.
    """
    if request.method == "GET":
        return True
    return isinstance(error, (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout))


class OrkaConnection:
    """Send :class:`Request` descriptors to the Orka API.

    The connection owns the credentials. Each request selects which of them
    are attached through its ``auth`` set, so models never see a token or a
    license key.
    """

    def __init__(
        self,
        base_url: str,
        auth_headers: dict[str, str],
        license_headers: dict[str, str] | None = None,
        verify_ssl: bool = True,
        timeout: int = 30,
        retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the connection.

        Args:
            base_url: Orka API base URL
            auth_headers: Headers attached to token-authenticated requests
            license_headers: Headers carrying the license key, required for
                administrative requests
            verify_ssl: Whether to verify SSL certificates
            timeout: Request timeout in seconds
            retries: Attempts for requests failing on network errors or timeouts
            transport: Custom httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self._license_headers = license_headers or {}
        self.retries = max(retries, 1)
        self._auth_headers = auth_headers
        self._client = httpx.AsyncClient(
            verify=verify_ssl, timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> "OrkaConnection":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _headers_for(self, auth: frozenset[AuthType]) -> dict[str, str]:
        """Build the credential headers a request asks for.

        Args:
            auth: Credentials the request must carry

        Returns:
            Headers dict

        Raises:
            AuthorizationError: If a license is required but none is configured
        """
        headers: dict[str, str] = {}
        if AuthType.TOKEN in auth:
            headers.update(self._auth_headers)
        if AuthType.LICENSE in auth:
            if not self._license_headers:
                raise AuthorizationError(
                    "This operation requires a license key, but none is configured"
                )
            headers.update(self._license_headers)
        return headers

    async def send(self, request: Request) -> dict[str, Any]:
        """Execute a request with retry logic.

        Args:
            request: Request descriptor

        Returns:
            Decoded response body (empty dict when the body is empty)

        Raises:
            AuthorizationError: If the request needs credentials that are not configured
            AuthenticationError: On 401/403
            NotFoundError: On 404
            ValidationError: On other 4xx responses
            TransportError: On network errors, timeouts and 5xx responses
        """
        headers = self._headers_for(request.auth)
        url = f"{self.base_url}/{request.path.lstrip('/')}"
        kwargs: dict[str, Any] = {"headers": headers}
        if request.method != "GET" and request.body:
            kwargs["json"] = request.body

        logger.debug(
            "%s %s auth=%s",
            request.method,
            request.path,
            sorted(a.value for a in request.auth),
        )

        for attempt in range(self.retries):
            try:
                response = await self._client.request(request.method, url, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                if attempt < self.retries - 1 and _can_retry(request, e):
                    logger.warning(
                        "%s on %s, retrying (%d/%d)",
                        type(e).__name__,
                        request.path,
                        attempt + 1,
                        self.retries,
                    )
                    await asyncio.sleep(2**attempt)
                    continue
                if isinstance(e, httpx.TimeoutException):
                    raise TransportError(f"Request to {request.path} timed out")
                raise TransportError(f"Network error: {e}")

            return self._handle_response(request, response)

        raise TransportError("Max retries exceeded")

    def _handle_response(self, request: Request, response: httpx.Response) -> dict[str, Any]:
        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError(self._extract_error_message(response), status_code=status)
        elif status == 404:
            raise NotFoundError("resource", request.path)
        elif 400 <= status < 500:
            raise ValidationError(self._extract_error_message(response), status_code=status)
        elif status >= 500:
            raise TransportError(self._extract_error_message(response), status_code=status)

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            raise MalformedResponse(f"Invalid JSON in response to {request.path}")
        return body if isinstance(body, dict) else {"data": body}

    def _extract_error_message(self, response: httpx.Response) -> str:
        """Extract error message from response.

        Args:
            response: HTTP response

        Returns:
            Error message
        """
        try:
            data = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"

        if isinstance(data, dict):
            errors = data.get("errors")
            if errors:
                return "; ".join(
                    str(e.get("message", e)) if isinstance(e, dict) else str(e)
                    for e in errors
                )
            if data.get("message"):
                return str(data["message"])
        return response.text or f"HTTP {response.status_code}"
