"""Authentication handling for the Orka API."""

import httpx

from .exceptions import AuthenticationError


class AuthHandler:
    """Handle authentication for the Orka API."""

    def __init__(
        self,
        base_url: str,
        verify_ssl: bool = True,
        timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize auth handler.

        Args:
            base_url: Orka API base URL
            verify_ssl: Whether to verify SSL certificates
            timeout: Request timeout in seconds
            transport: Custom httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            verify=self.verify_ssl, timeout=self.timeout, transport=self.transport
        )

    def get_token_headers(self, token: str) -> dict[str, str]:
        """Get headers for bearer token authentication.

        Args:
            token: API token

        Returns:
            Headers dict with Authorization
        """
        return {"Authorization": f"Bearer {token}"}

    def get_license_headers(self, license_key: str) -> dict[str, str]:
        """Get headers carrying the Orka license key.

        Args:
            license_key: Orka license key

        Returns:
            Headers dict with the license key
        """
        return {"orka-licensekey": license_key}

    async def authenticate_with_password(self, email: str, password: str) -> str:
        """Log in with email and password to obtain an API token.

        Args:
            email: User email
            password: User password

        Returns:
            API token

        Raises:
            AuthenticationError: If authentication fails
        """
        async with self._client() as client:
            try:
                response = await client.post(
                    f"{self.base_url}/token",
                    json={"email": email, "password": password},
                )

                if response.status_code in (401, 403):
                    raise AuthenticationError(
                        "Invalid email or password", status_code=response.status_code
                    )

                response.raise_for_status()
                return response.json()["token"]

            except httpx.HTTPStatusError as e:
                raise AuthenticationError(
                    f"Authentication failed: {e}", status_code=e.response.status_code
                )
            except httpx.RequestError as e:
                raise AuthenticationError(f"Connection failed: {e}")
            except (KeyError, ValueError):
                raise AuthenticationError("Invalid response from server")

    async def revoke_token(self, token: str) -> None:
        """Revoke an API token.

        Args:
            token: API token to revoke

        Raises:
            AuthenticationError: If the token could not be revoked
        """
        async with self._client() as client:
            try:
                response = await client.delete(
                    f"{self.base_url}/token", headers=self.get_token_headers(token)
                )
                response.raise_for_status()

            except httpx.HTTPStatusError as e:
                raise AuthenticationError(
                    f"Token revocation failed: {e}", status_code=e.response.status_code
                )
            except httpx.RequestError as e:
                raise AuthenticationError(f"Connection failed: {e}")
