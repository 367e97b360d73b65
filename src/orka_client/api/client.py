"""Orka API client."""

import logging
from typing import Any

import httpx

from .auth import AuthHandler
from .connection import OrkaConnection
from .exceptions import AuthenticationError, MalformedResponse
from .request import LICENSE_AUTH, Request, compact
from ..models.config import ProfileConfig
from ..models.image import Image
from ..models.lazy import LazyRef
from ..models.node import Node
from ..models.user import User
from ..models.vm_configuration import VMConfiguration
from ..models.vm_instance import NodeRef, VMInstance, resource_name

logger = logging.getLogger(__name__)


class OrkaClient:
    """Async client for the Orka API.

    Example:
        >>> async with OrkaClient(profile) as client:
        ...     for vm in await client.vm_instances():
        ...         if vm.status == "Stopped":
        ...             await vm.start()
    """

    def __init__(
        self,
        profile: ProfileConfig,
        admin: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Orka client.

        Args:
            profile: Profile configuration
            admin: Act with administrative scope: list and manage the
                resources of every user. Needs the profile's license key.
            transport: Custom httpx transport (used by tests)
        """
        self.profile = profile
        self.admin = admin
        self.auth_handler = AuthHandler(
            base_url=profile.url,
            verify_ssl=profile.verify_ssl,
            timeout=profile.timeout,
            transport=transport,
        )
        self._transport = transport
        self._token: str | None = None
        self._owns_token = False
        self._conn: OrkaConnection | None = None

    async def __aenter__(self) -> "OrkaClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        """Obtain a token and open the connection.

        Raises:
            AuthenticationError: If no token can be obtained
        """
        if self._conn is not None:
            return

        auth = self.profile.auth
        if auth.token:
            self._token = auth.token
        else:
            if not auth.email or not auth.password:
                raise AuthenticationError("Email and password required to log in")
            self._token = await self.auth_handler.authenticate_with_password(
                auth.email, auth.password
            )
            self._owns_token = True

        self._conn = OrkaConnection(
            base_url=self.profile.url,
            auth_headers=self.auth_handler.get_token_headers(self._token),
            license_headers=(
                self.auth_handler.get_license_headers(auth.license_key)
                if auth.license_key
                else None
            ),
            verify_ssl=self.profile.verify_ssl,
            timeout=self.profile.timeout,
            retries=self.profile.retries,
            transport=self._transport,
        )
        logger.debug("Connected to %s (admin=%s)", self.profile.url, self.admin)

    async def close(self) -> None:
        """Close the connection, revoking a token obtained by logging in."""
        if self._conn is not None:
            await self._conn.aclose()
            self._conn = None
        try:
            if self._owns_token and self._token:
                await self.auth_handler.revoke_token(self._token)
        finally:
            self._owns_token = False
            self._token = None
        logger.debug("Closed connection to %s", self.profile.url)

    @property
    def connection(self) -> OrkaConnection:
        """The open connection.

        Raises:
            RuntimeError: If not connected
        """
        if self._conn is None:
            raise RuntimeError("Client not connected. Use async with or call connect().")
        return self._conn

    # VM instances

    async def vm_instances(self) -> list[VMInstance]:
        """List deployed VM instances (of every user when ``admin``)."""
        return await VMInstance.list_all(self.connection, admin=self.admin)

    async def vm_instance(self, name_or_id: str) -> VMInstance:
        """Fetch a deployed VM instance by name or ID.

        Raises:
            NotFoundError: If no deployed instance matches
        """
        return await VMInstance.fetch(name_or_id, self.connection, admin=self.admin)

    async def deploy_vm(
        self,
        config: VMConfiguration | LazyRef[VMConfiguration] | str,
        node: NodeRef | None = None,
        replicas: int | None = None,
        vnc_console: bool | None = None,
    ) -> LazyRef[VMInstance]:
        """Deploy a VM instance from a VM configuration.

        The call returns once the server accepted the deployment.

        Args:
            config: VM configuration, reference or configuration name
            node: Node to deploy on (the scheduler picks one if omitted)
            replicas: Number of replicas to deploy
            vnc_console: Enable the VNC console

        Returns:
            Lazy reference to the new instance, keyed by its ID

        Raises:
            MalformedResponse: If the response carries no VM ID
        """
        body = await self.connection.send(
            Request(
                method="POST",
                path="resources/vm/deploy",
                body=compact(
                    orka_vm_name=resource_name(config),
                    orka_node_name=resource_name(node) if node is not None else None,
                    replicas=replicas,
                    vnc_console=vnc_console,
                ),
            )
        )
        vm_id = body.get("vm_id")
        if not vm_id:
            raise MalformedResponse("Deploy response is missing 'vm_id'")
        logger.debug("Deployed %s as %s", resource_name(config), vm_id)
        return VMInstance.lazy(str(vm_id), self.connection, admin=self.admin)

    # Nodes

    async def nodes(self) -> list[Node]:
        """List nodes (every node in the cluster when ``admin``)."""
        return await Node.list_all(self.connection, admin=self.admin)

    def node(self, name: str) -> LazyRef[Node]:
        """Get a lazy reference to a node."""
        return Node.lazy(name, self.connection, admin=self.admin)

    # Images

    async def images(self) -> list[Image]:
        """List images in the Orka storage."""
        return await Image.list_all(self.connection)

    def image(self, name: str) -> LazyRef[Image]:
        """Get a lazy reference to an image."""
        return Image.lazy(name, self.connection)

    # VM configurations

    async def vm_configurations(self) -> list[VMConfiguration]:
        """List VM configurations."""
        return await VMConfiguration.list_all(self.connection)

    def vm_configuration(self, name: str) -> LazyRef[VMConfiguration]:
        """Get a lazy reference to a VM configuration."""
        return VMConfiguration.lazy(name, self.connection)

    # Users

    async def users(self) -> list[User]:
        """List users. Needs the license key."""
        body = await self.connection.send(
            Request(method="GET", path="users", auth=LICENSE_AUTH)
        )
        return [
            User.from_wire({"email": email}, self.connection)
            for email in body.get("user_list") or []
        ]

    def user(self, email: str) -> LazyRef[User]:
        """Get a lazy reference to a user."""
        return User.lazy(email, self.connection)
