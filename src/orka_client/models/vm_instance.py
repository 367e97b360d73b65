"""VM instance models."""

from datetime import datetime
from typing import Any, AsyncIterator

from pydantic import Field, PrivateAttr, ValidationInfo, field_validator, model_validator

from ..api.connection import OrkaConnection
from ..api.exceptions import NotFoundError
from ..api.request import LICENSE_AUTH, TOKEN_AUTH, Request, compact
from .disk import Disk
from .image import Image
from .lazy import LazyRef
from .node import Node
from .port_mapping import PortMapping
from .user import User
from .vm_configuration import VMConfiguration
from .wire import WireModel, lenient_int, strict_iso8601, wire_context

NodeRef = Node | LazyRef[Node] | str
ImageRef = Image | LazyRef[Image] | str


def resource_name(value: Any) -> str:
    """Reduce a model, a lazy reference or a bare name to the resource's name.

    Raises:
        TypeError: If the value does not identify a resource
    """
    if isinstance(value, str):
        return value
    if isinstance(value, LazyRef):
        return value.key
    if isinstance(value, (Node, Image, VMConfiguration)):
        return value.name
    raise TypeError(f"expected a resource or a name, got {type(value).__name__}")


class VMInstance(WireModel):
    """A virtual machine deployed on a node from a VM configuration.

    An instance is a snapshot taken when it was fetched. Its attributes never
    change: actions such as :meth:`start` or :meth:`migrate` ask the server to
    change the VM, but do not update this object. Fetch the instance again to
    see the new state.

    Instances are built with :meth:`from_wire` from a server response. The
    owner, node, base image and configuration are lazy references and are
    only fetched when resolved.
    """

    id: str = Field(alias="virtual_machine_id")
    name: str = Field(alias="virtual_machine_name")
    node: LazyRef[Node] | None = Field(default=None, alias="node_location")
    node_status: str | None = None
    owner: LazyRef[User] | None = None
    ip: str | None = Field(default=None, alias="virtual_machine_ip")
    vnc_port: int = 0
    screen_sharing_port: int = 0
    ssh_port: int = 0
    cpu: int | None = None
    vcpu: int | None = None
    ram: str | None = Field(default=None, alias="RAM")
    base_image: LazyRef[Image] | None = None
    config: LazyRef[VMConfiguration] | None = Field(default=None, alias="image")
    configuration_template: str | None = None
    status: str | None = Field(default=None, alias="vm_status")
    io_boost: bool = False
    use_saved_state: bool = False
    reserved_ports: tuple[PortMapping, ...] = ()
    creation_time: datetime = Field(alias="creation_timestamp")

    _conn: OrkaConnection = PrivateAttr()
    _admin: bool = PrivateAttr(default=False)

    @field_validator("vnc_port", "screen_sharing_port", "ssh_port", mode="before")
    @classmethod
    def _port(cls, v: Any) -> int:
        return lenient_int(v)

    @field_validator("creation_time", mode="before")
    @classmethod
    def _creation_time(cls, v: Any) -> datetime:
        return strict_iso8601(v)

    @field_validator("ram", mode="before")
    @classmethod
    def _ram(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    @field_validator("io_boost", "use_saved_state", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("reserved_ports", mode="before")
    @classmethod
    def _reserved_ports(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("node", mode="before")
    @classmethod
    def _node_ref(cls, v: Any, info: ValidationInfo) -> LazyRef[Node] | None:
        if v is None or isinstance(v, LazyRef):
            return v
        conn, admin = wire_context(info)
        return Node.lazy(str(v), conn, admin=admin)

    @field_validator("owner", mode="before")
    @classmethod
    def _owner_ref(cls, v: Any, info: ValidationInfo) -> LazyRef[User] | None:
        if v is None or isinstance(v, LazyRef):
            return v
        conn, _ = wire_context(info)
        return User.lazy(str(v), conn)

    @field_validator("base_image", mode="before")
    @classmethod
    def _base_image_ref(cls, v: Any, info: ValidationInfo) -> LazyRef[Image] | None:
        if v is None or isinstance(v, LazyRef):
            return v
        conn, _ = wire_context(info)
        return Image.lazy(str(v), conn)

    @field_validator("config", mode="before")
    @classmethod
    def _config_ref(cls, v: Any, info: ValidationInfo) -> LazyRef[VMConfiguration] | None:
        if v is None or isinstance(v, LazyRef):
            return v
        conn, _ = wire_context(info)
        return VMConfiguration.lazy(str(v), conn)

    @model_validator(mode="after")
    def _bind(self, info: ValidationInfo) -> "VMInstance":
        self._conn, self._admin = wire_context(info)
        return self

    @property
    def admin(self) -> bool:
        """Whether actions on this instance act with administrative scope."""
        return self._admin

    async def _send(self, request: Request) -> dict[str, Any]:
        return await self._conn.send(request)

    async def _exec(self, path: str) -> None:
        await self._send(
            Request(method="POST", path=path, body=compact(orka_vm_name=self.id))
        )

    async def delete(self) -> None:
        """Remove the VM instance, including all of its replicas.

        Removing an instance owned by another user needs administrative scope,
        which sends the license key along with the token.
        """
        await self._send(
            Request(
                method="DELETE",
                path="resources/vm/delete",
                body=compact(orka_vm_name=self.id),
                auth=LICENSE_AUTH if self._admin else TOKEN_AUTH,
            )
        )

    async def start(self) -> None:
        """Power on the VM."""
        await self._exec("resources/vm/exec/start")

    async def stop(self) -> None:
        """Power off the VM."""
        await self._exec("resources/vm/exec/stop")

    async def suspend(self) -> None:
        """Suspend the VM."""
        await self._exec("resources/vm/exec/suspend")

    async def resume(self) -> None:
        """Resume the VM. The VM must already be suspended."""
        await self._exec("resources/vm/exec/resume")

    async def revert(self) -> None:
        """Revert the VM to the latest state of its base image. This restarts the VM."""
        await self._exec("resources/vm/exec/revert")

    async def disks(self) -> AsyncIterator[Disk]:
        """List the disks attached to the VM. The VM must be non-scaled.

        Nothing is fetched until iteration starts, and every call fetches the
        disk list again.

        Yields:
            Attached disks
        """
        body = await self._send(
            Request(method="GET", path=f"resources/vm/list-disks/{self.id}")
        )
        for raw in body.get("drives") or []:
            yield Disk.from_wire(raw, self._conn)

    async def attach_disk(self, image: ImageRef, mount_point: str) -> None:
        """Attach a disk to the VM. The VM must be non-scaled.

        The disk can be an empty image or any non-bootable image in the Orka
        storage. The guest only sees the disk after a stop and start of the VM.

        Args:
            image: Image, reference or image name
            mount_point: Mount point for the disk
        """
        await self._send(
            Request(
                method="POST",
                path="resources/vm/attach-disk",
                body=compact(
                    orka_vm_name=self.id,
                    image_name=resource_name(image),
                    mount_point=mount_point,
                ),
            )
        )

    async def scale(self, replicas: int) -> None:
        """Scale the VM to the given number of replicas.

        All replicas share the same ID. Scaled VMs cannot be saved, committed,
        cloned or migrated, and scaling down may destroy any replica.

        Args:
            replicas: Number of replicas
        """
        await self._send(
            Request(
                method="PATCH",
                path="resources/vm/scale",
                body=compact(orka_vm_name=self.id, replicas=replicas),
            )
        )

    async def unscale(self) -> None:
        """Remove all additional replicas, leaving one running copy."""
        await self.scale(1)

    def _placement_body(self, destination_node: NodeRef) -> dict[str, Any]:
        return compact(
            orka_vm_name=self.id,
            current_node_name=self.node.key if self.node is not None else None,
            new_nodes=[resource_name(destination_node)],
        )

    async def migrate(self, destination_node: NodeRef) -> None:
        """Move the VM from its current node to another node.

        The VM is removed from the source node and may get a new IP and new
        ports.

        Args:
            destination_node: Node, reference or node name
        """
        await self._send(
            Request(
                method="POST",
                path="resources/vm/migrate",
                body=self._placement_body(destination_node),
            )
        )

    async def clone(self, destination_node: NodeRef) -> None:
        """Copy the VM to another node.

        The source VM is kept. The clone gets a new ID and may get a new IP and
        new ports.

        Args:
            destination_node: Node, reference or node name
        """
        await self._send(
            Request(
                method="POST",
                path="resources/vm/clone",
                body=self._placement_body(destination_node),
            )
        )

    async def save_state(self) -> None:
        """Save the VM state (disk and memory), overwriting any earlier saved state.

        Only VMs with GPU passthrough disabled can save state.
        """
        await self._exec("resources/vm/configs/save-state")

    async def commit_to_base_image(self) -> None:
        """Apply the VM's current image to its base image.

        Every VM configuration using the base image is affected. The VM must be
        non-scaled and the base image must be used by this VM only.
        """
        await self._exec("resources/image/commit")

    async def save_new_base_image(self, image_name: str) -> LazyRef[Image]:
        """Save the VM's current image as a new base image.

        Args:
            image_name: Name of the new image, must not be in use

        Returns:
            Lazy reference to the new image
        """
        await self._send(
            Request(
                method="POST",
                path="resources/image/save",
                body=compact(orka_vm_name=self.id, new_name=image_name),
            )
        )
        return Image.lazy(image_name, self._conn)

    async def resize_image(
        self, username: str, password: str, image_name: str, image_size: str
    ) -> LazyRef[Image]:
        """Resize the VM's disk and save it as a new base image.

        The VM's original base image is not changed.

        Args:
            username: VM user name
            password: VM user password
            image_name: Name of the resized image
            image_size: New size in k, M, G or T, e.g. "100G"

        Returns:
            Lazy reference to the new image
        """
        await self._send(
            Request(
                method="POST",
                path="resources/image/resize",
                body=compact(
                    orka_vm_name=self.id,
                    vm_username=username,
                    vm_password=password,
                    new_image_size=image_size,
                    new_image_name=image_name,
                ),
            )
        )
        return Image.lazy(image_name, self._conn)

    @classmethod
    async def list_all(cls, conn: OrkaConnection, admin: bool = False) -> list["VMInstance"]:
        """List deployed VM instances.

        Args:
            conn: Connection
            admin: List the instances of every user (needs the license key)
        """
        if admin:
            request = Request(method="GET", path="resources/vm/list/all", auth=LICENSE_AUTH)
        else:
            request = Request(method="GET", path="resources/vm/list")
        body = await conn.send(request)
        return cls._from_resources(body, conn, admin)

    @classmethod
    async def fetch(
        cls, name_or_id: str, conn: OrkaConnection, admin: bool = False
    ) -> "VMInstance":
        """Fetch a deployed VM instance by name or ID.

        Raises:
            NotFoundError: If no deployed instance matches
        """
        body = await conn.send(
            Request(
                method="GET",
                path=f"resources/vm/status/{name_or_id}",
                auth=LICENSE_AUTH if admin else TOKEN_AUTH,
            )
        )
        for instance in cls._from_resources(body, conn, admin):
            if name_or_id in (instance.id, instance.name):
                return instance
        raise NotFoundError("vm", name_or_id)

    @classmethod
    def lazy(cls, vm_id: str, conn: OrkaConnection, admin: bool = False) -> LazyRef["VMInstance"]:
        return LazyRef(vm_id, lambda: cls.fetch(vm_id, conn, admin=admin), kind="vm")

    @classmethod
    def _from_resources(
        cls, body: dict[str, Any], conn: OrkaConnection, admin: bool
    ) -> list["VMInstance"]:
        # A VM resource is the deployable unit; each deployed one carries its
        # running instances in "status".
        instances = []
        for resource in body.get("virtual_machine_resources") or []:
            if resource.get("vm_deployment_status") != "Deployed":
                continue
            for raw in resource.get("status") or []:
                instances.append(cls.from_wire(raw, conn, admin=admin))
        return instances
