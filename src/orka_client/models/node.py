"""Node models."""

from typing import Any

from pydantic import Field, field_validator

from ..api.connection import OrkaConnection
from ..api.request import LICENSE_AUTH, TOKEN_AUTH, Request
from .lazy import LazyRef
from .wire import WireModel


class Node(WireModel):
    """A host machine VMs are deployed on."""

    name: str
    host_name: str | None = None
    address: str | None = None
    host_ip: str | None = Field(default=None, alias="hostIP")
    available_cpu: int | None = None
    allocatable_cpu: int | None = None
    available_gpu: int | None = None
    allocatable_gpu: int | None = None
    available_memory: str | None = None
    total_cpu: int | None = None
    total_memory: str | None = None
    node_type: str | None = None
    state: str | None = None
    orka_tags: tuple[str, ...] = ()

    @field_validator("available_gpu", "allocatable_gpu", mode="before")
    @classmethod
    def _gpu_count(cls, v: Any) -> Any:
        # Nodes without GPUs report "N/A"
        if isinstance(v, str) and not v.strip().isdigit():
            return None
        return v

    @field_validator("orka_tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> Any:
        return () if v is None else v

    @classmethod
    async def list_all(cls, conn: OrkaConnection, admin: bool = False) -> list["Node"]:
        """List the nodes visible to the caller.

        Args:
            conn: Connection
            admin: List every node in the cluster (needs the license key)
        """
        if admin:
            request = Request(method="GET", path="resources/node/list/all", auth=LICENSE_AUTH)
        else:
            request = Request(method="GET", path="resources/node/list")
        body = await conn.send(request)
        return [cls.from_wire(raw, conn, admin=admin) for raw in body.get("nodes") or []]

    @classmethod
    async def fetch(cls, name: str, conn: OrkaConnection, admin: bool = False) -> "Node":
        """Fetch the status of a node.

        Raises:
            NotFoundError: If the node does not exist
        """
        body = await conn.send(
            Request(
                method="GET",
                path=f"resources/node/status/{name}",
                auth=LICENSE_AUTH if admin else TOKEN_AUTH,
            )
        )
        return cls.from_wire(body.get("node_status", body), conn, admin=admin)

    @classmethod
    def lazy(cls, name: str, conn: OrkaConnection, admin: bool = False) -> LazyRef["Node"]:
        return LazyRef(name, lambda: cls.fetch(name, conn, admin=admin), kind="node")
