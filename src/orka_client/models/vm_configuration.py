"""VM configuration models."""

from typing import Any

from pydantic import Field, ValidationInfo, field_validator

from ..api.connection import OrkaConnection
from ..api.exceptions import NotFoundError
from ..api.request import Request
from .image import Image
from .lazy import LazyRef
from .user import User
from .wire import WireModel, wire_context


class VMConfiguration(WireModel):
    """A template VM instances are deployed from."""

    name: str = Field(alias="orka_vm_name")
    owner: LazyRef[User] | None = None
    base_image: LazyRef[Image] | None = Field(default=None, alias="orka_base_image")
    cpu_cores: int | None = Field(default=None, alias="orka_cpu_core")
    vcpu_count: int | None = None
    gpu_passthrough: bool = False
    io_boost: bool = False
    use_saved_state: bool = False
    system_serial: str | None = None
    tag: str | None = None
    tag_required: bool = False

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

    @classmethod
    async def list_all(cls, conn: OrkaConnection) -> list["VMConfiguration"]:
        """List all VM configurations."""
        body = await conn.send(Request(method="GET", path="resources/vm/configs/list"))
        return [cls.from_wire(raw, conn) for raw in body.get("configs") or []]

    @classmethod
    async def fetch(cls, name: str, conn: OrkaConnection) -> "VMConfiguration":
        """Look up a VM configuration by name.

        Raises:
            NotFoundError: If no configuration has this name
        """
        for config in await cls.list_all(conn):
            if config.name == name:
                return config
        raise NotFoundError("vm configuration", name)

    @classmethod
    def lazy(cls, name: str, conn: OrkaConnection) -> LazyRef["VMConfiguration"]:
        return LazyRef(name, lambda: cls.fetch(name, conn), kind="vm configuration")
