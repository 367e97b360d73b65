"""Base image models."""

from typing import Any

from pydantic import Field, ValidationInfo, field_validator

from ..api.connection import OrkaConnection
from ..api.exceptions import NotFoundError
from ..api.request import Request
from .lazy import LazyRef
from .user import User
from .wire import WireModel, wire_context


class Image(WireModel):
    """A disk image in the Orka storage."""

    name: str = Field(alias="image")
    size: str | None = Field(default=None, alias="image_size")
    modified: str | None = None
    date_added: str | None = None
    owner: LazyRef[User] | None = None

    @field_validator("owner", mode="before")
    @classmethod
    def _owner_ref(cls, v: Any, info: ValidationInfo) -> LazyRef[User] | None:
        if v is None or isinstance(v, LazyRef):
            return v
        conn, _ = wire_context(info)
        return User.lazy(str(v), conn)

    @classmethod
    async def list_all(cls, conn: OrkaConnection) -> list["Image"]:
        """List all images in the Orka storage."""
        body = await conn.send(Request(method="GET", path="resources/image/list"))
        return [cls.from_wire(raw, conn) for raw in body.get("image_attributes") or []]

    @classmethod
    async def fetch(cls, name: str, conn: OrkaConnection) -> "Image":
        """Look up an image by name.

        Raises:
            NotFoundError: If no image has this name
        """
        for image in await cls.list_all(conn):
            if image.name == name:
                return image
        raise NotFoundError("image", name)

    @classmethod
    def lazy(cls, name: str, conn: OrkaConnection) -> LazyRef["Image"]:
        return LazyRef(name, lambda: cls.fetch(name, conn), kind="image")
