"""User models."""

from ..api.connection import OrkaConnection
from ..api.exceptions import NotFoundError
from ..api.request import LICENSE_AUTH, Request
from .lazy import LazyRef
from .wire import WireModel


class User(WireModel):
    """An Orka user, identified by email."""

    email: str

    @classmethod
    async def fetch(cls, email: str, conn: OrkaConnection) -> "User":
        """Look up a user by email.

        Listing users needs the license key.

        Raises:
            NotFoundError: If no user has this email
            MalformedResponse: If the listing holds a non-string entry
        """
        body = await conn.send(Request(method="GET", path="users", auth=LICENSE_AUTH))
        for entry in body.get("user_list") or []:
            if entry == email:
                return cls.from_wire({"email": entry}, conn)
        raise NotFoundError("user", email)

    @classmethod
    def lazy(cls, email: str, conn: OrkaConnection) -> LazyRef["User"]:
        return LazyRef(email, lambda: cls.fetch(email, conn), kind="user")
