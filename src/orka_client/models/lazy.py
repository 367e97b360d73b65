"""Deferred references to remote resources."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, TypeVar

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _consume_exception(task: "asyncio.Future[Any]") -> None:
    # Mark the failure as retrieved when every waiter was cancelled.
    if not task.cancelled():
        task.exception()


class LazyRef(Generic[T]):
    """A handle to a remote resource that is fetched on first use.

    The reference holds the resource's natural key (a name, id or email) and a
    zero-argument coroutine function that fetches the full object. Creating a
    reference never performs I/O. The first ``await ref.resolve()`` runs the
    resolver; every later call returns the cached object without touching the
    network.

    Coroutines that resolve the same reference concurrently share one
    in-flight fetch and observe the same value or the same exception. A
    failed fetch is not cached, so a later call tries again.

    References belong to the event loop they are first resolved on.
    """

    __slots__ = ("_key", "_kind", "_resolver", "_value", "_resolved", "_pending")

    def __init__(
        self,
        key: str,
        resolver: Callable[[], Awaitable[T]],
        kind: str = "resource",
    ) -> None:
        """Initialize the reference.

        Args:
            key: Identifying value of the resource
            resolver: Coroutine function returning the resolved object
            kind: Resource kind, used for equality and display
        """
        self._key = key
        self._kind = kind
        self._resolver = resolver
        self._value: T | None = None
        self._resolved = False
        self._pending: asyncio.Future[T] | None = None

    @classmethod
    def resolved(cls, key: str, value: T, kind: str = "resource") -> "LazyRef[T]":
        """Build a reference that already holds its object."""

        async def _noop() -> T:
            return value

        ref: LazyRef[T] = cls(key, _noop, kind=kind)
        ref._value = value
        ref._resolved = True
        return ref

    @property
    def key(self) -> str:
        """The identifying value. Never triggers a fetch."""
        return self._key

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def is_resolved(self) -> bool:
        return self._resolved

    async def resolve(self) -> T:
        """Return the referenced object, fetching it on first use.

        Raises:
            NotFoundError: If the resource does not exist
            TransportError: If the fetch fails
        """
        if self._resolved:
            return self._value  # type: ignore[return-value]

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._fetch())
            self._pending.add_done_callback(_consume_exception)

        # A cancelled waiter must not cancel the fetch other waiters share.
        return await asyncio.shield(self._pending)

    async def _fetch(self) -> T:
        logger.debug("Resolving %s '%s'", self._kind, self._key)
        try:
            value = await self._resolver()
        except BaseException:
            self._pending = None
            raise
        self._value = value
        self._resolved = True
        self._pending = None
        return value

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.is_instance_schema(cls)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, LazyRef):
            return NotImplemented
        return (self._kind, self._key) == (other._kind, other._key)

    def __hash__(self) -> int:
        return hash((self._kind, self._key))

    def __repr__(self) -> str:
        state = "resolved" if self._resolved else "unresolved"
        return f"LazyRef({self._kind}={self._key!r}, {state})"
