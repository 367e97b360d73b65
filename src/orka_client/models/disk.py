"""Disk models."""

from .wire import WireModel


class Disk(WireModel):
    """A disk attached to a VM."""

    type: str | None = None
    device: str | None = None
    target: str | None = None
    source: str | None = None
