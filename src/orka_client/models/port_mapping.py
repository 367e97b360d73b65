"""Port mapping models."""

from .wire import WireModel


class PortMapping(WireModel):
    """A host port forwarded to a guest port of a VM."""

    host_port: int
    guest_port: int
    protocol: str = "tcp"
