"""Data models."""

from .config import AuthConfig, ProfileConfig
from .disk import Disk
from .image import Image
from .lazy import LazyRef
from .node import Node
from .port_mapping import PortMapping
from .user import User
from .vm_configuration import VMConfiguration
from .vm_instance import ImageRef, NodeRef, VMInstance, resource_name

__all__ = [
    "AuthConfig",
    "Disk",
    "Image",
    "ImageRef",
    "LazyRef",
    "Node",
    "NodeRef",
    "PortMapping",
    "ProfileConfig",
    "User",
    "VMConfiguration",
    "VMInstance",
    "resource_name",
]
