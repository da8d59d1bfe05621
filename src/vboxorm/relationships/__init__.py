"""Dirty-tracked relationships between a VM and its hypervisor state."""

from .base import Relationship
from .forwarded_port import ForwardedPort, ForwardedPorts
from .guest_property import GuestPropertyStore, is_reserved

__all__ = [
    "ForwardedPort",
    "ForwardedPorts",
    "GuestPropertyStore",
    "Relationship",
    "is_reserved",
]
