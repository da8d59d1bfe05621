"""
vboxorm - VirtualBox guest properties and NAT rules as persisted collections.

Load a VM's guest properties and port-forwarding rules lazily, change them
in memory, and push only what changed back to VirtualBox.
"""

__version__ = "0.1.0"

from vboxorm.exceptions import ExternalCallError, IntegrityError, VBoxOrmError
from vboxorm.relationships import ForwardedPort, ForwardedPorts, GuestPropertyStore, is_reserved
from vboxorm.vm import VirtualMachine

__all__ = [
    "ExternalCallError",
    "ForwardedPort",
    "ForwardedPorts",
    "GuestPropertyStore",
    "IntegrityError",
    "VBoxOrmError",
    "VirtualMachine",
    "is_reserved",
    "__version__",
]
