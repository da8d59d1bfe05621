"""Interface implementations: in-memory and VBoxManage."""

from .memory import InMemoryGuestProperties, InMemoryNATEngine
from .subprocess_runner import SubprocessRunner
from .vboxmanage import VBoxManage, VBoxManageGuestProperties, VBoxManageNATEngine

__all__ = [
    "InMemoryGuestProperties",
    "InMemoryNATEngine",
    "SubprocessRunner",
    "VBoxManage",
    "VBoxManageGuestProperties",
    "VBoxManageNATEngine",
]
