"""Interfaces to the hypervisor operations vboxorm consumes."""

from .guest_property import Enumeration, GuestPropertyInterface
from .nat import NATEngineInterface
from .process import ProcessResult, ProcessRunner

__all__ = [
    "Enumeration",
    "GuestPropertyInterface",
    "NATEngineInterface",
    "ProcessResult",
    "ProcessRunner",
]
