"""Errors raised by vboxorm relationships and backends."""

from typing import Optional, Sequence


class VBoxOrmError(Exception):
    """Base class for all vboxorm errors."""


class IntegrityError(VBoxOrmError, ValueError):
    """An interface returned data that cannot be loaded as-is."""


class ExternalCallError(VBoxOrmError, RuntimeError):
    """A write through a hypervisor interface failed."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        command: Optional[Sequence[str]] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.key = key
        self.command = list(command) if command else None
        self.stderr = stderr
