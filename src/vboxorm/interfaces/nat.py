"""Interface to a NAT adapter's port-forwarding rules."""

from abc import ABC, abstractmethod
from typing import Sequence


class NATEngineInterface(ABC):
    """Abstract interface for NAT engine redirect operations."""

    @abstractmethod
    def get_redirects(self) -> Sequence[str]:
        """Return rules as 'name,protocol,host_ip,host_port,guest_ip,guest_port' strings."""
        pass

    @abstractmethod
    def add_redirect(
        self,
        name: str,
        protocol: str,
        host_ip: str,
        host_port: int,
        guest_ip: str,
        guest_port: int,
    ) -> None:
        """Add a forwarding rule."""
        pass

    @abstractmethod
    def remove_redirect(self, name: str) -> None:
        """Remove a forwarding rule by name."""
        pass
