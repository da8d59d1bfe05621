"""Contract between an owning entity and the relationships it loads."""

from abc import ABC, abstractmethod
from typing import Any


class Relationship(ABC):
    """A collection that is loaded from, and persisted to, a hypervisor interface.

    The owner calls ``load`` once when the relationship is first needed and
    ``persist`` whenever the owner itself is saved.
    """

    @classmethod
    @abstractmethod
    def load(cls, owner: Any, interface: Any) -> "Relationship":
        """Build a clean relationship from the interface's current state."""
        pass

    @abstractmethod
    def persist(self) -> None:
        """Push local changes back through the interface."""
        pass
