"""Interface to a VM's guest property namespace."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

Enumeration = Tuple[Sequence[str], Sequence[str], Sequence[int], Sequence[str]]


class GuestPropertyInterface(ABC):
    """Abstract interface for reading and writing guest properties."""

    @abstractmethod
    def enumerate(self) -> Enumeration:
        """Return (keys, values, timestamps, flags) as parallel sequences."""
        pass

    @abstractmethod
    def set_value(self, key: str, value: Optional[str]) -> None:
        """Set a property. A value of None removes it; removing an absent key is not an error."""
        pass
