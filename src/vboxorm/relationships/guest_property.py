"""
Guest properties of a virtual machine as a dirty-tracked mapping.

Guest properties can be read and set per VM while the guest additions are
running. VirtualBox predefines a number of them under ``/VirtualBox/``
(guest OS, additions version, logged-in users, network statistics); those
are readable here but never written.

Usage:
    vm = VirtualMachine.with_vboxmanage("FooVM")
    vm.guest_properties["/Foo/Bar"] = "yes"
    vm.save()

Assignments are batched until ``save``; deletions go to the hypervisor
immediately.
"""

import re
from collections.abc import MutableMapping
from typing import Any, Dict, FrozenSet, Iterator, Optional, Tuple

from ..exceptions import IntegrityError
from ..interfaces.guest_property import GuestPropertyInterface
from ..logging import get_logger, log_context, log_operation
from .base import Relationship

log = get_logger(__name__)

RESERVED_KEY_PATTERN = re.compile(r"^/VirtualBox")


def is_reserved(key: Any) -> bool:
    """Return True if ``key`` lives in the namespace VirtualBox manages itself."""
    return RESERVED_KEY_PATTERN.match(str(key)) is not None


def _wire_value(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class GuestPropertyStore(MutableMapping, Relationship):
    """Key/value view of a VM's guest properties with change tracking."""

    is_reserved = staticmethod(is_reserved)

    def __init__(self, owner: Any, interface: GuestPropertyInterface):
        self.owner = owner
        self.interface = interface
        self._data: Dict[Any, Any] = {}
        # key -> value at the last clean point (None if the key did not exist)
        self._baseline: Dict[Any, Any] = {}
        self._timestamps: Dict[Any, int] = {}
        self._flags: Dict[Any, str] = {}

    @classmethod
    def load(cls, owner: Any, interface: GuestPropertyInterface) -> "GuestPropertyStore":
        store = cls(owner, interface)
        keys, values, timestamps, flags = interface.enumerate()
        lengths = {len(keys), len(values), len(timestamps), len(flags)}
        if len(lengths) != 1:
            raise IntegrityError(
                "Guest property enumeration returned sequences of different lengths: "
                f"keys={len(keys)} values={len(values)} "
                f"timestamps={len(timestamps)} flags={len(flags)}"
            )

        for index, key in enumerate(keys):
            store._data[key] = values[index]
            store._timestamps[key] = timestamps[index]
            store._flags[key] = flags[index]

        store.clear_dirty()
        log.debug("guest_property.loaded", vm=_owner_name(owner), count=len(store._data))
        return store

    populate = load

    def persist(self) -> None:
        self.save()

    # Mapping protocol

    def __getitem__(self, key: Any) -> Any:
        return self._data[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: Any) -> None:
        if key not in self._data:
            raise KeyError(key)
        self.delete(key)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {_owner_name(self.owner)} {self._data!r}>"

    def pop(self, key: Any, *default: Any) -> Any:
        """Delete ``key`` and return its value. Reserved keys count as absent."""
        if key not in self._data or is_reserved(key):
            if default:
                return default[0]
            raise KeyError(key)
        value = self._data[key]
        self.delete(key)
        return value

    def popitem(self) -> Tuple[Any, Any]:
        """Delete and return some user property. KeyError if only reserved ones remain."""
        for key in self._data:
            if not is_reserved(key):
                value = self._data[key]
                self.delete(key)
                return key, value
        raise KeyError("popitem(): no deletable guest properties")

    def clear(self) -> None:
        """Delete every user property. Reserved properties stay."""
        for key in [key for key in self._data if not is_reserved(key)]:
            self.delete(key)

    # Mutation

    def set(self, key: Any, value: Any) -> bool:
        """Assign in memory and mark dirty. Returns False for reserved keys."""
        if is_reserved(key):
            log.debug("guest_property.reserved_key_ignored", key=key, action="set")
            return False
        self.mark_dirty(key)
        self._data[key] = value
        return True

    def delete(self, key: Any) -> bool:
        """Remove a property from the VM right away. Returns False for reserved keys."""
        if is_reserved(key):
            log.debug("guest_property.reserved_key_ignored", key=key, action="delete")
            return False
        with log_context(vm=_owner_name(self.owner), key=key):
            self.interface.set_value(str(key), None)
        self._data.pop(key, None)
        self._baseline.pop(key, None)
        self._timestamps.pop(key, None)
        self._flags.pop(key, None)
        log.info("guest_property.deleted", vm=_owner_name(self.owner), key=key)
        return True

    def save(self) -> None:
        """Push every dirty, non-reserved property to the VM.

        Stops at the first failing write; properties written before it are
        clean, the failing one and the rest stay dirty.
        """
        pending = [key for key in self._baseline if not is_reserved(key)]
        if not pending:
            return

        with log_operation(
            log, "guest_property.save", vm=_owner_name(self.owner), count=len(pending)
        ):
            for key in pending:
                value = self._data.get(key)
                with log_context(key=key):
                    self.interface.set_value(str(key), _wire_value(value))
                    log.debug("guest_property.written", value=value)
                del self._baseline[key]
                if value is None:
                    self._data.pop(key, None)
                    self._timestamps.pop(key, None)
                    self._flags.pop(key, None)

    # Dirty state

    @property
    def changes(self) -> Dict[Any, Tuple[Any, Any]]:
        """Dirty keys mapped to (value at last clean point, current value)."""
        return {key: (old, self._data.get(key)) for key, old in self._baseline.items()}

    @property
    def dirty(self) -> FrozenSet[Any]:
        return frozenset(self._baseline)

    def is_dirty(self, key: Any = None) -> bool:
        if key is None:
            return bool(self._baseline)
        return key in self._baseline

    def mark_dirty(self, key: Any) -> None:
        """Flag a key for the next save without changing its value."""
        if key not in self._baseline:
            self._baseline[key] = self._data.get(key)

    def clear_dirty(self, key: Any = None) -> None:
        if key is None:
            self._baseline.clear()
        else:
            self._baseline.pop(key, None)

    # Metadata reported by the hypervisor at load time

    def timestamp(self, key: Any) -> Optional[int]:
        return self._timestamps.get(key)

    def flags(self, key: Any) -> Optional[str]:
        return self._flags.get(key)


def _owner_name(owner: Any) -> Any:
    return getattr(owner, "name", owner)
