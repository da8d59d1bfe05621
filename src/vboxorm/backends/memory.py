"""In-memory interface implementations for tests and dry runs."""

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..exceptions import ExternalCallError
from ..interfaces.guest_property import Enumeration, GuestPropertyInterface
from ..interfaces.nat import NATEngineInterface


class InMemoryGuestProperties(GuestPropertyInterface):
    """Guest properties held in a dict.

    Every ``set_value`` call is appended to ``calls`` before it is applied.
    Keys listed in ``fail_on`` make ``set_value`` raise ``ExternalCallError``.
    """

    def __init__(
        self,
        properties: Optional[Dict[str, str]] = None,
        fail_on: Iterable[str] = (),
    ):
        self.properties: Dict[str, str] = dict(properties or {})
        self.timestamps: Dict[str, int] = {key: 0 for key in self.properties}
        self.flags: Dict[str, str] = {key: "" for key in self.properties}
        self.fail_on: Set[str] = set(fail_on)
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.enumerate_count = 0
        self._clock = 0

    def enumerate(self) -> Enumeration:
        self.enumerate_count += 1
        keys = list(self.properties)
        return (
            keys,
            [self.properties[key] for key in keys],
            [self.timestamps.get(key, 0) for key in keys],
            [self.flags.get(key, "") for key in keys],
        )

    def set_value(self, key: str, value: Optional[str]) -> None:
        self.calls.append((key, value))
        if key in self.fail_on:
            raise ExternalCallError(f"Failed to set guest property {key}", key=key)
        if value is None:
            self.properties.pop(key, None)
            self.timestamps.pop(key, None)
            self.flags.pop(key, None)
            return
        self._clock += 1
        self.properties[key] = value
        self.timestamps[key] = self._clock
        self.flags.setdefault(key, "")


class InMemoryNATEngine(NATEngineInterface):
    """NAT redirects held as VirtualBox-formatted rule strings."""

    def __init__(self, redirects: Sequence[str] = (), fail_on: Iterable[str] = ()):
        self.redirects: List[str] = list(redirects)
        self.fail_on: Set[str] = set(fail_on)
        self.calls: List[Tuple] = []

    def get_redirects(self) -> Sequence[str]:
        return list(self.redirects)

    def add_redirect(
        self,
        name: str,
        protocol: str,
        host_ip: str,
        host_port: int,
        guest_ip: str,
        guest_port: int,
    ) -> None:
        self.calls.append(("add", name, protocol, host_ip, host_port, guest_ip, guest_port))
        if name in self.fail_on:
            raise ExternalCallError(f"Failed to add redirect {name}", key=name)
        if any(rule.split(",", 1)[0] == name for rule in self.redirects):
            raise ExternalCallError(f"A NAT rule named {name} already exists", key=name)
        self.redirects.append(
            f"{name},{protocol},{host_ip},{host_port},{guest_ip},{guest_port}"
        )

    def remove_redirect(self, name: str) -> None:
        self.calls.append(("remove", name))
        if name in self.fail_on:
            raise ExternalCallError(f"Failed to remove redirect {name}", key=name)
        self.redirects = [rule for rule in self.redirects if rule.split(",", 1)[0] != name]
