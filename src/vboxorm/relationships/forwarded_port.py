"""
NAT port-forwarding rules of a VM adapter as a dirty-tracked relationship.

Usage:
    vm = VirtualMachine.with_vboxmanage("FooVM")
    vm.forwarded_ports.add(ForwardedPort("ssh", guest_port=22, host_port=2222))
    vm.save()

    port = vm.forwarded_ports.find("ssh")
    port.host_port = 2200
    vm.save()          # rule is removed and re-added with the new host port

    port.destroy()     # removed from the adapter immediately
"""

from collections.abc import Sequence
from typing import Any, Iterator, List, Optional, Set

from ..exceptions import IntegrityError
from ..interfaces.nat import NATEngineInterface
from ..logging import get_logger, log_context, log_operation
from .base import Relationship

log = get_logger(__name__)

# VirtualBox NATProtocol enum values as they appear in IMachine redirects.
_PROTOCOL_CODES = {"0": "udp", "1": "tcp"}
PROTOCOLS = ("tcp", "udp")


class ForwardedPort:
    """A single NAT redirect: host_ip:host_port on the host to guest_ip:guest_port."""

    TRACKED = ("name", "protocol", "host_ip", "host_port", "guest_ip", "guest_port")

    def __init__(
        self,
        name: str,
        guest_port: int,
        host_port: int,
        protocol: str = "tcp",
        host_ip: str = "",
        guest_ip: str = "",
    ):
        object.__setattr__(self, "_dirty_fields", set())
        object.__setattr__(self, "_persisted_name", None)
        object.__setattr__(self, "_collection", None)
        self.name = name
        self.protocol = protocol
        self.host_ip = host_ip
        self.host_port = host_port
        self.guest_ip = guest_ip
        self.guest_port = guest_port
        self.clear_dirty()

    def __setattr__(self, key: str, value: Any) -> None:
        if key in self.TRACKED:
            value = _validate(key, value)
            if key == "name" and self._collection is not None:
                sibling = self._collection.find(value)
                if sibling is not None and sibling is not self:
                    raise ValueError(f"A forwarded port named {value!r} already exists")
            if getattr(self, key, None) != value:
                self._dirty_fields.add(key)
        super().__setattr__(key, value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.rule}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ForwardedPort):
            return NotImplemented
        return self.rule == other.rule

    @classmethod
    def from_rule(cls, rule: str) -> "ForwardedPort":
        """Parse a 'name,protocol,host_ip,host_port,guest_ip,guest_port' rule."""
        parts = rule.split(",")
        if len(parts) != 6:
            raise IntegrityError(f"Malformed NAT rule: {rule!r}")
        name, protocol, host_ip, host_port, guest_ip, guest_port = parts
        try:
            port = cls(
                name=name,
                protocol=_PROTOCOL_CODES.get(protocol, protocol),
                host_ip=host_ip,
                host_port=host_port,
                guest_ip=guest_ip,
                guest_port=guest_port,
            )
        except ValueError as e:
            raise IntegrityError(f"Malformed NAT rule {rule!r}: {e}") from e
        object.__setattr__(port, "_persisted_name", port.name)
        return port

    @property
    def rule(self) -> str:
        return ",".join((
            self.name, self.protocol,
            self.host_ip, str(self.host_port),
            self.guest_ip, str(self.guest_port)))

    @property
    def is_new(self) -> bool:
        return self._persisted_name is None

    @property
    def dirty_fields(self) -> Set[str]:
        return set(self._dirty_fields)

    def is_dirty(self) -> bool:
        return self.is_new or bool(self._dirty_fields)

    def clear_dirty(self) -> None:
        self._dirty_fields.clear()

    @property
    def interface(self) -> NATEngineInterface:
        if self._collection is None:
            raise RuntimeError(f"Forwarded port {self.name!r} is not attached to a VM")
        return self._collection.interface

    def save(self) -> None:
        """Write this rule to the adapter if it is new or changed."""
        if not self.is_dirty():
            return
        interface = self.interface
        if not self.is_new:
            # NAT rules cannot be edited in place
            interface.remove_redirect(self._persisted_name)
            object.__setattr__(self, "_persisted_name", None)
        interface.add_redirect(
            self.name,
            self.protocol,
            self.host_ip,
            self.host_port,
            self.guest_ip,
            self.guest_port,
        )
        object.__setattr__(self, "_persisted_name", self.name)
        self.clear_dirty()
        log.info("forwarded_port.saved", rule=self.rule)

    def destroy(self) -> None:
        """Remove the rule from the adapter immediately and detach it."""
        if not self.is_new:
            self.interface.remove_redirect(self._persisted_name)
            log.info("forwarded_port.removed", name=self._persisted_name)
            object.__setattr__(self, "_persisted_name", None)
        if self._collection is not None:
            self._collection._detach(self)
        self.clear_dirty()


class ForwardedPorts(Sequence, Relationship):
    """Ordered forwarding rules of one NAT adapter."""

    def __init__(self, owner: Any, interface: NATEngineInterface):
        self.owner = owner
        self.interface = interface
        self._ports: List[ForwardedPort] = []

    @classmethod
    def load(cls, owner: Any, interface: NATEngineInterface) -> "ForwardedPorts":
        ports = [ForwardedPort.from_rule(rule) for rule in interface.get_redirects()]
        collection = cls(owner, interface)
        for port in ports:
            collection._attach(port)
        log.debug("forwarded_port.loaded", vm=getattr(owner, "name", owner), count=len(ports))
        return collection

    def persist(self) -> None:
        self.save()

    def __getitem__(self, index):
        return self._ports[index]

    def __len__(self) -> int:
        return len(self._ports)

    def __iter__(self) -> Iterator[ForwardedPort]:
        return iter(list(self._ports))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self._ports!r}>"

    def find(self, name: str) -> Optional[ForwardedPort]:
        for port in self._ports:
            if port.name == name:
                return port
        return None

    def add(self, port: ForwardedPort) -> ForwardedPort:
        """Attach a new rule. It reaches the adapter on the next save."""
        if port._collection is not None:
            raise ValueError(f"Forwarded port {port.name!r} already belongs to a VM")
        if self.find(port.name) is not None:
            raise ValueError(f"A forwarded port named {port.name!r} already exists")
        self._attach(port)
        return port

    append = add

    def remove(self, port: ForwardedPort) -> None:
        if not any(p is port for p in self._ports):
            raise ValueError(f"{port!r} is not in this collection")
        port.destroy()

    def is_dirty(self) -> bool:
        return any(port.is_dirty() for port in self._ports)

    def save(self) -> None:
        pending = [port for port in self._ports if port.is_dirty()]
        if not pending:
            return
        with log_operation(
            log,
            "forwarded_port.save",
            vm=getattr(self.owner, "name", self.owner),
            count=len(pending),
        ):
            for port in pending:
                with log_context(port=port.name):
                    port.save()

    def _attach(self, port: ForwardedPort) -> None:
        object.__setattr__(port, "_collection", self)
        self._ports.append(port)

    def _detach(self, port: ForwardedPort) -> None:
        self._ports = [p for p in self._ports if p is not port]
        object.__setattr__(port, "_collection", None)


def _validate(field: str, value: Any) -> Any:
    if field == "name":
        value = str(value)
        if not value or "," in value:
            raise ValueError(f"Invalid forwarded port name: {value!r}")
        return value
    if field == "protocol":
        value = str(value).lower()
        if value not in PROTOCOLS:
            raise ValueError(f"protocol must be one of: {PROTOCOLS}")
        return value
    if field in ("host_port", "guest_port"):
        try:
            port = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{field} must be an integer, got {value!r}")
        if not 1 <= port <= 65535:
            raise ValueError(f"{field} must be between 1 and 65535, got {port}")
        return port
    return "" if value is None else str(value)
