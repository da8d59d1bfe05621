"""The VM entity that owns guest property and NAT relationships."""

from typing import Optional

from .backends.vboxmanage import VBoxManage, VBoxManageGuestProperties, VBoxManageNATEngine
from .config import VBoxSettings
from .interfaces.guest_property import GuestPropertyInterface
from .interfaces.nat import NATEngineInterface
from .interfaces.process import ProcessRunner
from .logging import get_logger
from .relationships.forwarded_port import ForwardedPorts
from .relationships.guest_property import GuestPropertyStore

log = get_logger(__name__)


class VirtualMachine:
    """A VM whose relationships are loaded on first access and saved together."""

    def __init__(
        self,
        name: str,
        guest_property_interface: GuestPropertyInterface,
        nat_interface: Optional[NATEngineInterface] = None,
    ):
        self.name = name
        self.guest_property_interface = guest_property_interface
        self.nat_interface = nat_interface
        self._guest_properties: Optional[GuestPropertyStore] = None
        self._forwarded_ports: Optional[ForwardedPorts] = None

    @classmethod
    def with_vboxmanage(
        cls,
        name: str,
        settings: Optional[VBoxSettings] = None,
        runner: Optional[ProcessRunner] = None,
        nat_slot: Optional[int] = None,
    ) -> "VirtualMachine":
        settings = settings or VBoxSettings()
        vboxmanage = VBoxManage(
            executable=settings.vboxmanage,
            runner=runner,
            timeout=settings.timeout_seconds,
        )
        return cls(
            name,
            guest_property_interface=VBoxManageGuestProperties(name, vboxmanage),
            nat_interface=VBoxManageNATEngine(
                name, slot=nat_slot or settings.nat_slot, vboxmanage=vboxmanage
            ),
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"

    @property
    def guest_properties(self) -> GuestPropertyStore:
        if self._guest_properties is None:
            self._guest_properties = GuestPropertyStore.load(self, self.guest_property_interface)
        return self._guest_properties

    @property
    def forwarded_ports(self) -> ForwardedPorts:
        if self._forwarded_ports is None:
            if self.nat_interface is None:
                raise RuntimeError(f"VM '{self.name}' has no NAT interface configured")
            self._forwarded_ports = ForwardedPorts.load(self, self.nat_interface)
        return self._forwarded_ports

    def is_dirty(self) -> bool:
        return any(
            relationship.is_dirty()
            for relationship in (self._guest_properties, self._forwarded_ports)
            if relationship is not None
        )

    def save(self) -> None:
        """Persist every relationship that has been loaded."""
        for relationship in (self._guest_properties, self._forwarded_ports):
            if relationship is not None:
                relationship.persist()
        log.debug("vm.saved", vm=self.name)

    def reload(self) -> None:
        """Drop loaded relationships so the next access reads the VM again."""
        self._guest_properties = None
        self._forwarded_ports = None
