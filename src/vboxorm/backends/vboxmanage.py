"""VBoxManage-backed guest property and NAT engine interfaces."""

import calendar
import re
import subprocess
import time
from typing import Dict, List, Optional, Sequence

import structlog

from ..exceptions import ExternalCallError, IntegrityError
from ..interfaces.guest_property import Enumeration, GuestPropertyInterface
from ..interfaces.nat import NATEngineInterface
from ..interfaces.process import ProcessRunner
from .subprocess_runner import SubprocessRunner

log = structlog.get_logger(__name__)

# VirtualBox 6.x and older, or 7.x with --old-format
_ENUMERATE_LINE = re.compile(
    r"^Name: (?P<name>.*?), value: (?P<value>.*?), "
    r"timestamp: (?P<timestamp>\d+), flags: ?(?P<flags>.*)$"
)
# VirtualBox 7.x default: name = 'value' @ 2023-10-18T10:00:00.000000000Z[, flags]
_ENUMERATE_LINE_V7 = re.compile(
    r"^(?P<name>\S+)\s*=\s*'(?P<value>.*)' @ (?P<timestamp>\S+?)"
    r"(?:,?\s+\(?(?P<flags>[^)]*?)\)?)?$"
)
_ISO_TIMESTAMP = re.compile(
    r"^(?P<seconds>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<fraction>\d+))?Z?$"
)
_MACHINE_READABLE_LINE = re.compile(r'^"?(?P<key>[^"=]+)"?=(?P<value>.*)$')
_NIC_KEY = re.compile(r"^nic(?P<slot>\d+)$")
_FORWARDING_KEY = re.compile(r"^Forwarding\(\d+\)$")


class VBoxManage:
    """Runs VBoxManage commands and turns failures into ExternalCallError."""

    def __init__(
        self,
        executable: str = "VBoxManage",
        runner: Optional[ProcessRunner] = None,
        timeout: Optional[int] = 60,
    ):
        self.executable = executable
        self.runner = runner or SubprocessRunner()
        self.timeout = timeout

    def run(self, args: Sequence[str], key: Optional[str] = None) -> str:
        command = [self.executable, *args]
        log.debug("vboxmanage.run", command=command)
        try:
            result = self.runner.run(command, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ExternalCallError(
                f"Failed to run {self.executable}: {e}", key=key, command=command
            ) from e
        if not result.success:
            stderr = result.stderr.strip()
            log.warning(
                "vboxmanage.failed",
                command=command,
                returncode=result.returncode,
                stderr=stderr,
            )
            raise ExternalCallError(
                f"{self.executable} exited with {result.returncode}: {stderr}",
                key=key,
                command=command,
                stderr=stderr,
            )
        return result.stdout.replace("\r\n", "\n")


def parse_guestproperty_enumerate(output: str) -> Enumeration:
    """Parse `VBoxManage guestproperty enumerate` output into parallel lists."""
    keys: List[str] = []
    values: List[str] = []
    timestamps: List[int] = []
    flags: List[str] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        match = _ENUMERATE_LINE.match(line)
        if match is not None:
            timestamp = int(match.group("timestamp"))
        else:
            match = _ENUMERATE_LINE_V7.match(line)
            if match is None:
                raise IntegrityError(f"Unexpected guestproperty enumerate line: {line!r}")
            timestamp = _iso_to_nanoseconds(match.group("timestamp"))
        keys.append(match.group("name"))
        values.append(match.group("value"))
        timestamps.append(timestamp)
        flags.append((match.group("flags") or "").strip())
    return keys, values, timestamps, flags


def _iso_to_nanoseconds(text: str) -> int:
    """Convert VirtualBox's UTC ISO timestamp (nanosecond fraction) to ns since epoch."""
    match = _ISO_TIMESTAMP.match(text)
    if match is None:
        raise IntegrityError(f"Unexpected guest property timestamp: {text!r}")
    seconds = calendar.timegm(time.strptime(match.group("seconds"), "%Y-%m-%dT%H:%M:%S"))
    fraction = (match.group("fraction") or "").ljust(9, "0")[:9]
    return seconds * 1_000_000_000 + int(fraction)


def parse_machine_readable(output: str) -> List[tuple]:
    """Parse `showvminfo --machinereadable` output into ordered (key, value) pairs."""
    pairs = []
    for line in output.splitlines():
        match = _MACHINE_READABLE_LINE.match(line.strip())
        if match is None:
            continue
        value = match.group("value")
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        pairs.append((match.group("key"), value))
    return pairs


def forwarding_rules_by_slot(output: str) -> Dict[int, List[str]]:
    """Group Forwarding(N) rules under the NAT adapter listed before them."""
    rules: Dict[int, List[str]] = {}
    current_slot = None
    for key, value in parse_machine_readable(output):
        nic = _NIC_KEY.match(key)
        if nic is not None:
            current_slot = int(nic.group("slot")) if value == "nat" else None
            continue
        if _FORWARDING_KEY.match(key) and current_slot is not None:
            rules.setdefault(current_slot, []).append(value)
    return rules


class VBoxManageGuestProperties(GuestPropertyInterface):
    """Guest properties of one VM, read and written through VBoxManage."""

    def __init__(self, vm_name: str, vboxmanage: Optional[VBoxManage] = None):
        self.vm_name = vm_name
        self.vboxmanage = vboxmanage or VBoxManage()

    def enumerate(self) -> Enumeration:
        output = self.vboxmanage.run(["guestproperty", "enumerate", self.vm_name])
        return parse_guestproperty_enumerate(output)

    def set_value(self, key: str, value: Optional[str]) -> None:
        args = ["guestproperty", "set", self.vm_name, key]
        if value is not None:
            args.append(value)
        self.vboxmanage.run(args, key=key)


class VBoxManageNATEngine(NATEngineInterface):
    """Port-forwarding rules of one NAT adapter, managed through VBoxManage."""

    def __init__(self, vm_name: str, slot: int = 1, vboxmanage: Optional[VBoxManage] = None):
        self.vm_name = vm_name
        self.slot = slot
        self.vboxmanage = vboxmanage or VBoxManage()

    def get_redirects(self) -> Sequence[str]:
        output = self.vboxmanage.run(["showvminfo", self.vm_name, "--machinereadable"])
        return forwarding_rules_by_slot(output).get(self.slot, [])

    def add_redirect(
        self,
        name: str,
        protocol: str,
        host_ip: str,
        host_port: int,
        guest_ip: str,
        guest_port: int,
    ) -> None:
        rule = f"{name},{protocol},{host_ip},{host_port},{guest_ip},{guest_port}"
        self.vboxmanage.run(
            ["modifyvm", self.vm_name, f"--natpf{self.slot}", rule], key=name
        )

    def remove_redirect(self, name: str) -> None:
        self.vboxmanage.run(
            ["modifyvm", self.vm_name, f"--natpf{self.slot}", "delete", name], key=name
        )
