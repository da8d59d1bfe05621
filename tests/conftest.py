"""
Pytest fixtures and configuration for vboxorm tests.
"""
from unittest.mock import MagicMock

import pytest

from vboxorm.backends.memory import InMemoryGuestProperties, InMemoryNATEngine
from vboxorm.interfaces.process import ProcessResult, ProcessRunner
from vboxorm.relationships.guest_property import GuestPropertyStore
from vboxorm.vm import VirtualMachine


@pytest.fixture
def guest_interface():
    """Guest properties of a VM with the additions running."""
    return InMemoryGuestProperties(
        {
            "/Foo/Bar": "yes",
            "/Foo/Baz": "42",
            "/VirtualBox/GuestAdd/Version": "7.0.12",
            "/VirtualBox/GuestInfo/OS/Product": "Linux",
        }
    )


@pytest.fixture
def store(guest_interface):
    """A populated store owned by a simple named owner."""
    owner = MagicMock()
    owner.name = "test-vm"
    return GuestPropertyStore.populate(owner, guest_interface)


@pytest.fixture
def nat_interface():
    return InMemoryNATEngine(
        [
            "ssh,tcp,,2222,,22",
            "dns,udp,127.0.0.1,5353,10.0.2.15,53",
        ]
    )


@pytest.fixture
def vm(guest_interface, nat_interface):
    return VirtualMachine("test-vm", guest_interface, nat_interface)


@pytest.fixture
def mock_runner():
    """ProcessRunner returning a successful, empty result unless told otherwise."""
    runner = MagicMock(spec=ProcessRunner)
    runner.run.return_value = ProcessResult(returncode=0, stdout="", stderr="")
    return runner


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "e2e: End-to-end tests (require VirtualBox and a running VM)")
