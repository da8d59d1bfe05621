"""
End-to-end tests against a real VirtualBox VM.

These tests require:
- VBoxManage on PATH (or VBOXORM_VBOXMANAGE)
- a registered VM whose name is given in VBOXORM_E2E_VM
- a NAT adapter in slot 1 of that VM

Run with: VBOXORM_E2E_VM=my-vm pytest tests/e2e/ -m e2e -v --tb=short
"""

import os

import pytest

from vboxorm import ForwardedPort, VirtualMachine

VM_NAME = os.getenv("VBOXORM_E2E_VM")

pytestmark = [
    pytest.mark.e2e,
    pytest.mark.skipif(not VM_NAME, reason="VBOXORM_E2E_VM is not set"),
]


class TestGuestPropertyWorkflow:
    KEY = "/vboxorm/e2e/marker"

    def test_set_save_reload_delete(self):
        vm = VirtualMachine.with_vboxmanage(VM_NAME)
        vm.guest_properties[self.KEY] = "yes"
        vm.save()

        reloaded = VirtualMachine.with_vboxmanage(VM_NAME)
        assert reloaded.guest_properties[self.KEY] == "yes"

        del reloaded.guest_properties[self.KEY]
        assert self.KEY not in VirtualMachine.with_vboxmanage(VM_NAME).guest_properties


class TestForwardedPortWorkflow:
    NAME = "vboxorm-e2e"

    def test_add_modify_destroy(self):
        vm = VirtualMachine.with_vboxmanage(VM_NAME)
        vm.forwarded_ports.add(ForwardedPort(self.NAME, guest_port=8000, host_port=18000))
        vm.save()

        port = VirtualMachine.with_vboxmanage(VM_NAME).forwarded_ports.find(self.NAME)
        assert port is not None and port.host_port == 18000

        port.host_port = 18001
        port.save()
        port = VirtualMachine.with_vboxmanage(VM_NAME).forwarded_ports.find(self.NAME)
        assert port.host_port == 18001

        port.destroy()
        assert VirtualMachine.with_vboxmanage(VM_NAME).forwarded_ports.find(self.NAME) is None
