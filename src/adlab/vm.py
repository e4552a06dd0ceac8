"""
VM Provisioner Module

Creates lab VMs either from a base image or by cloning a prior snapshot.
"""

import logging
from typing import Callable, Optional

from .credentials import generate_suffix
from .errors import ConfigurationError
from .models import NetworkPlan, VMDescriptor

logger = logging.getLogger(__name__)


class VMProvisioner:
    """Create VMs attached to the lab network."""

    def __init__(self, az, network: NetworkPlan, admin_username: Optional[str] = None,
                 admin_password: Optional[str] = None, version: Optional[str] = None,
                 snapshot_resource_group: Optional[str] = None,
                 suffix_factory: Callable[[], str] = generate_suffix):
        """
        Initialize the VMProvisioner.

        Args:
            az: AzureCLI instance bound to the lab resource group
            network: Network the VMs are attached to
            admin_username: Administrator username for the fresh-image path
            admin_password: Administrator password for the fresh-image path
            version: Snapshot version tag; when set every VM is restored from
                snapshot '{vm_name}-{version}'
            snapshot_resource_group: Resource group holding the snapshots
            suffix_factory: Produces the random suffix of cloned disk names
        """
        self.az = az
        self.network = network
        self.admin_username = admin_username
        self.admin_password = admin_password
        self.version = version
        self.snapshot_resource_group = snapshot_resource_group
        self.suffix_factory = suffix_factory

        if version and not snapshot_resource_group:
            raise ConfigurationError("A snapshot resource group is required to restore from snapshots")
        if not version and not (admin_username and admin_password):
            raise ConfigurationError("An administrator credential is required to create VMs from images")

    def create(self, vm: VMDescriptor) -> VMDescriptor:
        """
        Create a single VM.

        Args:
            vm: Descriptor of the VM to create

        Returns:
            The descriptor, with disk_name filled in for the snapshot path
        """
        self._check_descriptor(vm)

        if self.version:
            return self._create_from_snapshot(vm)
        return self._create_from_image(vm)

    def _check_descriptor(self, vm: VMDescriptor):
        """Ensure the mandatory descriptor fields are present."""
        missing = [f for f in ('name', 'os_type', 'size') if not getattr(vm, f)]
        if not self.version and not vm.image:
            missing.append('image')
        if missing:
            raise ConfigurationError(
                f"VM '{vm.name or '?'}' is missing required fields: {', '.join(missing)}"
            )

    def _create_from_image(self, vm: VMDescriptor) -> VMDescriptor:
        ip_text = vm.private_ip or 'dynamic IP'
        print(f"Creating VM {vm.name} from image {vm.image} ({vm.size}, {ip_text})")
        self.az.create_vm_from_image(
            vm.name,
            vm.image,
            vm.size,
            vm.os_type,
            self.admin_username,
            self.admin_password,
            self.network.vnet_name,
            self.network.subnet_name,
            self.network.nsg_name,
            private_ip=vm.private_ip
        )
        return vm

    def _create_from_snapshot(self, vm: VMDescriptor) -> VMDescriptor:
        snapshot_name = f"{vm.name}-{self.version}"
        print(f"Restoring VM {vm.name} from snapshot {snapshot_name}")

        snapshot_id = self.az.find_snapshot(snapshot_name, self.snapshot_resource_group)
        logger.debug("Found snapshot %s", snapshot_id)

        vm.disk_name = f"{vm.name}-{self.suffix_factory()}"
        print(f"  Creating disk {vm.disk_name}")
        self.az.create_disk_from_snapshot(vm.disk_name, snapshot_id)

        self.az.create_vm_from_disk(
            vm.name,
            vm.disk_name,
            vm.size,
            vm.os_type,
            self.network.vnet_name,
            self.network.subnet_name,
            self.network.nsg_name,
            private_ip=vm.private_ip
        )
        return vm
