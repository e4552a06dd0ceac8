"""
Orchestrator Module

Runs the provisioning workflow of a lab environment from start to finish.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from .azure_cli import AzureCLI
from .credentials import generate_password, write_credentials_file
from .domain import DomainConfigurator
from .models import LabConfig, VMDescriptor
from .network import NetworkProvisioner
from .shutdown import AutoShutdownConfigurator
from .vm import VMProvisioner


class Orchestrator:
    """Orchestrate the provisioning of one lab environment."""

    def __init__(self, config: LabConfig, az: Optional[AzureCLI] = None,
                 credentials_path: Optional[str] = None, domain_options: Optional[Dict[str, Any]] = None):
        """
        Initialize the Orchestrator.

        Args:
            config: Resolved lab configuration
            az: AzureCLI instance, created from the configuration when omitted
            credentials_path: Where to write the credentials file, defaults to
                './{resource_group}-credentials.txt'
            domain_options: Extra keyword arguments for DomainConfigurator
        """
        self.config = config
        self.az = az or AzureCLI(config.resource_group, config.location, config.timeouts.command)
        self.credentials_path = Path(
            credentials_path or f"{config.resource_group}-credentials.txt"
        )
        self.domain_options = domain_options or {}
        self.admin_password = generate_password(config.password_length)
        self.created_vms: List[VMDescriptor] = []
        self.shutdown_vms: List[str] = []
        self.domain: Optional[DomainConfigurator] = None

    def plan(self) -> List[VMDescriptor]:
        """Describe the VMs this run will create, without creating anything."""
        return self.config.vm_descriptors()

    def deploy(self):
        """
        Provision the lab environment.

        Any failing Azure call propagates and stops the run; resources created
        up to that point remain in the resource group.
        """
        cfg = self.config

        print(f"Creating resource group: {cfg.resource_group} ({cfg.location})")
        self.az.create_resource_group()

        NetworkProvisioner(self.az, cfg.network, cfg.allowed_sources).provision()

        # Written before the password reaches any VM so a failed run keeps it
        if not cfg.restore_from_snapshot:
            write_credentials_file(self.credentials_path, cfg.admin_username, self.admin_password)
            print(f"Credentials written to {self.credentials_path}")

        self._create_vms()

        shutdown = AutoShutdownConfigurator(self.az, cfg.auto_shutdown_time, cfg.auto_shutdown_email)
        self.shutdown_vms = shutdown.apply([vm.name for vm in self.created_vms])

        if cfg.restore_from_snapshot:
            print("Restored from snapshots: the domain, client joins and the "
                  f"{cfg.ls_name()} DNS A record are taken as captured in the snapshots. "
                  "Skipping domain configuration.")
            return

        self.domain = DomainConfigurator(self.az, cfg, self.admin_password, **self.domain_options)
        self.domain.configure_domain_controller()
        self.domain.configure_clients(cfg.client_names())
        self.domain.add_linux_dns_record()

    def _create_vms(self):
        cfg = self.config
        if cfg.restore_from_snapshot:
            provisioner = VMProvisioner(
                self.az,
                cfg.network,
                version=cfg.version,
                snapshot_resource_group=cfg.asset_resource_group
            )
        else:
            provisioner = VMProvisioner(
                self.az,
                cfg.network,
                admin_username=cfg.admin_username,
                admin_password=self.admin_password
            )

        for vm in self.plan():
            self.created_vms.append(provisioner.create(vm))

    def print_plan(self):
        """Print what a deployment would create."""
        cfg = self.config
        rules = cfg.network.build_rules(cfg.allowed_sources)

        print(f"\nResource Group: {cfg.resource_group}")
        print(f"Location: {cfg.location}")
        print(f"Network: {cfg.network.vnet_name} {cfg.network.address_space}, "
              f"subnet {cfg.network.subnet_prefix}")
        print("NSG rules:")
        for rule in rules:
            print(f"  {rule.priority} {rule.protocol}/{rule.port} from {', '.join(rule.sources)}")

        source = f"snapshots '*-{cfg.version}' in {cfg.asset_resource_group}" \
            if cfg.restore_from_snapshot else "images"
        print(f"Virtual Machines (from {source}):")
        for vm in self.plan():
            print(f"  {vm.name} ({vm.os_type}, {vm.size}, {vm.private_ip or 'dynamic IP'})")

        if cfg.auto_shutdown_time:
            print(f"Auto-shutdown: {cfg.auto_shutdown_time} UTC")

    def print_connection_info(self):
        """Print connection information for deployed resources."""
        cfg = self.config
        print("\n" + "="*60)
        print("CONNECTION INFORMATION")
        print("="*60)

        print(f"\nResource Group: {cfg.resource_group}")
        print(f"Location: {cfg.location}")

        if self.created_vms:
            print("\nVirtual Machines:")
            for vm in self.created_vms:
                print(f"  {vm.name} ({vm.os_type}) Private IP: {vm.private_ip or 'DHCP'}")

        # Snapshot VMs keep the credentials baked into their images
        if not cfg.restore_from_snapshot:
            print(f"\nActive Directory:")
            print(f"  Domain: {cfg.domain_fqdn}")
            print(f"  NetBIOS: {cfg.domain_netbios}")
            print(f"\nAdmin Username: {cfg.admin_username}")
            print(f"Admin Password: {self.admin_password}")

        print("\n" + "="*60)
