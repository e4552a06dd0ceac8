"""
Models Module

Explicit configuration structures passed into each provisioning component.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError

DOMAIN_CONTROLLER = 'domain_controller'
LINUX_SERVER = 'linux_server'
CLIENT = 'client'


@dataclass
class NsgRule:
    """One inbound allow rule of the network security group."""

    name: str
    priority: int
    protocol: str
    port: int
    sources: List[str]
    destination: str = '*'


@dataclass
class NetworkPlan:
    """Addressing and security group layout of the lab network."""

    vnet_name: str
    address_space: str
    subnet_name: str
    subnet_prefix: str
    nsg_name: str
    ports: List[int]
    priorities: List[int]
    protocols: List[str]

    def build_rules(self, sources: List[str]) -> List[NsgRule]:
        """
        Expand the parallel port/priority/protocol arrays into rules.

        Args:
            sources: Allowed source CIDRs applied to every rule

        Returns:
            Rules in configured order

        Raises:
            ConfigurationError: If the arrays differ in length
        """
        if not len(self.ports) == len(self.priorities) == len(self.protocols):
            raise ConfigurationError(
                f"Inbound rule arrays must be the same length: "
                f"{len(self.ports)} ports, {len(self.priorities)} priorities, "
                f"{len(self.protocols)} protocols"
            )

        rules = []
        for port, priority, protocol in zip(self.ports, self.priorities, self.protocols):
            rules.append(NsgRule(
                name=f"Allow-{protocol.upper()}-{port}",
                priority=priority,
                protocol=protocol,
                port=port,
                sources=list(sources),
            ))
        return rules


@dataclass
class VMDescriptor:
    """A VM to create, either from an image or from a cloned snapshot disk."""

    name: str
    role: str
    os_type: str
    size: str
    image: Optional[str] = None
    private_ip: Optional[str] = None
    disk_name: Optional[str] = None

    @property
    def is_windows(self) -> bool:
        return self.os_type.lower() == 'windows'


@dataclass
class Timeouts:
    """Timeouts, in seconds, for long running external calls."""

    command: float = 1800
    restart: float = 900
    restart_poll_interval: float = 15
    restart_poll_max_interval: float = 60
    dns_record: float = 300
    dns_verify: float = 600


@dataclass
class LabConfig:
    """Fully resolved configuration of one provisioning run."""

    resource_group: str
    location: str
    num_clients: int
    allowed_sources: List[str]
    network: NetworkPlan
    dc_ip: str
    ls_ip: str
    vm_templates: Dict[str, Dict[str, Any]]
    admin_username: str = 'labadmin'
    domain_fqdn: str = 'adlab.local'
    domain_netbios: str = 'ADLAB'
    password_length: int = 12
    auto_shutdown_time: Optional[str] = None
    auto_shutdown_email: Optional[str] = None
    version: Optional[str] = None
    vault_region: Optional[str] = None
    asset_resource_group_template: str = 'adlab-assets-{region}'
    max_workers: int = 1
    timeouts: Timeouts = field(default_factory=Timeouts)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'LabConfig':
        """
        Build a LabConfig from a merged and validated configuration dictionary.

        Args:
            config: Configuration as produced by ConfigLoader

        Returns:
            LabConfig instance
        """
        network = config.get('network', {})
        rules = network.get('inbound_rules', {})
        vms = config.get('virtual_machines', {})
        domain = config.get('domain', {})
        auto_shutdown = config.get('auto_shutdown') or {}
        snapshots = config.get('snapshots', {})

        plan = NetworkPlan(
            vnet_name=network.get('vnet_name', 'adlab-vnet'),
            address_space=network.get('address_space', '10.0.0.0/16'),
            subnet_name=network.get('subnet_name', 'adlab-subnet'),
            subnet_prefix=network.get('subnet_prefix', '10.0.0.0/24'),
            nsg_name=network.get('nsg_name', 'adlab-nsg'),
            ports=list(rules.get('ports', [])),
            priorities=list(rules.get('priorities', [])),
            protocols=list(rules.get('protocols', [])),
        )

        return cls(
            resource_group=config['resource_group'],
            location=config.get('location', 'westus'),
            num_clients=config.get('num_clients', 1),
            allowed_sources=list(config.get('allowed_sources', [])),
            network=plan,
            dc_ip=vms.get(DOMAIN_CONTROLLER, {}).get('private_ip'),
            ls_ip=vms.get(LINUX_SERVER, {}).get('private_ip'),
            vm_templates=vms,
            admin_username=config.get('admin_username', 'labadmin'),
            domain_fqdn=domain.get('fqdn', 'adlab.local'),
            domain_netbios=domain.get('netbios', 'ADLAB'),
            password_length=config.get('credentials', {}).get('password_length', 12),
            auto_shutdown_time=auto_shutdown.get('time'),
            auto_shutdown_email=auto_shutdown.get('email'),
            version=config.get('version'),
            vault_region=config.get('vault_region'),
            asset_resource_group_template=snapshots.get(
                'asset_resource_group', 'adlab-assets-{region}'
            ),
            max_workers=config.get('clients', {}).get('max_workers', 1),
            timeouts=Timeouts(**config.get('timeouts', {})),
        )

    @property
    def restore_from_snapshot(self) -> bool:
        return bool(self.version)

    @property
    def asset_resource_group(self) -> str:
        """Resource group holding the snapshots for the vault region."""
        region = self.vault_region or self.location
        return self.asset_resource_group_template.format(region=region)

    def client_names(self) -> List[str]:
        prefix = self.vm_templates.get(CLIENT, {}).get('name_prefix', 'C')
        return [f"{prefix}{i}" for i in range(1, self.num_clients + 1)]

    def vm_descriptors(self) -> List[VMDescriptor]:
        """
        Describe every VM of the lab in creation order: DC1, LS1, C1..Cn.

        Returns:
            List of VM descriptors
        """
        descriptors = []
        for role in (DOMAIN_CONTROLLER, LINUX_SERVER):
            template = self.vm_templates.get(role, {})
            descriptors.append(VMDescriptor(
                name=template['name'],
                role=role,
                os_type=template.get('os_type', 'windows'),
                size=template.get('size', 'Standard_B2ms'),
                image=template.get('image'),
                private_ip=template.get('private_ip'),
            ))

        # Clients always take a provider-assigned address.
        client = self.vm_templates.get(CLIENT, {})
        for name in self.client_names():
            descriptors.append(VMDescriptor(
                name=name,
                role=CLIENT,
                os_type=client.get('os_type', 'windows'),
                size=client.get('size', 'Standard_B2ms'),
                image=client.get('image'),
            ))
        return descriptors

    def dc_name(self) -> str:
        return self.vm_templates[DOMAIN_CONTROLLER]['name']

    def ls_name(self) -> str:
        return self.vm_templates[LINUX_SERVER]['name']
