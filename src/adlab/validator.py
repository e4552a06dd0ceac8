"""
Configuration Validator Module

Validates the merged lab configuration against the schema and performs
semantic validation before any Azure resource is touched.
"""

import ipaddress
import re
from pathlib import Path
from typing import Dict, Any, List, Tuple
import yaml
from jsonschema import Draft7Validator

from .config_loader import CONFIG_DIR
from .credentials import MAX_PASSWORD_LENGTH

SCHEMA_PATH = CONFIG_DIR / 'lab-config.schema.yaml'

SHUTDOWN_TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-3])[0-5][0-9]$')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

MIN_CLIENTS = 1
MAX_CLIENTS = 16
# Azure rejects Windows admin passwords shorter than 12 characters
MIN_PASSWORD_LENGTH = 12


class ConfigValidator:
    """Validate lab configuration against schema and business rules."""

    def __init__(self, schema_path: str = None):
        """
        Initialize the ConfigValidator.

        Args:
            schema_path: Path to the schema file, defaults to the packaged schema
        """
        self.schema_path = Path(schema_path) if schema_path else SCHEMA_PATH
        self.schema = self._load_schema()
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def _load_schema(self) -> Dict[str, Any]:
        """Load the JSON schema from file."""
        if not self.schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {self.schema_path}")

        with open(self.schema_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)

    def validate(self, config: Dict[str, Any]) -> Tuple[bool, List[str], List[str]]:
        """
        Validate configuration against schema and business rules.

        Args:
            config: Configuration dictionary to validate

        Returns:
            Tuple of (is_valid, errors, warnings)
        """
        self.errors = []
        self.warnings = []

        # Required run parameters are reported in plain terms first
        self._validate_parameters(config)
        if self.errors:
            return False, self.errors, self.warnings

        # Schema validation
        schema_errors = sorted(
            Draft7Validator(self.schema).iter_errors(config),
            key=lambda e: [str(p) for p in e.path],
        )
        for error in schema_errors:
            location = '.'.join(str(p) for p in error.path) or '<root>'
            self.errors.append(f"Schema validation error at {location}: {error.message}")
        if self.errors:
            return False, self.errors, self.warnings

        # Semantic validation
        self._validate_allowed_sources(config)
        self._validate_inbound_rules(config)
        self._validate_network(config)
        self._validate_ip_addresses(config)
        self._validate_credentials(config)
        self._validate_auto_shutdown(config)

        is_valid = len(self.errors) == 0
        return is_valid, self.errors, self.warnings

    def _validate_parameters(self, config: Dict[str, Any]):
        """Validate the mandatory run parameters."""
        resource_group = config.get('resource_group')
        if not isinstance(resource_group, str) or not resource_group.strip():
            self.errors.append("A resource group name is required (-ResourceGroup)")

        sources = config.get('allowed_sources')
        if not sources:
            self.errors.append("At least one allowed source CIDR is required (-AllowedSources)")

        num_clients = config.get('num_clients', MIN_CLIENTS)
        if not isinstance(num_clients, int) or isinstance(num_clients, bool) \
                or not MIN_CLIENTS <= num_clients <= MAX_CLIENTS:
            self.errors.append(
                f"Number of clients must be between {MIN_CLIENTS} and {MAX_CLIENTS}, "
                f"got {num_clients}"
            )

        shutdown_time = (config.get('auto_shutdown') or {}).get('time')
        if shutdown_time is not None and not SHUTDOWN_TIME_PATTERN.match(str(shutdown_time)):
            self.errors.append(
                f"Invalid auto-shutdown time '{shutdown_time}', expected HHMM in 24-hour format"
            )

    def _validate_allowed_sources(self, config: Dict[str, Any]):
        """Validate every allowed source is an address or CIDR block."""
        for source in config.get('allowed_sources', []):
            try:
                ipaddress.ip_network(source, strict=False)
            except ValueError:
                self.errors.append(f"Invalid allowed source '{source}', expected a CIDR block")

    def _validate_inbound_rules(self, config: Dict[str, Any]):
        """Validate the parallel inbound rule arrays."""
        rules = config['network']['inbound_rules']
        ports = rules.get('ports', [])
        priorities = rules.get('priorities', [])
        protocols = rules.get('protocols', [])

        if not len(ports) == len(priorities) == len(protocols):
            self.errors.append(
                f"Inbound rule arrays differ in length: {len(ports)} ports, "
                f"{len(priorities)} priorities, {len(protocols)} protocols"
            )

        duplicates = sorted({p for p in priorities if priorities.count(p) > 1})
        if duplicates:
            self.errors.append(
                f"Duplicate NSG rule priorities: {', '.join(str(p) for p in duplicates)}"
            )

    def _validate_network(self, config: Dict[str, Any]):
        """Validate the subnet lies within the VNet."""
        network = config['network']
        vnet_range = network.get('address_space', '')
        subnet_range = network.get('subnet_prefix', '')

        try:
            vnet = ipaddress.ip_network(vnet_range, strict=False)
        except ValueError:
            self.errors.append(f"Invalid VNet address space: {vnet_range}")
            return
        try:
            subnet = ipaddress.ip_network(subnet_range, strict=False)
        except ValueError:
            self.errors.append(f"Invalid subnet prefix: {subnet_range}")
            return

        if subnet.version != vnet.version or not subnet.subnet_of(vnet):
            self.errors.append(
                f"Subnet range {subnet_range} is not within VNet range {vnet_range}"
            )

    def _validate_ip_addresses(self, config: Dict[str, Any]):
        """Validate the static IP assignments of the domain controller and Linux server."""
        vms = config['virtual_machines']
        subnet_range = config['network'].get('subnet_prefix', '')
        used_ips = {}

        for role in ('domain_controller', 'linux_server'):
            vm = vms[role]
            private_ip = vm.get('private_ip')
            try:
                ip_addr = ipaddress.ip_address(private_ip)
            except ValueError:
                self.errors.append(f"Invalid private IP '{private_ip}' for VM '{vm.get('name')}'")
                continue

            if private_ip in used_ips:
                self.errors.append(
                    f"Duplicate IP address {private_ip} for '{used_ips[private_ip]}' "
                    f"and '{vm.get('name')}'"
                )
            used_ips[private_ip] = vm.get('name')

            if not self._is_ip_in_subnet(ip_addr, subnet_range):
                self.errors.append(
                    f"IP {private_ip} for VM '{vm.get('name')}' "
                    f"is not in subnet range {subnet_range}"
                )

        dc_name = vms['domain_controller'].get('name')
        ls_name = vms['linux_server'].get('name')
        if dc_name == ls_name:
            self.errors.append(f"Domain controller and Linux server share the name '{dc_name}'")

    def _validate_credentials(self, config: Dict[str, Any]):
        """Validate the generated password length."""
        length = config.get('credentials', {}).get('password_length', 12)
        if not MIN_PASSWORD_LENGTH <= length <= MAX_PASSWORD_LENGTH:
            self.errors.append(
                f"Password length must be between {MIN_PASSWORD_LENGTH} and "
                f"{MAX_PASSWORD_LENGTH}, got {length}"
            )

    def _validate_auto_shutdown(self, config: Dict[str, Any]):
        """Validate the optional auto-shutdown settings."""
        auto_shutdown = config.get('auto_shutdown') or {}
        email = auto_shutdown.get('email')
        if not email:
            return

        if not auto_shutdown.get('time'):
            self.warnings.append(
                "Auto-shutdown email is ignored because no auto-shutdown time was given"
            )
        if not EMAIL_PATTERN.match(email):
            self.warnings.append(f"Auto-shutdown email '{email}' does not look like an address")

    def _is_ip_in_subnet(self, ip_addr, subnet_cidr: str) -> bool:
        """Check if IP address is within subnet CIDR."""
        try:
            subnet = ipaddress.ip_network(subnet_cidr, strict=False)
        except ValueError:
            return False
        return ip_addr.version == subnet.version and ip_addr in subnet

    def get_errors(self) -> List[str]:
        """Get validation errors."""
        return self.errors
