"""
Azure CLI Module

Thin wrapper around the ``az`` command line. Every method blocks until the
command completes and raises on failure.
"""

import json
import logging
import os
import subprocess
from typing import Any, Dict, List, Optional

from .errors import AzureCLIError, AzureCLITimeout

logger = logging.getLogger(__name__)

SECRET_FLAGS = {'--admin-password'}


def _mask_secrets(args: List[str]) -> List[str]:
    """Replace the value following any secret flag with a placeholder."""
    masked = list(args)
    for i, arg in enumerate(masked[:-1]):
        if arg in SECRET_FLAGS:
            masked[i + 1] = '********'
    return masked


class AzureCLI:
    """Run Azure CLI commands for a single resource group."""

    def __init__(self, resource_group: str, location: str, command_timeout: float = 1800):
        """
        Initialize the AzureCLI wrapper.

        Args:
            resource_group: Resource group all lab resources are created in
            location: Azure region for new resources
            command_timeout: Default timeout in seconds for a single command
        """
        self.resource_group = resource_group
        self.location = location
        self.command_timeout = command_timeout

    def is_available(self) -> bool:
        """Check if Azure CLI is installed."""
        # On Windows, try both 'az' and 'az.cmd'
        commands = ['az', 'az.cmd'] if os.name == 'nt' else ['az']

        for cmd in commands:
            try:
                result = subprocess.run(
                    [cmd, '--version'],
                    capture_output=True,
                    text=True,
                    timeout=30,
                    shell=(os.name == 'nt')
                )
                if result.returncode == 0:
                    return True
            except (subprocess.TimeoutExpired, FileNotFoundError):
                continue

        return False

    def _run_az_command(self, args: List[str], timeout: Optional[float] = None) -> str:
        """
        Run an Azure CLI command.

        Args:
            args: Command arguments, without the leading 'az'
            timeout: Timeout in seconds, defaults to command_timeout

        Returns:
            Standard output of the command

        Raises:
            AzureCLIError: If the command exits with a non-zero status
            AzureCLITimeout: If the command does not finish in time
        """
        # On Windows, use 'az.cmd' with shell=True
        if os.name == 'nt':
            cmd = ['az.cmd'] + args
        else:
            cmd = ['az'] + args

        timeout = self.command_timeout if timeout is None else timeout
        logger.debug("Running: az %s", ' '.join(_mask_secrets(args)))

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                shell=(os.name == 'nt')
            )
        except subprocess.TimeoutExpired:
            raise AzureCLITimeout(_mask_secrets(args), timeout)

        if result.returncode != 0:
            raise AzureCLIError(_mask_secrets(args), result.returncode, result.stderr)

        return result.stdout

    def _run_az_json(self, args: List[str], timeout: Optional[float] = None) -> Any:
        """Run an Azure CLI command and parse its JSON output."""
        output = self._run_az_command(args + ['--output', 'json'], timeout=timeout)
        if not output.strip():
            return None
        return json.loads(output)

    def create_resource_group(self) -> Dict[str, Any]:
        """Create the lab resource group."""
        return self._run_az_json([
            'group', 'create',
            '--name', self.resource_group,
            '--location', self.location
        ])

    def create_vnet(self, vnet_name: str, address_space: str,
                    subnet_name: str, subnet_prefix: str) -> Dict[str, Any]:
        """Create a virtual network with a single subnet."""
        return self._run_az_json([
            'network', 'vnet', 'create',
            '--resource-group', self.resource_group,
            '--location', self.location,
            '--name', vnet_name,
            '--address-prefixes', address_space,
            '--subnet-name', subnet_name,
            '--subnet-prefixes', subnet_prefix
        ])

    def create_nsg(self, nsg_name: str) -> Dict[str, Any]:
        """Create a network security group."""
        return self._run_az_json([
            'network', 'nsg', 'create',
            '--resource-group', self.resource_group,
            '--location', self.location,
            '--name', nsg_name
        ])

    def create_nsg_rule(self, nsg_name: str, rule_name: str, priority: int, protocol: str,
                        port: int, sources: List[str], destination: str = '*') -> Dict[str, Any]:
        """Create one inbound allow rule."""
        return self._run_az_json([
            'network', 'nsg', 'rule', 'create',
            '--resource-group', self.resource_group,
            '--nsg-name', nsg_name,
            '--name', rule_name,
            '--priority', str(priority),
            '--direction', 'Inbound',
            '--access', 'Allow',
            '--protocol', protocol,
            '--destination-port-ranges', str(port),
            '--destination-address-prefixes', destination,
            '--source-address-prefixes', *sources
        ])

    def _network_args(self, vnet_name: str, subnet_name: str, nsg_name: str,
                      private_ip: Optional[str]) -> List[str]:
        args = [
            '--vnet-name', vnet_name,
            '--subnet', subnet_name,
            '--nsg', nsg_name,
            '--public-ip-sku', 'Standard'
        ]
        if private_ip:
            args += ['--private-ip-address', private_ip]
        return args

    def create_vm_from_image(self, name: str, image: str, size: str, os_type: str,
                             admin_username: str, admin_password: str,
                             vnet_name: str, subnet_name: str, nsg_name: str,
                             private_ip: Optional[str] = None) -> Dict[str, Any]:
        """Create a VM from a marketplace image with a password credential."""
        args = [
            'vm', 'create',
            '--resource-group', self.resource_group,
            '--location', self.location,
            '--name', name,
            '--image', image,
            '--size', size,
            '--admin-username', admin_username,
            '--admin-password', admin_password
        ]
        if os_type.lower() == 'linux':
            args += ['--authentication-type', 'password']
        args += self._network_args(vnet_name, subnet_name, nsg_name, private_ip)
        return self._run_az_json(args)

    def find_snapshot(self, snapshot_name: str, snapshot_resource_group: str) -> str:
        """
        Look up a snapshot by name.

        Returns:
            The snapshot resource ID
        """
        output = self._run_az_command([
            'snapshot', 'show',
            '--resource-group', snapshot_resource_group,
            '--name', snapshot_name,
            '--query', 'id',
            '--output', 'tsv'
        ])
        return output.strip()

    def create_disk_from_snapshot(self, disk_name: str, snapshot_id: str) -> Dict[str, Any]:
        """Create a managed disk in the lab resource group from a snapshot."""
        return self._run_az_json([
            'disk', 'create',
            '--resource-group', self.resource_group,
            '--location', self.location,
            '--name', disk_name,
            '--source', snapshot_id
        ])

    def create_vm_from_disk(self, name: str, disk_name: str, size: str, os_type: str,
                            vnet_name: str, subnet_name: str, nsg_name: str,
                            private_ip: Optional[str] = None) -> Dict[str, Any]:
        """Create a VM by attaching an existing OS disk."""
        args = [
            'vm', 'create',
            '--resource-group', self.resource_group,
            '--location', self.location,
            '--name', name,
            '--attach-os-disk', disk_name,
            '--os-type', os_type.lower(),
            '--size', size
        ]
        args += self._network_args(vnet_name, subnet_name, nsg_name, private_ip)
        return self._run_az_json(args)

    def restart_vm(self, name: str):
        """Restart a VM. Returns once Azure reports the restart operation done."""
        self._run_az_command([
            'vm', 'restart',
            '--resource-group', self.resource_group,
            '--name', name
        ])

    def set_auto_shutdown(self, name: str, time: str, email: Optional[str] = None) -> Dict[str, Any]:
        """Apply a daily UTC shutdown schedule, replacing any existing one."""
        args = [
            'vm', 'auto-shutdown',
            '--resource-group', self.resource_group,
            '--name', name,
            '--time', time
        ]
        if email:
            args += ['--email', email]
        return self._run_az_json(args)

    def run_script(self, name: str, script: str, timeout: Optional[float] = None) -> str:
        """
        Run a PowerShell script on a Windows VM through run-command.

        Args:
            name: VM name
            script: PowerShell script text
            timeout: Timeout in seconds, defaults to command_timeout

        Returns:
            Standard output of the script
        """
        result = self._run_az_json([
            'vm', 'run-command', 'invoke',
            '--resource-group', self.resource_group,
            '--name', name,
            '--command-id', 'RunPowerShellScript',
            '--scripts', script
        ], timeout=timeout)

        stdout = []
        for item in (result or {}).get('value', []):
            code = item.get('code', '')
            message = item.get('message') or ''
            if 'StdErr' in code:
                if message.strip():
                    logger.warning("run-command on %s wrote to stderr: %s", name, message.strip())
            else:
                stdout.append(message)

        return '\n'.join(stdout)
