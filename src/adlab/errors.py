"""
Errors Module

Exception types raised while provisioning a lab environment.
"""

from typing import List


class AdLabError(Exception):
    """Base class for all adlab errors."""


class ConfigurationError(AdLabError):
    """Raised when the lab configuration cannot be turned into resources."""


class AzureCLIError(AdLabError):
    """Raised when an Azure CLI command exits with a non-zero status."""

    def __init__(self, command: List[str], returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"'az {' '.join(command[:3])}' failed with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr[:500]}"
        super().__init__(message)


class AzureCLITimeout(AdLabError):
    """Raised when an Azure CLI command does not finish within its timeout."""

    def __init__(self, command: List[str], timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(
            f"'az {' '.join(command[:3])}' did not complete within {timeout:g}s"
        )


class GuestUnreachableAfterRestart(AdLabError):
    """Raised when a restarted VM never answers a remote command."""

    def __init__(self, vm_name: str, timeout: float):
        self.vm_name = vm_name
        self.timeout = timeout
        super().__init__(
            f"VM '{vm_name}' did not become reachable within {timeout:g}s after restart"
        )


class DnsRecordError(AdLabError):
    """Raised when a DNS A record cannot be confirmed on the domain controller."""

    def __init__(self, name: str, ip_address: str):
        self.name = name
        self.ip_address = ip_address
        super().__init__(
            f"DNS A record '{name}' -> {ip_address} was not found on the domain controller"
        )
