"""
Auto-Shutdown Configurator Module

Applies a daily shutdown schedule to every lab VM.
"""

from typing import List, Optional


class AutoShutdownConfigurator:
    """Apply the daily auto-shutdown policy."""

    def __init__(self, az, time: Optional[str], email: Optional[str] = None):
        """
        Initialize the AutoShutdownConfigurator.

        Args:
            az: AzureCLI instance bound to the lab resource group
            time: Daily shutdown time in UTC, HHMM; None disables the policy
            email: Optional notification address
        """
        self.az = az
        self.time = time
        self.email = email

    @property
    def enabled(self) -> bool:
        return bool(self.time)

    def apply(self, vm_names: List[str]) -> List[str]:
        """
        Apply the schedule to each VM. Re-applying replaces the prior schedule.

        Args:
            vm_names: Names of the VMs to configure

        Returns:
            Names of the VMs the schedule was applied to
        """
        if not self.enabled:
            return []

        notify = f", notifying {self.email}" if self.email else ""
        print(f"Configuring auto-shutdown at {self.time} UTC{notify}")

        configured = []
        for name in vm_names:
            self.az.set_auto_shutdown(name, self.time, self.email)
            configured.append(name)
        return configured
