"""
Network Provisioner Module

Creates the lab virtual network, subnet and network security group.
"""

from typing import List

from .models import NetworkPlan, NsgRule


class NetworkProvisioner:
    """Create the shared network the lab VMs attach to."""

    def __init__(self, az, plan: NetworkPlan, allowed_sources: List[str]):
        """
        Initialize the NetworkProvisioner.

        Args:
            az: AzureCLI instance bound to the lab resource group
            plan: Network layout
            allowed_sources: Source CIDRs allowed through every inbound rule
        """
        self.az = az
        self.plan = plan
        self.allowed_sources = allowed_sources

    def provision(self) -> List[NsgRule]:
        """
        Create the VNet, subnet, NSG and its inbound rules.

        Rules are expanded before anything is created, so mismatched rule
        arrays abort without touching Azure.

        Returns:
            The rules that were created, in creation order
        """
        rules = self.plan.build_rules(self.allowed_sources)

        print(f"Creating virtual network: {self.plan.vnet_name} ({self.plan.address_space})")
        self.az.create_vnet(
            self.plan.vnet_name,
            self.plan.address_space,
            self.plan.subnet_name,
            self.plan.subnet_prefix
        )

        print(f"Creating network security group: {self.plan.nsg_name}")
        self.az.create_nsg(self.plan.nsg_name)

        for rule in rules:
            print(f"  Adding rule {rule.name} (priority {rule.priority})")
            self.az.create_nsg_rule(
                self.plan.nsg_name,
                rule.name,
                rule.priority,
                rule.protocol,
                rule.port,
                rule.sources,
                rule.destination
            )

        return rules
