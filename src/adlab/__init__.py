"""
adlab - Ephemeral Azure Active Directory Test Lab

Provisions a resource group, network, domain controller, Linux server and
Windows clients in Azure, and joins the clients to a new domain.
"""

__version__ = "1.0.0"
__author__ = "adlab contributors"
__license__ = "GPL-3.0"

from .config_loader import ConfigLoader
from .validator import ConfigValidator
from .models import LabConfig
from .orchestrator import Orchestrator

__all__ = [
    "ConfigLoader",
    "ConfigValidator",
    "LabConfig",
    "Orchestrator",
]
