"""
Domain Configurator Module

Promotes the domain controller to a new forest, joins each client to the
domain and registers the Linux server in DNS.

Every restart is followed by readiness polling: the guest must answer a
trivial run-command before the next step is sent.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List

from . import scripts
from .errors import (
    AzureCLIError,
    AzureCLITimeout,
    DnsRecordError,
    GuestUnreachableAfterRestart,
)
from .models import LabConfig

logger = logging.getLogger(__name__)

# Domain controller states
DC_BASE = 'Base'
DC_ROLES_INSTALLED = 'RolesInstalled'
DC_RESTARTED = 'Restarted'
DC_FOREST_PROMOTED = 'ForestPromoted'
DC_RESTARTED_AFTER_PROMOTION = 'Restarted2'

# Client states
CLIENT_BASE = 'Base'
CLIENT_HOSTS_FILE_UPDATED = 'HostsFileUpdated'
CLIENT_DNS_POINTED_AT_DC = 'DNSPointedAtDC'
CLIENT_RESTARTED = 'Restarted'
CLIENT_DOMAIN_JOINED = 'DomainJoined+Restarted'
CLIENT_SYSVOL_POLICY_FIXED = 'SysvolPolicyFixed'


class DomainConfigurator:
    """Configure the directory service domain across the lab VMs."""

    def __init__(self, az, config: LabConfig, admin_password: str,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize the DomainConfigurator.

        Args:
            az: AzureCLI instance bound to the lab resource group
            config: Lab configuration
            admin_password: Generated administrator password, also used as
                the directory services restore mode password
            sleep: Sleep function used between readiness probes
            clock: Monotonic clock used for readiness deadlines
        """
        self.az = az
        self.config = config
        self.admin_password = admin_password
        self.sleep = sleep
        self.clock = clock
        self.timeouts = config.timeouts
        self.states: Dict[str, str] = {}

    def configure_domain_controller(self):
        """Install directory services on the domain controller and promote the forest."""
        dc = self.config.dc_name()
        self.states[dc] = DC_BASE

        print(f"Installing AD DS and DNS roles on {dc}...")
        self.az.run_script(dc, scripts.install_ad_roles())
        self.states[dc] = DC_ROLES_INSTALLED

        self.restart_and_wait(dc)
        self.states[dc] = DC_RESTARTED

        print(f"Promoting {dc} to forest root of {self.config.domain_fqdn}...")
        self.az.run_script(dc, scripts.promote_forest(
            self.config.domain_fqdn,
            self.config.domain_netbios,
            self.admin_password
        ))
        self.states[dc] = DC_FOREST_PROMOTED

        self.restart_and_wait(dc)
        self.states[dc] = DC_RESTARTED_AFTER_PROMOTION
        print(f"✅ Domain controller {dc} is ready")

    def configure_client(self, name: str):
        """
        Join one client VM to the domain.

        Args:
            name: Client VM name
        """
        cfg = self.config
        self.states[name] = CLIENT_BASE

        print(f"[{name}] Updating hosts file")
        self.az.run_script(name, scripts.update_hosts_file(cfg.dc_ip, cfg.dc_name(), cfg.domain_fqdn))
        self.states[name] = CLIENT_HOSTS_FILE_UPDATED

        print(f"[{name}] Pointing DNS at {cfg.dc_ip}")
        self.az.run_script(name, scripts.set_dns_server(cfg.dc_ip))
        self.states[name] = CLIENT_DNS_POINTED_AT_DC

        self.restart_and_wait(name)
        self.states[name] = CLIENT_RESTARTED

        print(f"[{name}] Joining domain {cfg.domain_fqdn}")
        self.az.run_script(name, scripts.join_domain(
            cfg.domain_fqdn,
            cfg.domain_netbios,
            cfg.admin_username,
            self.admin_password
        ))
        self.restart_and_wait(name)
        self.states[name] = CLIENT_DOMAIN_JOINED

        print(f"[{name}] Applying SYSVOL hardened path fix")
        self.az.run_script(name, scripts.fix_sysvol_policy())
        self.states[name] = CLIENT_SYSVOL_POLICY_FIXED
        print(f"✅ [{name}] Joined to {cfg.domain_fqdn}")

    def configure_clients(self, names: List[str]):
        """
        Join every client to the domain.

        Each client's steps run in order. With max_workers above one, clients
        are configured concurrently on a bounded pool; the first failure is
        raised once all submitted work has finished.

        Args:
            names: Client VM names in configuration order
        """
        workers = max(1, min(self.config.max_workers, len(names)))
        if workers == 1:
            for name in names:
                self.configure_client(name)
            return

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.configure_client, name) for name in names]
        for future in futures:
            future.result()

    def restart_and_wait(self, name: str):
        """Restart a VM and block until its guest answers remote commands."""
        print(f"[{name}] Restarting")
        self.az.restart_vm(name)
        self.wait_for_guest(name)

    def wait_for_guest(self, name: str):
        """
        Poll a VM with a trivial script until it responds.

        Raises:
            GuestUnreachableAfterRestart: If the guest does not answer in time
        """
        timeout = self.timeouts.restart
        if not self._poll_for_marker(name, scripts.readiness_probe(), scripts.READY_MARKER, timeout):
            raise GuestUnreachableAfterRestart(name, timeout)

    def _poll_for_marker(self, name: str, script: str, marker: str, timeout: float) -> bool:
        """
        Run a script on a VM until its output contains marker.

        Failed or timed-out calls count as a miss. The interval between
        attempts doubles after each miss, up to restart_poll_max_interval.

        Returns:
            True if the marker was seen before the timeout passed
        """
        deadline = self.clock() + timeout
        interval = self.timeouts.restart_poll_interval
        attempt = 0

        while True:
            attempt += 1
            remaining = deadline - self.clock()
            if remaining <= 0:
                return False

            try:
                output = self.az.run_script(name, script, timeout=remaining)
                if marker in output:
                    logger.debug("%s answered after %d attempt(s)", name, attempt)
                    return True
                logger.debug("%s attempt %d returned unexpected output", name, attempt)
            except (AzureCLIError, AzureCLITimeout) as e:
                logger.debug("%s attempt %d failed: %s", name, attempt, e)

            remaining = deadline - self.clock()
            if remaining <= 0:
                return False
            self.sleep(min(interval, remaining))
            interval = min(interval * 2, self.timeouts.restart_poll_max_interval)

    def add_linux_dns_record(self) -> bool:
        """
        Register the Linux server's static IP in the domain's DNS zone.

        The add call is bounded by the dns_record timeout. If it times out the
        record is checked directly, since the remote side can hang after the
        record has been applied. The abandoned run-command keeps the VM busy,
        so the check is retried until dns_verify seconds have passed.

        Returns:
            True once the record is confirmed or the add call succeeded

        Raises:
            DnsRecordError: If the call timed out and the record never appeared
        """
        cfg = self.config
        dc = cfg.dc_name()
        host = cfg.ls_name()

        print(f"Adding DNS A record {host}.{cfg.domain_fqdn} -> {cfg.ls_ip}")
        try:
            self.az.run_script(dc, scripts.add_dns_a_record(
                cfg.domain_fqdn,
                cfg.domain_netbios,
                cfg.admin_username,
                self.admin_password,
                host,
                cfg.ls_ip
            ), timeout=self.timeouts.dns_record)
            return True
        except AzureCLITimeout:
            print(f"⚠️  DNS record call did not return within {self.timeouts.dns_record:g}s, verifying...")

        found = self._poll_for_marker(
            dc,
            scripts.verify_dns_a_record(cfg.domain_fqdn, host, cfg.ls_ip),
            scripts.RECORD_FOUND_MARKER,
            self.timeouts.dns_verify
        )
        if not found:
            raise DnsRecordError(host, cfg.ls_ip)

        print(f"✅ DNS record {host} verified")
        return True
