"""Shared fixtures for adlab tests."""

import pytest

from adlab import scripts
from adlab.config_loader import ConfigLoader
from adlab.models import LabConfig


class FakeAzureCLI:
    """Records every call instead of running az."""

    def __init__(self, script_handler=None):
        self.calls = []
        self.script_handler = script_handler

    def _record(self, method, *args, **kwargs):
        self.calls.append((method, args, kwargs))

    def calls_to(self, method):
        return [c for c in self.calls if c[0] == method]

    def is_available(self):
        return True

    def create_resource_group(self):
        self._record('create_resource_group')

    def create_vnet(self, *args, **kwargs):
        self._record('create_vnet', *args, **kwargs)

    def create_nsg(self, *args, **kwargs):
        self._record('create_nsg', *args, **kwargs)

    def create_nsg_rule(self, *args, **kwargs):
        self._record('create_nsg_rule', *args, **kwargs)

    def create_vm_from_image(self, *args, **kwargs):
        self._record('create_vm_from_image', *args, **kwargs)

    def find_snapshot(self, snapshot_name, snapshot_resource_group):
        self._record('find_snapshot', snapshot_name, snapshot_resource_group)
        return f"/subscriptions/sub/resourceGroups/{snapshot_resource_group}/snapshots/{snapshot_name}"

    def create_disk_from_snapshot(self, *args, **kwargs):
        self._record('create_disk_from_snapshot', *args, **kwargs)

    def create_vm_from_disk(self, *args, **kwargs):
        self._record('create_vm_from_disk', *args, **kwargs)

    def restart_vm(self, name):
        self._record('restart_vm', name)

    def set_auto_shutdown(self, *args, **kwargs):
        self._record('set_auto_shutdown', *args, **kwargs)

    def run_script(self, name, script, timeout=None):
        self._record('run_script', name, script, timeout=timeout)
        if self.script_handler:
            return self.script_handler(name, script, timeout)
        if script == scripts.readiness_probe():
            return scripts.READY_MARKER
        return ''


@pytest.fixture
def fake_az():
    return FakeAzureCLI()


@pytest.fixture
def make_az():
    """Build a fake whose run_script answers through a custom handler."""
    return FakeAzureCLI


@pytest.fixture
def base_parameters():
    return {
        'resource_group': 'rg1',
        'num_clients': 2,
        'allowed_sources': ['1.2.3.4/32'],
    }


@pytest.fixture
def config_dict(base_parameters):
    return ConfigLoader().load(base_parameters)


@pytest.fixture
def lab_config(config_dict):
    return LabConfig.from_dict(config_dict)


@pytest.fixture
def no_sleep():
    """Sleep and clock pair that advances a virtual clock instead of waiting."""
    state = {'now': 0.0}

    def sleep(seconds):
        state['now'] += seconds

    def clock():
        return state['now']

    return {'sleep': sleep, 'clock': clock, 'state': state}
