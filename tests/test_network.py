"""Test cases of the network provisioner."""

import pytest

from adlab.errors import ConfigurationError
from adlab.network import NetworkProvisioner


def test_provision_creates_vnet_nsg_and_rules_in_order(fake_az, lab_config):
    """
    arrange: The default network plan and one allowed source.
    act: Provision the network.
    assert: VNet, NSG, then the SSH and RDP rules are created in that order.
    """
    rules = NetworkProvisioner(fake_az, lab_config.network, ['1.2.3.4/32']).provision()

    assert [c[0] for c in fake_az.calls] == [
        'create_vnet', 'create_nsg', 'create_nsg_rule', 'create_nsg_rule'
    ]
    assert fake_az.calls[0][1] == ('adlab-vnet', '10.0.0.0/16', 'adlab-subnet', '10.0.0.0/24')
    assert fake_az.calls[1][1] == ('adlab-nsg',)

    rule_calls = fake_az.calls_to('create_nsg_rule')
    assert rule_calls[0][1] == ('adlab-nsg', 'Allow-TCP-22', 1000, 'Tcp', 22, ['1.2.3.4/32'], '*')
    assert rule_calls[1][1] == ('adlab-nsg', 'Allow-TCP-3389', 1010, 'Tcp', 3389, ['1.2.3.4/32'], '*')
    assert [r.port for r in rules] == [22, 3389]


def test_every_rule_gets_all_sources(fake_az, lab_config):
    sources = ['1.2.3.4/32', '10.10.0.0/16']

    NetworkProvisioner(fake_az, lab_config.network, sources).provision()

    for call in fake_az.calls_to('create_nsg_rule'):
        assert call[1][5] == sources


def test_mismatched_arrays_create_nothing(fake_az, lab_config):
    lab_config.network.priorities = [1000]

    with pytest.raises(ConfigurationError):
        NetworkProvisioner(fake_az, lab_config.network, ['1.2.3.4/32']).provision()

    assert fake_az.calls == []
