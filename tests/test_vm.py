"""Test cases of the VM provisioner."""

import pytest

from adlab.errors import ConfigurationError
from adlab.models import VMDescriptor
from adlab.vm import VMProvisioner


def image_provisioner(az, lab_config):
    return VMProvisioner(az, lab_config.network, admin_username='labadmin', admin_password='Ab3dEf4gHj5k')


def test_fresh_image_with_static_ip(fake_az, lab_config):
    dc = lab_config.vm_descriptors()[0]

    image_provisioner(fake_az, lab_config).create(dc)

    (method, args, kwargs), = fake_az.calls
    assert method == 'create_vm_from_image'
    assert args == (
        'DC1', 'Win2019Datacenter', 'Standard_B2ms', 'windows', 'labadmin', 'Ab3dEf4gHj5k',
        'adlab-vnet', 'adlab-subnet', 'adlab-nsg'
    )
    assert kwargs == {'private_ip': '10.0.0.4'}


def test_fresh_image_client_has_no_static_ip(fake_az, lab_config):
    client = lab_config.vm_descriptors()[2]

    image_provisioner(fake_az, lab_config).create(client)

    assert fake_az.calls[0][2] == {'private_ip': None}


def test_snapshot_restore_path(fake_az, lab_config):
    """
    arrange: A provisioner restoring version 'v1' from the asset resource group.
    act: Create LS1.
    assert: The snapshot is looked up, cloned into a suffixed disk and attached.
    """
    provisioner = VMProvisioner(
        fake_az,
        lab_config.network,
        version='v1',
        snapshot_resource_group='adlab-assets-westus',
        suffix_factory=lambda: 'abcdefghij123456'
    )
    ls = lab_config.vm_descriptors()[1]

    created = provisioner.create(ls)

    assert [c[0] for c in fake_az.calls] == [
        'find_snapshot', 'create_disk_from_snapshot', 'create_vm_from_disk'
    ]
    assert fake_az.calls[0][1] == ('LS1-v1', 'adlab-assets-westus')
    assert fake_az.calls[1][1] == (
        'LS1-abcdefghij123456',
        '/subscriptions/sub/resourceGroups/adlab-assets-westus/snapshots/LS1-v1'
    )
    assert fake_az.calls[2][1] == (
        'LS1', 'LS1-abcdefghij123456', 'Standard_B1ms', 'linux',
        'adlab-vnet', 'adlab-subnet', 'adlab-nsg'
    )
    assert fake_az.calls[2][2] == {'private_ip': '10.0.0.5'}
    assert created.disk_name == 'LS1-abcdefghij123456'
    assert not fake_az.calls_to('create_vm_from_image')


def test_missing_fields_are_rejected(fake_az, lab_config):
    vm = VMDescriptor(name='C1', role='client', os_type='windows', size='')

    with pytest.raises(ConfigurationError, match="size, image"):
        image_provisioner(fake_az, lab_config).create(vm)

    assert fake_az.calls == []


def test_image_path_requires_credentials(fake_az, lab_config):
    with pytest.raises(ConfigurationError):
        VMProvisioner(fake_az, lab_config.network)


def test_snapshot_path_requires_resource_group(fake_az, lab_config):
    with pytest.raises(ConfigurationError):
        VMProvisioner(fake_az, lab_config.network, version='v1')
