"""Test cases of the auto-shutdown configurator."""

from adlab.shutdown import AutoShutdownConfigurator


def test_applies_to_every_vm(fake_az):
    names = ['DC1', 'LS1', 'C1', 'C2']

    configured = AutoShutdownConfigurator(fake_az, '1900', 'ops@example.com').apply(names)

    assert configured == names
    assert [c[1] for c in fake_az.calls_to('set_auto_shutdown')] == [
        (name, '1900', 'ops@example.com') for name in names
    ]


def test_disabled_without_time(fake_az):
    configurator = AutoShutdownConfigurator(fake_az, None, 'ops@example.com')

    assert not configurator.enabled
    assert configurator.apply(['DC1']) == []
    assert fake_az.calls == []


def test_reapplying_calls_again(fake_az):
    configurator = AutoShutdownConfigurator(fake_az, '0700')

    configurator.apply(['DC1'])
    configurator.apply(['DC1'])

    assert len(fake_az.calls_to('set_auto_shutdown')) == 2
