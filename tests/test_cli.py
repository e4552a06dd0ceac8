"""Test cases of the command line interface."""

import pytest

from adlab.cli import AdLabCLI, main
from adlab.errors import AzureCLIError


@pytest.fixture
def patched_az(monkeypatch, fake_az):
    """Route every AzureCLI the orchestrator creates to the recording fake."""
    created = []

    def factory(resource_group, location, command_timeout):
        created.append((resource_group, location, command_timeout))
        return fake_az

    monkeypatch.setattr("adlab.orchestrator.AzureCLI", factory)
    fake_az.created = created
    return fake_az


def run(*args):
    return AdLabCLI().run(list(args))


def test_full_run_without_prompt(patched_az, tmp_path, capsys):
    creds = tmp_path / 'creds.txt'

    status = run('-g', 'rg1', '-n', '2', '-s', '1.2.3.4/32', '-y', '--credentials-file', str(creds))

    assert status == 0
    assert patched_az.created == [('rg1', 'westus', 1800)]
    assert len(patched_az.calls_to('create_vm_from_image')) == 4
    assert creds.exists()
    out = capsys.readouterr().out
    assert "Deployment completed successfully" in out
    assert "Admin Username: labadmin" in out


def test_powershell_style_flags(patched_az, tmp_path):
    status = run(
        '-ResourceGroup', 'rg1',
        '-AllowedSources', '1.2.3.4/32',
        '-Location', 'eastus',
        '-NumClients', '1',
        '-AutoShutdownTime', '2300',
        '-AutoShutdownEmail', 'ops@example.com',
        '-NoPrompt',
        '--credentials-file', str(tmp_path / 'creds.txt'),
    )

    assert status == 0
    assert patched_az.created[0][1] == 'eastus'
    assert [c[1] for c in patched_az.calls_to('set_auto_shutdown')] == [
        ('DC1', '2300', 'ops@example.com'),
        ('LS1', '2300', 'ops@example.com'),
        ('C1', '2300', 'ops@example.com'),
    ]


@pytest.mark.parametrize("args", [
    ('-g', 'rg1', '-s', '1.2.3.4/32', '-n', '0', '-y'),
    ('-g', 'rg1', '-s', '1.2.3.4/32', '-n', '17', '-y'),
    ('-g', 'rg1', '-s', '', '-y'),
    ('-g', 'rg1', '-s', ',', '-y'),
    ('-g', 'rg1', '-s', 'nonsense', '-y'),
    ('-g', 'rg1', '-s', '1.2.3.4/32', '-AutoShutdownTime', '2460', '-y'),
    ('-s', '1.2.3.4/32', '-y'),
    ('-g', 'rg1', '-y'),
])
def test_invalid_input_aborts_before_any_call(patched_az, capsys, args):
    """
    arrange: Parameters breaking one validation rule.
    act: Run the CLI.
    assert: Exit status 1, nothing is created in Azure.
    """
    status = run(*args)

    assert status == 1
    assert patched_az.calls == []
    assert "Validation failed" in capsys.readouterr().out


def test_dry_run(patched_az, capsys):
    status = run('-g', 'rg1', '-s', '1.2.3.4/32', '-n', '3', '--dry-run')

    assert status == 0
    assert patched_az.calls == []
    assert "Dry run completed" in capsys.readouterr().out


def test_prompt_declined(patched_az, monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda prompt: "no")

    status = run('-g', 'rg1', '-s', '1.2.3.4/32')

    assert status == 1
    assert patched_az.calls == []
    assert "Aborted." in capsys.readouterr().out


def test_prompt_accepted(patched_az, monkeypatch, tmp_path):
    prompts = []

    def answer(prompt):
        prompts.append(prompt)
        return "yes"

    monkeypatch.setattr("builtins.input", answer)

    status = run('-g', 'rg1', '-s', '1.2.3.4/32', '--credentials-file', str(tmp_path / 'c.txt'))

    assert status == 0
    assert "create 3 VMs in resource group 'rg1'" in prompts[0]


def test_azure_cli_missing(patched_az, monkeypatch, capsys):
    monkeypatch.setattr(patched_az, "is_available", lambda: False)

    status = run('-g', 'rg1', '-s', '1.2.3.4/32', '-y')

    assert status == 1
    assert patched_az.calls == []
    assert "Azure CLI is not installed" in capsys.readouterr().out


def test_external_failure_exits_non_zero(patched_az, monkeypatch, tmp_path, capsys):
    def fail(*args, **kwargs):
        raise AzureCLIError(['vm', 'create'], 1, 'SkuNotAvailable')

    monkeypatch.setattr(patched_az, "create_vm_from_image", fail)

    creds = tmp_path / 'creds.txt'

    status = run('-g', 'rg1', '-s', '1.2.3.4/32', '-y', '--credentials-file', str(creds))

    assert status == 1
    assert creds.exists()
    err = capsys.readouterr().err
    assert "SkuNotAvailable" in err
    assert "remain in the resource group" in err


def test_main_exits_with_status(patched_az, monkeypatch):
    monkeypatch.setattr("sys.argv", ['adlab', '-g', 'rg1', '-s', '1.2.3.4/32', '-n', '99', '-y'])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 1
