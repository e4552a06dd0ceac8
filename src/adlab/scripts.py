"""
Guest Scripts Module

PowerShell script bodies executed on the Windows VMs through run-command.
"""

READY_MARKER = 'ADLAB-READY'
RECORD_FOUND_MARKER = 'ADLAB-RECORD-FOUND'

# Hardened UNC path entries that block group policy processing on freshly
# joined clients.
SYSVOL_HARDENED_PATHS = ('\\\\*\\SYSVOL', '\\\\*\\NETLOGON')
HARDENED_PATHS_KEY = 'HKLM:\\SOFTWARE\\Policies\\Microsoft\\Windows\\NetworkProvider\\HardenedPaths'


def ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def _credential_lines(netbios: str, username: str, password: str):
    account = ps_quote(f"{netbios}\\{username}")
    return [
        f"$password = ConvertTo-SecureString {ps_quote(password)} -AsPlainText -Force",
        f"$credential = New-Object System.Management.Automation.PSCredential({account}, $password)",
    ]


def readiness_probe() -> str:
    return f"Write-Output {ps_quote(READY_MARKER)}"


def install_ad_roles() -> str:
    return '\n'.join([
        "$ErrorActionPreference = 'Stop'",
        "Install-WindowsFeature -Name AD-Domain-Services,DNS -IncludeManagementTools | Out-String",
    ])


def promote_forest(domain_fqdn: str, netbios: str, safe_mode_password: str) -> str:
    return '\n'.join([
        "$ErrorActionPreference = 'Stop'",
        "Import-Module ADDSDeployment",
        f"$safeMode = ConvertTo-SecureString {ps_quote(safe_mode_password)} -AsPlainText -Force",
        "Install-ADDSForest `",
        f"    -DomainName {ps_quote(domain_fqdn)} `",
        f"    -DomainNetbiosName {ps_quote(netbios)} `",
        "    -SafeModeAdministratorPassword $safeMode `",
        "    -InstallDns `",
        "    -NoRebootOnCompletion `",
        "    -Force | Out-String",
    ])


def update_hosts_file(dc_ip: str, dc_name: str, domain_fqdn: str) -> str:
    entry = f"{dc_ip} {dc_name} {dc_name}.{domain_fqdn} {domain_fqdn}"
    return '\n'.join([
        "$ErrorActionPreference = 'Stop'",
        "$hosts = Join-Path $env:SystemRoot 'System32\\drivers\\etc\\hosts'",
        f"$entry = {ps_quote(entry)}",
        "if (-not (Select-String -Path $hosts -SimpleMatch $entry -Quiet)) {",
        "    Add-Content -Path $hosts -Value $entry",
        "}",
    ])


def set_dns_server(dc_ip: str) -> str:
    return '\n'.join([
        "$ErrorActionPreference = 'Stop'",
        "Get-NetAdapter | Where-Object { $_.Status -eq 'Up' } | ForEach-Object {",
        f"    Set-DnsClientServerAddress -InterfaceIndex $_.ifIndex -ServerAddresses {ps_quote(dc_ip)}",
        "}",
        "Clear-DnsClientCache",
    ])


def join_domain(domain_fqdn: str, netbios: str, username: str, password: str) -> str:
    return '\n'.join(
        ["$ErrorActionPreference = 'Stop'"]
        + _credential_lines(netbios, username, password)
        + [f"Add-Computer -DomainName {ps_quote(domain_fqdn)} -Credential $credential -Force"]
    )


def fix_sysvol_policy() -> str:
    lines = [
        "$ErrorActionPreference = 'Stop'",
        f"$key = {ps_quote(HARDENED_PATHS_KEY)}",
        "if (-not (Test-Path $key)) { New-Item -Path $key -Force | Out-Null }",
    ]
    for path in SYSVOL_HARDENED_PATHS:
        lines.append(
            f"Set-ItemProperty -Path $key -Name {ps_quote(path)} "
            f"-Value 'RequireMutualAuthentication=0, RequireIntegrity=0, RequirePrivacy=0'"
        )
    lines.append("gpupdate /force | Out-String")
    return '\n'.join(lines)


def add_dns_a_record(domain_fqdn: str, netbios: str, username: str, password: str,
                     host_name: str, ip_address: str) -> str:
    return '\n'.join(
        ["$ErrorActionPreference = 'Stop'"]
        + _credential_lines(netbios, username, password)
        + [
            "Invoke-Command -ComputerName localhost -Credential $credential -ScriptBlock {",
            "    param($zone, $name, $ip)",
            "    Add-DnsServerResourceRecordA -ZoneName $zone -Name $name -IPv4Address $ip",
            f"}} -ArgumentList {ps_quote(domain_fqdn)}, {ps_quote(host_name)}, {ps_quote(ip_address)}",
        ]
    )


def verify_dns_a_record(domain_fqdn: str, host_name: str, ip_address: str) -> str:
    return '\n'.join([
        f"$record = Get-DnsServerResourceRecord -ZoneName {ps_quote(domain_fqdn)} "
        f"-Name {ps_quote(host_name)} -RRType A -ErrorAction SilentlyContinue",
        f"if ($record | Where-Object {{ $_.RecordData.IPv4Address.IPAddressToString -eq {ps_quote(ip_address)} }}) {{",
        f"    Write-Output {ps_quote(RECORD_FOUND_MARKER)}",
        "}",
    ])
