"""
Command Line Interface Module

Provides the adlab command that provisions an Azure AD test lab.
"""

import sys
import argparse
import logging
from typing import Optional

from .config_loader import ConfigLoader, parameters_from_args
from .validator import ConfigValidator
from .models import LabConfig
from .orchestrator import Orchestrator


class AdLabCLI:
    """Command-line interface for adlab."""

    def __init__(self):
        """Initialize the CLI."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser."""
        from . import __version__

        parser = argparse.ArgumentParser(
            prog='adlab',
            description='adlab - Ephemeral Azure Active Directory test lab',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            allow_abbrev=False,
            epilog="""
Examples:
  # Domain controller, Linux server and two clients reachable from one address
  adlab -g rg1 -n 2 -s 1.2.3.4/32

  # Shut everything down at 19:00 UTC, no confirmation prompt
  adlab -g rg1 -s 1.2.3.4/32 -AutoShutdownTime 1900 -AutoShutdownEmail me@example.com -y

  # Restore every VM from the 'v1' snapshots
  adlab -g rg1 -s 1.2.3.4/32 -v v1 -VaultRegion eastus

  # Show what would be created
  adlab -g rg1 -s 1.2.3.4/32 --dry-run
            """
        )

        parser.add_argument(
            '-g', '-ResourceGroup',
            dest='resource_group',
            help='Resource group to create the lab in (required)'
        )
        parser.add_argument(
            '-s', '-AllowedSources',
            dest='allowed_sources',
            help='Comma separated CIDRs allowed to reach SSH and RDP (required)'
        )
        parser.add_argument(
            '-l', '-Location',
            dest='location',
            help='Azure region (default: westus)'
        )
        parser.add_argument(
            '-n', '-NumClients',
            dest='num_clients',
            type=int,
            help='Number of Windows clients, 1 to 16 (default: 1)'
        )
        parser.add_argument(
            '-AutoShutdownTime',
            dest='auto_shutdown_time',
            metavar='HHMM',
            help='Daily auto-shutdown time in UTC'
        )
        parser.add_argument(
            '-AutoShutdownEmail',
            dest='auto_shutdown_email',
            help='Email notified before auto-shutdown'
        )
        parser.add_argument(
            '-v', '-Version',
            dest='version',
            help='Restore every VM from snapshots tagged with this version'
        )
        parser.add_argument(
            '-VaultRegion',
            dest='vault_region',
            help='Region whose asset resource group holds the snapshots (default: --location)'
        )
        parser.add_argument(
            '-y', '-NoPrompt',
            dest='no_prompt',
            action='store_true',
            help='Skip the confirmation prompt'
        )
        parser.add_argument(
            '--config', '-c',
            help='YAML file overriding the default topology'
        )
        parser.add_argument(
            '--credentials-file',
            help='Where to write the generated credentials (default: ./<resource group>-credentials.txt)'
        )
        parser.add_argument(
            '--parallel',
            type=int,
            help='Number of clients joined to the domain concurrently (default: 1)'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Validate and print the plan without calling Azure'
        )
        parser.add_argument(
            '--verbose',
            action='store_true',
            help='Enable verbose output'
        )
        parser.add_argument(
            '--version-info',
            action='version',
            version=f'%(prog)s {__version__}'
        )

        return parser

    def run(self, args: Optional[list] = None) -> int:
        """
        Run the CLI with the given arguments.

        Args:
            args: Command-line arguments (defaults to sys.argv[1:])

        Returns:
            Process exit status
        """
        parsed_args = self.parser.parse_args(args)

        logging.basicConfig(
            level=logging.DEBUG if parsed_args.verbose else logging.WARNING,
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )

        try:
            return self._deploy(parsed_args)
        except KeyboardInterrupt:
            print("\n❌ Interrupted", file=sys.stderr)
            return 130
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            print(
                "Resources created so far remain in the resource group; "
                "delete it to clean up.",
                file=sys.stderr
            )
            if parsed_args.verbose:
                import traceback
                traceback.print_exc()
            return 1

    def _deploy(self, args) -> int:
        """Validate the parameters and provision the lab."""
        loader = ConfigLoader(args.config)
        config = loader.load(parameters_from_args(args))

        print("Validating parameters...")
        validator = ConfigValidator()
        is_valid, errors, warnings = validator.validate(config)

        if warnings:
            print("\nWarnings:")
            for warning in warnings:
                print(f"  ⚠️  {warning}")

        if not is_valid:
            print("\nValidation failed:")
            for error in errors:
                print(f"  ❌ {error}")
            return 1

        print("✅ Parameters are valid")

        lab_config = LabConfig.from_dict(config)
        orchestrator = Orchestrator(lab_config, credentials_path=args.credentials_file)

        if args.dry_run:
            orchestrator.print_plan()
            print("\n✅ Dry run completed successfully")
            return 0

        if not orchestrator.az.is_available():
            print("❌ Azure CLI is not installed or not in PATH")
            print("   Install from: https://docs.microsoft.com/en-us/cli/azure/install-azure-cli")
            return 1

        if not args.no_prompt:
            orchestrator.print_plan()
            response = input(
                f"\nThis will create {len(orchestrator.plan())} VMs in resource group "
                f"'{lab_config.resource_group}'.\n"
                f"Continue? (yes/no): "
            )
            if response.strip().lower() not in ('y', 'yes'):
                print("Aborted.")
                return 1

        orchestrator.deploy()

        print("\n✅ Deployment completed successfully")
        orchestrator.print_connection_info()
        return 0


def main():
    """Main entry point for the CLI."""
    cli = AdLabCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
