"""
Configuration Loader Module

Loads the packaged default topology, merges an optional user YAML file over it
and overlays the run parameters given on the command line.
"""

import copy
from pathlib import Path
from typing import Dict, Any, Optional
import yaml

CONFIG_DIR = Path(__file__).parent / 'config'
DEFAULT_TOPOLOGY_PATH = CONFIG_DIR / 'default-topology.yaml'


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigLoader:
    """Load and merge lab configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the ConfigLoader.

        Args:
            config_path: Optional path to a YAML file overriding the default topology
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}

    def load(self, parameters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Load the merged configuration.

        Args:
            parameters: Run parameters from the command line. Keys whose value
                is None are ignored so that YAML or default values apply.

        Returns:
            Dictionary containing the merged configuration

        Raises:
            FileNotFoundError: If the configuration file doesn't exist
            yaml.YAMLError: If the YAML is malformed
        """
        config = self._read_yaml(DEFAULT_TOPOLOGY_PATH)

        if self.config_path:
            config_file = Path(self.config_path)
            if not config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
            config = _deep_merge(config, self._read_yaml(config_file))

        if parameters:
            overrides = {k: v for k, v in parameters.items() if v is not None}
            config = _deep_merge(config, overrides)

        self.config = config
        return self.config

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        """Read one YAML document, treating an empty file as an empty mapping."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error parsing YAML configuration {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Args:
            key: Configuration key (supports dot notation, e.g., 'network.vnet_name')
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value


def parameters_from_args(args) -> Dict[str, Any]:
    """
    Translate parsed CLI arguments into configuration overrides.

    Args:
        args: argparse namespace from the adlab CLI

    Returns:
        Dictionary of run parameters
    """
    sources = [s.strip() for s in (args.allowed_sources or '').split(',') if s.strip()]

    parameters = {
        'resource_group': args.resource_group,
        'location': args.location,
        'num_clients': args.num_clients,
        'allowed_sources': sources,
        'version': args.version,
        'vault_region': args.vault_region,
    }

    if args.auto_shutdown_time is not None or args.auto_shutdown_email is not None:
        parameters['auto_shutdown'] = {
            'time': args.auto_shutdown_time,
            'email': args.auto_shutdown_email,
        }

    if args.parallel is not None:
        parameters['clients'] = {'max_workers': args.parallel}

    return parameters
