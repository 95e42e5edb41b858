"""Configuration loader for arobootstrap."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from arobootstrap.errors import ConfigurationError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "resource_prefix",
        "domain",
        "location",
        "pull_secret_file",
        "virtual_network_address_space",
        "master_subnet_address_space",
        "worker_subnet_address_space",
        "output_file",
        "state_file",
        "resume",
        "verbose",
        "log_file",
        "dry_run",
        "command_timeout",
        "retry_count",
        "retry_backoff_seconds",
        "object_id_timeout",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigurationError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigurationError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ConfigurationError(f"Unknown configuration keys: {unknown_list}")

        return parsed
