"""Run configuration validation for arobootstrap."""

import ipaddress
import os
import re
from typing import Optional

from arobootstrap.constants import NAME_PATTERN
from arobootstrap.errors import ConfigurationError
from arobootstrap.errors_catalog import actionable_error
from arobootstrap.models import RunConfig


class ValidationService:
    """Checks operator supplied settings before any Azure call is made."""

    def validate_name(self, label: str, value: Optional[str]):
        value = value or ""
        if value.startswith("-") or value.endswith("-"):
            raise ConfigurationError(actionable_error("hyphen_boundary", label=label, value=value))
        if not re.fullmatch(NAME_PATTERN, value):
            raise ConfigurationError(actionable_error("invalid_name", label=label, value=value))

    def validate_pull_secret_file(self, path: Optional[str]):
        if path and not os.path.isfile(path):
            raise ConfigurationError(actionable_error("pull_secret_not_found", path=path))

    def validate_address_spaces(self, vnet: str, master: str, worker: str):
        vnet_net = self._parse_network("virtual_network_address_space", vnet)
        master_net = self._parse_network("master_subnet_address_space", master)
        worker_net = self._parse_network("worker_subnet_address_space", worker)

        for label, subnet in (
            ("master_subnet_address_space", master_net),
            ("worker_subnet_address_space", worker_net),
        ):
            if subnet.version != vnet_net.version or not subnet.subnet_of(vnet_net):
                raise ConfigurationError(
                    f"{label} {subnet} is not inside the virtual network {vnet_net}."
                )

        if master_net.overlaps(worker_net):
            raise ConfigurationError(
                f"Master subnet {master_net} overlaps worker subnet {worker_net}."
            )

    def validate_run_config(self, config: RunConfig):
        self.validate_name("RESOURCE_PREFIX", config.resource_prefix)
        self.validate_name("ARO_DOMAIN", config.domain)
        if not config.location:
            raise ConfigurationError("LOCATION must not be empty.")
        self.validate_pull_secret_file(config.pull_secret_file)
        self.validate_address_spaces(
            config.virtual_network_address_space,
            config.master_subnet_address_space,
            config.worker_subnet_address_space,
        )

    @staticmethod
    def _parse_network(label: str, value: str):
        try:
            return ipaddress.ip_network(value, strict=True)
        except ValueError as exc:
            raise ConfigurationError(f"{label} is not a valid CIDR range: {value} ({exc})") from exc
