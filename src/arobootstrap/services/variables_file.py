"""Pull secret loading and variables file rendering."""

import os
from typing import List, Optional, Tuple

from arobootstrap.errors import BootstrapError, ConfigurationError
from arobootstrap.models import GeneratedVariables
from arobootstrap.services.filesystem import FileSystemService

HEADER = """\
# IMPORTANT: This file contains sensitive information!
# Ensure this file is in .gitignore before pushing to repository
# This file is automatically generated by arobootstrap
"""


def hcl_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("${", "$${")
        .replace("%{", "%%{")
    )
    return f'"{escaped}"'


class VariablesFileService:
    """Renders the `key = "value"` artifact consumed by the Terraform stage."""

    def __init__(self, filesystem_service: FileSystemService, logger, console):
        self.filesystem_service = filesystem_service
        self.logger = logger
        self.console = console

    def read_pull_secret(self, path: Optional[str]) -> str:
        if path and os.path.isfile(path):
            try:
                pull_secret = self.filesystem_service.read_text(path).rstrip("\n")
            except BootstrapError as exc:
                raise ConfigurationError(f"Could not load pull secret: {exc}") from exc
            self.console.print(f"[green]Pull secret loaded from {path}[/green]")
            return pull_secret

        self.console.print(
            "[yellow]Warning:[/yellow] No pull secret file provided. Cluster will be public."
        )
        self.logger.warning("No pull secret provided; the cluster will be built without one.")
        return ""

    def render(self, variables: GeneratedVariables) -> str:
        config = variables.config
        account = variables.account
        credential = variables.credential

        arm_block = [
            ("ARM_CLIENT_ID", hcl_string(credential.client_id)),
            ("ARM_CLIENT_SECRET", hcl_string(credential.client_secret)),
            ("ARM_SUBSCRIPTION_ID", hcl_string(account.subscription_id)),
            ("ARM_TENANT_ID", hcl_string(account.tenant_id)),
        ]
        sections = [
            (
                "Variables for tfvars file",
                [
                    ("domain", hcl_string(config.domain)),
                    ("location", hcl_string(config.location)),
                    ("resource_group_name", hcl_string(config.resource_group_name)),
                    ("resource_prefix", hcl_string(config.resource_prefix)),
                    (
                        "virtual_network_address_space",
                        f"[{hcl_string(config.virtual_network_address_space)}]",
                    ),
                    (
                        "master_subnet_address_space",
                        f"[{hcl_string(config.master_subnet_address_space)}]",
                    ),
                    (
                        "worker_subnet_address_space",
                        f"[{hcl_string(config.worker_subnet_address_space)}]",
                    ),
                ],
            ),
            (
                "Sensitive Terraform variables for Terraform Cloud Workspace",
                [
                    ("aro_cluster_aad_sp_client_id", hcl_string(credential.client_id)),
                    ("aro_cluster_aad_sp_client_secret", hcl_string(credential.client_secret)),
                    ("aro_cluster_aad_sp_object_id", hcl_string(credential.object_id)),
                    ("aro_rp_aad_sp_object_id", hcl_string(variables.aro_rp_object_id)),
                    ("pull_secret", hcl_string(variables.pull_secret)),
                ],
            ),
            ("Environment variables for Terraform Cloud Workspace", arm_block),
            (
                "Secrets for GitHub repository (Settings > Secrets and variables > Actions)",
                arm_block,
            ),
        ]

        lines = [HEADER]
        for title, assignments in sections:
            lines.append(f"## {title} ##\n")
            lines.extend(self._format_assignments(assignments))
            lines.append("")
        return "\n".join(lines)

    def write(self, path: str, variables: GeneratedVariables) -> str:
        self.console.print(f"[blue]Generating {path} file...[/blue]")
        self.filesystem_service.write_private_file(path, self.render(variables))
        self.console.print(f"[green]Variables file generated: {path}[/green]")
        self.console.print(
            f"[yellow]Warning:[/yellow] Please review and customize the network address spaces in {path}"
        )
        self.check_gitignore(path)
        return path

    def check_gitignore(self, path: str) -> bool:
        """Warns when *path* is not listed in the .gitignore next to it."""
        gitignore = os.path.join(os.path.dirname(os.path.abspath(path)), ".gitignore")
        name = os.path.basename(path)
        patterns = set()
        if os.path.isfile(gitignore):
            with open(gitignore, "r", encoding="utf-8") as file_obj:
                patterns = {line.strip().lstrip("/") for line in file_obj if line.strip()}

        if name in patterns:
            return True

        self.console.print(
            f"[yellow]Warning:[/yellow] Ensure {name} is in .gitignore before committing"
        )
        return False

    @staticmethod
    def _format_assignments(assignments: List[Tuple[str, str]]) -> List[str]:
        width = max(len(key) for key, _ in assignments)
        return [f"{key.ljust(width)} = {value}" for key, value in assignments]
