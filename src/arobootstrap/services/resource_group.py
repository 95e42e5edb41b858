"""Idempotent resource group creation."""

from arobootstrap.errors import CommandError
from arobootstrap.services.azure_cli import AzureCli


class ResourceGroupService:
    def __init__(self, az: AzureCli, logger, console):
        self.az = az
        self.logger = logger
        self.console = console

    def exists(self, name: str) -> bool:
        return self.az.tsv("group", "exists", "--name", name, retryable=True).lower() == "true"

    def ensure_resource_group(self, name: str, location: str) -> bool:
        """Creates the group when absent. Returns True when a group was created."""
        self.console.print(f"[blue]Checking if resource group '{name}' exists...[/blue]")
        if self.exists(name):
            self.console.print(f"[yellow]Warning:[/yellow] Resource group '{name}' already exists")
            self.logger.warning("Resource group %s already exists, leaving it unchanged.", name)
            return False

        self.console.print(f"Creating resource group '{name}' in '{location}'...")
        try:
            self.az.run("group", "create", "--name", name, "--location", location, "--output", "none")
        except CommandError as exc:
            raise CommandError(f"Failed to create resource group '{name}'\n{exc}") from exc

        self.console.print(f"[green]Resource group '{name}' created successfully[/green]")
        return True
