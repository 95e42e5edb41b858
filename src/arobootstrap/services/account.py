"""Azure account context and resource provider registration."""

from typing import Iterable

from rich.markup import escape

from arobootstrap.constants import REQUIRED_PROVIDERS
from arobootstrap.errors import AuthenticationError, BootstrapError, CommandError
from arobootstrap.errors_catalog import actionable_error
from arobootstrap.models import AccountContext
from arobootstrap.services.azure_cli import AzureCli


class AccountService:
    """Reads the active subscription and enables required providers."""

    def __init__(self, az: AzureCli, logger, console):
        self.az = az
        self.logger = logger
        self.console = console

    def check_prerequisites(self):
        self.console.print("[blue]Checking prerequisites...[/blue]")
        self.az.run("version")
        self.console.print("[green]Azure CLI is available.[/green]")

    def get_account_context(self) -> AccountContext:
        self.console.print("[blue]Getting Azure subscription information...[/blue]")
        try:
            account = self.az.json("account", "show", retryable=True)
        except CommandError as exc:
            raise AuthenticationError(actionable_error("not_logged_in")) from exc

        if not isinstance(account, dict):
            raise AuthenticationError(actionable_error("not_logged_in"))

        try:
            context = AccountContext(
                subscription_id=account["id"],
                subscription_name=account.get("name") or "",
                tenant_id=account["tenantId"],
            )
        except KeyError as exc:
            raise BootstrapError(f"az account show returned no {exc.args[0]} field.") from exc

        self.console.print(
            f"Subscription: {escape(context.subscription_name)} ({context.subscription_id})"
        )
        self.console.print(f"Tenant: {context.tenant_id}")
        return context

    def register_providers(self, providers: Iterable[str] = REQUIRED_PROVIDERS):
        self.console.print("[blue]Registering Azure resource providers...[/blue]")
        for provider in providers:
            self.register_provider(provider)

    def register_provider(self, provider: str):
        self.console.print(f"Registering {provider}...")
        try:
            self.az.run("provider", "register", "--namespace", provider, "--wait", retryable=True)
        except CommandError as exc:
            raise CommandError(
                f"{actionable_error('provider_registration_failed', provider=provider)}\n{exc}"
            ) from exc
        self.console.print(f"[green]{provider} registered successfully[/green]")
