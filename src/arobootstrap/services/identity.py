"""Service principal creation, role assignment and platform identity lookup."""

import secrets
import time
from typing import Iterable, List, Optional

from rich.markup import escape

from arobootstrap.constants import ARO_RP_DISPLAY_NAME, SERVICE_PRINCIPAL_ROLES
from arobootstrap.errors import BootstrapError, CommandError, LookupMissError
from arobootstrap.errors_catalog import actionable_error
from arobootstrap.models import RoleAssignment
from arobootstrap.services.azure_cli import AzureCli


class IdentityService:
    """Manages the cluster service principal and its role bindings.

    Credentials returned by `az` are parsed from captured stdout and never
    written to disk by this service.
    """

    def __init__(
        self,
        az: AzureCli,
        logger,
        console,
        object_id_timeout: float = 120.0,
        initial_backoff_seconds: float = 2.0,
        max_backoff_seconds: float = 30.0,
        time_module=time,
    ):
        self.az = az
        self.logger = logger
        self.console = console
        self.object_id_timeout = object_id_timeout
        self.initial_backoff_seconds = initial_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.time = time_module

    @staticmethod
    def generate_display_name(prefix: str) -> str:
        return f"{prefix}-aro-sp-{secrets.randbelow(32768)}"

    def create_service_principal(self, display_name: str) -> dict:
        """Creates the application identity and returns its client id and secret."""
        self.console.print(f"[blue]Creating service principal '{display_name}'...[/blue]")
        try:
            response = self.az.json(
                "ad", "sp", "create-for-rbac", "--name", display_name, sensitive_output=True
            )
        except CommandError as exc:
            raise CommandError(f"Failed to create service principal '{display_name}'\n{exc}") from exc

        credential = self._extract_credential(response, "az ad sp create-for-rbac")
        self.console.print("[green]Service principal created successfully[/green]")
        return credential

    def reset_credential(self, client_id: str) -> str:
        """Issues a new client secret for an existing service principal."""
        self.console.print(f"[blue]Resetting client secret for service principal {client_id}...[/blue]")
        try:
            response = self.az.json(
                "ad", "sp", "credential", "reset", "--id", client_id, sensitive_output=True
            )
        except CommandError as exc:
            raise CommandError(f"Failed to reset credential for {client_id}\n{exc}") from exc

        return self._extract_credential(response, "az ad sp credential reset")["client_secret"]

    def resolve_object_id(self, client_id: str) -> str:
        """Polls the directory until the new service principal becomes visible."""
        deadline = self.time.monotonic() + self.object_id_timeout
        delay = self.initial_backoff_seconds
        attempt = 0

        while True:
            attempt += 1
            result = self.az.run(
                "ad", "sp", "show", "--id", client_id, "--query", "id", "--output", "tsv",
                check=False,
            )
            object_id = (result.stdout or "").strip() if result.returncode == 0 else ""
            if object_id:
                self.logger.debug("Resolved object id for %s after %s attempt(s)", client_id, attempt)
                return object_id

            remaining = deadline - self.time.monotonic()
            if remaining <= 0:
                raise LookupMissError(
                    f"Service principal {client_id} was not visible in the directory "
                    f"after {self.object_id_timeout:.0f}s. Resume with `--resume` to retry."
                )

            wait = min(delay, remaining)
            self.logger.info(
                "Service principal %s not yet visible (attempt %s). Retrying in %.1fs.",
                client_id,
                attempt,
                wait,
            )
            self.time.sleep(wait)
            delay = min(delay * 2, self.max_backoff_seconds)

    def has_role_assignment(self, assignment: RoleAssignment) -> bool:
        existing = self.az.json(
            "role", "assignment", "list",
            "--assignee", assignment.principal_id,
            "--role", assignment.role,
            "--resource-group", assignment.scope,
            retryable=True,
        )
        return bool(existing)

    def assign_role(self, assignment: RoleAssignment) -> bool:
        """Binds one role. Returns False when the binding already existed."""
        self.console.print(f"Assigning role '{assignment.role}'...")
        try:
            if self.has_role_assignment(assignment):
                self.console.print(
                    f"[yellow]Warning:[/yellow] Role '{assignment.role}' is already assigned"
                )
                return False
            self.az.run(
                "role", "assignment", "create",
                "--role", assignment.role,
                "--assignee-object-id", assignment.principal_id,
                "--resource-group", assignment.scope,
                "--assignee-principal-type", "ServicePrincipal",
                "--output", "none",
            )
        except CommandError as exc:
            message = actionable_error(
                "role_assignment_failed", role=assignment.role, resource_group=assignment.scope
            )
            raise CommandError(f"{message}\n{exc}") from exc

        self.console.print(f"[green]Role '{assignment.role}' assigned successfully[/green]")
        return True

    def plan_role_assignments(
        self,
        object_id: str,
        resource_group: str,
        roles: Iterable[str] = SERVICE_PRINCIPAL_ROLES,
    ) -> List[RoleAssignment]:
        """Bindings the cluster service principal needs, in assignment order."""
        return [RoleAssignment(role, object_id, resource_group) for role in roles]

    def resolve_platform_identity(self, display_name: str = ARO_RP_DISPLAY_NAME) -> str:
        self.console.print(
            f"[blue]Getting {escape(display_name)} service principal...[/blue]"
        )
        object_id = self.az.tsv(
            "ad", "sp", "list", "--display-name", display_name, "--query", "[0].id",
            retryable=True,
        )
        if not object_id or object_id == "null":
            raise LookupMissError(actionable_error("aro_rp_not_found", display_name=display_name))

        self.console.print("[green]ARO RP service principal retrieved[/green]")
        return object_id

    @staticmethod
    def _extract_credential(response: Optional[dict], source: str) -> dict:
        if not isinstance(response, dict):
            raise BootstrapError(f"{source} returned no credential data.")

        client_id = response.get("appId")
        client_secret = response.get("password")
        if not client_id or not client_secret:
            raise BootstrapError(f"{source} response is missing appId or password.")

        return {"client_id": client_id, "client_secret": client_secret}
