import logging
import os
import subprocess
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape

from .constants import (
    DEFAULT_LOCATION,
    DEFAULT_MASTER_SUBNET_ADDRESS_SPACE,
    DEFAULT_OUTPUT_FILE,
    DEFAULT_STATE_DIR,
    DEFAULT_VIRTUAL_NETWORK_ADDRESS_SPACE,
    DEFAULT_WORKER_SUBNET_ADDRESS_SPACE,
    REQUIRED_PROVIDERS,
    SERVICE_PRINCIPAL_ROLES,
)
from .errors import BootstrapError
from .models import (
    AccountContext,
    GeneratedVariables,
    RoleAssignment,
    RunConfig,
    ServicePrincipalCredential,
)
from .services.account import AccountService
from .services.azure_cli import AzureCli
from .services.command_runner import CommandRunner
from .services.filesystem import FileSystemService
from .services.identity import IdentityService
from .services.resource_group import ResourceGroupService
from .services.state import StateService
from .services.validation import ValidationService
from .services.variables_file import VariablesFileService

console = Console()
logger = logging.getLogger("arobootstrap")

NEXT_STEPS = (
    "Review and customize the {output} file",
    "Ensure {output} is in .gitignore",
    "Set variables in the Terraform Cloud workspace",
    "Set secrets in the GitHub repository",
    "Update Development/dev.tfvars with your values",
)


class AroBootstrapper:
    """Prepares an Azure subscription for an ARO cluster deployment."""

    def __init__(
        self,
        resource_prefix: str,
        domain: Optional[str] = None,
        location: str = DEFAULT_LOCATION,
        pull_secret_file: Optional[str] = None,
        virtual_network_address_space: str = DEFAULT_VIRTUAL_NETWORK_ADDRESS_SPACE,
        master_subnet_address_space: str = DEFAULT_MASTER_SUBNET_ADDRESS_SPACE,
        worker_subnet_address_space: str = DEFAULT_WORKER_SUBNET_ADDRESS_SPACE,
        output_file: Optional[str] = None,
        state_file: Optional[str] = None,
        resume: bool = False,
        dry_run: bool = False,
        command_timeout: Optional[float] = None,
        retry_count: int = 0,
        retry_backoff_seconds: float = 2.0,
        object_id_timeout: float = 120.0,
    ):
        self.config = RunConfig(
            resource_prefix=resource_prefix,
            domain=domain or resource_prefix,
            location=location,
            pull_secret_file=pull_secret_file or None,
            virtual_network_address_space=virtual_network_address_space,
            master_subnet_address_space=master_subnet_address_space,
            worker_subnet_address_space=worker_subnet_address_space,
        )
        self.resume = resume
        self.dry_run = dry_run
        self.retry_count = retry_count
        self.retry_backoff_seconds = retry_backoff_seconds

        self.cwd = os.getcwd()
        self.output_file = output_file or os.path.join(self.cwd, DEFAULT_OUTPUT_FILE)
        self.state_file = state_file or os.path.join(self.cwd, DEFAULT_STATE_DIR, "run-state.json")
        self.state_service = StateService(state_file=self.state_file, logger=logger)
        self.state: Optional[Dict[str, Any]] = None
        self.current_step_name: Optional[str] = None

        self.account: Optional[AccountContext] = None
        self.credential: Optional[ServicePrincipalCredential] = None
        self.aro_rp_object_id: Optional[str] = None
        self.pull_secret = ""
        self._client_secret: Optional[str] = None

        self.command_runner = CommandRunner(logger=logger, default_timeout=command_timeout)
        self.az = AzureCli(run_cmd=self._run_cmd)
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.validation_service = ValidationService()
        self.account_service = AccountService(az=self.az, logger=logger, console=console)
        self.resource_group_service = ResourceGroupService(az=self.az, logger=logger, console=console)
        self.identity_service = IdentityService(
            az=self.az,
            logger=logger,
            console=console,
            object_id_timeout=object_id_timeout,
        )
        self.variables_file_service = VariablesFileService(
            filesystem_service=self.filesystem_service,
            logger=logger,
            console=console,
        )

    @property
    def resource_group_name(self) -> str:
        return self.config.resource_group_name

    def _build_resume_metadata(self) -> Dict[str, Any]:
        return {
            "resource_prefix": self.config.resource_prefix,
            "domain": self.config.domain,
            "location": self.config.location,
            "resource_group_name": self.resource_group_name,
        }

    def _initialize_state(self) -> bool:
        state, resumed = self.state_service.initialize(
            metadata=self._build_resume_metadata(),
            resume=self.resume,
        )
        self.state = state

        if resumed:
            logger.info(
                "Resuming previous run from %s after steps: %s",
                self.state_file,
                ", ".join(state.get("completed_steps", [])) or "<none>",
            )
        else:
            logger.debug("Run state initialized at %s", self.state_file)
        return resumed

    def _run_step(
        self,
        name: str,
        callback,
        *args,
        skip_when_completed: bool = True,
        record_as: Optional[str] = None,
        **kwargs,
    ):
        """Runs one checkpointed step.

        Returns ``(result, skipped)``. A skipped step yields the value recorded
        under ``record_as`` by the run that completed it.
        """
        if (
            self.resume
            and self.state
            and skip_when_completed
            and self.state_service.is_step_completed(self.state, name)
        ):
            logger.info("Skipping completed step from state: %s", name)
            recorded = None
            if record_as:
                recorded = self.state_service.get_value(self.state, record_as)
                if recorded is None:
                    raise BootstrapError(
                        f"State file has no recorded '{record_as}' for step '{name}'. "
                        "Start a fresh run without --resume."
                    )
            return recorded, True

        if self.state:
            self.state_service.mark_step_started(self.state, name)
        self.current_step_name = name

        try:
            result = callback(*args, **kwargs)
        except Exception as exc:
            if self.state:
                self.state_service.mark_step_failed(self.state, name, str(exc))
            raise

        if self.state:
            if record_as:
                self.state_service.set_value(self.state, record_as, result)
            self.state_service.mark_step_completed(self.state, name)
        self.current_step_name = None
        return result, False

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = True,
        retryable: bool = False,
        sensitive_output: bool = False,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(
            cmd,
            check=check,
            capture_output=capture_output,
            retry_count=self.retry_count if retryable else 0,
            retry_backoff_seconds=self.retry_backoff_seconds,
            sensitive_output=sensitive_output,
        )

    def validate_config(self):
        console.print("[blue]Validating configuration...[/blue]")
        self.validation_service.validate_run_config(self.config)
        console.print("[green]Configuration validation passed[/green]")

    def check_prerequisites(self):
        self.account_service.check_prerequisites()

    def get_account_context(self) -> Dict[str, str]:
        return asdict(self.account_service.get_account_context())

    def register_providers(self):
        self.account_service.register_providers(REQUIRED_PROVIDERS)

    def ensure_resource_group(self) -> bool:
        return self.resource_group_service.ensure_resource_group(
            self.resource_group_name,
            self.config.location,
        )

    def create_service_principal(self) -> Dict[str, str]:
        display_name = self.identity_service.generate_display_name(self.config.resource_prefix)
        created = self.identity_service.create_service_principal(display_name)
        self._client_secret = created["client_secret"]
        return {"display_name": display_name, "client_id": created["client_id"]}

    def recover_client_secret(self, client_id: str):
        logger.warning(
            "Client secret is not kept between runs. Issuing a new secret for %s.",
            client_id,
        )
        self._client_secret = self.identity_service.reset_credential(client_id)

    def resolve_object_id(self, client_id: str) -> str:
        return self.identity_service.resolve_object_id(client_id)

    def assign_role(self, assignment: RoleAssignment) -> bool:
        return self.identity_service.assign_role(assignment)

    def resolve_platform_identity(self) -> str:
        return self.identity_service.resolve_platform_identity()

    def load_pull_secret(self) -> str:
        return self.variables_file_service.read_pull_secret(self.config.pull_secret_file)

    def write_variables_file(self) -> str:
        variables = GeneratedVariables(
            config=self.config,
            account=self.account,
            credential=self.credential,
            aro_rp_object_id=self.aro_rp_object_id,
            pull_secret=self.pull_secret,
        )
        return self.variables_file_service.write(self.output_file, variables)

    def print_plan(self):
        console.print("[bold blue]Dry run: no Azure changes will be made.[/bold blue]")
        console.print(f"Resource group: {self.resource_group_name} ({self.config.location})")
        console.print(f"Domain: {self.config.domain}")
        console.print(f"Service principal name: {self.config.resource_prefix}-aro-sp-<random>")
        console.print(f"Resource providers: {', '.join(REQUIRED_PROVIDERS)}")
        console.print(f"Roles: {', '.join(SERVICE_PRINCIPAL_ROLES)}")
        console.print(f"Pull secret: {self.config.pull_secret_file or '<none>'}")
        console.print(f"Variables file: {self.output_file}")
        console.print(f"State file: {self.state_file}")

    def print_next_steps(self):
        output = os.path.basename(self.output_file)
        console.print("[green]Setup completed successfully![/green]")
        console.print("Next steps:")
        for index, step in enumerate(NEXT_STEPS, start=1):
            console.print(f"{index}. {step.format(output=output)}")

    def _provision_identity(self):
        service_principal, skipped = self._run_step(
            "create_service_principal",
            self.create_service_principal,
            record_as="service_principal",
        )
        client_id = service_principal["client_id"]
        if skipped:
            self._run_step(
                "recover_client_secret",
                self.recover_client_secret,
                client_id,
                skip_when_completed=False,
            )

        object_id, _ = self._run_step(
            "resolve_service_principal_object_id",
            self.resolve_object_id,
            client_id,
            record_as="service_principal_object_id",
        )
        self.credential = ServicePrincipalCredential(
            display_name=service_principal["display_name"],
            client_id=client_id,
            client_secret=self._client_secret,
            object_id=object_id,
        )

    def run(self) -> int:
        exit_code = 1

        try:
            logger.info("Starting arobootstrap...")
            console.print("[bold]ARO Cluster Setup[/bold]")

            self._run_step("validate_config", self.validate_config, skip_when_completed=False)

            if self.dry_run:
                self.print_plan()
                exit_code = 0
                return exit_code

            self._initialize_state()
            self._run_step("check_prerequisites", self.check_prerequisites, skip_when_completed=False)

            account, _ = self._run_step(
                "get_account_context",
                self.get_account_context,
                skip_when_completed=False,
            )
            self.state_service.validate_subscription(self.state, account["subscription_id"])
            self.state_service.set_value(self.state, "account", account)
            self.account = AccountContext(**account)

            self._run_step("register_providers", self.register_providers)
            self._run_step(
                "ensure_resource_group",
                self.ensure_resource_group,
                record_as="resource_group_created",
            )

            self._provision_identity()

            console.print("[blue]Assigning roles to service principal...[/blue]")
            assignments = self.identity_service.plan_role_assignments(
                self.credential.object_id,
                self.resource_group_name,
            )
            for assignment in assignments:
                self._run_step(f"assign_role:{assignment.role}", self.assign_role, assignment)

            self.aro_rp_object_id, _ = self._run_step(
                "resolve_platform_identity",
                self.resolve_platform_identity,
                record_as="aro_rp_object_id",
            )
            self.pull_secret, _ = self._run_step(
                "load_pull_secret",
                self.load_pull_secret,
                skip_when_completed=False,
            )
            self._run_step("write_variables_file", self.write_variables_file, skip_when_completed=False)

            self.state_service.mark_status(self.state, "success")
            self.print_next_steps()
            exit_code = 0
            return exit_code

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            if self.state:
                self.state_service.mark_status(self.state, "aborted", "Operation cancelled by user.")
            self._report_partial_state()
            return exit_code
        except BootstrapError as exc:
            console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
            logger.error(str(exc))
            self._record_failure(exc)
            return exit_code
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {escape(str(exc))}")
            logger.exception("Unexpected error")
            self._record_failure(exc)
            return exit_code

    def _record_failure(self, exc: Exception):
        if not self.state:
            return
        self.state_service.mark_status(self.state, "failed", str(exc))
        self._report_partial_state()

    def _report_partial_state(self):
        if not self.state or not self.state.get("completed_steps"):
            return
        service_principal = self.state_service.get_value(self.state, "service_principal")
        if service_principal:
            logger.warning(
                "Service principal %s (%s) was created by this run and was not removed.",
                service_principal.get("display_name"),
                service_principal.get("client_id"),
            )
        logger.warning(
            "Azure changes made so far were kept. Run again with --resume to continue "
            "from the last completed step (state file: %s).",
            self.state_file,
        )
