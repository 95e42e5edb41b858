import logging
import os

import click
from rich.logging import RichHandler

from .constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_LOCATION,
    DEFAULT_MASTER_SUBNET_ADDRESS_SPACE,
    DEFAULT_VIRTUAL_NETWORK_ADDRESS_SPACE,
    DEFAULT_WORKER_SUBNET_ADDRESS_SPACE,
)
from .core import AroBootstrapper, BootstrapError
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--resource-prefix",
    envvar="RESOURCE_PREFIX",
    required=False,
    help="Name prefix for Azure resources (lowercase, digits, hyphens, max 15). Env: RESOURCE_PREFIX",
)
@click.option(
    "--domain",
    envvar="ARO_DOMAIN",
    required=False,
    help="ARO cluster domain label. Defaults to the resource prefix. Env: ARO_DOMAIN",
)
@click.option(
    "--location",
    envvar="LOCATION",
    required=False,
    help=f"Azure region (default: {DEFAULT_LOCATION}). Env: LOCATION",
)
@click.option(
    "--pull-secret-file",
    envvar="PULL_SECRET_FILE",
    required=False,
    type=click.Path(),
    help="Path to the Red Hat pull secret. Optional. Env: PULL_SECRET_FILE",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--vnet-address-space", required=False, help="Virtual network CIDR.")
@click.option("--master-subnet-address-space", required=False, help="Master subnet CIDR.")
@click.option("--worker-subnet-address-space", required=False, help="Worker subnet CIDR.")
@click.option(
    "--output",
    "output_file",
    required=False,
    type=click.Path(),
    help="Path of the generated variables file (default: ./variables_secrets).",
)
@click.option(
    "--resume",
    is_flag=True,
    default=None,
    help="Resume a previously failed run, skipping steps recorded as completed.",
)
@click.option(
    "--state-file",
    required=False,
    type=click.Path(),
    help="Path to the run state file (default: .arobootstrap/run-state.json).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Validate configuration and print the plan without calling Azure.",
)
@click.option(
    "--command-timeout",
    required=False,
    type=float,
    default=None,
    help="Timeout in seconds for each az command.",
)
@click.option(
    "--retry-count",
    required=False,
    type=int,
    default=None,
    help="Number of retries for failed read-only or idempotent az commands.",
)
@click.option(
    "--retry-backoff-seconds",
    required=False,
    type=float,
    default=None,
    help="Backoff time in seconds between retries.",
)
@click.option(
    "--object-id-timeout",
    required=False,
    type=float,
    default=None,
    help="Seconds to wait for a new service principal to appear in the directory.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
def main(
    resource_prefix,
    domain,
    location,
    pull_secret_file,
    config,
    vnet_address_space,
    master_subnet_address_space,
    worker_subnet_address_space,
    output_file,
    resume,
    state_file,
    dry_run,
    command_timeout,
    retry_count,
    retry_backoff_seconds,
    object_id_timeout,
    verbose,
    log_file,
):
    """Create the Azure resources and service principal needed for an ARO cluster."""
    logger = logging.getLogger("arobootstrap")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except BootstrapError as exc:
        raise click.ClickException(str(exc)) from exc

    resource_prefix = _resolve_option(
        resource_prefix, config_values, "resource_prefix", default="aro-dev-001"
    )
    domain = _resolve_option(domain, config_values, "domain")
    location = _resolve_option(location, config_values, "location", default=DEFAULT_LOCATION)
    pull_secret_file = _resolve_option(pull_secret_file, config_values, "pull_secret_file")
    vnet_address_space = _resolve_option(
        vnet_address_space,
        config_values,
        "virtual_network_address_space",
        default=DEFAULT_VIRTUAL_NETWORK_ADDRESS_SPACE,
    )
    master_subnet_address_space = _resolve_option(
        master_subnet_address_space,
        config_values,
        "master_subnet_address_space",
        default=DEFAULT_MASTER_SUBNET_ADDRESS_SPACE,
    )
    worker_subnet_address_space = _resolve_option(
        worker_subnet_address_space,
        config_values,
        "worker_subnet_address_space",
        default=DEFAULT_WORKER_SUBNET_ADDRESS_SPACE,
    )
    output_file = _resolve_option(output_file, config_values, "output_file")
    resume = bool(_resolve_option(resume, config_values, "resume", default=False))
    state_file = _resolve_option(state_file, config_values, "state_file")
    dry_run = bool(_resolve_option(dry_run, config_values, "dry_run", default=False))
    command_timeout = _resolve_option(command_timeout, config_values, "command_timeout")
    if command_timeout is not None:
        command_timeout = float(command_timeout)
    retry_count = int(_resolve_option(retry_count, config_values, "retry_count", default=0))
    retry_backoff_seconds = float(
        _resolve_option(
            retry_backoff_seconds,
            config_values,
            "retry_backoff_seconds",
            default=2.0,
        )
    )
    object_id_timeout = float(
        _resolve_option(object_id_timeout, config_values, "object_id_timeout", default=120.0)
    )
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    try:
        bootstrapper = AroBootstrapper(
            resource_prefix=str(resource_prefix),
            domain=str(domain) if domain is not None else None,
            location=str(location),
            pull_secret_file=pull_secret_file,
            virtual_network_address_space=vnet_address_space,
            master_subnet_address_space=master_subnet_address_space,
            worker_subnet_address_space=worker_subnet_address_space,
            output_file=output_file,
            state_file=state_file,
            resume=resume,
            dry_run=dry_run,
            command_timeout=command_timeout,
            retry_count=retry_count,
            retry_backoff_seconds=retry_backoff_seconds,
            object_id_timeout=object_id_timeout,
        )
    except BootstrapError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(bootstrapper.run())


if __name__ == "__main__":
    main()
