NAME_PATTERN = r"[a-z0-9-]{1,15}"

DEFAULT_LOCATION = "canadacentral"
DEFAULT_VIRTUAL_NETWORK_ADDRESS_SPACE = "10.0.0.0/22"
DEFAULT_MASTER_SUBNET_ADDRESS_SPACE = "10.0.0.0/23"
DEFAULT_WORKER_SUBNET_ADDRESS_SPACE = "10.0.2.0/23"

REQUIRED_PROVIDERS = (
    "Microsoft.RedHatOpenShift",
    "Microsoft.Compute",
    "Microsoft.Storage",
    "Microsoft.Authorization",
)
SERVICE_PRINCIPAL_ROLES = ("User Access Administrator", "Contributor")
ARO_RP_DISPLAY_NAME = "Azure Red Hat OpenShift RP"

DEFAULT_OUTPUT_FILE = "variables_secrets"
DEFAULT_STATE_DIR = ".arobootstrap"
DEFAULT_CONFIG_FILE = ".arobootstrap.yml"

SECRET_FILE_MODE = 0o600
