"""Shared domain models for arobootstrap."""

from dataclasses import dataclass
from typing import Optional

from arobootstrap.constants import (
    DEFAULT_LOCATION,
    DEFAULT_MASTER_SUBNET_ADDRESS_SPACE,
    DEFAULT_VIRTUAL_NETWORK_ADDRESS_SPACE,
    DEFAULT_WORKER_SUBNET_ADDRESS_SPACE,
)


@dataclass(frozen=True)
class RunConfig:
    """Operator supplied settings for one bootstrap run."""

    resource_prefix: str
    domain: str
    location: str = DEFAULT_LOCATION
    pull_secret_file: Optional[str] = None
    virtual_network_address_space: str = DEFAULT_VIRTUAL_NETWORK_ADDRESS_SPACE
    master_subnet_address_space: str = DEFAULT_MASTER_SUBNET_ADDRESS_SPACE
    worker_subnet_address_space: str = DEFAULT_WORKER_SUBNET_ADDRESS_SPACE

    @property
    def resource_group_name(self) -> str:
        return f"{self.resource_prefix}-RG"


@dataclass(frozen=True)
class AccountContext:
    """Identity of the active Azure CLI session."""

    subscription_id: str
    subscription_name: str
    tenant_id: str


@dataclass(frozen=True)
class ServicePrincipalCredential:
    display_name: str
    client_id: str
    client_secret: str
    object_id: str


@dataclass(frozen=True)
class RoleAssignment:
    role: str
    principal_id: str
    scope: str


@dataclass(frozen=True)
class GeneratedVariables:
    """Values rendered into the variables file."""

    config: RunConfig
    account: AccountContext
    credential: ServicePrincipalCredential
    aro_rp_object_id: str
    pull_secret: str = ""
