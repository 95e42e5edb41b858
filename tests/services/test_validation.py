import pytest

from arobootstrap.errors import ConfigurationError
from arobootstrap.models import RunConfig
from arobootstrap.services.validation import ValidationService


@pytest.mark.parametrize("value", ["a", "aro-dev-001", "0123456789abcde", "a-b-c"])
def test_validate_name_accepts_allowed_values(value):
    ValidationService().validate_name("RESOURCE_PREFIX", value)


@pytest.mark.parametrize(
    "value",
    ["", "0123456789abcdef", "ARO-dev", "aro_dev", "aro.dev", "aro dev", "aro\n", "aro-dev-001\n"],
)
def test_validate_name_rejects_length_and_charset(value):
    with pytest.raises(ConfigurationError, match="lowercase alphanumeric and hyphens only"):
        ValidationService().validate_name("RESOURCE_PREFIX", value)


@pytest.mark.parametrize("value", ["-bad-", "-aro", "aro-", "-"])
def test_validate_name_rejects_hyphen_boundary(value):
    with pytest.raises(ConfigurationError, match="cannot start or end with a hyphen"):
        ValidationService().validate_name("ARO_DOMAIN", value)


def test_validate_pull_secret_file_requires_existing_file(tmp_path):
    service = ValidationService()
    service.validate_pull_secret_file(None)

    with pytest.raises(ConfigurationError, match="Pull secret file not found"):
        service.validate_pull_secret_file(str(tmp_path / "pull-secret.txt"))

    with pytest.raises(ConfigurationError, match="Pull secret file not found"):
        service.validate_pull_secret_file(str(tmp_path))


def test_validate_address_spaces_accepts_defaults():
    ValidationService().validate_address_spaces("10.0.0.0/22", "10.0.0.0/23", "10.0.2.0/23")


def test_validate_address_spaces_rejects_invalid_cidr():
    with pytest.raises(ConfigurationError, match="not a valid CIDR"):
        ValidationService().validate_address_spaces("10.0.0.0/33", "10.0.0.0/23", "10.0.2.0/23")


def test_validate_address_spaces_rejects_subnet_outside_vnet():
    with pytest.raises(ConfigurationError, match="worker_subnet_address_space"):
        ValidationService().validate_address_spaces("10.0.0.0/22", "10.0.0.0/23", "10.1.0.0/23")


def test_validate_address_spaces_rejects_overlapping_subnets():
    with pytest.raises(ConfigurationError, match="overlaps"):
        ValidationService().validate_address_spaces("10.0.0.0/22", "10.0.0.0/23", "10.0.1.0/24")


def test_validate_run_config_checks_prefix_before_domain():
    config = RunConfig(resource_prefix="-bad-", domain="Also_Bad")

    with pytest.raises(ConfigurationError, match="RESOURCE_PREFIX"):
        ValidationService().validate_run_config(config)


def test_validate_run_config_checks_domain():
    config = RunConfig(resource_prefix="aro-dev-001", domain="aro-domain-too-long")

    with pytest.raises(ConfigurationError, match="ARO_DOMAIN"):
        ValidationService().validate_run_config(config)
