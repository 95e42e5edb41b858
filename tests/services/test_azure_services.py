import json
import subprocess

import pytest

from arobootstrap.errors import AuthenticationError, BootstrapError, CommandError, LookupMissError
from arobootstrap.models import RoleAssignment
from arobootstrap.services.account import AccountService
from arobootstrap.services.azure_cli import AzureCli
from arobootstrap.services.identity import IdentityService
from arobootstrap.services.resource_group import ResourceGroupService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def __init__(self):
        self.lines = []

    def print(self, message, *_args, **_kwargs):
        self.lines.append(str(message))


class ScriptedRunner:
    """Answers az commands from a list of (argument prefix, returncode, stdout)."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = []

    def __call__(self, cmd, check=True, **_kwargs):
        self.calls.append(cmd)
        for prefix, returncode, stdout in self.script:
            if cmd[1 : 1 + len(prefix)] == list(prefix):
                if returncode != 0 and check:
                    raise CommandError(f"Command failed ({returncode}): {' '.join(cmd)}")
                return subprocess.CompletedProcess(cmd, returncode, stdout, "")
        raise AssertionError(f"Unexpected command: {cmd}")

    def called(self, *prefix):
        return [cmd for cmd in self.calls if cmd[1 : 1 + len(prefix)] == list(prefix)]


class FakeTime:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def monotonic(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _account_service(runner):
    return AccountService(az=AzureCli(runner), logger=DummyLogger(), console=DummyConsole())


def _identity_service(runner, **kwargs):
    return IdentityService(az=AzureCli(runner), logger=DummyLogger(), console=DummyConsole(), **kwargs)


def test_get_account_context_parses_account_show():
    account = {"id": "sub-id", "name": "Dev Subscription", "tenantId": "tenant-id"}
    runner = ScriptedRunner([(("account", "show"), 0, json.dumps(account))])

    context = _account_service(runner).get_account_context()

    assert context.subscription_id == "sub-id"
    assert context.subscription_name == "Dev Subscription"
    assert context.tenant_id == "tenant-id"
    assert runner.calls[0] == ["az", "account", "show", "--output", "json"]


def test_get_account_context_without_login_raises_authentication_error():
    runner = ScriptedRunner([(("account", "show"), 1, "")])

    with pytest.raises(AuthenticationError, match="az login"):
        _account_service(runner).get_account_context()


def test_register_providers_aborts_on_first_failure():
    runner = ScriptedRunner(
        [
            (("provider", "register", "--namespace", "Microsoft.Compute"), 1, ""),
            (("provider", "register"), 0, ""),
        ]
    )

    with pytest.raises(CommandError, match="Microsoft.Compute"):
        _account_service(runner).register_providers()

    namespaces = [cmd[4] for cmd in runner.called("provider", "register")]
    assert namespaces == ["Microsoft.RedHatOpenShift", "Microsoft.Compute"]
    assert all("--wait" in cmd for cmd in runner.called("provider", "register"))


def test_ensure_resource_group_is_idempotent():
    state = {"exists": False}

    def runner(cmd, check=True, **_kwargs):
        runner.calls.append(cmd)
        if cmd[1:3] == ["group", "exists"]:
            return subprocess.CompletedProcess(cmd, 0, "true\n" if state["exists"] else "false\n", "")
        if cmd[1:3] == ["group", "create"]:
            state["exists"] = True
            return subprocess.CompletedProcess(cmd, 0, "", "")
        raise AssertionError(f"Unexpected command: {cmd}")

    runner.calls = []
    console = DummyConsole()
    service = ResourceGroupService(az=AzureCli(runner), logger=DummyLogger(), console=console)

    assert service.ensure_resource_group("aro-dev-001-RG", "canadacentral") is True
    assert service.ensure_resource_group("aro-dev-001-RG", "canadacentral") is False

    creates = [cmd for cmd in runner.calls if cmd[1:3] == ["group", "create"]]
    assert len(creates) == 1
    assert creates[0][3:7] == ["--name", "aro-dev-001-RG", "--location", "canadacentral"]
    assert any("already exists" in line for line in console.lines)


def test_create_service_principal_extracts_credential():
    response = {"appId": "app-id", "password": "s3cret", "tenant": "tenant-id"}
    runner = ScriptedRunner([(("ad", "sp", "create-for-rbac"), 0, json.dumps(response))])

    credential = _identity_service(runner).create_service_principal("aro-dev-001-aro-sp-42")

    assert credential == {"client_id": "app-id", "client_secret": "s3cret"}
    assert runner.calls[0][4:6] == ["--name", "aro-dev-001-aro-sp-42"]


def test_create_service_principal_rejects_incomplete_response():
    runner = ScriptedRunner([(("ad", "sp", "create-for-rbac"), 0, json.dumps({"appId": "app-id"}))])

    with pytest.raises(BootstrapError, match="missing appId or password"):
        _identity_service(runner).create_service_principal("aro-dev-001-aro-sp-42")


def test_generate_display_name_uses_prefix_and_random_suffix():
    name = IdentityService.generate_display_name("aro-dev-001")

    prefix, suffix = name.rsplit("-", 1)
    assert prefix == "aro-dev-001-aro-sp"
    assert 0 <= int(suffix) < 32768


def test_resolve_object_id_polls_until_visible():
    answers = iter([(3, ""), (3, ""), (0, "object-id\n")])

    def runner(cmd, check=True, **_kwargs):
        returncode, stdout = next(answers)
        return subprocess.CompletedProcess(cmd, returncode, stdout, "")

    fake_time = FakeTime()
    service = _identity_service(runner, time_module=fake_time, initial_backoff_seconds=1.0)

    assert service.resolve_object_id("app-id") == "object-id"
    assert fake_time.sleeps == [1.0, 2.0]


def test_resolve_object_id_gives_up_after_timeout():
    def runner(cmd, check=True, **_kwargs):
        return subprocess.CompletedProcess(cmd, 3, "", "not found")

    fake_time = FakeTime()
    service = _identity_service(
        runner,
        time_module=fake_time,
        object_id_timeout=10.0,
        initial_backoff_seconds=4.0,
    )

    with pytest.raises(LookupMissError, match="not visible"):
        service.resolve_object_id("app-id")
    assert fake_time.sleeps == [4.0, 6.0]


def test_plan_role_assignments_scopes_fixed_roles_to_resource_group():
    assignments = _identity_service(ScriptedRunner([])).plan_role_assignments(
        "object-id", "aro-dev-001-RG"
    )

    assert assignments == [
        RoleAssignment("User Access Administrator", "object-id", "aro-dev-001-RG"),
        RoleAssignment("Contributor", "object-id", "aro-dev-001-RG"),
    ]


def test_assign_role_creates_binding_on_resource_group():
    runner = ScriptedRunner(
        [
            (("role", "assignment", "list"), 0, "[]"),
            (("role", "assignment", "create"), 0, ""),
        ]
    )

    created = _identity_service(runner).assign_role(
        RoleAssignment("User Access Administrator", "object-id", "aro-dev-001-RG")
    )

    assert created is True
    creates = runner.called("role", "assignment", "create")
    assert len(creates) == 1
    assert creates[0][4:6] == ["--role", "User Access Administrator"]
    assert creates[0][creates[0].index("--assignee-object-id") + 1] == "object-id"
    assert "--assignee-principal-type" in creates[0]
    assert creates[0][creates[0].index("--resource-group") + 1] == "aro-dev-001-RG"

def test_assign_role_skips_existing_binding():
    runner = ScriptedRunner([(("role", "assignment", "list"), 0, json.dumps([{"id": "x"}]))])

    created = _identity_service(runner).assign_role(
        RoleAssignment("Contributor", "object-id", "aro-dev-001-RG")
    )

    assert created is False
    assert runner.called("role", "assignment", "create") == []


def test_assign_role_failure_names_role_and_resource_group():
    runner = ScriptedRunner(
        [
            (("role", "assignment", "list"), 0, "[]"),
            (("role", "assignment", "create"), 1, ""),
        ]
    )

    with pytest.raises(CommandError, match="User Access Administrator.*aro-dev-001-RG"):
        _identity_service(runner).assign_role(
            RoleAssignment("User Access Administrator", "object-id", "aro-dev-001-RG")
        )


@pytest.mark.parametrize("stdout", ["", "null\n"])
def test_resolve_platform_identity_fails_when_missing(stdout):
    runner = ScriptedRunner([(("ad", "sp", "list"), 0, stdout)])

    with pytest.raises(LookupMissError, match="Azure Red Hat OpenShift RP"):
        _identity_service(runner).resolve_platform_identity()


def test_resolve_platform_identity_returns_object_id():
    runner = ScriptedRunner([(("ad", "sp", "list"), 0, "rp-object-id\n")])

    assert _identity_service(runner).resolve_platform_identity() == "rp-object-id"
    assert runner.calls[0][4:6] == ["--display-name", "Azure Red Hat OpenShift RP"]
