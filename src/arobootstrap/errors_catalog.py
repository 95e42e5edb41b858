"""Actionable error catalog for arobootstrap."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "invalid_name": {
        "what": (
            "{label} must be lowercase alphanumeric and hyphens only, 1-15 characters: '{value}'."
        ),
        "next": "Set {label} to a value such as `aro-dev-001`.",
    },
    "hyphen_boundary": {
        "what": "{label} cannot start or end with a hyphen: '{value}'.",
        "next": "Remove the leading or trailing hyphen from {label}.",
    },
    "pull_secret_not_found": {
        "what": "Pull secret file not found: {path}",
        "next": "Download the pull secret from console.redhat.com or unset PULL_SECRET_FILE.",
    },
    "not_logged_in": {
        "what": "Not logged in to Azure.",
        "next": "Run `az login` and select the target subscription with `az account set`.",
    },
    "provider_registration_failed": {
        "what": "Failed to register resource provider {provider}.",
        "next": "Check that your account may register providers on the subscription, then resume with `--resume`.",
    },
    "role_assignment_failed": {
        "what": "Failed to assign role [{role}] on resource group {resource_group}.",
        "next": "Grant yourself Owner or User Access Administrator on the subscription, then resume with `--resume`.",
    },
    "aro_rp_not_found": {
        "what": "Service principal '{display_name}' was not found in the tenant.",
        "next": "Register Microsoft.RedHatOpenShift on the subscription and retry with `--resume`.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
