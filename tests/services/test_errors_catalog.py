import pytest

from arobootstrap.errors_catalog import actionable_error


def test_actionable_error_formats_message_with_suggested_action():
    message = actionable_error("provider_registration_failed", provider="Microsoft.Compute")

    assert "Failed to register resource provider Microsoft.Compute." in message
    assert "Suggested action:" in message


def test_actionable_error_rejects_unknown_code():
    with pytest.raises(KeyError):
        actionable_error("does_not_exist")
