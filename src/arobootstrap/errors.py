"""Domain errors for arobootstrap."""


class BootstrapError(RuntimeError):
    """Raised when the bootstrap cannot continue safely."""


class ConfigurationError(BootstrapError):
    """Invalid or missing local configuration."""


class AuthenticationError(BootstrapError):
    """No usable Azure CLI session."""


class CommandError(BootstrapError):
    """An external command failed or could not be executed."""


class LookupMissError(BootstrapError):
    """An expected Azure object does not exist."""
