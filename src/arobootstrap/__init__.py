"""
arobootstrap - Azure Red Hat OpenShift subscription bootstrap tool
"""

__version__ = "0.3.0"

from .core import AroBootstrapper, BootstrapError

__all__ = ["AroBootstrapper", "BootstrapError"]
