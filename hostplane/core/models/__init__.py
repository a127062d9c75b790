"""
Domain models — Pydantic types for host state snapshots and outcomes.

All models are re-exported here for convenient access:

    from hostplane.core.models import HostConfig, KernelInfo, LocaleStatus, MutationOutcome
"""

from hostplane.core.models.host import (
    CatalogSettings,
    HostCommands,
    HostConfig,
    HostPaths,
    Timeouts,
)
from hostplane.core.models.kernel import InstallableKernel, InstalledKernel, KernelInfo
from hostplane.core.models.locale import (
    LOCALE_CATEGORIES,
    LocaleConfiguration,
    LocaleStatus,
)
from hostplane.core.models.outcome import FailureKind, MutationOutcome

__all__ = [
    # host.py
    "CatalogSettings",
    "HostCommands",
    "HostConfig",
    "HostPaths",
    "Timeouts",
    # kernel.py
    "InstallableKernel",
    "InstalledKernel",
    "KernelInfo",
    # locale.py
    "LOCALE_CATEGORIES",
    "LocaleConfiguration",
    "LocaleStatus",
    # outcome.py
    "FailureKind",
    "MutationOutcome",
]
