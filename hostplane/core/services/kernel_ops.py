"""
Kernel operations — query kernel state, install or remove kernel packages.

``query_kernel_info`` combines three independent probes (running
release, installed module trees, repository candidates).  A failing
probe is recorded in ``KernelInfo.errors`` and the rest still report:
a broken pacman search must not hide the installed kernels.

Install/remove go through the privileged executor, are single-flight
on the ``packages`` resource class, and always end with a fresh
``kernel:status`` publish.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from hostplane.core.context import get_host_config
from hostplane.core.models.host import HostConfig
from hostplane.core.models.kernel import KernelInfo
from hostplane.core.models.outcome import FailureKind, MutationOutcome
from hostplane.core.reliability.single_flight import PACKAGES, single_flight
from hostplane.core.services import host_probe
from hostplane.core.services.elevated_exec import run_elevated
from hostplane.core.services.event_bus import KERNEL_OUTCOME, KERNEL_STATUS, EventBus, bus
from hostplane.core.services.kernel_catalog import search_installable_kernels

logger = logging.getLogger(__name__)

Runner = Callable[..., MutationOutcome]

# pacman package names: lowercase alnum plus @._+-, not starting with - or .
_PACKAGE_NAME = re.compile(r"^[a-z0-9@_+][a-z0-9@._+-]*$")


def collect_kernel_info(host: HostConfig | None = None) -> KernelInfo:
    """Probe kernel state.  Each failing source lands in ``errors``."""
    host = host or get_host_config()
    info = KernelInfo(running_kernel=host_probe.running_kernel_version())

    try:
        info.installed_kernels = host_probe.installed_kernels(host.paths.modules_dir)
    except host_probe.ProbeError as e:
        logger.warning("Installed kernel probe failed: %s", e)
        info.errors["installed_kernels"] = f"Failed to get installed kernels: {e}"

    try:
        info.installable_kernels = search_installable_kernels(host)
    except host_probe.ProbeError as e:
        logger.warning("Kernel catalog search failed: %s", e)
        info.errors["installable_kernels"] = f"Failed to get installable kernels: {e}"

    return info


def query_kernel_info(
    *,
    host: HostConfig | None = None,
    publisher: EventBus | None = None,
) -> KernelInfo:
    """Fresh KernelInfo, published to observers."""
    info = collect_kernel_info(host)
    (publisher or bus).publish(
        KERNEL_STATUS,
        key="kernel",
        success=info.ok,
        data=info.model_dump(mode="json"),
    )
    return info


def _package_transaction(
    verb: str,
    flags: list[str],
    package: str,
    *,
    host: HostConfig | None,
    publisher: EventBus | None,
    runner: Runner | None,
) -> MutationOutcome:
    host = host or get_host_config()
    publisher = publisher or bus
    runner = runner or run_elevated

    package = package.strip()
    if not _PACKAGE_NAME.match(package):
        return MutationOutcome.failure(
            FailureKind.VALIDATION, f"Invalid package name: {package!r}",
        )

    with single_flight(PACKAGES) as acquired:
        if not acquired:
            return MutationOutcome.failure(
                FailureKind.BUSY, "Another package transaction is already in progress.",
            )

        result = runner([host.commands.pacman, *flags, package], host=host)
        if result.succeeded:
            outcome = MutationOutcome.success(
                f"Package {package} {verb}.",
                exit_code=result.exit_code,
                output=result.output,
            )
        else:
            outcome = result

        publisher.publish(
            KERNEL_OUTCOME,
            key="kernel",
            success=outcome.succeeded,
            data=outcome.to_payload(),
        )
        query_kernel_info(host=host, publisher=publisher)
        return outcome


def install_kernel(
    package: str,
    *,
    host: HostConfig | None = None,
    publisher: EventBus | None = None,
    runner: Runner | None = None,
) -> MutationOutcome:
    """Install a kernel package (``pacman -S --noconfirm``)."""
    return _package_transaction(
        "installed", ["-S", "--noconfirm"], package,
        host=host, publisher=publisher, runner=runner,
    )


def remove_kernel(
    package: str,
    *,
    host: HostConfig | None = None,
    publisher: EventBus | None = None,
    runner: Runner | None = None,
) -> MutationOutcome:
    """Remove a kernel package (``pacman -R --noconfirm``)."""
    return _package_transaction(
        "removed", ["-R", "--noconfirm"], package,
        host=host, publisher=publisher, runner=runner,
    )
