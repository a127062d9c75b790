"""
Host probes — read-only queries of kernel and locale state.

Nothing here mutates the host.  Each probe is independent: callers
that aggregate several probes (kernel_ops, locale_ops) catch
``ProbeError`` per probe so one broken source never hides the others.

Parsers take text and are pure; the ``read_*`` / probe functions wrap
them with the file or command access.
"""

from __future__ import annotations

import logging
import platform
import re
import subprocess
from pathlib import Path

from hostplane.core.context import get_host_config
from hostplane.core.models.host import HostConfig
from hostplane.core.models.kernel import InstalledKernel
from hostplane.core.models.locale import LocaleConfiguration

logger = logging.getLogger(__name__)


class ProbeError(Exception):
    """A host source (file, directory, command) could not be read."""

    def __init__(self, source: str | Path, message: str) -> None:
        self.source = str(source)
        super().__init__(f"{self.source}: {message}")


class CommandError(ProbeError):
    """A read-only helper command failed to start or exited non-zero."""


def run_command(args: list[str], timeout: int = 30) -> str:
    """Run an unprivileged command and return its stdout.

    Raises:
        CommandError: spawn failure, timeout, or non-zero exit.
    """
    logger.debug("Probe command: %s", " ".join(args))
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except OSError as e:
        raise CommandError(args[0], f"failed to execute: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(args[0], f"timed out after {timeout}s") from e

    if result.returncode != 0:
        raise CommandError(
            args[0],
            f"exit {result.returncode}: {(result.stderr or '').strip()}",
        )
    return result.stdout


# ═══════════════════════════════════════════════════════════════════
#  Kernel
# ═══════════════════════════════════════════════════════════════════


def running_kernel_version() -> str:
    """Release string of the live kernel (no subprocess)."""
    return platform.release() or "<unknown>"


def classify_installed_flavor(name: str) -> str:
    """Flavor of an installed kernel from its module directory name."""
    if "lts" in name:
        return "lts"
    if "rt" in name:
        return "rt"
    if "zen" in name:
        return "zen"
    return "default"


def classify_installable_flavor(package_name: str) -> str:
    """Flavor of a repository package from its name."""
    if "lts" in package_name:
        return "lts"
    if "rt" in package_name:
        return "rt"
    if "zen" in package_name:
        return "zen"
    if package_name == "linux":
        return "main"
    return "other"


def installed_kernels(modules_dir: Path) -> list[InstalledKernel]:
    """One entry per subdirectory of the kernel modules root.

    Raises:
        ProbeError: the directory cannot be listed.
    """
    try:
        entries = sorted(p for p in modules_dir.iterdir() if p.is_dir())
    except OSError as e:
        raise ProbeError(modules_dir, e.strerror or str(e)) from e

    kernels: list[InstalledKernel] = []
    for entry in entries:
        flavor = classify_installed_flavor(entry.name)
        kernels.append(InstalledKernel(
            name="linux" if flavor == "default" else f"linux-{flavor}",
            version=entry.name,
            flavor=flavor,
        ))
    return kernels


# ═══════════════════════════════════════════════════════════════════
#  Locale
# ═══════════════════════════════════════════════════════════════════

_KNOWN_KEYS = frozenset(
    ("LANG", "LC_COLLATE", "LC_CTYPE", "LC_MESSAGES", "LC_MONETARY", "LC_NUMERIC", "LC_TIME")
)

_UTF8_SUFFIX = re.compile(r"\.utf-?8$", re.IGNORECASE)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ProbeError(path, e.strerror or str(e)) from e


def parse_locale_conf(text: str) -> LocaleConfiguration:
    """Parse ``KEY=value`` lines. Best effort: never fails on content."""
    values: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if key not in _KNOWN_KEYS:
            continue
        values[key.lower()] = value.strip().strip("\"'").strip()
    return LocaleConfiguration(**values)


def read_locale_conf(path: Path) -> LocaleConfiguration:
    """Parse the system locale file at ``path``."""
    return parse_locale_conf(_read_text(path))


def parse_locale_manifest(text: str) -> list[str]:
    """Enabled UTF-8 locales from locale.gen text, in file order."""
    found: dict[str, None] = {}
    for raw_line in text.splitlines():
        line = raw_line.lstrip()
        if not line or line.startswith("#") or "UTF-8" not in line:
            continue
        found.setdefault(line.split()[0], None)
    return list(found)


def available_locales(path: Path) -> list[str]:
    """Locales enabled for generation in the manifest at ``path``."""
    return parse_locale_manifest(_read_text(path))


def normalize_utf8_suffix(name: str) -> str:
    """``en_US.utf8`` → ``en_US.UTF-8``."""
    return _UTF8_SUFFIX.sub(".UTF-8", name)


def normalize_locale_id(locale_id: str) -> str:
    """``en_US.UTF-8`` / ``en_US.utf8`` / ``en_US`` → ``en_US``."""
    return _UTF8_SUFFIX.sub("", locale_id.strip())


def parse_locale_listing(text: str) -> list[str]:
    """UTF-8 entries of ``locale -a`` output, suffix normalized."""
    found: dict[str, None] = {}
    for raw_line in text.splitlines():
        name = raw_line.strip()
        if not name or not _UTF8_SUFFIX.search(name):
            continue
        found.setdefault(normalize_utf8_suffix(name), None)
    return list(found)


def generated_locales(host: HostConfig | None = None) -> list[str]:
    """Locales already compiled on this host (``locale -a``)."""
    host = host or get_host_config()
    output = run_command([host.commands.locale, "-a"], timeout=host.timeouts.probe_seconds)
    return parse_locale_listing(output)


def reboot_required(sentinel: Path) -> bool:
    """Advisory: the distro dropped a reboot marker."""
    return sentinel.exists()
