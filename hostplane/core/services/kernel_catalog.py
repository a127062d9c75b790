"""
Repository catalog — kernel candidates from ``pacman -Ss`` output.

The search output is a two-line grammar::

    core/linux 6.6.1.arch1-1 [installed]
        Description: The Linux kernel and modules
    core/linux-headers 6.6.1.arch1-1
        Description: Headers and scripts for building modules

``CatalogParser`` consumes it line by line with two states:

    AWAITING_HEADER
        a header line pushes a candidate → AWAITING_DESCRIPTION_OR_HEADER
        (header/doc packages and malformed headers stay here)
    AWAITING_DESCRIPTION_OR_HEADER
        a description line fills the pending candidate → AWAITING_HEADER
        a header line starts the next candidate

Everything else is noise and ignored in both states.
"""

from __future__ import annotations

import logging
import subprocess
from enum import StrEnum
from typing import Iterable

from hostplane.core.context import get_host_config
from hostplane.core.models.host import HostConfig
from hostplane.core.models.kernel import InstallableKernel
from hostplane.core.services.host_probe import (
    CommandError,
    classify_installable_flavor,
)

logger = logging.getLogger(__name__)

DEFAULT_SECTIONS: tuple[str, ...] = ("core", "extra", "community")

_EXCLUDED_SUFFIXES = ("-headers", "-docs")
_DESCRIPTION_LABEL = "Description:"


class ParserState(StrEnum):
    AWAITING_HEADER = "awaiting_header"
    AWAITING_DESCRIPTION_OR_HEADER = "awaiting_description_or_header"


class CatalogParser:
    """Stateful parser for repository search output.

    Args:
        sections: Repository names whose ``<name>/`` prefix marks a header.
    """

    def __init__(self, sections: Iterable[str] = DEFAULT_SECTIONS) -> None:
        self._prefixes = tuple(f"{s}/" for s in sections)
        self.state = ParserState.AWAITING_HEADER
        self.pending: str | None = None
        self.entries: list[InstallableKernel] = []

    def feed(self, line: str) -> None:
        """Consume one line of search output."""
        if line.startswith(self._prefixes):
            self._on_header(line)
        elif line.strip().startswith(_DESCRIPTION_LABEL):
            self._on_description(line)

    def _reset(self) -> None:
        self.pending = None
        self.state = ParserState.AWAITING_HEADER

    def _on_header(self, line: str) -> None:
        parts = line.split()
        if len(parts) < 2:
            logger.debug("Skipping malformed catalog header: %r", line)
            self._reset()
            return

        repository, _, name = parts[0].partition("/")
        if not name:
            logger.debug("Skipping catalog header without a package name: %r", line)
            self._reset()
            return

        if name.endswith(_EXCLUDED_SUFFIXES):
            self._reset()
            return

        self.entries.append(InstallableKernel(
            package_name=name,
            version=parts[1],
            flavor=classify_installable_flavor(name),
            repository=repository,
            installed=any(p.startswith("[installed") for p in parts[2:]),
        ))
        self.pending = name
        self.state = ParserState.AWAITING_DESCRIPTION_OR_HEADER

    def _on_description(self, line: str) -> None:
        if self.state is not ParserState.AWAITING_DESCRIPTION_OR_HEADER or self.pending is None:
            return

        text = line.split(":", 1)[1].strip()
        for entry in reversed(self.entries):
            if entry.package_name == self.pending:
                entry.description = text
                break
        self._reset()

    def result(self) -> list[InstallableKernel]:
        return list(self.entries)


def parse_catalog(
    raw: str,
    sections: Iterable[str] = DEFAULT_SECTIONS,
) -> list[InstallableKernel]:
    """Parse repository search output into installable kernels."""
    parser = CatalogParser(sections)
    for line in raw.splitlines():
        parser.feed(line)
    return parser.result()


def search_installable_kernels(host: HostConfig | None = None) -> list[InstallableKernel]:
    """Search the configured repositories for kernel packages.

    ``pacman -Ss`` exits 1 when nothing matches; that is an empty
    result, not a failure.

    Raises:
        CommandError: pacman could not run or failed.
    """
    host = host or get_host_config()
    args = [host.commands.pacman, "-Ss", host.catalog.search_pattern]
    logger.debug("Catalog search: %s", " ".join(args))

    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=host.timeouts.probe_seconds,
        )
    except OSError as e:
        raise CommandError(args[0], f"failed to execute: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(args[0], f"timed out after {host.timeouts.probe_seconds}s") from e

    stdout = result.stdout or ""
    if result.returncode == 1 and not stdout.strip():
        return []
    if result.returncode != 0:
        raise CommandError(
            args[0],
            f"exit {result.returncode}: {(result.stderr or '').strip()}",
        )
    return parse_catalog(stdout, host.catalog.sections)
