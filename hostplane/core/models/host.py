"""
HostConfig — where host state lives and which binaries touch it.

Defaults describe a stock Arch-family host.  Every field can be
overridden from ``hostplane.yml`` (see ``core.config.loader``), which
is also how tests point the services at a fake host tree.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class HostPaths(BaseModel):
    """Host files consumed (and, for the manifest, written)."""

    modules_dir: Path = Path("/lib/modules")
    locale_conf: Path = Path("/etc/locale.conf")
    locale_gen: Path = Path("/etc/locale.gen")
    reboot_sentinel: Path = Path("/var/run/reboot-required")


class HostCommands(BaseModel):
    """External binaries, by name or absolute path."""

    broker: str = "/usr/bin/pkexec"
    shell: str = "sh"
    pacman: str = "pacman"
    localectl: str = "localectl"
    locale_gen: str = "locale-gen"
    locale: str = "locale"
    sed: str = "sed"


class CatalogSettings(BaseModel):
    """Repository search used to list installable kernels."""

    search_pattern: str = "^linux"
    sections: list[str] = Field(
        default_factory=lambda: ["core", "extra", "community"],
    )


class Timeouts(BaseModel):
    """Seconds before a command is abandoned.

    ``elevated_seconds`` is None by default: the broker may sit on an
    interactive password prompt for as long as the user takes.
    """

    probe_seconds: int = 30
    elevated_seconds: float | None = None


class HostConfig(BaseModel):
    """Root configuration model."""

    paths: HostPaths = Field(default_factory=HostPaths)
    commands: HostCommands = Field(default_factory=HostCommands)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    timeouts: Timeouts = Field(default_factory=Timeouts)
