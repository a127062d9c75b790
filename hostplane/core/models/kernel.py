"""
Kernel models — installed module trees and repository candidates.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

InstalledFlavor = Literal["lts", "rt", "zen", "default"]
InstallableFlavor = Literal["lts", "rt", "zen", "main", "other"]


class InstalledKernel(BaseModel):
    """A kernel whose modules are present under the modules directory."""

    name: str                       # guessed package name
    version: str = Field(min_length=1)  # module directory name
    flavor: InstalledFlavor


class InstallableKernel(BaseModel):
    """A kernel package offered by a configured repository."""

    package_name: str
    version: str
    description: str = ""
    flavor: InstallableFlavor
    repository: str = ""
    installed: bool = False


class KernelInfo(BaseModel):
    """Snapshot of running, installed and installable kernels.

    ``errors`` maps a field name to its probe failure; the other fields
    are still reported when one probe fails.
    """

    running_kernel: str
    installed_kernels: list[InstalledKernel] = Field(default_factory=list)
    installable_kernels: list[InstallableKernel] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors
