"""
MutationOutcome — the result contract for every host mutation.

Mutations never raise to their caller.  Whatever happened (success,
a cancelled password prompt, a missing binary) comes back as one
outcome carrying a closed failure kind, so the presentation layer can
pick "retry" vs "not authorized" without parsing messages.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class FailureKind(StrEnum):
    """Why a mutation did not succeed."""

    DENIED = "denied"           # authentication refused or cancelled
    EXIT = "exit"               # command ran and exited non-zero
    SPAWN = "spawn"             # broker could not be started
    TIMEOUT = "timeout"         # caller's deadline elapsed
    VALIDATION = "validation"   # nothing actionable requested
    IO = "io"                   # host file could not be read/written
    BUSY = "busy"               # another mutation holds the resource


class MutationOutcome(BaseModel):
    """Outcome of one mutation attempt. Never partial."""

    succeeded: bool
    message: str = ""
    kind: FailureKind | None = None
    exit_code: int | None = None
    output: str = ""

    @classmethod
    def success(cls, message: str, **kwargs: Any) -> MutationOutcome:
        """Create a success outcome."""
        return cls(succeeded=True, message=message, **kwargs)

    @classmethod
    def failure(cls, kind: FailureKind, message: str, **kwargs: Any) -> MutationOutcome:
        """Create a failure outcome."""
        return cls(succeeded=False, kind=kind, message=message, **kwargs)

    def to_payload(self) -> dict[str, Any]:
        """Observer payload: ``{success, message}`` plus the failure kind."""
        payload: dict[str, Any] = {"success": self.succeeded, "message": self.message}
        if self.kind is not None:
            payload["kind"] = self.kind.value
        return payload
