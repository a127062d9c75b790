"""
Privileged executor — run a command as root through the polkit broker.

The SINGLE PLACE where ``pkexec`` is spawned.  Every host mutation
(localectl, locale-gen, pacman -S/-R) goes through ``run_elevated``,
so outcome classification lives here and nowhere else.

Classification
──────────────
``classify(exit_code, stderr)`` maps a finished process to a closed
``FailureKind``.  Authentication denial is decided by the predicates
in ``DENIAL_PREDICATES``; each predicate is a plain callable so it can
be unit-tested, and other brokers (doas, run0) can append their own.

    exit 0                         → success
    any denial predicate matches   → FailureKind.DENIED
    other non-zero exit            → FailureKind.EXIT
    OSError while spawning         → FailureKind.SPAWN
    caller timeout elapsed         → FailureKind.TIMEOUT

The call blocks until the broker exits, which includes the time the
user spends on the password dialog.  Run it on the task worker, never
on a thread that has to stay responsive.
"""

from __future__ import annotations

import logging
import subprocess
import time
from typing import Callable, Sequence

from hostplane.core.context import get_host_config
from hostplane.core.models.host import HostConfig
from hostplane.core.models.outcome import FailureKind, MutationOutcome

logger = logging.getLogger(__name__)

DenialPredicate = Callable[[int, str], bool]

# pkexec: 126 = dialog dismissed, 127 = not authorized / auth failed
_DENIAL_EXIT_CODES = frozenset({126, 127})

_DENIAL_PHRASES = (
    "not authorized",
    "authentication failed",
    "request dismissed",
)


def denied_by_exit_code(exit_code: int, stderr: str) -> bool:
    """pkexec reserves 126/127 for its own authorization failures."""
    return exit_code in _DENIAL_EXIT_CODES


def denied_by_stderr(exit_code: int, stderr: str) -> bool:
    """The broker printed an authorization-denied phrase."""
    lowered = stderr.lower()
    return any(phrase in lowered for phrase in _DENIAL_PHRASES)


DENIAL_PREDICATES: list[DenialPredicate] = [
    denied_by_exit_code,
    denied_by_stderr,
]


def classify(
    exit_code: int,
    stderr: str,
    predicates: Sequence[DenialPredicate] | None = None,
) -> FailureKind | None:
    """Map a finished broker process to a failure kind (None = success)."""
    if exit_code == 0:
        return None
    for predicate in (DENIAL_PREDICATES if predicates is None else predicates):
        if predicate(exit_code, stderr):
            return FailureKind.DENIED
    return FailureKind.EXIT


def build_elevated_argv(command: str | Sequence[str], host: HostConfig) -> list[str]:
    """Broker argv for a command line (run by the shell) or an argv list."""
    if isinstance(command, str):
        return [host.commands.broker, host.commands.shell, "-c", command]
    return [host.commands.broker, *command]


def run_elevated(
    command: str | Sequence[str],
    *,
    host: HostConfig | None = None,
    timeout: float | None = None,
    predicates: Sequence[DenialPredicate] | None = None,
) -> MutationOutcome:
    """Run ``command`` with root rights via the broker.

    Args:
        command: A command line (handed to ``sh -c``) or an argv list
            (passed to the broker directly, no shell involved).
        host: Host config (default: the registered one).
        timeout: Seconds before giving up. Defaults to
            ``timeouts.elevated_seconds`` (None = wait for the user).
        predicates: Denial predicates (default: ``DENIAL_PREDICATES``).

    Returns:
        MutationOutcome. Never raises.
    """
    host = host or get_host_config()
    if timeout is None:
        timeout = host.timeouts.elevated_seconds

    argv = build_elevated_argv(command, host)
    broker = host.commands.broker
    logger.info("Elevated: %s", " ".join(argv[1:]))

    start = time.monotonic()
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("Elevated command timed out after %ss: %s", timeout, argv[1:])
        return MutationOutcome.failure(
            FailureKind.TIMEOUT,
            f"Elevated command timed out after {timeout}s",
        )
    except OSError as e:
        logger.error("Cannot spawn %s: %s", broker, e)
        return MutationOutcome.failure(
            FailureKind.SPAWN,
            f"Failed to spawn {broker} process: {e}",
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout or ""
    stderr = result.stderr or ""
    combined = f"{stdout}\n{stderr}"
    code = result.returncode
    logger.debug("Elevated exit=%d in %dms, output=%r", code, elapsed_ms, combined[-500:])

    kind = classify(code, stderr, predicates)
    if kind is None:
        return MutationOutcome.success(combined, exit_code=0, output=combined)

    if kind is FailureKind.DENIED:
        logger.info("Elevation denied or cancelled (exit %d)", code)
        return MutationOutcome.failure(
            kind,
            f"Root permission denied or cancelled by user. (Exit Code: {code})",
            exit_code=code,
            output=combined,
        )

    logger.warning("Elevated command failed (exit %d)", code)
    return MutationOutcome.failure(
        kind,
        f"Elevated command failed (Exit Code: {code}). Output: {combined}",
        exit_code=code,
        output=combined,
    )
