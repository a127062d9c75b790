"""
Single-flight guard — one mutation per resource class at a time.

The locale reconciler reads the manifest, edits it, runs a privileged
command, re-probes and publishes.  None of that is atomic against a
second writer, so two locale mutations must never overlap.  The same
holds for package transactions (pacman takes its own db lock and would
fail anyway).

A mutation that finds its class busy is rejected immediately instead
of queuing behind a password prompt that may never be answered.

    with single_flight("locale") as acquired:
        if not acquired:
            return busy outcome
        ...
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

LOCALE = "locale"
PACKAGES = "packages"

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _get_lock(resource: str) -> threading.Lock:
    """Get or create the lock for a resource class."""
    with _locks_guard:
        if resource not in _locks:
            _locks[resource] = threading.Lock()
        return _locks[resource]


def is_busy(resource: str) -> bool:
    """Whether a mutation currently holds ``resource``."""
    return _get_lock(resource).locked()


@contextmanager
def single_flight(resource: str) -> Iterator[bool]:
    """Try to take ``resource``; yield whether it was acquired."""
    lock = _get_lock(resource)
    acquired = lock.acquire(blocking=False)
    if not acquired:
        logger.info("Rejected concurrent %s mutation (already in flight)", resource)
    try:
        yield acquired
    finally:
        if acquired:
            lock.release()
