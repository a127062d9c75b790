"""
Task worker — run probes and mutations off the caller's thread.

Privileged calls can block for as long as a user sits on the password
dialog, and probes shell out to pacman.  Callers submit both here and
keep their own thread responsive; each submission returns a
``concurrent.futures.Future`` the caller can wait on with a timeout
or cancel before it starts.

Cancelling only detaches the caller.  A broker process already
running is left to finish; its outcome is still published.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskWorker:
    """A single logical pool for host probes and mutations.

    Args:
        max_workers: Thread count. Probes may run concurrently with each
            other and with an unrelated mutation; same-class mutations
            are serialized by ``single_flight``, not by the pool.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="hostplane",
        )
        self._lock = threading.Lock()
        self._inflight: set[Future] = set()

    @property
    def inflight(self) -> int:
        """Submitted tasks that have not finished yet."""
        with self._lock:
            return len(self._inflight)

    def _submit(self, kind: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        name = getattr(fn, "__name__", repr(fn))
        logger.debug("Submitting %s %s", kind, name)
        future = self._pool.submit(fn, *args, **kwargs)
        with self._lock:
            self._inflight.add(future)
        future.add_done_callback(self._done)
        return future

    def _done(self, future: Future) -> None:
        with self._lock:
            self._inflight.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error("Task failed", exc_info=future.exception())

    def submit_probe(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        """Schedule a read-only query (``query_locale_status`` etc.)."""
        return self._submit("probe", fn, *args, **kwargs)

    def submit_mutation(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        """Schedule a mutation (``apply_locale``, ``install_kernel`` etc.)."""
        return self._submit("mutation", fn, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait, cancel_futures=not wait)

    def __enter__(self) -> TaskWorker:
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()
