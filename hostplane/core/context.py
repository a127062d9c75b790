"""
Host context — the single source of truth for "which host layout are we using."

Every core service that needs host paths or command names falls back
to the configuration registered here when the caller does not pass
one explicitly.  The config is set ONCE at startup by whichever entry
point launches the process:

    - CLI:    main.py   → context.set_host_config(cfg)
    - Tests:  conftest  → pass ``host=`` explicitly

Design notes:
    - Module-level singleton (not a class).
    - get_host_config() never returns None — it lazily falls back to
      the built-in defaults so library callers work without setup.
"""

from __future__ import annotations

from typing import Optional

from hostplane.core.models.host import HostConfig


_host_config: Optional[HostConfig] = None


def set_host_config(config: HostConfig | None) -> None:
    """Register the host config for the current process (None resets)."""
    global _host_config
    _host_config = config


def get_host_config() -> HostConfig:
    """Return the registered host config, or the defaults if unset."""
    if _host_config is None:
        return HostConfig()
    return _host_config
