"""
hostplane — privileged host state synchronization for Linux desktops.

Embedding in a UI host (settings panel, tray applet):

    from hostplane.core.engine.worker import TaskWorker
    from hostplane.core.reliability.single_flight import LOCALE, is_busy
    from hostplane.core.services.event_bus import bus
    from hostplane.core.services.locale_ops import apply_locale, query_locale_status

    bus.add_listener(render)                 # every status / outcome event
    worker = TaskWorker()
    worker.submit_probe(query_locale_status)
    if not is_busy(LOCALE):                  # grey out "Apply" while one runs
        worker.submit_mutation(apply_locale, {"lang": "de_DE.UTF-8"})

Mutations block for as long as the password dialog is open, so they
belong on the worker, never on the UI thread.  The ``hostplane`` CLI
(``hostplane.main``) is the reference caller.
"""

__version__ = "0.1.0"
