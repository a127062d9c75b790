"""
Shared test fixtures: a fake host tree, a recording privileged runner,
and a bus that remembers what it published.
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from hostplane.core.context import set_host_config
from hostplane.core.models.host import HostCommands, HostConfig, HostPaths
from hostplane.core.models.outcome import MutationOutcome
from hostplane.core.services.event_bus import EventBus

MANIFEST = textwrap.dedent("""\
    # Configuration file for locale-gen
    #
    #  Examples:
    #  en_US ISO-8859-1
    #  en_US.UTF-8 UTF-8
    #
    #de_DE.UTF-8 UTF-8
    #de_DE ISO-8859-1
    en_US.UTF-8 UTF-8
    #fr_FR.UTF-8 UTF-8
    #nl_NL ISO-8859-1
""")

LOCALE_CONF = 'LANG="en_US.UTF-8"\nLC_TIME=de_DE.UTF-8\n'


class FakeRunner:
    """Stands in for ``run_elevated``; records every argv it receives."""

    def __init__(
        self,
        outcome: MutationOutcome | None = None,
        side_effect: Callable[[list[str]], None] | None = None,
    ) -> None:
        self.calls: list[list[str]] = []
        self.outcome = outcome or MutationOutcome.success("done", exit_code=0)
        self.side_effect = side_effect

    def __call__(self, command, *, host=None, timeout=None) -> MutationOutcome:
        argv = list(command)
        self.calls.append(argv)
        if self.side_effect:
            self.side_effect(argv)
        return self.outcome


class RecordingBus(EventBus):
    """EventBus that keeps every published event in ``events``."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[dict] = []
        self.add_listener(self.events.append)

    def types(self) -> list[str]:
        return [e["type"] for e in self.events]


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    """A fake host filesystem under tmp_path."""
    modules = tmp_path / "lib" / "modules"
    modules.mkdir(parents=True)
    for name in ("6.6.1-arch1-1", "6.1.60-1-lts"):
        (modules / name).mkdir()

    etc = tmp_path / "etc"
    etc.mkdir()
    (etc / "locale.conf").write_text(LOCALE_CONF)
    (etc / "locale.gen").write_text(MANIFEST)
    (tmp_path / "run").mkdir()
    return tmp_path


@pytest.fixture
def fake_host(host_root: Path) -> HostConfig:
    """HostConfig pointing at the fake host tree."""
    return HostConfig(
        paths=HostPaths(
            modules_dir=host_root / "lib" / "modules",
            locale_conf=host_root / "etc" / "locale.conf",
            locale_gen=host_root / "etc" / "locale.gen",
            reboot_sentinel=host_root / "run" / "reboot-required",
        ),
        commands=HostCommands(broker="/nonexistent/pkexec"),
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def recording_bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def generated(monkeypatch) -> list[str]:
    """Replace ``locale -a`` with a mutable list of generated locales."""
    from hostplane.core.services import host_probe

    names = ["C.UTF-8", "en_US.UTF-8"]
    monkeypatch.setattr(host_probe, "generated_locales", lambda host=None: list(names))
    return names


@pytest.fixture(autouse=True)
def _reset_context():
    """The CLI registers a host config globally; drop it after each test."""
    yield
    set_host_config(None)
