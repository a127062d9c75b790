"""
Locale reconciler — query, apply and generate system locales.

Every operation ends the same way: re-derive the full LocaleStatus
from the host and publish it, so observers never keep showing the
pre-mutation state after an attempt.

    apply_locale     → pkexec localectl set-locale K=V ...  → re-probe → publish
    generate_locale  → enable line in locale.gen
                       → pkexec locale-gen                  → re-probe → publish

Mutations are single-flight on the ``locale`` resource class.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Callable, Mapping, Sequence

from hostplane.core.context import get_host_config
from hostplane.core.models.host import HostConfig
from hostplane.core.models.locale import (
    LOCALE_CATEGORIES,
    LocaleConfiguration,
    LocaleStatus,
)
from hostplane.core.models.outcome import FailureKind, MutationOutcome
from hostplane.core.reliability.single_flight import LOCALE, single_flight
from hostplane.core.services import host_probe
from hostplane.core.services.elevated_exec import run_elevated
from hostplane.core.services.event_bus import (
    LOCALE_OUTCOME,
    LOCALE_STATUS,
    EventBus,
    bus,
)

logger = logging.getLogger(__name__)

Runner = Callable[..., MutationOutcome]

# Non-UTF-8 bytes (a Latin-1 comment) survive a read-edit-write unchanged
_MANIFEST_ERRORS = "surrogateescape"


# ═══════════════════════════════════════════════════════════════════
#  Status
# ═══════════════════════════════════════════════════════════════════


def collect_locale_status(host: HostConfig | None = None) -> LocaleStatus:
    """Probe every locale source.  Each failing source lands in ``errors``."""
    host = host or get_host_config()
    errors: dict[str, str] = {}

    current = LocaleConfiguration()
    try:
        current = host_probe.read_locale_conf(host.paths.locale_conf)
    except host_probe.ProbeError as e:
        errors["current"] = str(e)

    available: list[str] = []
    try:
        available = host_probe.available_locales(host.paths.locale_gen)
    except host_probe.ProbeError as e:
        errors["available_locales"] = str(e)

    generated: list[str] = []
    try:
        generated = host_probe.generated_locales(host)
    except host_probe.ProbeError as e:
        errors["generated_locales"] = str(e)

    for field, message in errors.items():
        logger.warning("Locale probe %s failed: %s", field, message)

    return LocaleStatus(
        current=current,
        available_locales=available,
        generated_locales=generated,
        reboot_required=host_probe.reboot_required(host.paths.reboot_sentinel),
        errors=errors,
    )


def query_locale_status(
    *,
    host: HostConfig | None = None,
    publisher: EventBus | None = None,
) -> LocaleStatus:
    """Fresh LocaleStatus, published to observers."""
    status = collect_locale_status(host)
    (publisher or bus).publish(
        LOCALE_STATUS,
        key="locale",
        success=status.ok,
        data=status.model_dump(mode="json"),
    )
    return status


def _finish(
    outcome: MutationOutcome,
    host: HostConfig,
    publisher: EventBus,
) -> MutationOutcome:
    """Publish the outcome, then the re-probed status."""
    publisher.publish(
        LOCALE_OUTCOME,
        key="locale",
        success=outcome.succeeded,
        data=outcome.to_payload(),
    )
    query_locale_status(host=host, publisher=publisher)
    return outcome


def _busy() -> MutationOutcome:
    return MutationOutcome.failure(
        FailureKind.BUSY,
        "Another locale change is already in progress.",
    )


# ═══════════════════════════════════════════════════════════════════
#  Apply (localectl)
# ═══════════════════════════════════════════════════════════════════


def build_set_locale_args(categories: Mapping[str, str | None]) -> list[str]:
    """``set-locale`` plus ``CATEGORY=value`` in the fixed category order.

    Keys may be upper case (``LC_TIME``) or snake case (``lc_time``).

    Raises:
        ValueError: an unknown category was supplied.
    """
    normalized: dict[str, str] = {}
    for key, value in categories.items():
        category = key.upper()
        if category not in LOCALE_CATEGORIES:
            raise ValueError(f"Unknown locale category: {key}")
        normalized[category] = (value or "").strip()

    args = ["set-locale"]
    for category in LOCALE_CATEGORIES:
        value = normalized.get(category, "")
        if value:
            args.append(f"{category}={value}")
    return args


def apply_locale(
    categories: Mapping[str, str | None],
    *,
    host: HostConfig | None = None,
    publisher: EventBus | None = None,
    runner: Runner | None = None,
) -> MutationOutcome:
    """Set system locale categories through ``localectl``.

    Args:
        categories: Category → value. Empty/None values are skipped.
        host: Host config (default: the registered one).
        publisher: Bus to publish on (default: module bus).
        runner: Privileged runner (default: ``run_elevated``).

    Returns:
        MutationOutcome. A validation failure makes no privileged call.
    """
    host = host or get_host_config()
    publisher = publisher or bus
    runner = runner or run_elevated

    try:
        args = build_set_locale_args(categories)
    except ValueError as e:
        return MutationOutcome.failure(FailureKind.VALIDATION, str(e))

    if len(args) == 1:
        return MutationOutcome.failure(FailureKind.VALIDATION, "No locale values supplied")

    with single_flight(LOCALE) as acquired:
        if not acquired:
            return _busy()

        result = runner([host.commands.localectl, *args], host=host)
        if result.succeeded:
            outcome = MutationOutcome.success(
                "Locale applied. A reboot may be required.",
                exit_code=result.exit_code,
                output=result.output,
            )
        else:
            outcome = result
        return _finish(outcome, host, publisher)


# ═══════════════════════════════════════════════════════════════════
#  Generate (locale.gen + locale-gen)
# ═══════════════════════════════════════════════════════════════════


class ManifestAction(StrEnum):
    ENABLED = "enabled"        # uncommented entry present, no edit
    UNCOMMENT = "uncomment"    # commented entry found at ``line_index``
    MISSING = "missing"        # no usable entry for the locale


@dataclass
class ManifestPlan:
    action: ManifestAction
    line_index: int = -1
    malformed: int = 0


def _entry_tokens(line: str) -> tuple[bool, list[str]] | None:
    """(commented, tokens) for a manifest entry, None for prose/blank.

    Commented entries have their locale glued to the ``#``; lines like
    ``#  en_US.UTF-8 UTF-8`` are header examples, not entries.
    """
    stripped = line.strip()
    if not stripped:
        return None
    if stripped.startswith("#"):
        body = stripped[1:]
        if not body or body[0].isspace():
            return None
        return True, body.split()
    return False, stripped.split()


def plan_manifest_edit(lines: Sequence[str], locale_id: str) -> ManifestPlan:
    """Decide how to enable ``locale_id`` in the manifest.

    An entry matches when its first token, with any UTF-8 suffix
    stripped, equals the normalized id, and the second and last token
    is ``UTF-8``.  Entries naming the locale with another shape are
    counted as malformed and never touched.
    """
    wanted = host_probe.normalize_locale_id(locale_id)
    first_commented = -1
    malformed = 0

    for index, line in enumerate(lines):
        parsed = _entry_tokens(line)
        if parsed is None:
            continue
        commented, tokens = parsed
        if host_probe.normalize_locale_id(tokens[0]) != wanted:
            continue
        if len(tokens) != 2:
            malformed += 1
            continue
        if tokens[1] != "UTF-8":
            continue
        if not commented:
            return ManifestPlan(ManifestAction.ENABLED, index, malformed)
        if first_commented < 0:
            first_commented = index

    if first_commented >= 0:
        return ManifestPlan(ManifestAction.UNCOMMENT, first_commented, malformed)
    return ManifestPlan(ManifestAction.MISSING, malformed=malformed)


def _write_manifest(path: Path, lines: Sequence[str]) -> None:
    """Atomic write: temp file in the same directory, then rename."""
    content = "\n".join(lines) + "\n"
    mode = path.stat().st_mode & 0o777
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".locale.gen_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors=_MANIFEST_ERRORS) as f:
            f.write(content)
        tmp.chmod(mode)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def enable_in_manifest(
    locale_id: str,
    host: HostConfig,
    runner: Runner,
) -> tuple[ManifestPlan, MutationOutcome | None]:
    """Enable ``locale_id`` in locale.gen.

    Returns the plan and, when enabling failed, the failure outcome.
    A manifest the current user cannot write is edited through the
    broker with ``sed``, touching only the planned line.
    """
    path = host.paths.locale_gen
    try:
        text = path.read_text(encoding="utf-8", errors=_MANIFEST_ERRORS)
    except OSError as e:
        return ManifestPlan(ManifestAction.MISSING), MutationOutcome.failure(
            FailureKind.IO, f"read {path}: {e}",
        )

    lines = text.splitlines()
    plan = plan_manifest_edit(lines, locale_id)
    if plan.malformed:
        logger.warning("Left %d malformed %s entries for %s untouched",
                       plan.malformed, path, locale_id)

    if plan.action is ManifestAction.ENABLED:
        logger.debug("%s already enabled in %s", locale_id, path)
        return plan, None

    if plan.action is ManifestAction.MISSING:
        return plan, MutationOutcome.failure(
            FailureKind.VALIDATION,
            f"Locale {locale_id} is not listed in {path}",
        )

    target = lines[plan.line_index].lstrip()[1:]
    lines[plan.line_index] = target
    try:
        _write_manifest(path, lines)
        logger.info("Enabled %r in %s", target, path)
        return plan, None
    except PermissionError:
        logger.info("%s not writable, enabling line %d via broker", path, plan.line_index + 1)
    except OSError as e:
        return plan, MutationOutcome.failure(FailureKind.IO, f"write {path}: {e}")

    result = runner(
        [host.commands.sed, "-i", f"{plan.line_index + 1}s/^\\s*#//", str(path)],
        host=host,
    )
    return plan, (None if result.succeeded else result)


def generate_locale(
    locale_id: str,
    *,
    host: HostConfig | None = None,
    publisher: EventBus | None = None,
    runner: Runner | None = None,
) -> MutationOutcome:
    """Enable ``locale_id`` in the manifest and run ``locale-gen``.

    Repeated requests for an enabled locale do not rewrite the
    manifest but still run the generator.
    """
    host = host or get_host_config()
    publisher = publisher or bus
    runner = runner or run_elevated

    wanted = host_probe.normalize_locale_id(locale_id)
    if not wanted:
        return MutationOutcome.failure(FailureKind.VALIDATION, "No locale supplied")

    with single_flight(LOCALE) as acquired:
        if not acquired:
            return _busy()

        plan, failure = enable_in_manifest(wanted, host, runner)
        if failure is not None:
            if plan.action is ManifestAction.MISSING and failure.kind is FailureKind.VALIDATION:
                return failure
            return _finish(failure, host, publisher)

        result = runner([host.commands.locale_gen], host=host)
        if result.succeeded:
            outcome = MutationOutcome.success(
                f"Locale {locale_id.strip()} generated.",
                exit_code=result.exit_code,
                output=result.output,
            )
        else:
            outcome = result
        return _finish(outcome, host, publisher)
