"""
hostplane — CLI entrypoint.

Usage:
    hostplane --help
    hostplane status
    hostplane kernel status
    hostplane locale status
    hostplane locale set --lang en_US.UTF-8
    hostplane locale generate de_DE.UTF-8
    hostplane elevated "pacman -Syu --noconfirm"
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from hostplane import __version__
from hostplane.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="hostplane")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to hostplane.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """hostplane — inspect and change Linux host state."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(debug=debug, verbose=verbose, quiet=quiet)

    # ── Host config (registered in core context for all services) ──
    from hostplane.core.config.loader import ConfigError, load_host_config
    from hostplane.core.context import set_host_config

    try:
        config = load_host_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    set_host_config(config)


@cli.command()
@click.argument("command")
@click.option("--timeout", type=float, default=None, help="Seconds before giving up.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def elevated(command: str, timeout: float | None, as_json: bool) -> None:
    """Run COMMAND as root through the authentication broker."""
    from hostplane.core.services.elevated_exec import run_elevated
    from hostplane.ui.cli.common import report_outcome

    outcome = run_elevated(command, timeout=timeout)
    if outcome.succeeded and not as_json:
        click.echo(outcome.output.strip())
        return
    report_outcome(outcome, as_json)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def status(as_json: bool) -> None:
    """Kernel and locale overview (both probed in parallel)."""
    import json

    from hostplane.core.engine.worker import TaskWorker
    from hostplane.core.services.kernel_ops import query_kernel_info
    from hostplane.core.services.locale_ops import query_locale_status
    from hostplane.ui.cli.common import report_errors

    with TaskWorker(max_workers=2) as worker:
        kernel_future = worker.submit_probe(query_kernel_info)
        locale_future = worker.submit_probe(query_locale_status)
        info = kernel_future.result()
        locale_status = locale_future.result()

    if as_json:
        click.echo(json.dumps({
            "kernel": info.model_dump(mode="json"),
            "locale": locale_status.model_dump(mode="json"),
        }, indent=2))
        return

    click.secho(f"🐧 Kernel: {info.running_kernel}", fg="cyan", bold=True)
    click.echo(
        f"   {len(info.installed_kernels)} installed, "
        f"{len(info.installable_kernels)} available"
    )
    lang = locale_status.current.lang or "(unset)"
    click.secho(f"🌐 Locale: {lang}", fg="cyan", bold=True)
    click.echo(
        f"   {len(locale_status.generated_locales)} generated, "
        f"{len(locale_status.available_locales)} enabled in locale.gen"
    )
    if locale_status.reboot_required:
        click.secho("🔁 A reboot is required.", fg="yellow")
    click.echo()
    report_errors({**info.errors, **locale_status.errors})


# ── Sub-groups ──────────────────────────────────────────────────

from hostplane.ui.cli.kernel import kernel  # noqa: E402
from hostplane.ui.cli.locales import locale  # noqa: E402

cli.add_command(kernel)
cli.add_command(locale)


if __name__ == "__main__":
    cli()
