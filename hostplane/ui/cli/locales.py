"""
CLI commands for system locale.

Thin wrappers over ``hostplane.core.services.locale_ops``.
"""

from __future__ import annotations

import json

import click

from hostplane.ui.cli.common import report_errors, report_outcome


@click.group()
def locale() -> None:
    """Locale — status, set, generate."""


@locale.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def status(as_json: bool) -> None:
    """Show current, available and generated locales."""
    from hostplane.core.models.locale import LOCALE_CATEGORIES
    from hostplane.core.services.locale_ops import query_locale_status

    result = query_locale_status()

    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    click.secho("🌐 Current locale:", fg="cyan", bold=True)
    for category in LOCALE_CATEGORIES:
        value = result.current.get(category)
        if value:
            click.echo(f"     {category}={value}")

    generated = set(result.generated_locales)
    click.secho(f"\n   Available: {len(result.available_locales)}", fg="white", bold=True)
    for name in result.available_locales:
        marker = " ✓" if name in generated else ""
        click.echo(f"     • {name}{marker}")

    if result.reboot_required:
        click.secho("\n🔁 A reboot is required.", fg="yellow")
    click.echo()
    report_errors(result.errors)


@locale.command("set")
@click.option("--lang", default=None, help="LANG")
@click.option("--lc-collate", default=None, help="LC_COLLATE")
@click.option("--lc-ctype", default=None, help="LC_CTYPE")
@click.option("--lc-messages", default=None, help="LC_MESSAGES")
@click.option("--lc-monetary", default=None, help="LC_MONETARY")
@click.option("--lc-numeric", default=None, help="LC_NUMERIC")
@click.option("--lc-time", default=None, help="LC_TIME")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def set_locale(as_json: bool, **categories: str | None) -> None:
    """Apply locale categories with localectl (asks for authentication)."""
    from hostplane.core.services.locale_ops import apply_locale

    report_outcome(apply_locale(categories), as_json)


@locale.command()
@click.argument("locale_id")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def generate(locale_id: str, as_json: bool) -> None:
    """Enable LOCALE_ID in locale.gen and run locale-gen."""
    from hostplane.core.services.locale_ops import generate_locale

    report_outcome(generate_locale(locale_id), as_json)
