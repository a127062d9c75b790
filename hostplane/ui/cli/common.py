"""
Shared output helpers for the CLI command groups.
"""

from __future__ import annotations

import json
import sys

import click

from hostplane.core.models.outcome import MutationOutcome


def report_outcome(outcome: MutationOutcome, as_json: bool) -> None:
    """Print a mutation outcome; exit 1 when it failed."""
    if as_json:
        click.echo(json.dumps(outcome.model_dump(mode="json"), indent=2))
    elif outcome.succeeded:
        click.secho(f"✅ {outcome.message}", fg="green")
    else:
        label = outcome.kind.value if outcome.kind else "failed"
        click.secho(f"❌ [{label}] {outcome.message}", fg="red")

    if not outcome.succeeded:
        sys.exit(1)


def report_errors(errors: dict[str, str]) -> None:
    """Print per-probe failures of a status snapshot."""
    for field, message in errors.items():
        click.secho(f"⚠️  {field}: {message}", fg="yellow")
