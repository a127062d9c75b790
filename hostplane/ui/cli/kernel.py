"""
CLI commands for kernel state.

Thin wrappers over ``hostplane.core.services.kernel_ops``.
"""

from __future__ import annotations

import json

import click

from hostplane.ui.cli.common import report_errors, report_outcome


@click.group()
def kernel() -> None:
    """Kernels — status, install, remove."""


@kernel.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def status(as_json: bool) -> None:
    """Show running, installed and installable kernels."""
    from hostplane.core.services.kernel_ops import query_kernel_info

    info = query_kernel_info()

    if as_json:
        click.echo(json.dumps(info.model_dump(mode="json"), indent=2))
        return

    click.secho(f"🐧 Running: {info.running_kernel}", fg="cyan", bold=True)

    click.secho(f"\n   Installed: {len(info.installed_kernels)}", fg="white", bold=True)
    for k in info.installed_kernels:
        click.echo(f"     • {k.version}  [{k.flavor}]")

    click.secho(f"\n   Installable: {len(info.installable_kernels)}", fg="white", bold=True)
    for k in info.installable_kernels:
        marker = " ✓" if k.installed else ""
        click.echo(f"     • {k.package_name} {k.version} [{k.flavor}]{marker}")
        if k.description:
            click.echo(f"         {k.description}")

    click.echo()
    report_errors(info.errors)


@kernel.command()
@click.argument("package")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def install(package: str, as_json: bool) -> None:
    """Install PACKAGE from the repositories (asks for authentication)."""
    from hostplane.core.services.kernel_ops import install_kernel

    report_outcome(install_kernel(package), as_json)


@kernel.command()
@click.argument("package")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def remove(package: str, as_json: bool) -> None:
    """Remove an installed PACKAGE (asks for authentication)."""
    from hostplane.core.services.kernel_ops import remove_kernel

    report_outcome(remove_kernel(package), as_json)
