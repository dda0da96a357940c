"""Typer CLI for kubeprov."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Coroutine
from pathlib import Path
from typing import Any

import structlog
import typer
from rich.console import Console
from rich.table import Table

from kubeprov.config.loader import load_cluster_config, load_provisioner_config
from kubeprov.config.models import CloudProvider, ClusterConfig, ProvisionerConfig
from kubeprov.errors import KubeprovError
from kubeprov.machinecontroller.cascade import delete_all_machines
from kubeprov.machinecontroller.context import MachineControllerContext, open_context
from kubeprov.machinecontroller.lifecycle import ensure, wait_ready
from kubeprov.provisioning.factory import create_provisioner
from kubeprov.provisioning.providers import get_provider

console = Console()
app = typer.Typer(name="kubeprov", help="Cluster infrastructure lifecycle CLI")
mc_app = typer.Typer(name="machine-controller", help="machine-controller operations")
app.add_typer(mc_app)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


def _load_cluster(config_path: str) -> ClusterConfig:
    path = Path(config_path)
    if not path.exists():
        console.print(f"[red]Config file not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        return load_cluster_config(path)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Invalid config:[/red] {exc}")
        raise typer.Exit(1) from exc


def _load_provisioner(config_path: str, identifier: str | None) -> ProvisionerConfig:
    path = Path(config_path)
    if not path.exists():
        console.print(f"[red]Config file not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        config = load_provisioner_config(path)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Invalid config:[/red] {exc}")
        raise typer.Exit(1) from exc
    if identifier is not None:
        config = ProvisionerConfig.model_validate(
            {**config.model_dump(), "identifier": identifier}
        )
    return config


def _run(coro: Coroutine[Any, Any, None], failure: str) -> None:
    try:
        asyncio.run(coro)
    except (KubeprovError, TimeoutError) as exc:
        console.print(f"[red]{failure}:[/red] {str(exc) or 'deadline exceeded'}")
        raise typer.Exit(1) from exc


@app.command()
def validate(
    config_path: str = typer.Argument(..., help="Path to cluster YAML"),
) -> None:
    """Validate a cluster configuration file."""
    cluster = _load_cluster(config_path)
    mc = cluster.machine_controller
    console.print(f"[green]Valid[/green] — cluster={cluster.name}")
    console.print(f"  kubeconfig: {cluster.kubeconfig or '(default)'}")
    console.print(f"  machine-controller: {'enabled' if mc.deploy else 'disabled'}")
    console.print(f"  namespace: {mc.namespace}")
    console.print(
        f"  delete wait: every {mc.delete_poll_interval_seconds:g}s "
        f"for up to {mc.delete_timeout_seconds:g}s"
    )


@app.command()
def providers() -> None:
    """List supported cloud providers and the credentials they need."""
    table = Table(title="Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Terraform directory")
    table.add_column("Credentials")
    for provider in CloudProvider:
        spec = get_provider(provider)
        table.add_row(provider.value, spec.workdir, ", ".join(spec.credential_vars))
    console.print(table)


@app.command()
def provision(
    config_path: str = typer.Argument(..., help="Path to provisioner YAML"),
    identifier: str | None = typer.Option(
        None, "--identifier", help="Override the run identifier (state key)"
    ),
) -> None:
    """Run terraform init/apply and print the outputs as JSON."""
    config = _load_provisioner(config_path, identifier)
    provisioner = create_provisioner(config)

    async def _provision() -> None:
        output = await provisioner.provision(timeout=config.timeout_seconds)
        console.print_json(output if output.strip() else json.dumps({}))

    _run(_provision(), "Provisioning failed")


@app.command()
def cleanup(
    config_path: str = typer.Argument(..., help="Path to provisioner YAML"),
    identifier: str | None = typer.Option(
        None, "--identifier", help="Override the run identifier (state key)"
    ),
) -> None:
    """Run terraform destroy and remove the scratch test directory."""
    config = _load_provisioner(config_path, identifier)
    provisioner = create_provisioner(config)

    async def _cleanup() -> None:
        await provisioner.cleanup(timeout=config.timeout_seconds)
        console.print(f"[green]Cleaned up[/green] {config.provider.value}")

    _run(_cleanup(), "Cleanup failed")


def _with_context(
    config_path: str,
    op: Callable[[MachineControllerContext], Awaitable[None]],
    failure: str,
) -> None:
    cluster = _load_cluster(config_path)

    async def _go() -> None:
        async with open_context(cluster) as ctx:
            await op(ctx)

    _run(_go(), failure)


@mc_app.command("deploy")
def mc_deploy(
    config_path: str = typer.Argument(..., help="Path to cluster YAML"),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Overall deadline in seconds"
    ),
) -> None:
    """Install the machine-controller and its webhook configuration."""

    async def _deploy(ctx: MachineControllerContext) -> None:
        await ensure(ctx, timeout=timeout)

    _with_context(config_path, _deploy, "Deploy failed")
    console.print("[green]machine-controller deployed[/green]")


@mc_app.command("wait-ready")
def mc_wait_ready(
    config_path: str = typer.Argument(..., help="Path to cluster YAML"),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Overall deadline in seconds"
    ),
) -> None:
    """Wait for the machine-controller webhook and controller to be ready."""

    async def _wait(ctx: MachineControllerContext) -> None:
        await wait_ready(ctx, timeout=timeout)

    _with_context(config_path, _wait, "machine-controller not ready")
    console.print("[green]machine-controller ready[/green]")


@mc_app.command("delete-machines")
def mc_delete_machines(
    config_path: str = typer.Argument(..., help="Path to cluster YAML"),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Overall deadline in seconds"
    ),
) -> None:
    """Delete all worker machines and wait until they are gone."""

    async def _delete(ctx: MachineControllerContext) -> None:
        await delete_all_machines(ctx, timeout=timeout)

    _with_context(config_path, _delete, "Deleting machines failed")
    console.print("[green]All worker machines deleted[/green]")
