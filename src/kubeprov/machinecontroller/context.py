"""Shared context for machine-controller operations."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from kubeprov.cluster.client import ClusterClient
from kubeprov.cluster.kubectl import KubectlDeployer, RolloutProbe
from kubeprov.config.models import ClusterConfig, MachineControllerConfig
from kubeprov.execution.runner import CommandRunner, SubprocessRunner


@runtime_checkable
class Deployer(Protocol):
    """Installs the machine-controller and its webhook configuration."""

    async def deploy(self) -> None: ...

    async def deploy_webhook_configuration(self) -> None: ...


@runtime_checkable
class ReadinessProbe(Protocol):
    """Blocks until a component is ready, raising if it never becomes so."""

    async def wait(self) -> None: ...


@dataclass
class MachineControllerContext:
    """Everything the machine-controller operations need for one cluster."""

    cluster: ClusterConfig
    client: ClusterClient | None = None
    deployer: Deployer | None = None
    webhook_probe: ReadinessProbe | None = None
    controller_probe: ReadinessProbe | None = None

    @property
    def settings(self) -> MachineControllerConfig:
        return self.cluster.machine_controller

    @property
    def enabled(self) -> bool:
        return self.cluster.machine_controller.deploy


@asynccontextmanager
async def open_context(
    cluster: ClusterConfig,
    *,
    runner: CommandRunner | None = None,
) -> AsyncIterator[MachineControllerContext]:
    """Build a context wired to the real cluster described by *cluster*."""
    from kubeprov.cluster.kubernetes import connect

    runner = runner or SubprocessRunner()
    mc = cluster.machine_controller
    async with connect(cluster.kubeconfig) as client:
        yield MachineControllerContext(
            cluster=cluster,
            client=client,
            deployer=KubectlDeployer(
                runner,
                controller_manifest=mc.controller_manifest,
                webhook_manifest=mc.webhook_manifest,
                kubeconfig=cluster.kubeconfig,
            ),
            webhook_probe=RolloutProbe(
                runner,
                namespace=mc.namespace,
                deployment=mc.webhook_deployment,
                timeout_seconds=mc.readiness_timeout_seconds,
                kubeconfig=cluster.kubeconfig,
            ),
            controller_probe=RolloutProbe(
                runner,
                namespace=mc.namespace,
                deployment=mc.controller_deployment,
                timeout_seconds=mc.readiness_timeout_seconds,
                kubeconfig=cluster.kubeconfig,
            ),
        )
