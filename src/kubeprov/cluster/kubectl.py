"""kubectl-backed collaborators: manifest deployer and rollout readiness probe."""

from __future__ import annotations

from pathlib import Path

import structlog

from kubeprov.errors import ConfigurationError
from kubeprov.execution.runner import CommandRunner

logger = structlog.get_logger()


def _base_args(kubeconfig: Path | None) -> list[str]:
    if kubeconfig is None:
        return []
    return [f"--kubeconfig={kubeconfig}"]


class KubectlDeployer:
    """Applies the machine-controller and webhook manifests."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        controller_manifest: Path | None,
        webhook_manifest: Path | None,
        kubeconfig: Path | None = None,
        binary: str = "kubectl",
    ) -> None:
        self._runner = runner
        self._controller_manifest = controller_manifest
        self._webhook_manifest = webhook_manifest
        self._kubeconfig = kubeconfig
        self._binary = binary

    async def _apply(self, manifest: Path | None, what: str) -> None:
        if manifest is None:
            msg = f"no {what} manifest configured"
            raise ConfigurationError(msg)
        args = [*_base_args(self._kubeconfig), "apply", "-f", str(manifest)]
        output = await self._runner.execute(None, self._binary, args)
        logger.info("kubectl.applied", manifest=str(manifest), output=output.strip())

    async def deploy(self) -> None:
        await self._apply(self._controller_manifest, "machine-controller")

    async def deploy_webhook_configuration(self) -> None:
        await self._apply(self._webhook_manifest, "machine-controller webhook")


class RolloutProbe:
    """Waits for a Deployment rollout via ``kubectl rollout status``."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        namespace: str,
        deployment: str,
        timeout_seconds: int = 300,
        kubeconfig: Path | None = None,
        binary: str = "kubectl",
    ) -> None:
        self._runner = runner
        self._namespace = namespace
        self._deployment = deployment
        self._timeout_seconds = timeout_seconds
        self._kubeconfig = kubeconfig
        self._binary = binary

    @property
    def deployment(self) -> str:
        return self._deployment

    async def wait(self) -> None:
        args = [
            *_base_args(self._kubeconfig),
            "--namespace",
            self._namespace,
            "rollout",
            "status",
            f"deployment/{self._deployment}",
            f"--timeout={self._timeout_seconds}s",
        ]
        await self._runner.execute(None, self._binary, args)
        logger.info(
            "kubectl.rollout_ready",
            namespace=self._namespace,
            deployment=self._deployment,
        )
