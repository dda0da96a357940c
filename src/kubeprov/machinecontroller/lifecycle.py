"""machine-controller install and readiness sequencing."""

from __future__ import annotations

import asyncio

import structlog

from kubeprov.errors import KubeprovError, MachineControllerError, NotInitializedError
from kubeprov.machinecontroller.context import MachineControllerContext

logger = structlog.get_logger()


async def ensure(ctx: MachineControllerContext, *, timeout: float | None = None) -> None:
    """Install or update the machine-controller and its webhooks.

    *timeout* bounds both deploy steps together; on expiry the running
    command is cancelled and ``TimeoutError`` is raised.
    """
    if not ctx.enabled:
        logger.info(
            "machine_controller.deploy_skipped",
            reason="machine-controller is disabled in configuration",
        )
        return
    if ctx.deployer is None:
        msg = "machine-controller deployer not initialized"
        raise NotInitializedError(msg)

    async with asyncio.timeout(timeout):
        logger.info("machine_controller.installing")
        try:
            await ctx.deployer.deploy()
        except KubeprovError as exc:
            msg = f"failed to deploy machine-controller: {exc}"
            raise MachineControllerError(msg) from exc

        logger.info("machine_controller.installing_webhooks")
        try:
            await ctx.deployer.deploy_webhook_configuration()
        except KubeprovError as exc:
            msg = f"failed to deploy machine-controller webhook configuration: {exc}"
            raise MachineControllerError(msg) from exc


async def wait_ready(
    ctx: MachineControllerContext, *, timeout: float | None = None
) -> None:
    """Wait for the machine-controller webhook, then the controller, to come up.

    *timeout* covers the settle delay and both probes.
    """
    if not ctx.enabled:
        return
    if ctx.webhook_probe is None or ctx.controller_probe is None:
        msg = "machine-controller readiness probes not initialized"
        raise NotInitializedError(msg)

    async with asyncio.timeout(timeout):
        logger.info("machine_controller.waiting")
        # Give the scheduler a moment to place the new pods.
        await asyncio.sleep(ctx.settings.settle_delay_seconds)

        try:
            await ctx.webhook_probe.wait()
        except KubeprovError as exc:
            msg = f"machine-controller-webhook did not come up: {exc}"
            raise MachineControllerError(msg) from exc

        try:
            await ctx.controller_probe.wait()
        except KubeprovError as exc:
            msg = f"machine-controller did not come up: {exc}"
            raise MachineControllerError(msg) from exc
    logger.info("machine_controller.ready")
