"""Worker machine teardown.

Deletes MachineDeployments, then MachineSets, then Machines, and waits for
the machine-controller to finish its finalizers (deprovisioning the cloud
instances) until no Machine objects remain. The wait is a bounded poll, not a
watch: a returned delete call only means deletion has started.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from kubeprov.cluster.client import (
    MACHINE,
    MACHINE_DEPLOYMENT,
    MACHINE_SET,
    ClusterClient,
    ResourceKind,
    object_ref,
)
from kubeprov.config.models import MachineControllerConfig
from kubeprov.errors import (
    ClusterErrorKind,
    ClusterQueryError,
    ConvergenceTimeoutError,
    NotInitializedError,
)
from kubeprov.machinecontroller.context import MachineControllerContext

logger = structlog.get_logger()


async def _poll_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


async def _list(
    client: ClusterClient, kind: ResourceKind, namespace: str
) -> list[dict[str, Any]]:
    try:
        return await client.list(kind, namespace)
    except ClusterQueryError as exc:
        msg = f"unable to list {kind.kind.lower()} objects: {exc}"
        raise ClusterQueryError(msg, exc.kind) from exc


async def _delete_objects(
    client: ClusterClient, kind: ResourceKind, objects: list[dict[str, Any]]
) -> None:
    for obj in objects:
        try:
            await client.delete(obj)
        except ClusterQueryError as exc:
            msg = f"unable to delete {kind.kind.lower()} object {object_ref(obj)}: {exc}"
            raise ClusterQueryError(msg, exc.kind) from exc
    logger.info(f"cascade.{kind.plural}_deleted", count=len(objects))


async def _count_machines(client: ClusterClient, namespace: str) -> int:
    return len(await _list(client, MACHINE, namespace))


def _log_remaining(retry_state: RetryCallState) -> None:
    assert retry_state.outcome is not None
    logger.info(
        "cascade.waiting_for_machines",
        remaining=retry_state.outcome.result(),
        attempt=retry_state.attempt_number,
    )


async def wait_for_machines_deleted(
    client: ClusterClient, settings: MachineControllerConfig
) -> None:
    """Poll until no Machine objects remain in the namespace.

    The first check runs immediately. Only a non-zero count is retried; a
    list error ends the wait at once.
    """
    interval = settings.delete_poll_interval_seconds
    window = settings.delete_timeout_seconds
    max_polls = int(window // interval) + 1

    retrying = AsyncRetrying(
        retry=retry_if_result(lambda remaining: remaining > 0),
        stop=stop_after_delay(window) | stop_after_attempt(max_polls),
        wait=wait_fixed(interval),
        sleep=_poll_sleep,
        before_sleep=_log_remaining,
        retry_error_callback=lambda state: state.outcome.result(),
    )
    remaining = await retrying(_count_machines, client, settings.namespace)
    if remaining > 0:
        logger.error(
            "cascade.machines_not_deleted", remaining=remaining, timeout=window
        )
        raise ConvergenceTimeoutError(remaining, window)
    logger.info("cascade.machines_gone", namespace=settings.namespace)


async def _delete_cascade(
    client: ClusterClient, settings: MachineControllerConfig
) -> None:
    namespace = settings.namespace
    try:
        deployments = await client.list(MACHINE_DEPLOYMENT, namespace)
    except ClusterQueryError as exc:
        if exc.kind is ClusterErrorKind.KIND_NOT_FOUND:
            logger.info(
                "cascade.skipped",
                reason="MachineDeployment kind is not registered in the cluster",
            )
            return
        msg = f"unable to list machinedeployment objects: {exc}"
        raise ClusterQueryError(msg, exc.kind) from exc

    await _delete_objects(client, MACHINE_DEPLOYMENT, deployments)
    await _delete_objects(client, MACHINE_SET, await _list(client, MACHINE_SET, namespace))
    await _delete_objects(client, MACHINE, await _list(client, MACHINE, namespace))

    await wait_for_machines_deleted(client, settings)


async def delete_all_machines(
    ctx: MachineControllerContext, *, timeout: float | None = None
) -> None:
    """Destroy all MachineDeployment, MachineSet and Machine objects.

    *timeout* bounds the whole operation on top of the poll window; when it
    expires the in-flight call is cancelled and ``TimeoutError`` is raised.
    """
    if not ctx.enabled:
        logger.info(
            "cascade.skipped",
            reason="machine-controller is disabled in configuration",
        )
        return
    if ctx.client is None:
        msg = "kubernetes client not initialized"
        raise NotInitializedError(msg)

    async with asyncio.timeout(timeout):
        await _delete_cascade(ctx.client, ctx.settings)
