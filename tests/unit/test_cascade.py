"""Unit tests for the worker machine deletion cascade."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fakes import FakeClusterClient, machine_object

from kubeprov.cluster.client import MACHINE, MACHINE_DEPLOYMENT, MACHINE_SET
from kubeprov.config.models import ClusterConfig, MachineControllerConfig
from kubeprov.errors import (
    ClusterErrorKind,
    ClusterQueryError,
    ConvergenceTimeoutError,
    NotInitializedError,
)
from kubeprov.machinecontroller.cascade import delete_all_machines
from kubeprov.machinecontroller.context import MachineControllerContext

SLEEP = "kubeprov.machinecontroller.cascade._poll_sleep"


def _ctx(
    client: FakeClusterClient | None,
    *,
    deploy: bool = True,
    interval: float = 5.0,
    window: float = 180.0,
) -> MachineControllerContext:
    cluster = ClusterConfig(
        name="test",
        machine_controller=MachineControllerConfig(
            deploy=deploy,
            delete_poll_interval_seconds=interval,
            delete_timeout_seconds=window,
        ),
    )
    return MachineControllerContext(cluster=cluster, client=client)


def _populated_client(**kwargs) -> FakeClusterClient:
    return FakeClusterClient(
        objects={
            MACHINE_DEPLOYMENT: [
                machine_object(MACHINE_DEPLOYMENT, "md-a"),
                machine_object(MACHINE_DEPLOYMENT, "md-b"),
            ],
            MACHINE_SET: [
                machine_object(MACHINE_SET, "ms-a"),
                machine_object(MACHINE_SET, "ms-b"),
            ],
            MACHINE: [
                machine_object(MACHINE, "m-1"),
                machine_object(MACHINE, "m-2"),
                machine_object(MACHINE, "m-3"),
            ],
        },
        **kwargs,
    )


@pytest.mark.asyncio
class TestDeleteAllMachines:
    async def test_deletes_parents_before_children(self):
        client = _populated_client()
        with patch(SLEEP, new_callable=AsyncMock):
            await delete_all_machines(_ctx(client))

        assert client.deletes == [
            ("MachineDeployment", "md-a"),
            ("MachineDeployment", "md-b"),
            ("MachineSet", "ms-a"),
            ("MachineSet", "ms-b"),
            ("Machine", "m-1"),
            ("Machine", "m-2"),
            ("Machine", "m-3"),
        ]

    async def test_lists_use_machine_controller_namespace(self):
        client = _populated_client()
        with patch(SLEEP, new_callable=AsyncMock):
            await delete_all_machines(_ctx(client))
        namespaces = {ns for op, _, ns in client.events if op == "list"}
        assert namespaces == {"kube-system"}

    async def test_no_machines_left_returns_without_sleeping(self):
        client = FakeClusterClient(poll_counts=[0])
        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            await delete_all_machines(_ctx(client))
        mock_sleep.assert_not_awaited()
        assert client.poll_lists == 1

    async def test_waits_until_machines_are_gone(self):
        client = _populated_client(poll_counts=[3, 1, 0])
        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            await delete_all_machines(_ctx(client))
        assert client.poll_lists == 3
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(5.0)

    async def test_convergence_timeout_when_machines_never_go_away(self):
        client = _populated_client(poll_counts=[2])
        with (
            patch(SLEEP, new_callable=AsyncMock) as mock_sleep,
            pytest.raises(ConvergenceTimeoutError) as exc_info,
        ):
            await delete_all_machines(_ctx(client))

        assert exc_info.value.remaining == 2
        assert exc_info.value.timeout == 180.0
        # One immediate check plus one per 5s interval across 180s.
        assert client.poll_lists == 37
        assert mock_sleep.await_count == 36

    async def test_poll_window_measured_in_wall_time(self):
        client = FakeClusterClient(poll_counts=[1])
        with pytest.raises(ConvergenceTimeoutError):
            await delete_all_machines(_ctx(client, interval=0.01, window=0.05))
        assert client.poll_lists >= 2

    async def test_poll_list_error_is_not_retried(self):
        client = _populated_client(
            poll_error=ClusterQueryError("connection reset", ClusterErrorKind.OTHER)
        )
        with (
            patch(SLEEP, new_callable=AsyncMock) as mock_sleep,
            pytest.raises(ClusterQueryError, match="unable to list machine objects"),
        ):
            await delete_all_machines(_ctx(client))
        mock_sleep.assert_not_awaited()
        assert client.poll_lists == 1

    async def test_kind_not_registered_is_success(self):
        client = _populated_client(
            list_errors={
                MACHINE_DEPLOYMENT: ClusterQueryError(
                    "the server could not find the requested resource",
                    ClusterErrorKind.KIND_NOT_FOUND,
                )
            }
        )
        await delete_all_machines(_ctx(client))
        assert client.events == [("list", "MachineDeployment", "kube-system")]

    async def test_timeout_listing_deployments_is_fatal(self):
        client = _populated_client(
            list_errors={
                MACHINE_DEPLOYMENT: ClusterQueryError(
                    "request timed out", ClusterErrorKind.TIMEOUT
                )
            }
        )
        with pytest.raises(
            ClusterQueryError, match="unable to list machinedeployment objects"
        ) as exc_info:
            await delete_all_machines(_ctx(client))
        assert exc_info.value.kind is ClusterErrorKind.TIMEOUT
        assert client.deletes == []

    async def test_other_error_listing_deployments_is_fatal(self):
        client = _populated_client(
            list_errors={
                MACHINE_DEPLOYMENT: ClusterQueryError("forbidden", ClusterErrorKind.OTHER)
            }
        )
        with pytest.raises(ClusterQueryError):
            await delete_all_machines(_ctx(client))
        assert client.deletes == []

    async def test_kind_not_found_for_machinesets_is_fatal(self):
        client = _populated_client(
            list_errors={
                MACHINE_SET: ClusterQueryError("not found", ClusterErrorKind.KIND_NOT_FOUND)
            }
        )
        with pytest.raises(ClusterQueryError, match="unable to list machineset objects"):
            await delete_all_machines(_ctx(client))

    async def test_delete_failure_stops_the_cascade(self):
        client = _populated_client(
            delete_errors={"ms-a": ClusterQueryError("conflict", ClusterErrorKind.OTHER)}
        )
        with pytest.raises(
            ClusterQueryError, match="unable to delete machineset object kube-system/ms-a"
        ):
            await delete_all_machines(_ctx(client))
        assert ("MachineSet", "ms-b") not in client.deletes
        assert not any(kind == "Machine" for kind, _ in client.deletes)

    async def test_disabled_is_a_noop(self):
        client = _populated_client()
        await delete_all_machines(_ctx(client, deploy=False))
        assert client.events == []

    async def test_disabled_without_client_is_a_noop(self):
        await delete_all_machines(_ctx(None, deploy=False))

    async def test_missing_client_raises(self):
        with pytest.raises(NotInitializedError, match="kubernetes client not initialized"):
            await delete_all_machines(_ctx(None))

    async def test_overall_deadline(self):
        class HangingClient(FakeClusterClient):
            async def list(self, kind, namespace):
                await asyncio.sleep(10)
                return []

        with pytest.raises(TimeoutError):
            await delete_all_machines(_ctx(HangingClient()), timeout=0.05)
