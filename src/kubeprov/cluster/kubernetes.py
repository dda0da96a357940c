"""ClusterClient backed by kubernetes_asyncio's CustomObjectsApi."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiohttp
import structlog
from kubernetes_asyncio import config as kube_config
from kubernetes_asyncio.client import ApiClient, ApiException, CustomObjectsApi

from kubeprov.cluster.client import ResourceKind, kind_for_object, object_ref
from kubeprov.errors import ClusterErrorKind, ClusterQueryError, ConfigurationError

logger = structlog.get_logger()

_TIMEOUT_STATUSES = frozenset({408, 504})


def classify_api_error(exc: ApiException) -> ClusterErrorKind:
    """Map an API error status onto a ClusterErrorKind."""
    if exc.status == 404:
        return ClusterErrorKind.KIND_NOT_FOUND
    if exc.status in _TIMEOUT_STATUSES:
        return ClusterErrorKind.TIMEOUT
    return ClusterErrorKind.OTHER


class KubernetesClusterClient:
    """List/delete machine objects through the custom objects API."""

    def __init__(
        self, api_client: ApiClient, *, request_timeout: float = 30.0
    ) -> None:
        self._api = CustomObjectsApi(api_client)
        self._request_timeout = request_timeout

    async def list(self, kind: ResourceKind, namespace: str) -> list[dict[str, Any]]:
        try:
            resp = await self._api.list_namespaced_custom_object(
                group=kind.group,
                version=kind.version,
                namespace=namespace,
                plural=kind.plural,
                _request_timeout=self._request_timeout,
            )
        except ApiException as exc:
            msg = f"unable to list {kind.plural} in {namespace}: {exc.status} {exc.reason}"
            raise ClusterQueryError(msg, classify_api_error(exc)) from exc
        except asyncio.TimeoutError as exc:
            msg = f"timed out listing {kind.plural} in {namespace}"
            raise ClusterQueryError(msg, ClusterErrorKind.TIMEOUT) from exc
        except aiohttp.ClientError as exc:
            msg = f"unable to list {kind.plural} in {namespace}: {exc}"
            raise ClusterQueryError(msg, ClusterErrorKind.OTHER) from exc

        items = resp.get("items", [])
        # List responses for custom resources don't always repeat these per item.
        for item in items:
            item.setdefault("apiVersion", kind.api_version)
            item.setdefault("kind", kind.kind)
        return items

    async def delete(self, obj: dict[str, Any]) -> None:
        kind = kind_for_object(obj)
        meta = obj.get("metadata", {})
        try:
            await self._api.delete_namespaced_custom_object(
                group=kind.group,
                version=kind.version,
                namespace=meta["namespace"],
                plural=kind.plural,
                name=meta["name"],
                _request_timeout=self._request_timeout,
            )
        except ApiException as exc:
            msg = (
                f"unable to delete {kind.kind} {object_ref(obj)}: "
                f"{exc.status} {exc.reason}"
            )
            raise ClusterQueryError(msg, classify_api_error(exc)) from exc
        except asyncio.TimeoutError as exc:
            msg = f"timed out deleting {kind.kind} {object_ref(obj)}"
            raise ClusterQueryError(msg, ClusterErrorKind.TIMEOUT) from exc
        except aiohttp.ClientError as exc:
            msg = f"unable to delete {kind.kind} {object_ref(obj)}: {exc}"
            raise ClusterQueryError(msg, ClusterErrorKind.OTHER) from exc
        logger.debug("cluster.object_deleted", kind=kind.kind, object=object_ref(obj))


@asynccontextmanager
async def connect(
    kubeconfig: str | Path | None = None,
) -> AsyncIterator[KubernetesClusterClient]:
    """Load a kubeconfig and yield a client bound to a fresh ApiClient."""
    try:
        await kube_config.load_kube_config(
            config_file=str(kubeconfig) if kubeconfig else None
        )
    except kube_config.ConfigException as exc:
        msg = f"unable to load kubeconfig: {exc}"
        raise ConfigurationError(msg) from exc
    async with ApiClient() as api_client:
        yield KubernetesClusterClient(api_client)
