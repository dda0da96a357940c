"""Cluster client protocol and the machine resource kinds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class ResourceKind:
    """A namespaced custom resource type served by the cluster API."""

    group: str
    version: str
    kind: str
    plural: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


MACHINE_DEPLOYMENT = ResourceKind(
    group="cluster.k8s.io",
    version="v1alpha1",
    kind="MachineDeployment",
    plural="machinedeployments",
)
MACHINE_SET = ResourceKind(
    group="cluster.k8s.io",
    version="v1alpha1",
    kind="MachineSet",
    plural="machinesets",
)
MACHINE = ResourceKind(
    group="cluster.k8s.io",
    version="v1alpha1",
    kind="Machine",
    plural="machines",
)

# Parent before child: deleting in this order keeps controllers from
# recreating lower-level objects.
MACHINE_KINDS: tuple[ResourceKind, ...] = (MACHINE_DEPLOYMENT, MACHINE_SET, MACHINE)


def kind_for_object(obj: dict[str, Any]) -> ResourceKind:
    """Resolve the ResourceKind of a machine object from its apiVersion/kind."""
    for kind in MACHINE_KINDS:
        if obj.get("kind") == kind.kind and obj.get("apiVersion") == kind.api_version:
            return kind
    msg = f"Unsupported object {obj.get('apiVersion')}/{obj.get('kind')}"
    raise ValueError(msg)


def object_ref(obj: dict[str, Any]) -> str:
    """``namespace/name`` for log lines."""
    meta = obj.get("metadata", {})
    return f"{meta.get('namespace', '')}/{meta.get('name', '')}"


@runtime_checkable
class ClusterClient(Protocol):
    """The subset of the Kubernetes API used for machine teardown.

    Implementations raise ``ClusterQueryError`` with an explicit
    ``ClusterErrorKind`` so callers never inspect messages.
    """

    async def list(self, kind: ResourceKind, namespace: str) -> list[dict[str, Any]]:
        """List all objects of *kind* in *namespace*."""
        ...

    async def delete(self, obj: dict[str, Any]) -> None:
        """Delete a single object previously returned by list()."""
        ...
