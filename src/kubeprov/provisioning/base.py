"""Provisioner protocol — cloud-agnostic infrastructure setup/teardown."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Provisioner(Protocol):
    """Creates and destroys the infrastructure for one test run.

    Instances sharing an identifier or a scratch directory corrupt each
    other's Terraform state; callers must give every concurrent run its own.
    """

    async def provision(self, *, timeout: float | None = None) -> str:
        """Create the infrastructure and return Terraform output as JSON text."""
        ...

    async def cleanup(self, *, timeout: float | None = None) -> None:
        """Destroy the infrastructure and remove the scratch directory."""
        ...
