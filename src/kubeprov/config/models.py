"""Pydantic configuration models for provisioning and cluster lifecycle."""

from __future__ import annotations

import re
from enum import StrEnum
from pathlib import Path
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator


class CloudProvider(StrEnum):
    """Supported cloud providers."""

    AWS = "aws"
    DIGITALOCEAN = "digitalocean"
    HETZNER = "hetzner"


class TerraformConfig(BaseModel):
    """Where Terraform lives and how it is invoked."""

    binary: str = "terraform"
    # Each provider has its own sub-directory under this root (aws/, hetzner/, ...)
    examples_dir: Path = Path("../../examples/terraform")
    state_file: str = Field(default="terraform.tfstate", min_length=1)


class ProvisionerConfig(BaseModel, extra="forbid"):
    """Per-run provisioning configuration."""

    provider: CloudProvider
    test_path: Path
    # Build number or similar; namespaces the remote state key.
    identifier: str = ""
    terraform: TerraformConfig = TerraformConfig()
    timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("identifier")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Backend keys end up in object-store paths, so keep them simple."""
        if v and not re.match(r"^[A-Za-z0-9][A-Za-z0-9._/-]*$", v):
            msg = f"identifier '{v}' may only contain letters, digits, '.', '_', '-' and '/'"
            raise ValueError(msg)
        return v


class MachineControllerConfig(BaseModel):
    """machine-controller deployment and teardown settings."""

    deploy: bool = True
    namespace: str = "kube-system"
    controller_deployment: str = "machine-controller"
    webhook_deployment: str = "machine-controller-webhook"
    controller_manifest: Path | None = None
    webhook_manifest: Path | None = None
    delete_poll_interval_seconds: float = Field(default=5.0, gt=0)
    delete_timeout_seconds: float = Field(default=180.0, gt=0)
    settle_delay_seconds: float = Field(default=10.0, ge=0)
    readiness_timeout_seconds: int = Field(default=300, ge=1)

    @model_validator(mode="after")
    def check_poll_window(self) -> Self:
        """The poll interval must fit inside the overall delete timeout."""
        if self.delete_poll_interval_seconds > self.delete_timeout_seconds:
            msg = (
                "delete_poll_interval_seconds must not exceed "
                "delete_timeout_seconds"
            )
            raise ValueError(msg)
        return self


class ClusterConfig(BaseModel, extra="forbid"):
    """Cluster-level configuration."""

    name: str
    kubeconfig: Path | None = None
    machine_controller: MachineControllerConfig = MachineControllerConfig()
