"""Factory for provider provisioners."""

from __future__ import annotations

from collections.abc import Mapping

from kubeprov.config.models import ProvisionerConfig
from kubeprov.execution.runner import CommandRunner
from kubeprov.provisioning.base import Provisioner
from kubeprov.provisioning.providers import get_provider
from kubeprov.provisioning.provisioner import TerraformProvisioner


def create_provisioner(
    config: ProvisionerConfig,
    *,
    credentials: Mapping[str, str] | None = None,
    runner: CommandRunner | None = None,
) -> Provisioner:
    """Create a Provisioner for the configured cloud provider."""
    return TerraformProvisioner(
        get_provider(config.provider),
        config.test_path,
        config.identifier,
        credentials=credentials,
        runner=runner,
        terraform=config.terraform,
    )
