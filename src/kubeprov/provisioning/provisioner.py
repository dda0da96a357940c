"""Generic Terraform provisioner, parameterised by a provider descriptor."""

from __future__ import annotations

import asyncio
import json
import os
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from kubeprov.config.models import TerraformConfig
from kubeprov.errors import ProvisioningError, Stage
from kubeprov.execution.runner import CommandRunner, SubprocessRunner
from kubeprov.provisioning.providers import ProviderSpec, check_credentials
from kubeprov.provisioning.terraform import Terraform, TerraformContext

logger = structlog.get_logger()


class TerraformProvisioner:
    """Provisions a provider's example infrastructure with Terraform.

    Credentials are read from *credentials* (``os.environ`` by default) and
    checked before any subprocess is started; they are then handed to
    Terraform as environment overrides.
    """

    def __init__(
        self,
        provider: ProviderSpec,
        test_path: str | Path,
        identifier: str = "",
        *,
        credentials: Mapping[str, str] | None = None,
        runner: CommandRunner | None = None,
        terraform: TerraformConfig | None = None,
    ) -> None:
        tf_config = terraform or TerraformConfig()
        self._provider = provider
        self._test_path = Path(test_path)
        self._credentials = credentials if credentials is not None else os.environ
        self._runner = runner or SubprocessRunner()
        self._context = TerraformContext(
            working_dir=tf_config.examples_dir / provider.workdir,
            identifier=identifier,
            binary=tf_config.binary,
            state_file=tf_config.state_file,
        )

    @property
    def provider(self) -> ProviderSpec:
        return self._provider

    @property
    def context(self) -> TerraformContext:
        return self._context

    @property
    def test_path(self) -> Path:
        return self._test_path

    def _terraform(self) -> Terraform:
        env = check_credentials(self._provider, self._credentials)
        return Terraform(self._context, self._runner, env)

    async def provision(self, *, timeout: float | None = None) -> str:
        terraform = self._terraform()
        logger.info(
            "provisioner.provision_started",
            provider=self._provider.provider.value,
            identifier=self._context.identifier or None,
        )
        async with asyncio.timeout(timeout):
            output = await terraform.init_and_apply()
        logger.info(
            "provisioner.provision_finished", provider=self._provider.provider.value
        )
        return output

    async def output(self, *, timeout: float | None = None) -> dict[str, Any]:
        """Read Terraform outputs as ``{name: value}``."""
        terraform = self._terraform()
        async with asyncio.timeout(timeout):
            raw = await terraform.output_json()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = f"terraform output is not valid JSON: {exc}"
            raise ProvisioningError(Stage.OUTPUT, msg) from exc
        if not isinstance(data, dict):
            msg = f"terraform output must be a JSON object, got {type(data).__name__}"
            raise ProvisioningError(Stage.OUTPUT, msg)
        return {
            name: entry.get("value") if isinstance(entry, dict) else entry
            for name, entry in data.items()
        }

    async def cleanup(self, *, timeout: float | None = None) -> None:
        """Run ``terraform destroy`` then remove the scratch directory.

        Directory removal is attempted even when destroy fails; the destroy
        error is raised afterwards. A removal failure is raised only when
        destroy succeeded.
        """
        terraform = Terraform(self._context, self._runner, self._env_for_cleanup())
        destroy_error: Exception | None = None
        try:
            async with asyncio.timeout(timeout):
                await terraform.destroy()
        except (ProvisioningError, TimeoutError) as exc:
            destroy_error = exc

        try:
            self._remove_test_path()
        except OSError as exc:
            if destroy_error is None:
                msg = f"unable to remove test directory {self._test_path}: {exc}"
                raise ProvisioningError(Stage.REMOVE_TEST_DIR, msg) from exc
            logger.error(
                "provisioner.test_dir_remove_failed",
                path=str(self._test_path),
                error=str(exc),
            )

        if destroy_error is not None:
            raise destroy_error
        logger.info(
            "provisioner.cleanup_finished", provider=self._provider.provider.value
        )

    def _env_for_cleanup(self) -> dict[str, str]:
        # Destroy still runs without credentials; Terraform reports what it lacks.
        return {
            name: self._credentials[name]
            for name in self._provider.credential_vars
            if self._credentials.get(name)
        }

    def _remove_test_path(self) -> None:
        path = self._test_path
        if not path.exists() and not path.is_symlink():
            return
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            # Like rm -rf: a link is removed, never its target.
            path.unlink()
        logger.info("provisioner.test_dir_removed", path=str(self._test_path))
