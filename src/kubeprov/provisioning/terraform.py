"""Terraform invocation: init, apply, output and destroy in one working directory."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from kubeprov.errors import ProvisioningError, Stage, SubprocessError
from kubeprov.execution.runner import CommandRunner

logger = structlog.get_logger()

DEFAULT_STATE_FILE = "terraform.tfstate"


@dataclass(frozen=True, slots=True)
class TerraformContext:
    """Where Terraform runs and how its remote state is namespaced."""

    working_dir: Path
    # Unique per test run (e.g. build number); becomes the backend state key.
    identifier: str = ""
    binary: str = "terraform"
    state_file: str = DEFAULT_STATE_FILE

    def init_args(self) -> list[str]:
        args = ["init"]
        if self.identifier:
            args.append(f"--backend-config=key={self.identifier}")
        return args

    def apply_args(self) -> list[str]:
        return ["apply", "-auto-approve"]

    def destroy_args(self) -> list[str]:
        return ["destroy", "-auto-approve"]

    def output_args(self) -> list[str]:
        return ["output", f"-state={self.state_file}", "-json"]


@dataclass
class Terraform:
    """Runs the Terraform CLI contract through a CommandRunner."""

    context: TerraformContext
    runner: CommandRunner
    env: Mapping[str, str] = field(default_factory=dict)

    async def _run(self, stage: Stage, args: list[str], failure: str) -> str:
        logger.info(
            f"terraform.{stage.value}_started",
            working_dir=str(self.context.working_dir),
            identifier=self.context.identifier or None,
        )
        try:
            output = await self.runner.execute(
                self.context.working_dir,
                self.context.binary,
                args,
                dict(self.env),
            )
        except SubprocessError as exc:
            logger.error(
                f"terraform.{stage.value}_failed",
                working_dir=str(self.context.working_dir),
                returncode=exc.returncode,
            )
            raise ProvisioningError(stage, f"{failure}: {exc.output.strip()}") from exc
        logger.info(f"terraform.{stage.value}_finished")
        return output

    async def init_and_apply(self) -> str:
        """Initialise the working directory, build the infrastructure, read outputs."""
        await self._run(
            Stage.INIT, self.context.init_args(), "terraform init command failed"
        )
        await self._run(
            Stage.APPLY, self.context.apply_args(), "terraform apply command failed"
        )
        return await self.output_json()

    async def output_json(self) -> str:
        """Read the outputs from the local state file as JSON text."""
        return await self._run(
            Stage.OUTPUT, self.context.output_args(), "generating tf json failed"
        )

    async def destroy(self) -> None:
        await self._run(
            Stage.DESTROY,
            self.context.destroy_args(),
            "terraform destroy command failed",
        )
