"""Error taxonomy for provisioning and machine teardown."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum


class KubeprovError(Exception):
    """Base class for all kubeprov errors."""


class ConfigurationError(KubeprovError):
    """Raised when required configuration (e.g. a credential) is missing."""


class NotInitializedError(KubeprovError):
    """Raised when an operation needs a collaborator that was never set up."""


class SubprocessError(KubeprovError):
    """Raised when an external command exits non-zero.

    ``output`` holds the combined stdout/stderr of the process.
    """

    def __init__(
        self,
        program: str,
        args: Sequence[str],
        returncode: int | None,
        output: str,
    ) -> None:
        self.program = program
        self.args_list = list(args)
        self.returncode = returncode
        self.output = output
        command = " ".join([program, *self.args_list])
        super().__init__(f"`{command}` exited with {returncode}: {output.strip()}")


class Stage(StrEnum):
    """Provisioning stages, used to tag failures."""

    INIT = "init"
    APPLY = "apply"
    OUTPUT = "output"
    DESTROY = "destroy"
    REMOVE_TEST_DIR = "remove-test-dir"


class ProvisioningError(KubeprovError):
    """Raised when a Terraform stage fails."""

    def __init__(self, stage: Stage, message: str) -> None:
        self.stage = stage
        super().__init__(message)

    @property
    def output(self) -> str:
        """Combined output of the failing subprocess, if there was one."""
        cause = self.__cause__
        if isinstance(cause, SubprocessError):
            return cause.output
        return ""


class ClusterErrorKind(StrEnum):
    """Classification of cluster API failures."""

    KIND_NOT_FOUND = "kind_not_found"
    TIMEOUT = "timeout"
    OTHER = "other"


class ClusterQueryError(KubeprovError):
    """Raised when a list/delete call against the cluster fails."""

    def __init__(
        self, message: str, kind: ClusterErrorKind = ClusterErrorKind.OTHER
    ) -> None:
        self.kind = kind
        super().__init__(message)


class ConvergenceTimeoutError(KubeprovError):
    """Raised when Machine objects are still present after the poll window."""

    def __init__(self, remaining: int, timeout: float) -> None:
        self.remaining = remaining
        self.timeout = timeout
        super().__init__(
            f"{remaining} machine object(s) still present after {timeout:g}s"
        )


class MachineControllerError(KubeprovError):
    """Raised when deploying or waiting for the machine-controller fails."""
