"""Command runner for external tools such as terraform and kubectl."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

from kubeprov.errors import SubprocessError

logger = structlog.get_logger()


@runtime_checkable
class CommandRunner(Protocol):
    """Runs a program and returns its combined stdout/stderr."""

    async def execute(
        self,
        working_dir: str | Path | None,
        program: str,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> str:
        """Run *program* with *args*; raise SubprocessError on non-zero exit."""
        ...


class SubprocessRunner:
    """CommandRunner backed by ``asyncio.create_subprocess_exec``.

    stderr is folded into stdout so failures carry the full diagnostic
    output. If the awaiting task is cancelled (including by an
    ``asyncio.timeout`` deadline) the child process is killed and reaped
    before the cancellation propagates.
    """

    async def execute(
        self,
        working_dir: str | Path | None,
        program: str,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> str:
        proc_env = None
        if env:
            proc_env = {**os.environ, **env}

        logger.debug(
            "command.started",
            program=program,
            args=list(args),
            cwd=str(working_dir) if working_dir else None,
        )
        try:
            proc = await asyncio.create_subprocess_exec(
                program,
                *args,
                cwd=working_dir or None,
                env=proc_env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as exc:
            raise SubprocessError(program, args, 127, str(exc)) from exc

        try:
            stdout, _ = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            logger.warning("command.killed", program=program, args=list(args))
            raise

        output = stdout.decode(errors="replace") if stdout else ""
        if proc.returncode != 0:
            logger.debug(
                "command.failed", program=program, returncode=proc.returncode
            )
            raise SubprocessError(program, args, proc.returncode, output)

        logger.debug("command.finished", program=program)
        return output
