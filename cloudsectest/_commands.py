"""Command helpers for invoking the external deployment tools."""

from __future__ import annotations

import logging
import os
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from plumbum import CommandNotFound, local
from plumbum.commands.processes import ProcessTimedOut

from ._errors import ExternalCallFailed
from ._models import CommandResult

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127
COMMAND_TIMED_OUT = 124


@dataclass(frozen=True, slots=True)
class CommandContext:
    """Execution options for :func:`run_command`.

    ``env`` is merged over the current process environment. Neither ``env``
    nor ``stdin`` is ever logged.
    """

    env: cabc.Mapping[str, str] | None = None
    stdin: str | None = None
    timeout: float | None = None
    cwd: Path | None = None


class CommandRunner(Protocol):
    """Callable signature shared by :func:`run_command` and test doubles."""

    def __call__(
        self,
        command: str,
        *args: str,
        context: CommandContext | None = None,
    ) -> CommandResult: ...


def _validate_command_args(args: cabc.Sequence[str]) -> None:
    """Validate CLI arguments for safe execution."""
    for arg in args:
        if not isinstance(arg, str):
            msg = f"Command argument must be a string, got {type(arg).__name__}"
            raise TypeError(msg)
        if any(char in arg for char in ("\x00", "\n", "\r")):
            msg = "Command argument contains an invalid control character"
            raise ValueError(msg)


def run_command(
    command: str,
    *args: str,
    context: CommandContext | None = None,
) -> CommandResult:
    """Execute an external command and return its result without raising.

    A missing executable yields return code 127 and a timeout yields 124,
    matching the conventions of the shell.

    Examples
    --------
    >>> run_command("printf", "hello").stdout
    'hello'
    >>> run_command("false").return_code
    1
    """

    ctx = context or CommandContext()
    _validate_command_args([command, *args])
    logger.debug("Running: %s %s", command, " ".join(args))

    try:
        bound = local[command][list(args)]
    except CommandNotFound:
        return CommandResult(
            success=False,
            stdout="",
            stderr=f"{command}: command not found",
            return_code=COMMAND_NOT_FOUND,
        )
    if ctx.stdin is not None:
        bound = bound << ctx.stdin

    env = {**os.environ, **ctx.env} if ctx.env else None
    cwd = str(ctx.cwd) if ctx.cwd is not None else None
    try:
        return_code, stdout, stderr = bound.run(
            retcode=None,
            timeout=ctx.timeout,
            env=env,
            cwd=cwd,
        )
    except ProcessTimedOut:
        return CommandResult(
            success=False,
            stdout="",
            stderr=f"{command} timed out after {ctx.timeout}s",
            return_code=COMMAND_TIMED_OUT,
        )

    return CommandResult(
        success=return_code == 0,
        stdout=stdout,
        stderr=stderr,
        return_code=return_code,
    )


def require_success(result: CommandResult, *, stage: str, step: str) -> CommandResult:
    """Return ``result`` unchanged or raise :class:`ExternalCallFailed`.

    Examples
    --------
    >>> require_success(CommandResult(True, "ok", "", 0), stage="registry", step="docker tag").stdout
    'ok'
    """

    if not result.success:
        raise ExternalCallFailed(stage, step, result.return_code, result.stderr)
    return result


__all__ = [
    "CommandContext",
    "CommandRunner",
    "require_success",
    "run_command",
]
