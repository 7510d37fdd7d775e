"""Logging configuration and secret masking for the CLI entry points.

Log records go to stderr through :class:`rich.logging.RichHandler`, which
prefixes each line with a timestamp and colours it by level. Secrets
registered with :func:`mask_secret` are replaced with ``[HIDDEN]`` before any
record is emitted.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

HIDDEN = "[HIDDEN]"
LOG_TIME_FORMAT = "[%Y-%m-%dT%H:%M:%S%z]"


class SecretRedactingFilter(logging.Filter):
    """Replace registered secret values in log records."""

    def __init__(self) -> None:
        super().__init__()
        self._secrets: set[str] = set()

    def add(self, value: str) -> None:
        if value:
            self._secrets.add(value)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self._secrets:
            redacted = redacted.replace(secret, HIDDEN)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


_REDACTOR = SecretRedactingFilter()


def mask_secret(value: str) -> None:
    """Register ``value`` so it never appears in emitted log records.

    Examples
    --------
    >>> mask_secret("password123")
    """
    _REDACTOR.add(value)


def stderr_console() -> Console:
    return Console(stderr=True)


def configure_logging(*, verbose: bool = False, console: Console | None = None) -> None:
    """Install the rich handler on the root logger.

    Parameters
    ----------
    verbose
        Emit DEBUG records (command lines) as well as INFO and above.
    console
        Console to log to; defaults to a stderr console.
    """
    handler = RichHandler(
        console=console or stderr_console(),
        show_path=False,
        markup=False,
        log_time_format=LOG_TIME_FORMAT,
    )
    handler.addFilter(_REDACTOR)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )
    # plumbum logs every spawned process at DEBUG
    logging.getLogger("plumbum").setLevel(logging.WARNING)


__all__ = [
    "HIDDEN",
    "SecretRedactingFilter",
    "configure_logging",
    "mask_secret",
    "stderr_console",
]
