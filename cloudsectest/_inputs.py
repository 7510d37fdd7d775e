"""Collect and validate operator input before any side effect occurs.

Region and prefix may arrive pre-filled from the CLI or environment; anything
missing is prompted for. The secret is always prompted, never echoed, and
registered with the log redactor as soon as it is accepted.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from ._errors import InvalidInput, OperationCancelled
from ._identity import IdentityProvider
from ._logging import HIDDEN, mask_secret
from ._models import RunConfig

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-west-2"
DEFAULT_PREFIX = "cloudsectest"
MIN_SECRET_LENGTH = 8
PREFIX_PATTERN = re.compile(r"[A-Za-z0-9-]+")
REGION_PATTERN = re.compile(r"[a-z]{2}(-[a-z]+)+-\d+")


class Prompter(Protocol):
    """Terminal interaction used by the input collector."""

    def ask(self, text: str, *, default: str | None = None) -> str: ...

    def ask_secret(self, text: str) -> str: ...

    def confirm(self, text: str, *, default: bool = False) -> bool: ...

    def show(self, text: str) -> None: ...


class RichPrompter:
    """Prompter backed by :mod:`rich.prompt`."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def ask(self, text: str, *, default: str | None = None) -> str:
        if default is None:
            value = Prompt.ask(text, console=self.console)
        else:
            value = Prompt.ask(text, console=self.console, default=default)
        return (value or "").strip()

    def ask_secret(self, text: str) -> str:
        return Prompt.ask(text, console=self.console, password=True) or ""

    def confirm(self, text: str, *, default: bool = False) -> bool:
        return Confirm.ask(text, console=self.console, default=default)

    def show(self, text: str) -> None:
        self.console.print(text)


def validate_region(value: str) -> str:
    """Return ``value`` if it looks like an AWS region name.

    Examples
    --------
    >>> validate_region("us-west-2")
    'us-west-2'
    """
    if not REGION_PATTERN.fullmatch(value):
        msg = f"Invalid AWS region: {value!r}"
        raise InvalidInput(msg)
    return value


def validate_prefix(value: str) -> str:
    """Return ``value`` if it only holds letters, digits and hyphens.

    Examples
    --------
    >>> validate_prefix("demo-1")
    'demo-1'
    """
    if not PREFIX_PATTERN.fullmatch(value):
        msg = "Prefix must contain only letters, numbers, and hyphens"
        raise InvalidInput(msg)
    return value


def validate_secret(value: str) -> str:
    """Return ``value`` if it meets the minimum length.

    The error message never includes the rejected value.
    """
    if len(value) < MIN_SECRET_LENGTH:
        msg = f"Password must be at least {MIN_SECRET_LENGTH} characters long"
        raise InvalidInput(msg)
    return value


def prompt_region(prompter: Prompter, default: str = DEFAULT_REGION) -> str:
    while True:
        value = prompter.ask("Enter AWS Region", default=default) or default
        try:
            return validate_region(value)
        except InvalidInput as exc:
            logger.error("%s", exc)


def prompt_prefix(prompter: Prompter, default: str | None = DEFAULT_PREFIX) -> str:
    while True:
        value = prompter.ask("Enter project prefix", default=default)
        try:
            return validate_prefix(value)
        except InvalidInput as exc:
            logger.error("%s", exc)


def prompt_secret(prompter: Prompter) -> str:
    while True:
        value = prompter.ask_secret(
            f"Enter MongoDB password (minimum {MIN_SECRET_LENGTH} characters)"
        )
        try:
            return validate_secret(value)
        except InvalidInput as exc:
            logger.error("%s", exc)


def resolve_region(prompter: Prompter, region: str | None) -> str:
    """Validate a supplied region or prompt for one."""
    return validate_region(region) if region else prompt_region(prompter)


def resolve_prefix(
    prompter: Prompter,
    prefix: str | None,
    *,
    default: str | None = DEFAULT_PREFIX,
) -> str:
    """Validate a supplied prefix or prompt for one."""
    return validate_prefix(prefix) if prefix else prompt_prefix(prompter, default)


def collect_run_config(
    prompter: Prompter,
    identity: IdentityProvider,
    *,
    region: str | None = None,
    prefix: str | None = None,
    assume_yes: bool = False,
) -> RunConfig:
    """Gather region, prefix and secret, then resolve the account id.

    Parameters
    ----------
    prompter
        Terminal interaction for anything not supplied up front.
    identity
        Account lookup; its failure aborts before any further stage.
    region, prefix
        Pre-supplied values. Invalid values raise :class:`InvalidInput`
        since there is no prompt to recover through.
    assume_yes
        Skip the confirmation after the summary.

    Raises
    ------
    OperationCancelled
        If the operator declines the summary confirmation.
    CredentialsUnavailable
        If the account id cannot be resolved.
    """

    prompter.show("[bold blue]=== AWS Environment Setup ===[/bold blue]")
    resolved_region = resolve_region(prompter, region)
    resolved_prefix = resolve_prefix(prompter, prefix)
    secret = prompt_secret(prompter)
    mask_secret(secret)

    prompter.show(
        "\nProceeding with deployment using:\n"
        f"  Region: {resolved_region}\n"
        f"  Prefix: {resolved_prefix}\n"
        f"  Password: {escape(HIDDEN)}\n"
    )
    if not assume_yes and not prompter.confirm("Continue?", default=True):
        raise OperationCancelled("Deployment cancelled by operator")

    account_id = identity.account_id(resolved_region)
    logger.info("Using AWS account %s in %s", account_id, resolved_region)
    return RunConfig(
        region=resolved_region,
        prefix=resolved_prefix,
        secret=secret,
        account_id=account_id,
    )


__all__ = [
    "DEFAULT_PREFIX",
    "DEFAULT_REGION",
    "MIN_SECRET_LENGTH",
    "Prompter",
    "RichPrompter",
    "collect_run_config",
    "prompt_prefix",
    "prompt_region",
    "prompt_secret",
    "resolve_prefix",
    "resolve_region",
    "validate_prefix",
    "validate_region",
    "validate_secret",
]
