"""Shared helpers for resolving CLI and environment inputs."""

from __future__ import annotations

import os
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path

from ._errors import InvalidInput

ENV_PREFIX = "CLOUDSECTEST_"


@dataclass(frozen=True, slots=True)
class InputResolution:
    """Configuration for resolving an input from multiple sources."""

    env_key: str
    default: str | Path | None = None
    as_path: bool = False


def resolve_input(
    param_value: str | Path | None,
    resolution: InputResolution,
    env: cabc.Mapping[str, str] | None = None,
) -> str | Path | None:
    """Resolve input from parameter, environment variable, or default.

    Examples
    --------
    >>> resolve_input(None, InputResolution("CLOUDSECTEST_REGION", "us-west-2"), env={})
    'us-west-2'
    >>> resolve_input(None, InputResolution("CLOUDSECTEST_REGION"), env={"CLOUDSECTEST_REGION": "eu-west-1"})
    'eu-west-1'
    """

    if param_value is not None:
        return param_value

    env_value = (env if env is not None else os.environ).get(resolution.env_key)
    if env_value is not None:
        return Path(env_value) if resolution.as_path else env_value

    return resolution.default


def parse_bool(value: str | bool | None, *, default: bool = False) -> bool:
    """Parse a boolean string value.

    Examples
    --------
    >>> parse_bool("yes")
    True
    >>> parse_bool(None)
    False
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_positive_int(value: str | int | None, *, name: str, default: int) -> int:
    """Parse a positive integer option.

    Raises
    ------
    InvalidInput
        If the value is not an integer greater than zero.

    Examples
    --------
    >>> parse_positive_int("300", name="rollout timeout", default=60)
    300
    >>> parse_positive_int(None, name="rollout timeout", default=60)
    60
    """
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        msg = f"{name} must be an integer, got: {value!r}"
        raise InvalidInput(msg) from exc
    if parsed <= 0:
        msg = f"{name} must be greater than zero, got: {parsed}"
        raise InvalidInput(msg)
    return parsed


__all__ = [
    "ENV_PREFIX",
    "InputResolution",
    "parse_bool",
    "parse_positive_int",
    "resolve_input",
]
