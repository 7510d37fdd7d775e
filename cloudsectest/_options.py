"""Resolve CLI options from flags, ``CLOUDSECTEST_*`` variables and defaults."""

from __future__ import annotations

from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path

from ._deployer import DEFAULT_ROLLOUT_TIMEOUT, RolloutPolicy
from ._input_resolution import (
    ENV_PREFIX,
    InputResolution,
    parse_bool,
    parse_positive_int,
    resolve_input,
)
from ._pipeline import ProvisionSettings
from ._staging import DEFAULT_SOURCE_URL


@dataclass(frozen=True, slots=True)
class RawOptions:
    """Raw options from the CLI; ``None`` means "not given"."""

    region: str | None = None
    prefix: str | None = None
    terraform_dir: Path | None = None
    app_dir: Path | None = None
    source_url: str | None = None
    dockerfile: Path | None = None
    manifest: Path | None = None
    rollout_timeout: int | None = None
    assume_yes: bool | None = None
    verbose: bool | None = None


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Resolved options shared by both entry points.

    ``region`` and ``prefix`` stay ``None`` when neither flag nor environment
    supplied them; the input collector prompts for them.
    """

    region: str | None
    prefix: str | None
    settings: ProvisionSettings
    assume_yes: bool
    verbose: bool


def _env_key(name: str) -> str:
    return f"{ENV_PREFIX}{name}"


def _optional_str(value: str | Path | None) -> str | None:
    return str(value) if value else None


def _optional_path(value: str | Path | None) -> Path | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, Path) else Path(value)


def resolve_options(
    raw: RawOptions,
    env: cabc.Mapping[str, str] | None = None,
) -> CliOptions:
    """Resolve every option; flags win over the environment.

    Examples
    --------
    >>> options = resolve_options(RawOptions(region="eu-west-1"), env={})
    >>> options.region, options.settings.terraform_dir
    ('eu-west-1', PosixPath('terraform'))
    """

    def _resolved(
        value: str | Path | None,
        name: str,
        default: str | Path | None = None,
        *,
        as_path: bool = False,
    ) -> str | Path | None:
        return resolve_input(
            value,
            InputResolution(env_key=_env_key(name), default=default, as_path=as_path),
            env=env,
        )

    rollout_raw = _resolved(
        str(raw.rollout_timeout) if raw.rollout_timeout is not None else None,
        "ROLLOUT_TIMEOUT",
    )
    rollout_timeout = parse_positive_int(
        str(rollout_raw) if rollout_raw is not None else None,
        name="rollout timeout",
        default=DEFAULT_ROLLOUT_TIMEOUT,
    )
    assume_yes = raw.assume_yes
    if assume_yes is None:
        assume_yes = parse_bool(_optional_str(_resolved(None, "ASSUME_YES")))
    verbose = raw.verbose
    if verbose is None:
        verbose = parse_bool(_optional_str(_resolved(None, "VERBOSE")))

    settings = ProvisionSettings(
        terraform_dir=_optional_path(
            _resolved(raw.terraform_dir, "TERRAFORM_DIR", Path("terraform"), as_path=True)
        )
        or Path("terraform"),
        app_dir=_optional_path(_resolved(raw.app_dir, "APP_DIR", Path("app"), as_path=True))
        or Path("app"),
        source_url=str(_resolved(raw.source_url, "SOURCE_URL", DEFAULT_SOURCE_URL)),
        dockerfile=_optional_path(_resolved(raw.dockerfile, "DOCKERFILE", as_path=True)),
        manifest=_optional_path(_resolved(raw.manifest, "MANIFEST", as_path=True)),
        rollout=RolloutPolicy(timeout=rollout_timeout),
    )
    return CliOptions(
        region=_optional_str(_resolved(raw.region, "REGION")),
        prefix=_optional_str(_resolved(raw.prefix, "PREFIX")),
        settings=settings,
        assume_yes=assume_yes,
        verbose=verbose,
    )


__all__ = ["CliOptions", "RawOptions", "resolve_options"]
