"""Terraform orchestration for the training environment.

Variables reach Terraform through ``TF_VAR_*`` environment variables so the
database password never lands in a tfvars file or on a process command line.
The engine refuses every state-touching command until ``init`` has succeeded
in the same process.
"""

from __future__ import annotations

import json
import logging
from collections import abc as cabc
from pathlib import Path
from typing import Protocol

from ._commands import CommandContext, CommandRunner, require_success, run_command
from ._errors import ExternalCallFailed, InfraStateError
from ._models import CommandResult

logger = logging.getLogger(__name__)

STAGE = "infrastructure"


class InfraEngine(Protocol):
    """Plan/apply/destroy contract consumed by the provisioner."""

    def init(self) -> None: ...

    def tracked_addresses(self) -> set[str]: ...

    def import_resource(self, address: str, resource_id: str) -> None: ...

    def apply(self) -> None: ...

    def outputs(self) -> dict[str, object]: ...

    def destroy(self) -> None: ...


def terraform_env(variables: cabc.Mapping[str, str]) -> dict[str, str]:
    """Map Terraform variables to ``TF_VAR_`` environment entries.

    Examples
    --------
    >>> terraform_env({"aws_region": "us-west-2"})
    {'TF_VAR_aws_region': 'us-west-2', 'TF_IN_AUTOMATION': '1'}
    """
    env = {f"TF_VAR_{name}": value for name, value in variables.items()}
    env["TF_IN_AUTOMATION"] = "1"
    return env


class TerraformEngine:
    """Run Terraform commands in a single working directory.

    Parameters
    ----------
    working_dir
        Directory holding the Terraform configuration.
    variables
        Input variables, passed through the environment.
    runner
        Command runner used for every invocation.
    """

    def __init__(
        self,
        working_dir: Path,
        variables: cabc.Mapping[str, str],
        *,
        runner: CommandRunner = run_command,
    ) -> None:
        self.working_dir = working_dir
        self._env = terraform_env(variables)
        self._runner = runner
        self._initialized = False

    def _run(self, *args: str) -> CommandResult:
        return self._runner(
            "terraform",
            *args,
            context=CommandContext(env=self._env, cwd=self.working_dir),
        )

    def _require_init(self, operation: str) -> None:
        if not self._initialized:
            msg = f"terraform {operation} requires a successful init in {self.working_dir}"
            raise InfraStateError(msg)

    def init(self) -> None:
        """Run ``terraform init``; safe on an already-initialised directory."""
        if not self.working_dir.is_dir():
            msg = f"Terraform directory not found: {self.working_dir}"
            raise InfraStateError(msg)
        require_success(
            self._run("init", "-input=false"),
            stage=STAGE,
            step="terraform init",
        )
        self._initialized = True

    def tracked_addresses(self) -> set[str]:
        """Return resource addresses recorded in state.

        A directory with no state yet reports an empty set.
        """
        self._require_init("state list")
        result = self._run("state", "list")
        if not result.success:
            if "No state file was found" in result.stderr:
                return set()
            raise ExternalCallFailed(
                STAGE, "terraform state list", result.return_code, result.stderr
            )
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def import_resource(self, address: str, resource_id: str) -> None:
        self._require_init("import")
        require_success(
            self._run("import", "-input=false", address, resource_id),
            stage=STAGE,
            step=f"terraform import {address}",
        )

    def apply(self) -> None:
        self._require_init("apply")
        require_success(
            self._run("apply", "-input=false", "-auto-approve"),
            stage=STAGE,
            step="terraform apply",
        )

    def outputs(self) -> dict[str, object]:
        """Return ``terraform output -json`` as a mapping."""
        self._require_init("output")
        result = require_success(
            self._run("output", "-json"),
            stage=STAGE,
            step="terraform output",
        )
        try:
            payload = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as exc:
            msg = f"terraform output returned invalid JSON: {exc}"
            raise InfraStateError(msg) from exc
        if not isinstance(payload, dict):
            msg = "terraform output JSON root must be an object"
            raise InfraStateError(msg)
        return payload

    def destroy(self) -> None:
        self._require_init("destroy")
        require_success(
            self._run("destroy", "-input=false", "-auto-approve"),
            stage=STAGE,
            step="terraform destroy",
        )


__all__ = ["InfraEngine", "TerraformEngine", "terraform_env"]
