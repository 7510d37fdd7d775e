"""Tests for the Terraform engine."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cloudsectest._errors import ExternalCallFailed, InfraStateError
from cloudsectest._models import RunConfig
from cloudsectest._terraform import TerraformEngine
from cloudsectest.tests.fakes import FakeRunner


@pytest.fixture
def terraform_dir(tmp_path: Path) -> Path:
    path = tmp_path / "terraform"
    path.mkdir()
    return path


def _engine(terraform_dir: Path, config: RunConfig, runner: FakeRunner) -> TerraformEngine:
    return TerraformEngine(terraform_dir, config.terraform_variables(), runner=runner)


def test_state_commands_require_init(
    terraform_dir: Path, config: RunConfig, runner: FakeRunner
) -> None:
    engine = _engine(terraform_dir, config, runner)
    for operation in (engine.apply, engine.destroy, engine.outputs, engine.tracked_addresses):
        with pytest.raises(InfraStateError, match="requires a successful init"):
            operation()
    assert runner.calls == []


def test_failed_init_keeps_engine_uninitialised(
    terraform_dir: Path, config: RunConfig, runner: FakeRunner
) -> None:
    runner.respond("terraform", "init", stderr="backend error", return_code=1)
    engine = _engine(terraform_dir, config, runner)
    with pytest.raises(ExternalCallFailed, match="terraform init"):
        engine.init()
    with pytest.raises(InfraStateError):
        engine.apply()


def test_missing_directory_fails_init(tmp_path: Path, config: RunConfig, runner: FakeRunner) -> None:
    engine = _engine(tmp_path / "absent", config, runner)
    with pytest.raises(InfraStateError, match="not found"):
        engine.init()


def test_variables_travel_in_environment_not_argv(
    terraform_dir: Path, config: RunConfig, runner: FakeRunner
) -> None:
    engine = _engine(terraform_dir, config, runner)
    engine.init()
    engine.apply()

    apply = runner.calls_to("terraform", "apply")[0]
    assert apply.argv == ("terraform", "apply", "-input=false", "-auto-approve")
    assert apply.context is not None
    assert apply.context.cwd == terraform_dir
    assert apply.context.env["TF_VAR_mongodb_password"] == "password123"
    assert apply.context.env["TF_VAR_project_prefix"] == "demo-1"
    assert all("password123" not in arg for call in runner.calls for arg in call.argv)


def test_tracked_addresses_empty_without_state(
    terraform_dir: Path, config: RunConfig, runner: FakeRunner
) -> None:
    runner.respond("terraform", "state", "list", stderr="No state file was found!", return_code=1)
    engine = _engine(terraform_dir, config, runner)
    engine.init()
    assert engine.tracked_addresses() == set()

    runner.respond("terraform", "state", "list", stdout="aws_s3_bucket.db_backups\n\n")
    assert engine.tracked_addresses() == {"aws_s3_bucket.db_backups"}


def test_outputs_parse_json(terraform_dir: Path, config: RunConfig, runner: FakeRunner) -> None:
    payload = {"mongodb_ip": {"value": "10.0.1.5", "type": "string", "sensitive": False}}
    runner.respond("terraform", "output", "-json", stdout=json.dumps(payload))
    engine = _engine(terraform_dir, config, runner)
    engine.init()

    assert engine.outputs() == payload


def test_outputs_reject_invalid_json(
    terraform_dir: Path, config: RunConfig, runner: FakeRunner
) -> None:
    runner.respond("terraform", "output", "-json", stdout="not json")
    engine = _engine(terraform_dir, config, runner)
    engine.init()
    with pytest.raises(InfraStateError, match="invalid JSON"):
        engine.outputs()
