"""Tests for the command runner and AWS identity lookup."""

from __future__ import annotations

import pytest

from cloudsectest._commands import (
    COMMAND_NOT_FOUND,
    CommandContext,
    require_success,
    run_command,
)
from cloudsectest._errors import CredentialsUnavailable, ExternalCallFailed
from cloudsectest._identity import AwsIdentityProvider
from cloudsectest._models import CommandResult
from cloudsectest.tests.fakes import FakeRunner


def test_run_command_captures_output() -> None:
    result = run_command("printf", "hello")
    assert result.success
    assert result.stdout == "hello"


def test_run_command_reports_failure_without_raising() -> None:
    result = run_command("false")
    assert not result.success
    assert result.return_code == 1


def test_run_command_missing_executable() -> None:
    result = run_command("cloudsectest-no-such-tool")
    assert result.return_code == COMMAND_NOT_FOUND
    assert "command not found" in result.stderr


def test_run_command_feeds_stdin_and_env() -> None:
    result = run_command("cat", context=CommandContext(stdin="from-stdin"))
    assert result.stdout == "from-stdin"

    result = run_command(
        "sh",
        "-c",
        'printf "%s" "$CLOUDSECTEST_PROBE"',
        context=CommandContext(env={"CLOUDSECTEST_PROBE": "value"}),
    )
    assert result.stdout == "value"


def test_run_command_rejects_control_characters() -> None:
    with pytest.raises(ValueError, match="control character"):
        run_command("echo", "line\nbreak")


def test_require_success_raises_with_stage_and_step() -> None:
    failed = CommandResult(success=False, stdout="", stderr="denied\n", return_code=2)
    with pytest.raises(ExternalCallFailed) as excinfo:
        require_success(failed, stage="registry", step="docker push")
    assert excinfo.value.step == "docker push"
    assert excinfo.value.return_code == 2
    assert str(excinfo.value) == "registry: docker push failed (exit status 2): denied"


def test_identity_provider_returns_account(runner: FakeRunner) -> None:
    runner.respond("aws", "sts", stdout="123456789012\n")
    provider = AwsIdentityProvider(runner)
    assert provider.account_id("eu-west-1") == "123456789012"
    assert runner.argvs[0][-2:] == ("--region", "eu-west-1")


def test_identity_provider_without_credentials(runner: FakeRunner) -> None:
    runner.respond("aws", "sts", stderr="Unable to locate credentials", return_code=255)
    with pytest.raises(CredentialsUnavailable, match="aws configure"):
        AwsIdentityProvider(runner).account_id("us-west-2")


def test_identity_provider_rejects_non_numeric_account(runner: FakeRunner) -> None:
    runner.respond("aws", "sts", stdout="None\n")
    with pytest.raises(CredentialsUnavailable):
        AwsIdentityProvider(runner).account_id("us-west-2")
