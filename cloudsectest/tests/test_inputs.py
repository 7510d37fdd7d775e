"""Tests for operator input collection."""

from __future__ import annotations

import logging

import pytest

from cloudsectest._errors import CredentialsUnavailable, InvalidInput, OperationCancelled
from cloudsectest._inputs import (
    DEFAULT_PREFIX,
    DEFAULT_REGION,
    collect_run_config,
    prompt_prefix,
    prompt_secret,
    resolve_prefix,
    validate_prefix,
    validate_region,
    validate_secret,
)
from cloudsectest.tests.fakes import FakeIdentity, ScriptedPrompter


@pytest.mark.parametrize("prefix", ["demo-1", "ABC", "a", "cloud-sec-test-2024"])
def test_validate_prefix_accepts_letters_digits_hyphens(prefix: str) -> None:
    assert validate_prefix(prefix) == prefix


@pytest.mark.parametrize("prefix", ["demo_1", "demo.1", "demo 1", "", "dé", "demo-1\n"])
def test_validate_prefix_rejects_other_characters(prefix: str) -> None:
    with pytest.raises(InvalidInput, match="letters, numbers, and hyphens"):
        validate_prefix(prefix)


def test_validate_region() -> None:
    assert validate_region("us-west-2") == "us-west-2"
    assert validate_region("ap-southeast-1") == "ap-southeast-1"
    with pytest.raises(InvalidInput):
        validate_region("uswest2")
    with pytest.raises(InvalidInput):
        validate_region("us-west-2\n")


def test_validate_secret_rejects_short_values_without_echoing_them() -> None:
    with pytest.raises(InvalidInput) as excinfo:
        validate_secret("short12")
    assert "short12" not in str(excinfo.value)
    assert validate_secret("12345678") == "12345678"


def test_prompt_prefix_reprompts_until_valid(caplog: pytest.LogCaptureFixture) -> None:
    prompter = ScriptedPrompter(answers=["bad_prefix", "demo-1"])
    with caplog.at_level(logging.ERROR):
        assert prompt_prefix(prompter) == "demo-1"
    assert len(prompter.questions) == 2, "invalid prefix should re-prompt"
    assert "Prefix must contain only letters, numbers, and hyphens" in caplog.text


def test_prompt_prefix_empty_answer_uses_default() -> None:
    prompter = ScriptedPrompter(answers=[""])
    assert prompt_prefix(prompter) == DEFAULT_PREFIX


def test_prompt_secret_reprompts_on_short_password(caplog: pytest.LogCaptureFixture) -> None:
    prompter = ScriptedPrompter(secrets=["short", "", "password123"])
    with caplog.at_level(logging.ERROR):
        assert prompt_secret(prompter) == "password123"
    assert caplog.text.count("at least 8 characters") == 2


def test_resolve_prefix_supplied_value_is_validated_not_prompted() -> None:
    prompter = ScriptedPrompter()
    with pytest.raises(InvalidInput):
        resolve_prefix(prompter, "bad prefix")
    assert prompter.questions == []


def test_collect_run_config_defaults(caplog: pytest.LogCaptureFixture) -> None:
    prompter = ScriptedPrompter(answers=["", ""], secrets=["password123"], confirms=[True])
    identity = FakeIdentity()

    with caplog.at_level(logging.DEBUG):
        config = collect_run_config(prompter, identity)

    assert config.region == DEFAULT_REGION
    assert config.prefix == DEFAULT_PREFIX
    assert config.secret == "password123"
    assert config.account_id == "123456789012"
    assert identity.lookups == [DEFAULT_REGION]


def test_collect_run_config_never_reveals_the_secret(
    caplog: pytest.LogCaptureFixture, capsys: pytest.CaptureFixture[str]
) -> None:
    prompter = ScriptedPrompter(secrets=["password123"], confirms=[True])

    with caplog.at_level(logging.DEBUG):
        config = collect_run_config(
            prompter, FakeIdentity(), region="us-west-2", prefix="demo-1"
        )

    captured = capsys.readouterr()
    assert "password123" not in caplog.text
    assert "password123" not in captured.out + captured.err
    assert "password123" not in "".join(prompter.shown)
    assert "password123" not in repr(config)
    summary = prompter.shown[-1]
    assert "HIDDEN" in summary
    assert "demo-1" in summary


def test_collect_run_config_declined_confirmation_cancels() -> None:
    prompter = ScriptedPrompter(secrets=["password123"], confirms=[False])
    identity = FakeIdentity()
    with pytest.raises(OperationCancelled):
        collect_run_config(prompter, identity, region="us-west-2", prefix="demo-1")
    assert identity.lookups == [], "account lookup must not run after cancel"


def test_collect_run_config_assume_yes_skips_confirmation() -> None:
    prompter = ScriptedPrompter(secrets=["password123"], confirms=[False])
    config = collect_run_config(
        prompter,
        FakeIdentity(),
        region="us-west-2",
        prefix="demo-1",
        assume_yes=True,
    )
    assert config.prefix == "demo-1"
    assert prompter.confirms == [False], "confirm should not have been consumed"


def test_collect_run_config_propagates_identity_failure() -> None:
    class _NoCredentials:
        def account_id(self, region: str) -> str:
            raise CredentialsUnavailable("no credentials")

    prompter = ScriptedPrompter(secrets=["password123"], confirms=[True])
    with pytest.raises(CredentialsUnavailable):
        collect_run_config(prompter, _NoCredentials(), region="us-west-2", prefix="x")
