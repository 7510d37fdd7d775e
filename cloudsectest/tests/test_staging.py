"""Tests for application staging and keypair generation."""

from __future__ import annotations

from pathlib import Path

import pytest

from cloudsectest._commands import CommandContext
from cloudsectest._errors import ExternalCallFailed, InvalidInput
from cloudsectest._staging import ensure_keypair, public_key_path, stage_application
from cloudsectest.tests.fakes import FakeRunner

SOURCE_URL = "https://example.com/tasky.git"


def _fake_clone(argv: tuple[str, ...], context: CommandContext | None) -> None:
    destination = Path(argv[-1])
    (destination / ".git").mkdir(parents=True)
    (destination / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (destination / "Dockerfile").write_text("FROM golang\n")
    (destination / "main.go").write_text("package main\n")


def _fake_keygen(argv: tuple[str, ...], context: CommandContext | None) -> None:
    key_path = Path(argv[argv.index("-f") + 1])
    key_path.write_text("PRIVATE\n")
    public_key_path(key_path).write_text("ssh-rsa AAAA\n")


def test_stage_application_replaces_previous_tree(
    runner: FakeRunner, tmp_path: Path
) -> None:
    runner.respond("git", "clone", effect=_fake_clone)
    app_dir = tmp_path / "app"
    app_dir.mkdir()
    (app_dir / "stale.txt").write_text("old")

    staged = stage_application(SOURCE_URL, app_dir, runner=runner)

    assert staged == app_dir
    assert (app_dir / "main.go").exists()
    assert not (app_dir / "stale.txt").exists(), "stale files must not survive"
    assert not (app_dir / ".git").exists(), "VCS metadata must be stripped"
    assert runner.argvs[0][:4] == ("git", "clone", "--depth", "1")
    assert runner.argvs[0][4] == SOURCE_URL


def test_stage_application_overlays_dockerfile(runner: FakeRunner, tmp_path: Path) -> None:
    runner.respond("git", "clone", effect=_fake_clone)
    overlay = tmp_path / "Dockerfile.custom"
    overlay.write_text("FROM alpine\n")

    stage_application(SOURCE_URL, tmp_path / "app", dockerfile=overlay, runner=runner)

    assert (tmp_path / "app" / "Dockerfile").read_text() == "FROM alpine\n"


def test_stage_application_missing_overlay_fails_before_cloning(
    runner: FakeRunner, tmp_path: Path
) -> None:
    with pytest.raises(InvalidInput, match="Dockerfile overlay not found"):
        stage_application(
            SOURCE_URL, tmp_path / "app", dockerfile=tmp_path / "nope", runner=runner
        )
    assert runner.calls == []


def test_stage_application_clone_failure_keeps_existing_tree(
    runner: FakeRunner, tmp_path: Path
) -> None:
    runner.respond("git", "clone", stderr="repository not found", return_code=128)
    app_dir = tmp_path / "app"
    app_dir.mkdir()
    (app_dir / "main.go").write_text("package main\n")

    with pytest.raises(ExternalCallFailed, match="git clone"):
        stage_application(SOURCE_URL, app_dir, runner=runner)
    assert (app_dir / "main.go").exists()


def test_stage_application_refuses_working_directory(
    runner: FakeRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(InvalidInput, match="Refusing"):
        stage_application(SOURCE_URL, Path("."), runner=runner)


def test_stage_application_refuses_parent_of_working_directory(
    runner: FakeRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    with pytest.raises(InvalidInput, match="Refusing"):
        stage_application(SOURCE_URL, Path(".."), runner=runner)
    assert runner.calls == []
    assert work.is_dir()


def test_ensure_keypair_generates_once(runner: FakeRunner, tmp_path: Path) -> None:
    runner.respond("ssh-keygen", effect=_fake_keygen)
    key_path = tmp_path / "terraform" / "Simple-AWS-Env"

    assert ensure_keypair(key_path, runner=runner) is True
    assert ensure_keypair(key_path, runner=runner) is False

    assert len(runner.calls_to("ssh-keygen")) == 1
    assert public_key_path(key_path).exists()


def test_ensure_keypair_restores_missing_public_key(
    runner: FakeRunner, tmp_path: Path
) -> None:
    key_path = tmp_path / "Simple-AWS-Env"
    key_path.write_text("PRIVATE\n")
    runner.respond("ssh-keygen", "-y", stdout="ssh-rsa RESTORED\n")

    assert ensure_keypair(key_path, runner=runner) is False
    assert public_key_path(key_path).read_text() == "ssh-rsa RESTORED\n"
