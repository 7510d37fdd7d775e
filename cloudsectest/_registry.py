"""Container registry publishing through the AWS CLI and Docker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ._commands import CommandContext, CommandRunner, require_success, run_command
from ._errors import ExternalCallFailed
from ._idempotency import ensure_idempotent
from ._logging import mask_secret
from ._models import EnsureOutcome, RunConfig

logger = logging.getLogger(__name__)

STAGE = "registry"
REPOSITORY_NOT_FOUND = "RepositoryNotFoundException"


class RegistryClient(Protocol):
    """Registry and image operations used by the publisher."""

    def login(self) -> None: ...

    def repository_exists(self, name: str) -> bool: ...

    def create_repository(self, name: str) -> None: ...

    def delete_repository(self, name: str) -> bool: ...

    def build(self, context: Path, tag: str) -> None: ...

    def tag(self, source: str, target: str) -> None: ...

    def push(self, reference: str) -> None: ...


@dataclass(frozen=True, slots=True)
class EcrRegistryClient:
    """ECR repository management plus the local Docker daemon."""

    region: str
    registry_host: str
    runner: CommandRunner = run_command

    def _aws_ecr(self, *args: str) -> tuple[str, ...]:
        return ("ecr", *args, "--region", self.region)

    def login(self) -> None:
        token = require_success(
            self.runner("aws", *self._aws_ecr("get-login-password")),
            stage=STAGE,
            step="aws ecr get-login-password",
        ).stdout.strip()
        mask_secret(token)
        require_success(
            self.runner(
                "docker",
                "login",
                "--username",
                "AWS",
                "--password-stdin",
                self.registry_host,
                context=CommandContext(stdin=token),
            ),
            stage=STAGE,
            step="docker login",
        )

    def repository_exists(self, name: str) -> bool:
        result = self.runner(
            "aws", *self._aws_ecr("describe-repositories", "--repository-names", name)
        )
        if result.success:
            return True
        if REPOSITORY_NOT_FOUND in result.stderr:
            return False
        raise ExternalCallFailed(
            STAGE, "aws ecr describe-repositories", result.return_code, result.stderr
        )

    def create_repository(self, name: str) -> None:
        require_success(
            self.runner(
                "aws", *self._aws_ecr("create-repository", "--repository-name", name)
            ),
            stage=STAGE,
            step="aws ecr create-repository",
        )

    def delete_repository(self, name: str) -> bool:
        """Force-delete ``name``; return ``False`` when it was already gone."""
        result = self.runner(
            "aws",
            *self._aws_ecr("delete-repository", "--repository-name", name, "--force"),
        )
        if result.success:
            return True
        if REPOSITORY_NOT_FOUND in result.stderr:
            return False
        raise ExternalCallFailed(
            STAGE, "aws ecr delete-repository", result.return_code, result.stderr
        )

    def build(self, context: Path, tag: str) -> None:
        require_success(
            self.runner("docker", "build", "-t", tag, str(context)),
            stage=STAGE,
            step="docker build",
        )

    def tag(self, source: str, target: str) -> None:
        require_success(
            self.runner("docker", "tag", source, target),
            stage=STAGE,
            step="docker tag",
        )

    def push(self, reference: str) -> None:
        require_success(
            self.runner("docker", "push", reference),
            stage=STAGE,
            step="docker push",
        )


def ensure_repository(config: RunConfig, client: RegistryClient) -> EnsureOutcome:
    """Create the run's repository unless it already exists."""
    name = config.repository_name
    outcome = ensure_idempotent(
        check=lambda: client.repository_exists(name),
        create=lambda: client.create_repository(name),
    )
    if outcome is EnsureOutcome.EXISTED:
        logger.info("ECR repository %s already exists", name)
    else:
        logger.info("Created ECR repository %s", name)
    return outcome


def publish_image(config: RunConfig, client: RegistryClient, app_dir: Path) -> str:
    """Authenticate, ensure the repository, then build, tag and push.

    Returns
    -------
    str
        Fully qualified image reference that was pushed.

    Raises
    ------
    ExternalCallFailed
        Naming the first sub-step that failed.
    """

    logger.info("Setting up ECR repository...")
    client.login()
    ensure_repository(config, client)

    logger.info("Building and pushing container %s...", config.image_ref)
    client.build(app_dir, config.local_image)
    client.tag(config.local_image, config.image_ref)
    client.push(config.image_ref)
    return config.image_ref


__all__ = [
    "EcrRegistryClient",
    "RegistryClient",
    "ensure_repository",
    "publish_image",
]
