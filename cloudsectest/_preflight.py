"""Pre-flight validation for the external tools the pipeline shells out to.

Every missing tool is reported at once so the operator can fix them in one
pass. Docker access is probed separately because a present-but-unusable
daemon is the most common failure on fresh workstations.
"""

from __future__ import annotations

import getpass
import logging
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from ._commands import CommandRunner, run_command
from ._errors import MissingDependencies, PermissionDenied

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependency:
    """A required binary and what the pipeline uses it for."""

    name: str
    description: str


REQUIRED_DEPENDENCIES: tuple[Dependency, ...] = (
    Dependency("aws", "AWS CLI for identity, registry and cluster access"),
    Dependency("terraform", "Terraform CLI for infrastructure provisioning"),
    Dependency("docker", "Docker for building and pushing the application image"),
    Dependency("kubectl", "kubectl for deploying the workload"),
    Dependency("git", "git for fetching the application source"),
    Dependency("ssh-keygen", "ssh-keygen for the database host keypair"),
)


def collect_missing(
    dependencies: Iterable[Dependency],
    which: Callable[[str], str | None] = shutil.which,
) -> list[Dependency]:
    """Return the subset of dependencies that are not discoverable on PATH.

    Examples
    --------
    >>> collect_missing([])
    []
    """

    return [dependency for dependency in dependencies if which(dependency.name) is None]


def docker_remediation(user: str) -> str:
    return (
        f"    sudo usermod -aG docker {user}\n"
        "    newgrp docker\n\n"
        "Note: You may need to log out and log back in for changes to take effect."
    )


def check_docker_access(runner: CommandRunner = run_command) -> None:
    """Raise :class:`PermissionDenied` when ``docker info`` fails."""

    result = runner("docker", "info")
    if result.success:
        return
    logger.debug("docker info failed: %s", result.stderr.strip())
    raise PermissionDenied(
        "Docker permission denied. Please ensure you have Docker installed "
        "and your user is in the docker group.",
        docker_remediation(getpass.getuser()),
    )


def run_preflight(
    dependencies: Iterable[Dependency] = REQUIRED_DEPENDENCIES,
    *,
    which: Callable[[str], str | None] = shutil.which,
    runner: CommandRunner = run_command,
    check_docker: bool = True,
) -> None:
    """Verify every required tool is installed and Docker is usable.

    Raises
    ------
    MissingDependencies
        Listing every tool absent from ``PATH``.
    PermissionDenied
        If Docker is installed but the caller cannot use it.
    """

    logger.info("Checking prerequisites...")
    missing = collect_missing(dependencies, which)
    if missing:
        for dependency in missing:
            logger.debug("missing %s (%s)", dependency.name, dependency.description)
        raise MissingDependencies(dependency.name for dependency in missing)
    if check_docker:
        check_docker_access(runner)


__all__ = [
    "REQUIRED_DEPENDENCIES",
    "Dependency",
    "check_docker_access",
    "collect_missing",
    "docker_remediation",
    "run_preflight",
]
