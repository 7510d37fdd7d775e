"""Stage the application source tree and the database host keypair."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from ._commands import CommandRunner, require_success, run_command
from ._errors import InvalidInput

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_URL = "https://github.com/jeffthorne/tasky.git"
DEFAULT_KEY_NAME = "Simple-AWS-Env"
STAGE = "stage"


def public_key_path(key_path: Path) -> Path:
    """Return the ``.pub`` companion of ``key_path``.

    Examples
    --------
    >>> public_key_path(Path("terraform/Simple-AWS-Env")).name
    'Simple-AWS-Env.pub'
    """
    return key_path.parent / f"{key_path.name}.pub"


def _guard_destination(app_dir: Path) -> None:
    resolved = app_dir.resolve()
    # the tree is deleted before cloning, so it must not contain these
    protected = (Path.home().resolve(), Path.cwd().resolve())
    if any(path.is_relative_to(resolved) for path in protected):
        msg = f"Refusing to stage the application into {app_dir}"
        raise InvalidInput(msg)


def stage_application(
    source_url: str,
    app_dir: Path,
    *,
    dockerfile: Path | None = None,
    runner: CommandRunner = run_command,
) -> Path:
    """Clone ``source_url`` and replace ``app_dir`` with a clean copy.

    Any previous content of ``app_dir`` is removed first so stale files never
    survive into the image build. Version-control metadata is stripped.

    Parameters
    ----------
    source_url
        Git URL of the application.
    app_dir
        Destination directory, replaced wholesale.
    dockerfile
        Optional Dockerfile copied over the staged tree's own.
    runner
        Command runner used for ``git clone``.

    Returns
    -------
    Path
        The staged application directory.

    Raises
    ------
    ExternalCallFailed
        If the clone fails; there is no recovery since later stages build
        from this tree.
    """

    _guard_destination(app_dir)
    if dockerfile is not None and not dockerfile.is_file():
        msg = f"Dockerfile overlay not found: {dockerfile}"
        raise InvalidInput(msg)

    with tempfile.TemporaryDirectory(prefix="cloudsectest-") as tmp:
        clone_dir = Path(tmp) / "source"
        logger.info("Cloning %s into a temporary directory...", source_url)
        require_success(
            runner("git", "clone", "--depth", "1", source_url, str(clone_dir)),
            stage=STAGE,
            step="git clone",
        )
        git_dir = clone_dir / ".git"
        if git_dir.exists():
            shutil.rmtree(git_dir)

        if app_dir.exists():
            logger.info("Replacing existing application directory %s", app_dir)
            shutil.rmtree(app_dir)
        app_dir.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(clone_dir, app_dir)

    if dockerfile is not None:
        shutil.copyfile(dockerfile, app_dir / "Dockerfile")
    logger.info("Application staged in %s", app_dir)
    return app_dir


def ensure_keypair(key_path: Path, *, runner: CommandRunner = run_command) -> bool:
    """Generate an RSA keypair at ``key_path`` unless one already exists.

    A missing public half is re-derived from the private key.

    Returns
    -------
    bool
        ``True`` when a new keypair was generated.
    """

    pub_path = public_key_path(key_path)
    if key_path.exists():
        if not pub_path.exists():
            logger.info("Restoring public key %s", pub_path)
            result = require_success(
                runner("ssh-keygen", "-y", "-f", str(key_path)),
                stage=STAGE,
                step="ssh-keygen -y",
            )
            pub_path.write_text(result.stdout, encoding="utf-8")
        return False

    logger.info("Generating SSH key pair %s...", key_path)
    key_path.parent.mkdir(parents=True, exist_ok=True)
    require_success(
        runner(
            "ssh-keygen",
            "-t",
            "rsa",
            "-b",
            "4096",
            "-f",
            str(key_path),
            "-N",
            "",
            "-q",
        ),
        stage=STAGE,
        step="ssh-keygen",
    )
    return True


__all__ = [
    "DEFAULT_KEY_NAME",
    "DEFAULT_SOURCE_URL",
    "ensure_keypair",
    "public_key_path",
    "stage_application",
]
