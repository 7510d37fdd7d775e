"""Provision the security-training environment.

This command:
- prompts for region, prefix and database password, then resolves the AWS
  account;
- checks the required tools and Docker access;
- stages the application and builds, tags and pushes its image to ECR;
- applies Terraform after importing any resources a previous run left behind;
- deploys the workload to EKS and waits for the rollout; and
- prints the bucket URL and the load balancer URL.

Re-running after a failure is safe: every stage either detects existing
resources or imports them before applying.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter

from cloudsectest._commands import CommandRunner, run_command
from cloudsectest._errors import DeploymentError, OperationCancelled
from cloudsectest._identity import AwsIdentityProvider, IdentityProvider
from cloudsectest._inputs import Prompter, RichPrompter, collect_run_config
from cloudsectest._logging import configure_logging
from cloudsectest._models import RunConfig
from cloudsectest._options import CliOptions, RawOptions, resolve_options
from cloudsectest._pipeline import (
    ProvisionClients,
    ProvisionSettings,
    build_clients,
    run_provision,
)
from cloudsectest._preflight import run_preflight

app = App(
    name="cloudsectest-provision",
    help="Provision the intentionally insecure training environment.",
)
logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130

ClientsFactory = Callable[[RunConfig, ProvisionSettings], ProvisionClients]


def provision(
    options: CliOptions,
    *,
    prompter: Prompter,
    identity: IdentityProvider,
    preflight: Callable[[], None] = run_preflight,
    clients_factory: ClientsFactory = build_clients,
    runner: CommandRunner = run_command,
) -> int:
    """Run the full provisioning pipeline and return an exit status."""
    try:
        config = collect_run_config(
            prompter,
            identity,
            region=options.region,
            prefix=options.prefix,
            assume_yes=options.assume_yes,
        )
        preflight()
        clients = clients_factory(config, options.settings)
        run_provision(config, options.settings, clients, runner=runner)
    except OperationCancelled as exc:
        logger.warning("%s", exc)
        return 0
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return EXIT_INTERRUPTED
    except DeploymentError as exc:
        logger.error("%s", exc)
        return 1
    return 0


@app.default
def main(
    *,
    region: Annotated[str | None, Parameter(help="AWS region.")] = None,
    prefix: Annotated[str | None, Parameter(help="Resource name prefix.")] = None,
    terraform_dir: Annotated[
        Path | None, Parameter(help="Terraform configuration directory.")
    ] = None,
    app_dir: Annotated[Path | None, Parameter(help="Application staging directory.")] = None,
    source_url: Annotated[str | None, Parameter(help="Application git URL.")] = None,
    dockerfile: Annotated[
        Path | None, Parameter(help="Dockerfile copied over the staged one.")
    ] = None,
    manifest: Annotated[Path | None, Parameter(help="Workload manifest template.")] = None,
    rollout_timeout: Annotated[
        int | None, Parameter(help="Seconds to wait for the rollout.")
    ] = None,
    yes: Annotated[bool | None, Parameter(help="Skip the confirmation prompt.")] = None,
    verbose: Annotated[bool | None, Parameter(help="Log every command run.")] = None,
) -> int:
    """Provision the training environment.

    Options not given on the command line are read from ``CLOUDSECTEST_*``
    environment variables; region and prefix are prompted for when still
    missing. The database password is always prompted for.
    """
    try:
        options = resolve_options(
            RawOptions(
                region=region,
                prefix=prefix,
                terraform_dir=terraform_dir,
                app_dir=app_dir,
                source_url=source_url,
                dockerfile=dockerfile,
                manifest=manifest,
                rollout_timeout=rollout_timeout,
                assume_yes=yes,
                verbose=verbose,
            )
        )
    except DeploymentError as exc:
        configure_logging()
        logger.error("%s", exc)
        return 1
    configure_logging(verbose=options.verbose)
    return provision(
        options,
        prompter=RichPrompter(),
        identity=AwsIdentityProvider(),
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(app())
