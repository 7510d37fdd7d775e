"""Tear down the security-training environment.

This command:
- asks for confirmation, then for the prefix and region used at setup;
- deletes the Kubernetes workload and the ECR repository; and
- destroys the Terraform-managed infrastructure.

Resources that are already gone are skipped, so the command can be re-run
until it reports a clean teardown.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter

from cloudsectest._decommission import PLACEHOLDER_SECRET, decommission
from cloudsectest._errors import DeploymentError
from cloudsectest._identity import AwsIdentityProvider, IdentityProvider
from cloudsectest._inputs import Prompter, RichPrompter, resolve_prefix, resolve_region
from cloudsectest._logging import configure_logging
from cloudsectest._manifest import load_template
from cloudsectest._models import RunConfig
from cloudsectest._options import CliOptions, RawOptions, resolve_options
from cloudsectest._pipeline import ProvisionClients, ProvisionSettings, build_clients

app = App(
    name="cloudsectest-decommission",
    help="Destroy every resource created by cloudsectest-provision.",
)
logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130

ClientsFactory = Callable[[RunConfig, ProvisionSettings], ProvisionClients]


def teardown(
    options: CliOptions,
    *,
    prompter: Prompter,
    identity: IdentityProvider,
    clients_factory: ClientsFactory = build_clients,
) -> int:
    """Run the teardown and return an exit status.

    Returns 1 when any step failed; absent resources count as success.
    """
    prompter.show(
        "[bold yellow]WARNING: This will delete all resources created by the "
        "setup script.[/bold yellow]"
    )
    try:
        if not options.assume_yes and not prompter.confirm(
            "Are you sure you want to continue?", default=False
        ):
            prompter.show("Cleanup cancelled.")
            return 0

        prefix = resolve_prefix(prompter, options.prefix, default=None)
        region = resolve_region(prompter, options.region)
        account_id = identity.account_id(region)
        config = RunConfig(
            region=region,
            prefix=prefix,
            secret=PLACEHOLDER_SECRET,
            account_id=account_id,
        )
        clients = clients_factory(config, options.settings)
        template = load_template(options.settings.manifest)
        report = decommission(
            config,
            clients.cluster,
            clients.registry,
            clients.engine,
            template,
        )
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return EXIT_INTERRUPTED
    except DeploymentError as exc:
        logger.error("%s", exc)
        return 1
    return 0 if report.succeeded else 1


@app.default
def main(
    *,
    region: Annotated[str | None, Parameter(help="AWS region used at setup.")] = None,
    prefix: Annotated[str | None, Parameter(help="Prefix used at setup.")] = None,
    terraform_dir: Annotated[
        Path | None, Parameter(help="Terraform configuration directory.")
    ] = None,
    manifest: Annotated[Path | None, Parameter(help="Workload manifest template.")] = None,
    yes: Annotated[bool | None, Parameter(help="Skip the confirmation prompt.")] = None,
    verbose: Annotated[bool | None, Parameter(help="Log every command run.")] = None,
) -> int:
    """Destroy the training environment.

    Options not given on the command line are read from ``CLOUDSECTEST_*``
    environment variables; prefix and region are prompted for when still
    missing.
    """
    try:
        options = resolve_options(
            RawOptions(
                region=region,
                prefix=prefix,
                terraform_dir=terraform_dir,
                manifest=manifest,
                assume_yes=yes,
                verbose=verbose,
            )
        )
    except DeploymentError as exc:
        configure_logging()
        logger.error("%s", exc)
        return 1
    configure_logging(verbose=options.verbose)
    return teardown(
        options,
        prompter=RichPrompter(),
        identity=AwsIdentityProvider(),
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(app())
