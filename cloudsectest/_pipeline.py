"""Sequential provisioning pipeline.

Stages run strictly in order, each consuming the previous stage's output:
staged tree, image reference, provisioned outputs, workload names. Any fatal
error propagates immediately; only the endpoint wait degrades to a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from ._cluster import ClusterClient, KubectlClusterClient
from ._commands import CommandRunner, run_command
from ._deployer import RolloutPolicy, deploy_workload
from ._errors import EndpointNotReady
from ._manifest import load_template, preview_workload
from ._models import ProvisionedOutputs, RunConfig
from ._provisioner import (
    AwsResourceProbe,
    ResourceProbe,
    default_import_targets,
    provision_infrastructure,
)
from ._registry import EcrRegistryClient, RegistryClient, publish_image
from ._reporter import EndpointBackoff, report_results, wait_for_endpoint
from ._staging import (
    DEFAULT_KEY_NAME,
    DEFAULT_SOURCE_URL,
    ensure_keypair,
    stage_application,
)
from ._terraform import InfraEngine, TerraformEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProvisionSettings:
    """Paths and tunables for a provisioning run."""

    terraform_dir: Path = Path("terraform")
    app_dir: Path = Path("app")
    source_url: str = DEFAULT_SOURCE_URL
    dockerfile: Path | None = None
    manifest: Path | None = None
    key_name: str = DEFAULT_KEY_NAME
    rollout: RolloutPolicy = field(default_factory=RolloutPolicy)
    backoff: EndpointBackoff = field(default_factory=EndpointBackoff)

    @property
    def key_path(self) -> Path:
        return self.terraform_dir / self.key_name


@dataclass(frozen=True, slots=True)
class ProvisionClients:
    """External capabilities used by the pipeline."""

    registry: RegistryClient
    engine: InfraEngine
    probe: ResourceProbe
    cluster: ClusterClient


@dataclass(frozen=True, slots=True)
class ProvisionResult:
    """What a successful run produced."""

    image_ref: str
    outputs: ProvisionedOutputs
    endpoint: str | None


def build_clients(
    config: RunConfig,
    settings: ProvisionSettings,
    runner: CommandRunner = run_command,
) -> ProvisionClients:
    """Build the CLI-backed capabilities for ``config``."""
    return ProvisionClients(
        registry=EcrRegistryClient(config.region, config.registry_host, runner),
        engine=TerraformEngine(
            settings.terraform_dir, config.terraform_variables(), runner=runner
        ),
        probe=AwsResourceProbe(config.region, runner),
        cluster=KubectlClusterClient(config.region, runner),
    )


def run_provision(
    config: RunConfig,
    settings: ProvisionSettings,
    clients: ProvisionClients,
    *,
    runner: CommandRunner = run_command,
    console: Console | None = None,
) -> ProvisionResult:
    """Run every provisioning stage after input collection and preflight.

    Parameters
    ----------
    config
        Validated run configuration.
    settings
        Paths and tunables.
    clients
        Registry, Terraform, probe and cluster capabilities.
    runner
        Command runner for the staging commands (git, ssh-keygen).
    console
        Console for the final report.

    Returns
    -------
    ProvisionResult
        Image reference, Terraform outputs and the endpoint, if assigned.
    """

    template = load_template(settings.manifest)
    preview_workload(template, config)

    logger.info("Setting up project structure...")
    stage_application(
        settings.source_url,
        settings.app_dir,
        dockerfile=settings.dockerfile,
        runner=runner,
    )
    ensure_keypair(settings.key_path, runner=runner)

    image_ref = publish_image(config, clients.registry, settings.app_dir)

    outputs = provision_infrastructure(
        clients.engine,
        clients.probe,
        default_import_targets(config, settings.key_name),
    )

    refs = deploy_workload(config, outputs, clients.cluster, template, settings.rollout)

    logger.info("Getting deployment URLs...")
    endpoint: str | None
    try:
        endpoint = wait_for_endpoint(clients.cluster, refs.service, settings.backoff)
    except EndpointNotReady as exc:
        logger.warning("%s; check again with 'kubectl get service %s'", exc, refs.service)
        endpoint = None

    report_results(outputs, endpoint, console)
    return ProvisionResult(image_ref=image_ref, outputs=outputs, endpoint=endpoint)


__all__ = [
    "ProvisionClients",
    "ProvisionResult",
    "ProvisionSettings",
    "build_clients",
    "run_provision",
]
