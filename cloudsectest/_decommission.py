"""Reverse-order teardown of workload, registry and infrastructure.

Each step tolerates its resource already being gone, and a failing step is
logged as a warning without stopping the steps after it. Infrastructure is
destroyed last because the earlier steps need the cluster to still exist.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ._cluster import CLUSTER_NOT_FOUND, ClusterClient
from ._errors import DeploymentError, ExternalCallFailed
from ._manifest import PLACEHOLDER_ADDRESS, render_manifest, workload_variables
from ._models import ProvisionedOutputs, RunConfig, StepOutcome
from ._registry import RegistryClient
from ._terraform import InfraEngine

logger = logging.getLogger(__name__)

# Destroy still evaluates variable-typed fields, so a value is required.
PLACEHOLDER_SECRET = "dummy"


@dataclass(frozen=True, slots=True)
class TeardownReport:
    """Outcome of each decommissioning step."""

    workload: StepOutcome
    registry: StepOutcome
    infrastructure: StepOutcome

    @property
    def succeeded(self) -> bool:
        return StepOutcome.FAILED not in (
            self.workload,
            self.registry,
            self.infrastructure,
        )


def _run_step(name: str, step: Callable[[], StepOutcome]) -> StepOutcome:
    try:
        return step()
    except DeploymentError as exc:
        logger.warning("%s cleanup failed: %s", name, exc)
        return StepOutcome.FAILED


def delete_workload(config: RunConfig, cluster: ClusterClient, template: str) -> StepOutcome:
    """Delete the manifest's objects; a missing cluster counts as absent."""
    logger.info("Cleaning up Kubernetes resources...")
    try:
        cluster.update_kubeconfig(config.cluster_name)
    except ExternalCallFailed as exc:
        if CLUSTER_NOT_FOUND in exc.stderr:
            logger.info("Cluster %s not found; no workload to delete", config.cluster_name)
            return StepOutcome.ABSENT
        raise

    outputs = ProvisionedOutputs(database_address=PLACEHOLDER_ADDRESS, bucket_url="")
    rendered = render_manifest(template, workload_variables(config, outputs))
    cluster.delete_manifest(rendered)
    return StepOutcome.DONE


def delete_repository(config: RunConfig, registry: RegistryClient) -> StepOutcome:
    logger.info("Cleaning up ECR repository...")
    if registry.delete_repository(config.repository_name):
        return StepOutcome.DONE
    logger.info("ECR repository %s not found", config.repository_name)
    return StepOutcome.ABSENT


def destroy_infrastructure(engine: InfraEngine) -> StepOutcome:
    logger.info("Cleaning up infrastructure...")
    engine.init()
    engine.destroy()
    return StepOutcome.DONE


def decommission(
    config: RunConfig,
    cluster: ClusterClient,
    registry: RegistryClient,
    engine: InfraEngine,
    template: str,
) -> TeardownReport:
    """Tear down everything a provisioning run created.

    Returns
    -------
    TeardownReport
        Per-step outcomes; failures have already been logged as warnings.
    """

    report = TeardownReport(
        workload=_run_step("Workload", lambda: delete_workload(config, cluster, template)),
        registry=_run_step("Registry", lambda: delete_repository(config, registry)),
        infrastructure=_run_step("Infrastructure", lambda: destroy_infrastructure(engine)),
    )
    if report.succeeded:
        logger.info("Cleanup complete!")
    else:
        logger.warning("Cleanup finished with failures; re-run to retry")
    return report


__all__ = [
    "PLACEHOLDER_SECRET",
    "TeardownReport",
    "decommission",
    "delete_repository",
    "delete_workload",
    "destroy_infrastructure",
]
