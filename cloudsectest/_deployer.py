"""Render the workload manifest, submit it, and wait for the rollout."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from ._cluster import ClusterClient, RolloutState
from ._errors import RolloutFailed
from ._manifest import (
    WorkloadRefs,
    parse_manifest,
    render_manifest,
    workload_refs,
    workload_variables,
)
from ._models import ProvisionedOutputs, RunConfig

logger = logging.getLogger(__name__)

DEFAULT_ROLLOUT_TIMEOUT = 300
DEFAULT_POLL_INTERVAL = 10.0


@dataclass(frozen=True, slots=True)
class RolloutPolicy:
    """Bounds for the rollout wait.

    ``sleep`` and ``clock`` are injectable so the loop can be driven
    deterministically.
    """

    timeout: float = DEFAULT_ROLLOUT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic


def wait_for_rollout(
    cluster: ClusterClient,
    refs: WorkloadRefs,
    policy: RolloutPolicy,
) -> None:
    """Poll the rollout until it completes, fails, or the timeout elapses.

    Raises
    ------
    RolloutFailed
        With pod status and recent logs attached as diagnostics.
    """

    deadline = policy.clock() + policy.timeout
    while True:
        state, message = cluster.rollout_status(refs.deployment)
        if state is RolloutState.COMPLETE:
            logger.info("%s", message)
            return
        if state is RolloutState.FAILED:
            reason = f"Rollout of deployment/{refs.deployment} failed: {message}"
            break
        remaining = deadline - policy.clock()
        if remaining <= 0:
            reason = (
                f"Rollout of deployment/{refs.deployment} did not complete "
                f"within {policy.timeout:g}s"
            )
            break
        logger.info("Waiting for rollout: %s", message)
        policy.sleep(min(policy.poll_interval, remaining))

    logger.warning("Deployment failed, checking pods and logs...")
    diagnostics = cluster.diagnostics(refs.selector)
    logger.warning("%s", diagnostics)
    raise RolloutFailed(reason, diagnostics)


def deploy_workload(
    config: RunConfig,
    outputs: ProvisionedOutputs,
    cluster: ClusterClient,
    template: str,
    policy: RolloutPolicy | None = None,
) -> WorkloadRefs:
    """Deploy the application to the provisioned cluster.

    The manifest is rendered and parsed before anything touches the cluster,
    so a template/value mismatch fails without side effects.

    Returns
    -------
    WorkloadRefs
        Names of the deployed Deployment and Service.
    """

    rendered = render_manifest(template, workload_variables(config, outputs))
    refs = workload_refs(parse_manifest(rendered))

    logger.info("Configuring Kubernetes access for %s...", config.cluster_name)
    cluster.update_kubeconfig(config.cluster_name)

    logger.info("Applying workload manifest...")
    cluster.apply_manifest(rendered)
    wait_for_rollout(cluster, refs, policy or RolloutPolicy())
    return refs


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_ROLLOUT_TIMEOUT",
    "RolloutPolicy",
    "deploy_workload",
    "wait_for_rollout",
]
