"""Apply the Terraform configuration, reconciling pre-existing resources.

Terraform fails hard on "resource already exists" when a previous run was
interrupted after creating something but before recording it. Before each
apply the provisioner probes a fixed set of resources by their deterministic
names and imports any that exist but are not yet tracked.

Import failures are only warnings: ``terraform apply`` remains the source of
truth and fails loudly if a genuine conflict remains.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from ._commands import CommandRunner, run_command
from ._errors import ExternalCallFailed
from ._idempotency import ensure_idempotent
from ._models import (
    EnsureOutcome,
    ProvisionedOutputs,
    ReconcileOutcome,
    RunConfig,
)
from ._staging import DEFAULT_KEY_NAME
from ._terraform import InfraEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ImportTarget:
    """A Terraform resource that may already exist outside state.

    Attributes
    ----------
    address
        Resource address in the Terraform configuration.
    probe
        AWS CLI arguments (without ``aws`` and ``--region``) that exit zero
        only when the resource exists.
    resource_id
        Identifier passed to ``terraform import``.
    """

    address: str
    probe: tuple[str, ...]
    resource_id: str


class ResourceProbe(Protocol):
    """Existence checks against the cloud provider."""

    def exists(self, probe: Sequence[str]) -> bool: ...


@dataclass(frozen=True, slots=True)
class AwsResourceProbe:
    """Run AWS CLI describe calls; exit status zero means present."""

    region: str
    runner: CommandRunner = run_command

    def exists(self, probe: Sequence[str]) -> bool:
        result = self.runner("aws", *probe, "--region", self.region)
        return result.success


def default_import_targets(
    config: RunConfig,
    key_name: str = DEFAULT_KEY_NAME,
) -> tuple[ImportTarget, ...]:
    """Return the resources reconciled before every apply.

    Examples
    --------
    >>> config = RunConfig("us-west-2", "demo", "password123", "1")
    >>> [target.resource_id for target in default_import_targets(config)][:2]
    ['demo-db-backups', 'Simple-AWS-Env']
    """

    return (
        ImportTarget(
            "aws_s3_bucket.db_backups",
            ("s3api", "head-bucket", "--bucket", config.bucket_name),
            config.bucket_name,
        ),
        ImportTarget(
            "aws_key_pair.mongodb_key",
            ("ec2", "describe-key-pairs", "--key-names", key_name),
            key_name,
        ),
        ImportTarget(
            "aws_iam_role.ec2_role",
            ("iam", "get-role", "--role-name", config.role_name),
            config.role_name,
        ),
        ImportTarget(
            "aws_iam_instance_profile.ec2_profile",
            (
                "iam",
                "get-instance-profile",
                "--instance-profile-name",
                config.instance_profile_name,
            ),
            config.instance_profile_name,
        ),
        ImportTarget(
            "module.eks.aws_eks_cluster.this[0]",
            ("eks", "describe-cluster", "--name", config.cluster_name),
            config.cluster_name,
        ),
    )


def reconcile_target(
    engine: InfraEngine,
    probe: ResourceProbe,
    target: ImportTarget,
    tracked: set[str],
) -> ReconcileOutcome:
    """Import ``target`` when it exists remotely but not in state."""

    if not probe.exists(target.probe):
        logger.info("%s does not exist. It will be created.", target.resource_id)
        return ReconcileOutcome.ABSENT

    try:
        outcome = ensure_idempotent(
            check=lambda: target.address in tracked,
            create=lambda: engine.import_resource(target.address, target.resource_id),
        )
    except ExternalCallFailed as exc:
        logger.warning("Failed to import %s: %s", target.address, exc)
        return ReconcileOutcome.IMPORT_FAILED

    if outcome is EnsureOutcome.EXISTED:
        logger.info("%s is already tracked in state", target.address)
        return ReconcileOutcome.TRACKED
    logger.info("Imported existing %s as %s", target.resource_id, target.address)
    tracked.add(target.address)
    return ReconcileOutcome.IMPORTED


def reconcile_imports(
    engine: InfraEngine,
    probe: ResourceProbe,
    targets: Sequence[ImportTarget],
) -> dict[str, ReconcileOutcome]:
    """Reconcile every target; must run after ``init`` and before ``apply``."""

    tracked = engine.tracked_addresses()
    return {
        target.address: reconcile_target(engine, probe, target, tracked)
        for target in targets
    }


def provision_infrastructure(
    engine: InfraEngine,
    probe: ResourceProbe,
    targets: Sequence[ImportTarget],
) -> ProvisionedOutputs:
    """Initialise, reconcile, apply and read the required outputs.

    Raises
    ------
    ExternalCallFailed
        If init or apply fails.
    IncompleteProvisioning
        If a required output is missing after apply.
    """

    logger.info("Deploying infrastructure...")
    engine.init()
    reconcile_imports(engine, probe, targets)
    engine.apply()
    outputs = ProvisionedOutputs.from_terraform(engine.outputs())
    logger.info("Infrastructure ready; database at %s", outputs.database_address)
    return outputs


__all__ = [
    "AwsResourceProbe",
    "ImportTarget",
    "ResourceProbe",
    "default_import_targets",
    "provision_infrastructure",
    "reconcile_imports",
    "reconcile_target",
]
