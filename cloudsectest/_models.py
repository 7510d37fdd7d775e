"""Data models shared by the provisioning and decommissioning stages.

These models keep data flow explicit across stage boundaries: the run
configuration is built once by the input collector and handed to every stage,
and each external tool invocation reports back through :class:`CommandResult`.

Examples
--------
>>> config = RunConfig("us-west-2", "demo-1", "password123", "123456789012")
>>> config.image_ref
'123456789012.dkr.ecr.us-west-2.amazonaws.com/demo-1-webapp:latest'
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field

from ._errors import IncompleteProvisioning

DEFAULT_IMAGE_TAG = "latest"


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Configuration for a single provisioning or decommissioning run.

    Attributes
    ----------
    region
        AWS region that hosts every provisioned resource.
    prefix
        Operator-chosen name prefix (letters, digits and hyphens).
    secret
        Database password. Excluded from ``repr`` and never logged.
    account_id
        AWS account identifier resolved from the caller identity.
    image_tag
        Tag applied to the published container image.
    """

    region: str
    prefix: str
    secret: str = field(repr=False)
    account_id: str
    image_tag: str = DEFAULT_IMAGE_TAG

    @property
    def repository_name(self) -> str:
        return f"{self.prefix}-webapp"

    @property
    def cluster_name(self) -> str:
        return f"{self.prefix}-eks-cluster"

    @property
    def bucket_name(self) -> str:
        return f"{self.prefix}-db-backups"

    @property
    def role_name(self) -> str:
        return f"{self.prefix}-ec2-role"

    @property
    def instance_profile_name(self) -> str:
        return f"{self.prefix}-ec2-profile"

    @property
    def registry_host(self) -> str:
        return f"{self.account_id}.dkr.ecr.{self.region}.amazonaws.com"

    @property
    def local_image(self) -> str:
        return f"{self.repository_name}:{self.image_tag}"

    @property
    def image_ref(self) -> str:
        return f"{self.registry_host}/{self.repository_name}:{self.image_tag}"

    def terraform_variables(self) -> dict[str, str]:
        """Return the Terraform input variables for this run.

        Examples
        --------
        >>> RunConfig("us-west-2", "demo", "pw123456", "1").terraform_variables()["project_prefix"]
        'demo'
        """
        return {
            "project_prefix": self.prefix,
            "mongodb_password": self.secret,
            "aws_region": self.region,
            "aws_account_id": self.account_id,
        }


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of an external command execution.

    Attributes
    ----------
    success
        Whether the command exited with status code ``0``.
    stdout
        Captured standard output.
    stderr
        Captured standard error.
    return_code
        Process exit status code.

    Examples
    --------
    >>> CommandResult(success=True, stdout="ok", stderr="", return_code=0).success
    True
    """

    success: bool
    stdout: str
    stderr: str
    return_code: int


DATABASE_ADDRESS_OUTPUT = "mongodb_ip"
BUCKET_URL_OUTPUT = "s3_bucket_url"
REQUIRED_OUTPUTS: tuple[str, ...] = (DATABASE_ADDRESS_OUTPUT, BUCKET_URL_OUTPUT)


def _extract_output_value(outputs: Mapping[str, object], key: str) -> str | None:
    """Extract a value from Terraform outputs, handling wrapped formats."""
    output = outputs.get(key)
    if isinstance(output, dict):
        output = output.get("value")
    if output is None:
        return None
    value = str(output)
    return value or None


@dataclass(frozen=True, slots=True)
class ProvisionedOutputs:
    """Terraform outputs consumed by the deployer and the reporter.

    Only valid for the current run, after apply and before destroy.
    """

    database_address: str
    bucket_url: str

    @classmethod
    def from_terraform(cls, outputs: Mapping[str, object]) -> ProvisionedOutputs:
        """Build outputs from ``terraform output -json`` data.

        Raises
        ------
        IncompleteProvisioning
            If any required output is missing or empty.

        Examples
        --------
        >>> ProvisionedOutputs.from_terraform(
        ...     {"mongodb_ip": {"value": "10.0.1.5"}, "s3_bucket_url": "https://b"}
        ... ).database_address
        '10.0.1.5'
        """
        values = {key: _extract_output_value(outputs, key) for key in REQUIRED_OUTPUTS}
        missing = [key for key, value in values.items() if value is None]
        if missing:
            raise IncompleteProvisioning(missing)
        return cls(
            database_address=str(values[DATABASE_ADDRESS_OUTPUT]),
            bucket_url=str(values[BUCKET_URL_OUTPUT]),
        )


class EnsureOutcome(enum.Enum):
    """Result of :func:`cloudsectest._idempotency.ensure_idempotent`."""

    EXISTED = "existed"
    CREATED = "created"


class ReconcileOutcome(enum.Enum):
    """Result of reconciling one import target with Terraform state."""

    ABSENT = "absent"
    TRACKED = "tracked"
    IMPORTED = "imported"
    IMPORT_FAILED = "import_failed"


class StepOutcome(enum.Enum):
    """Result of a single decommissioning step."""

    DONE = "done"
    ABSENT = "absent"
    FAILED = "failed"


__all__ = [
    "BUCKET_URL_OUTPUT",
    "DATABASE_ADDRESS_OUTPUT",
    "REQUIRED_OUTPUTS",
    "CommandResult",
    "EnsureOutcome",
    "ProvisionedOutputs",
    "ReconcileOutcome",
    "RunConfig",
    "StepOutcome",
]
