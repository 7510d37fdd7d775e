"""Exception hierarchy for the cloudsectest deployment pipeline.

Every fatal stage failure derives from :class:`DeploymentError` so the CLI
entry points can catch a single base error, print the reason to stderr, and
exit non-zero.

Examples
--------
>>> raise MissingDependencies(["terraform", "kubectl"])
Traceback (most recent call last):
...
cloudsectest._errors.MissingDependencies: Missing required tools: terraform, kubectl
"""

from __future__ import annotations

from collections.abc import Iterable


class DeploymentError(RuntimeError):
    """Base error for provisioning and decommissioning failures."""


class InvalidInput(DeploymentError, ValueError):
    """Raised when operator input fails validation and cannot be re-prompted."""


class CredentialsUnavailable(DeploymentError):
    """Raised when the caller's AWS account identity cannot be resolved."""


class MissingDependencies(DeploymentError):
    """Raised when one or more required command-line tools are absent.

    Parameters
    ----------
    tools
        Names of every tool that could not be found on ``PATH``.
    """

    def __init__(self, tools: Iterable[str]) -> None:
        self.tools = tuple(tools)
        super().__init__(f"Missing required tools: {', '.join(self.tools)}")


class PermissionDenied(DeploymentError):
    """Raised when the caller lacks permission for container builds.

    Parameters
    ----------
    message
        Description of the failed permission check.
    remediation
        Commands the operator can run to fix the problem.
    """

    def __init__(self, message: str, remediation: str) -> None:
        self.remediation = remediation
        super().__init__(f"{message}\n\nRun this command to fix:\n{remediation}")


class ExternalCallFailed(DeploymentError):
    """Raised when an external tool invocation exits non-zero.

    The exit status and stderr are surfaced verbatim rather than
    reinterpreted.

    Parameters
    ----------
    stage
        Pipeline stage that issued the call (``registry``, ``infrastructure``...).
    step
        Sub-step within the stage, usually the tool and verb (``docker push``).
    return_code
        Exit status reported by the tool.
    stderr
        Captured standard error.

    Examples
    --------
    >>> str(ExternalCallFailed("registry", "docker push", 1, "denied"))
    'registry: docker push failed (exit status 1): denied'
    """

    def __init__(
        self,
        stage: str,
        step: str,
        return_code: int,
        stderr: str = "",
    ) -> None:
        self.stage = stage
        self.step = step
        self.return_code = return_code
        self.stderr = stderr
        detail = stderr.strip()
        msg = f"{stage}: {step} failed (exit status {return_code})"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class InfraStateError(DeploymentError):
    """Raised when Terraform state is used before ``init`` has succeeded."""


class IncompleteProvisioning(DeploymentError):
    """Raised when expected Terraform outputs are absent after apply.

    Parameters
    ----------
    missing
        Names of the outputs that were not reported.
    """

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(
            f"Terraform apply finished without outputs: {', '.join(self.missing)}"
        )


class UnresolvedTemplateVariable(DeploymentError):
    """Raised when a manifest placeholder has no value.

    Parameters
    ----------
    names
        Placeholder names lacking a value, in order of first appearance.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(names)
        super().__init__(
            f"Unresolved manifest placeholders: {', '.join(self.names)}"
        )


class ManifestError(DeploymentError):
    """Raised when a workload manifest cannot be loaded or parsed."""


class RolloutFailed(DeploymentError):
    """Raised when the workload does not roll out before the deadline.

    Parameters
    ----------
    message
        Summary of the rollout failure.
    diagnostics
        Pod status and log output gathered after the failure.
    """

    def __init__(self, message: str, diagnostics: str = "") -> None:
        self.diagnostics = diagnostics
        super().__init__(message)


class EndpointNotReady(DeploymentError):
    """Raised when the load balancer address is still unassigned.

    The pipeline treats this as a warning: infrastructure and workload are up,
    only address advertisement is delayed.
    """


class OperationCancelled(Exception):
    """Raised when the operator declines a confirmation prompt."""


__all__ = [
    "CredentialsUnavailable",
    "DeploymentError",
    "EndpointNotReady",
    "ExternalCallFailed",
    "IncompleteProvisioning",
    "InfraStateError",
    "InvalidInput",
    "ManifestError",
    "MissingDependencies",
    "OperationCancelled",
    "PermissionDenied",
    "RolloutFailed",
    "UnresolvedTemplateVariable",
]
