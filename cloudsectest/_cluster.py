"""Kubernetes cluster access through ``aws eks`` and ``kubectl``."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol

from ._commands import CommandContext, CommandRunner, require_success, run_command

STAGE = "workload"
CLUSTER_NOT_FOUND = "ResourceNotFoundException"
ROLLED_OUT_MARKER = "successfully rolled out"
LOG_TAIL_LINES = 100


class RolloutState(enum.Enum):
    """Snapshot of a Deployment rollout."""

    COMPLETE = "complete"
    PROGRESSING = "progressing"
    FAILED = "failed"


class ClusterClient(Protocol):
    """Cluster operations used by the deployer, reporter and decommissioner."""

    def update_kubeconfig(self, cluster_name: str) -> None: ...

    def apply_manifest(self, manifest: str) -> None: ...

    def rollout_status(self, deployment: str) -> tuple[RolloutState, str]: ...

    def diagnostics(self, selector: str) -> str: ...

    def service_address(self, service: str) -> str | None: ...

    def delete_manifest(self, manifest: str) -> None: ...


@dataclass(frozen=True, slots=True)
class KubectlClusterClient:
    """EKS credentials via the AWS CLI; everything else via kubectl."""

    region: str
    runner: CommandRunner = run_command

    def update_kubeconfig(self, cluster_name: str) -> None:
        require_success(
            self.runner(
                "aws",
                "eks",
                "update-kubeconfig",
                "--name",
                cluster_name,
                "--region",
                self.region,
            ),
            stage=STAGE,
            step="aws eks update-kubeconfig",
        )

    def apply_manifest(self, manifest: str) -> None:
        require_success(
            self.runner(
                "kubectl", "apply", "-f", "-", context=CommandContext(stdin=manifest)
            ),
            stage=STAGE,
            step="kubectl apply",
        )

    def rollout_status(self, deployment: str) -> tuple[RolloutState, str]:
        result = self.runner(
            "kubectl", "rollout", "status", f"deployment/{deployment}", "--watch=false"
        )
        if not result.success:
            return RolloutState.FAILED, result.stderr.strip() or result.stdout.strip()
        message = result.stdout.strip()
        if ROLLED_OUT_MARKER in message:
            return RolloutState.COMPLETE, message
        return RolloutState.PROGRESSING, message

    def diagnostics(self, selector: str) -> str:
        """Collect pod status, descriptions and recent logs for ``selector``."""
        sections = (
            ("Pods", ("get", "pods", "-l", selector, "-o", "wide")),
            ("Pod details", ("describe", "pods", "-l", selector)),
            (
                "Recent logs",
                ("logs", "-l", selector, "--all-containers", f"--tail={LOG_TAIL_LINES}"),
            ),
        )
        parts: list[str] = []
        for title, args in sections:
            result = self.runner("kubectl", *args)
            body = result.stdout.strip() if result.success else result.stderr.strip()
            parts.append(f"--- {title} ---\n{body}")
        return "\n\n".join(parts)

    def service_address(self, service: str) -> str | None:
        result = require_success(
            self.runner(
                "kubectl",
                "get",
                "service",
                service,
                "-o",
                "jsonpath={.status.loadBalancer.ingress[0].hostname}"
                "{.status.loadBalancer.ingress[0].ip}",
            ),
            stage=STAGE,
            step="kubectl get service",
        )
        return result.stdout.strip() or None

    def delete_manifest(self, manifest: str) -> None:
        require_success(
            self.runner(
                "kubectl",
                "delete",
                "-f",
                "-",
                "--ignore-not-found",
                context=CommandContext(stdin=manifest),
            ),
            stage=STAGE,
            step="kubectl delete",
        )


__all__ = [
    "CLUSTER_NOT_FOUND",
    "ClusterClient",
    "KubectlClusterClient",
    "RolloutState",
]
