"""Caller identity lookup through the AWS CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ._commands import CommandRunner, run_command
from ._errors import CredentialsUnavailable


class IdentityProvider(Protocol):
    """Resolves the account that owns every provisioned resource."""

    def account_id(self, region: str) -> str: ...


@dataclass(frozen=True, slots=True)
class AwsIdentityProvider:
    """Resolve the account id with ``aws sts get-caller-identity``."""

    runner: CommandRunner = run_command

    def account_id(self, region: str) -> str:
        result = self.runner(
            "aws",
            "sts",
            "get-caller-identity",
            "--query",
            "Account",
            "--output",
            "text",
            "--region",
            region,
        )
        if not result.success:
            msg = (
                "Failed to get AWS Account ID. Please ensure AWS credentials "
                f"are configured (run 'aws configure'): {result.stderr.strip()}"
            )
            raise CredentialsUnavailable(msg)
        account = result.stdout.strip()
        if not account.isdigit():
            msg = f"Unexpected AWS Account ID from sts: {account!r}"
            raise CredentialsUnavailable(msg)
        return account


__all__ = ["AwsIdentityProvider", "IdentityProvider"]
