"""Surface the externally reachable endpoints to the operator."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from rich.console import Console

from ._cluster import ClusterClient
from ._errors import EndpointNotReady, ExternalCallFailed
from ._models import ProvisionedOutputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EndpointBackoff:
    """Exponential backoff for load balancer address assignment."""

    attempts: int = 10
    initial_delay: float = 5.0
    factor: float = 2.0
    max_delay: float = 60.0
    sleep: Callable[[float], None] = time.sleep

    def delays(self) -> list[float]:
        """Return the waits between attempts.

        Examples
        --------
        >>> EndpointBackoff(attempts=4, initial_delay=1, factor=2, max_delay=3).delays()
        [1, 2, 3]
        """
        waits: list[float] = []
        delay = self.initial_delay
        for _ in range(self.attempts - 1):
            waits.append(min(delay, self.max_delay))
            delay *= self.factor
        return waits


def wait_for_endpoint(
    cluster: ClusterClient,
    service: str,
    backoff: EndpointBackoff,
) -> str:
    """Return the service's load balancer address once assigned.

    Raises
    ------
    EndpointNotReady
        When every attempt found no address.
    """

    waits = backoff.delays()
    for attempt in range(1, backoff.attempts + 1):
        try:
            address = cluster.service_address(service)
        except ExternalCallFailed as exc:
            logger.debug("service lookup failed: %s", exc)
            address = None
        if address:
            return address
        if attempt <= len(waits):
            logger.info(
                "Waiting for load balancer address (attempt %d/%d)...",
                attempt,
                backoff.attempts,
            )
            backoff.sleep(waits[attempt - 1])
    msg = (
        f"Service {service} has no load balancer address after "
        f"{backoff.attempts} attempts"
    )
    raise EndpointNotReady(msg)


def report_results(
    outputs: ProvisionedOutputs,
    address: str | None,
    console: Console | None = None,
) -> None:
    """Print the bucket URL and the web server URL."""
    console = console or Console()
    console.print("\n[bold green]Deployment Complete![/bold green]")
    console.print(f"[yellow]S3 Bucket URL:[/yellow] {outputs.bucket_url}")
    if address:
        console.print(f"[yellow]Tasky Web Server URL:[/yellow] http://{address}")
    else:
        console.print(
            "[yellow]Tasky Web Server URL:[/yellow] pending load balancer assignment"
        )


__all__ = ["EndpointBackoff", "report_results", "wait_for_endpoint"]
