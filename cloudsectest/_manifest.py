"""Workload manifest loading, rendering and inspection.

Templates use ``${NAME}`` placeholders inside YAML string scalars. Rendering
parses the template first, substitutes into the parsed documents and emits
them again with :func:`yaml.safe_dump_all`, so values are quoted for their
YAML context and reach the cluster exactly as given. Rendering is
all-or-nothing: if any placeholder lacks a value nothing is produced, so a
partially substituted manifest can never reach the cluster.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from ._errors import ManifestError, UnresolvedTemplateVariable
from ._models import ProvisionedOutputs, RunConfig

PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
PACKAGED_TEMPLATE = "manifests/deployment.yaml"
# Stands in for the database address before apply and during teardown.
PLACEHOLDER_ADDRESS = "0.0.0.0"


@dataclass(frozen=True, slots=True)
class WorkloadRefs:
    """Names the deployer and reporter need from the rendered manifest.

    Attributes
    ----------
    deployment
        Name of the Deployment whose rollout is awaited.
    selector
        Label selector for its pods (``app=tasky``).
    service
        Name of the LoadBalancer Service exposing it.
    """

    deployment: str
    selector: str
    service: str


def load_template(path: Path | None = None) -> str:
    """Return the manifest template at ``path`` or the packaged default."""
    if path is None:
        return (
            resources.files("cloudsectest")
            .joinpath(PACKAGED_TEMPLATE)
            .read_text(encoding="utf-8")
        )
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read manifest template {path}: {exc}"
        raise ManifestError(msg) from exc


def placeholders(template: str) -> list[str]:
    """Return distinct placeholder names in order of first appearance.

    Examples
    --------
    >>> placeholders("${A}-${B}-${A}")
    ['A', 'B']
    """
    return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(template)))


def _substitute(node: Any, values: Mapping[str, str]) -> Any:
    if isinstance(node, str):
        return PLACEHOLDER_PATTERN.sub(lambda match: values[match.group(1)], node)
    if isinstance(node, dict):
        return {
            _substitute(key, values): _substitute(value, values)
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [_substitute(item, values) for item in node]
    return node


def render_manifest(template: str, values: Mapping[str, str]) -> str:
    """Substitute every placeholder in ``template``.

    Values are inserted verbatim into the parsed documents and never
    re-expanded, so a value may itself contain ``${...}`` or any YAML
    metacharacter.

    Raises
    ------
    UnresolvedTemplateVariable
        Listing every placeholder without a value.
    ManifestError
        If the template itself is not valid YAML.

    Examples
    --------
    >>> render_manifest("image: ${REGION}", {"REGION": "us-west-2"})
    'image: us-west-2\\n'
    """
    missing = [name for name in placeholders(template) if name not in values]
    if missing:
        raise UnresolvedTemplateVariable(missing)

    try:
        documents = [doc for doc in yaml.safe_load_all(template) if doc is not None]
    except yaml.YAMLError as exc:
        msg = f"Manifest template is not valid YAML: {exc}"
        raise ManifestError(msg) from exc

    rendered = [_substitute(document, values) for document in documents]
    return yaml.safe_dump_all(rendered, sort_keys=False, width=4096)


WORKLOAD_VARIABLES: tuple[str, ...] = (
    "AWS_ACCOUNT_ID",
    "AWS_REGION",
    "PROJECT_PREFIX",
    "MONGODB_PASSWORD",
    "MONGODB_IP",
)


def check_template(template: str) -> None:
    """Fail early when ``template`` uses placeholders no run can supply.

    Examples
    --------
    >>> check_template("${AWS_REGION}")
    >>> check_template("${IMAGE}")
    Traceback (most recent call last):
    ...
    cloudsectest._errors.UnresolvedTemplateVariable: Unresolved manifest placeholders: IMAGE
    """
    unknown = [name for name in placeholders(template) if name not in WORKLOAD_VARIABLES]
    if unknown:
        raise UnresolvedTemplateVariable(unknown)


def workload_variables(config: RunConfig, outputs: ProvisionedOutputs) -> dict[str, str]:
    """Return the placeholder values for the packaged manifest."""
    return {
        "AWS_ACCOUNT_ID": config.account_id,
        "AWS_REGION": config.region,
        "PROJECT_PREFIX": config.prefix,
        "MONGODB_PASSWORD": config.secret,
        "MONGODB_IP": outputs.database_address,
    }


def parse_manifest(rendered: str) -> list[dict[str, Any]]:
    """Parse a multi-document manifest into its non-empty documents."""
    try:
        documents = [doc for doc in yaml.safe_load_all(rendered) if doc is not None]
    except yaml.YAMLError:
        # the parser error quotes the offending line, which can hold the password
        raise ManifestError("Rendered manifest is not valid YAML") from None
    for document in documents:
        if not isinstance(document, dict) or "kind" not in document:
            raise ManifestError("Manifest documents must be mappings with a kind")
    if not documents:
        raise ManifestError("Manifest contains no documents")
    return documents


def _first(documents: list[dict[str, Any]], kind: str) -> dict[str, Any]:
    for document in documents:
        if document.get("kind") == kind:
            return document
    msg = f"Manifest declares no {kind}"
    raise ManifestError(msg)


def workload_refs(documents: list[dict[str, Any]]) -> WorkloadRefs:
    """Locate the Deployment and Service the pipeline waits on.

    Examples
    --------
    >>> template = load_template()
    >>> docs = parse_manifest(render_manifest(template, dict.fromkeys(placeholders(template), "x")))
    >>> workload_refs(docs)
    WorkloadRefs(deployment='tasky', selector='app=tasky', service='tasky-service')
    """
    deployment = _first(documents, "Deployment")
    service = _first(documents, "Service")
    try:
        labels = deployment["spec"]["selector"]["matchLabels"]
        deployment_name = deployment["metadata"]["name"]
        service_name = service["metadata"]["name"]
    except (KeyError, TypeError) as exc:
        msg = f"Manifest is missing workload metadata: {exc}"
        raise ManifestError(msg) from exc
    selector = ",".join(f"{key}={value}" for key, value in labels.items())
    return WorkloadRefs(
        deployment=str(deployment_name),
        selector=selector,
        service=str(service_name),
    )


def preview_workload(template: str, config: RunConfig) -> WorkloadRefs:
    """Render and inspect ``template`` before any resource is touched.

    The database address is not known until apply, so a placeholder stands
    in for it.
    """
    check_template(template)
    outputs = ProvisionedOutputs(database_address=PLACEHOLDER_ADDRESS, bucket_url="")
    rendered = render_manifest(template, workload_variables(config, outputs))
    return workload_refs(parse_manifest(rendered))


__all__ = [
    "PLACEHOLDER_ADDRESS",
    "PLACEHOLDER_PATTERN",
    "WORKLOAD_VARIABLES",
    "WorkloadRefs",
    "check_template",
    "load_template",
    "parse_manifest",
    "placeholders",
    "preview_workload",
    "render_manifest",
    "workload_refs",
    "workload_variables",
]
