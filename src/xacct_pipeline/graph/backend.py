"""
xacct-pipeline — provisioning backend seam.

File: src/xacct_pipeline/graph/backend.py
Last updated: 2026-10-19

Purpose
- Define the interface that materializes an emitted graph and returns live identifiers.
- Provide a dry-run backend that predicts those identifiers offline.

Functional requirements
- Backend failures surface as ``ProvisioningError`` and are propagated unmodified.
- No retries; reconciling live resources is the backend's concern.
- Returned identifiers are keyed by the boundary's output names.

Non-functional requirements
- The dry-run backend is deterministic for a given graph.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import structlog

from xacct_pipeline.domain.boundary import bucket_arn
from xacct_pipeline.graph.emitter import GRAPH_SECTIONS, ResourceGraph

logger = structlog.get_logger(__name__)

_KEY_NAMESPACE = uuid.UUID("5f0f7d3e-4c1a-5b9e-9a57-2f3c8d1e6b40")


class ProvisioningError(RuntimeError):
    """Raised by a backend when a graph cannot be materialized."""

    def __init__(self, message: str, *, boundary: str | None = None) -> None:
        self.boundary = boundary
        super().__init__(message)


@runtime_checkable
class ProvisioningBackend(Protocol):
    """Materializes a single-boundary graph and returns live identifiers by output name."""

    def provision(self, graph: ResourceGraph) -> Mapping[str, str]: ...


class DryRunBackend:
    """Predicts the identifiers a real deployment would assign, without side effects.

    Needs the boundary's account id and region; unresolved pseudo parameters are a
    provisioning failure, as are imported identifiers that are not ARNs.
    """

    def __init__(self) -> None:
        self.provisioned: list[str] = []

    def provision(self, graph: ResourceGraph) -> Mapping[str, str]:
        names = graph.boundary_names
        if len(names) != 1:
            raise ProvisioningError(f"expected a single-boundary graph, got {list(names)}")
        boundary = graph.boundary(names[0])
        name = boundary["name"]
        account = boundary.get("account_id")
        region = boundary.get("region")
        if not account or not region:
            raise ProvisioningError(
                f"boundary {name!r} needs an account_id and region to be provisioned",
                boundary=name,
            )

        live: dict[str, dict[str, str]] = {}
        for section in GRAPH_SECTIONS:
            for entity in boundary[section]:
                live[entity["logical_id"]] = _predict(section, entity, name, account, region)

        outputs: dict[str, str] = {}
        for output_name, ref in sorted(boundary["outputs"].items()):
            value = live.get(ref["ref"], {}).get(ref["attr"])
            if value is None:
                raise ProvisioningError(
                    f"output {output_name!r} refers to unknown {ref['ref']}.{ref['attr']}",
                    boundary=name,
                )
            outputs[output_name] = value + ref.get("suffix", "")

        self.provisioned.append(name)
        return outputs


def provision_boundary(
    graph: ResourceGraph, name: str, backend: ProvisioningBackend
) -> dict[str, str]:
    """Hand one boundary of ``graph`` to ``backend``; errors propagate as raised."""
    subgraph = graph.subgraph(name)
    logger.info("provision_started", boundary=name, fingerprint=subgraph.fingerprint)
    outputs = dict(backend.provision(subgraph))
    logger.info("provision_finished", boundary=name, outputs=sorted(outputs))
    return outputs


def _predict(
    section: str, entity: Mapping[str, Any], boundary: str, account: str, region: str
) -> dict[str, str]:
    logical_id = entity["logical_id"]
    if section == "roles":
        name = entity["role_name"]
        return {"arn": f"arn:aws:iam::{account}:role/{name}", "name": name}
    if section == "keys":
        key_id = uuid.uuid5(_KEY_NAMESPACE, f"{account}/{region}/{boundary}/{logical_id}")
        return {"arn": f"arn:aws:kms:{region}:{account}:key/{key_id}"}
    if section == "stores":
        name = entity["bucket_name"]
        return {"arn": bucket_arn(name), "name": name}
    if section == "sinks":
        name = entity["bucket_name"] or f"{boundary}-{logical_id}".lower()
        return {"arn": bucket_arn(name), "name": name}
    if section == "repositories":
        name = entity["repository_name"]
        return {"arn": f"arn:aws:codecommit:{region}:{account}:{name}", "name": name}
    if section == "build_projects":
        name = entity["project_name"]
        return {"arn": f"arn:aws:codebuild:{region}:{account}:project/{name}", "name": name}
    if section == "pipelines":
        name = entity["pipeline_name"]
        managed = f"{boundary}-{name}-artifacts".lower()
        return {
            "arn": f"arn:aws:codepipeline:{region}:{account}:{name}",
            "name": name,
            "artifact_bucket_arn": bucket_arn(managed),
        }
    if section == "imports":
        arn = entity["arn"]
        if not arn.startswith("arn:"):
            raise ProvisioningError(
                f"imported {logical_id!r} has malformed identifier {arn!r}", boundary=boundary
            )
        return {"arn": arn}
    raise ProvisioningError(f"unsupported graph section {section!r}", boundary=boundary)


__all__ = [
    "DryRunBackend",
    "ProvisioningBackend",
    "ProvisioningError",
    "provision_boundary",
]
