"""
xacct-pipeline — resource graph emitter.

File: src/xacct_pipeline/graph/emitter.py
Last updated: 2026-10-19

Purpose
- Serialize composed boundaries into the declarative graph a provisioning backend consumes.

What should be included in this file
- Structural completeness check: every reference resolves inside its own boundary.
- Deterministic ordering and a content fingerprint.
- Canonical JSON and YAML renderings.

Functional requirements
- All-or-nothing: any dangling reference aborts emission with no partial graph.
- Statement order inside a policy is preserved; everything else is sorted.

Non-functional requirements
- Same boundaries in, byte-identical canonical JSON out.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

import structlog
import yaml

from xacct_pipeline.constants import GRAPH_SCHEMA_VERSION
from xacct_pipeline.domain.boundary import ResourceRef
from xacct_pipeline.topology.composer import ComposedBoundary

logger = structlog.get_logger(__name__)

# Graph section per entity ``resource_type``.
SECTION_BY_TYPE: Final[dict[str, str]] = {
    "role": "roles",
    "key": "keys",
    "store": "stores",
    "repository": "repositories",
    "sink": "sinks",
    "build_project": "build_projects",
    "pipeline": "pipelines",
    "import": "imports",
}
GRAPH_SECTIONS: Final[tuple[str, ...]] = tuple(sorted(SECTION_BY_TYPE.values()))


@dataclass(frozen=True, slots=True)
class DanglingReference:
    boundary: str
    referrer: str
    logical_id: str
    attribute: str

    def render(self) -> str:
        return f"{self.boundary}/{self.referrer} -> {self.logical_id}.{self.attribute}"


class DanglingReferenceError(ValueError):
    """Raised when the graph references an entity its boundary neither declares nor imports."""

    def __init__(self, dangling: Sequence[DanglingReference]) -> None:
        self.dangling = tuple(dangling)
        rendered = "\n".join(f"- {item.render()}" for item in self.dangling)
        super().__init__(f"unresolved references in resource graph:\n{rendered}")


@dataclass(frozen=True, slots=True)
class ResourceGraph:
    """Immutable, canonical declarative graph for one or more boundaries."""

    payload: Mapping[str, Any]
    fingerprint: str

    @property
    def boundary_names(self) -> tuple[str, ...]:
        return tuple(item["name"] for item in self.payload["boundaries"])

    def boundary(self, name: str) -> dict[str, Any]:
        for item in self.payload["boundaries"]:
            if item["name"] == name:
                return item
        raise KeyError(f"unknown boundary {name!r}")

    def subgraph(self, name: str) -> ResourceGraph:
        """Graph holding only ``name``; what a backend receives for one provisioning pass."""
        payload = {
            "schema_version": self.payload["schema_version"],
            "boundaries": [self.boundary(name)],
        }
        return ResourceGraph(payload=payload, fingerprint=_fingerprint(payload))

    def to_json(self, *, indent: int | None = None) -> str:
        if indent is None:
            return canonical_json(self.payload)
        return json.dumps(self.payload, sort_keys=True, indent=indent, ensure_ascii=False)

    def to_yaml(self) -> str:
        return yaml.safe_dump(
            json.loads(canonical_json(self.payload)),
            sort_keys=True,
            default_flow_style=False,
            allow_unicode=True,
        )


def canonical_json(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def find_dangling(boundary: ComposedBoundary) -> list[DanglingReference]:
    """Return every reference in ``boundary`` that does not resolve, in a stable order."""

    attributes = {entity.logical_id: entity.attributes for entity in boundary.entities()}
    found: set[DanglingReference] = set()

    def check(referrer: str, refs: Iterable[ResourceRef]) -> None:
        for ref in refs:
            if ref.attribute not in attributes.get(ref.logical_id, frozenset()):
                found.add(DanglingReference(boundary.name, referrer, ref.logical_id, ref.attribute))

    for entity in boundary.entities():
        check(entity.logical_id, entity.references())
    for name, ref in boundary.outputs.items():
        check(f"outputs.{name}", (ref,))

    return sorted(
        found, key=lambda item: (item.boundary, item.referrer, item.logical_id, item.attribute)
    )


def emit(boundaries: Iterable[ComposedBoundary]) -> ResourceGraph:
    """Serialize composed boundaries into a single deterministic graph.

    Raises:
        DanglingReferenceError: listing every unresolved reference across all boundaries.
        ValueError: if two boundaries share a name.
    """

    ordered = sorted(boundaries, key=lambda item: item.name)
    names = [item.name for item in ordered]
    if len(names) != len(set(names)):
        raise ValueError(f"boundary names must be unique, got {names}")

    dangling: list[DanglingReference] = []
    for boundary in ordered:
        dangling.extend(find_dangling(boundary))
    if dangling:
        raise DanglingReferenceError(dangling)

    payload = {
        "schema_version": GRAPH_SCHEMA_VERSION,
        "boundaries": [_boundary_payload(item) for item in ordered],
    }
    graph = ResourceGraph(payload=payload, fingerprint=_fingerprint(payload))
    logger.info("graph_emitted", boundaries=names, fingerprint=graph.fingerprint)
    return graph


def _boundary_payload(boundary: ComposedBoundary) -> dict[str, Any]:
    sections: dict[str, list[dict[str, object]]] = {name: [] for name in GRAPH_SECTIONS}
    for entity in sorted(boundary.entities(), key=lambda item: item.logical_id):
        sections[SECTION_BY_TYPE[entity.resource_type]].append(entity.to_dict())

    payload: dict[str, Any] = boundary.boundary.to_dict()
    payload["capabilities"] = boundary.capabilities.to_dict()
    payload.update(sections)
    payload["outputs"] = {name: ref.to_dict() for name, ref in boundary.outputs.items()}
    # Round-trip so the in-memory payload matches what canonical JSON holds.
    return json.loads(canonical_json(payload))


def _fingerprint(payload: Mapping[str, Any]) -> str:
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


__all__ = [
    "DanglingReference",
    "DanglingReferenceError",
    "GRAPH_SECTIONS",
    "ResourceGraph",
    "SECTION_BY_TYPE",
    "canonical_json",
    "emit",
    "find_dangling",
]
