"""
xacct-pipeline — identifier registry.

File: src/xacct_pipeline/topology/registry.py
Last updated: 2026-10-19

Purpose
- Decide, once per composition run, which cross-boundary capabilities are wired.

Functional requirements
- Each capability is enabled only when every identifier it requires is present.
- Partially configured capabilities are disabled and reported as
  ``ConfigurationIncompleteError`` on the resolution; nothing is synthesized.
- Identifiers are opaque: presence is the only check.

Non-functional requirements
- Deterministic issue ordering and log output.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

import structlog

from xacct_pipeline.config.boundaries import (
    CompositionConfig,
    ConsumerBoundaryConfig,
    SourceBoundaryConfig,
)
from xacct_pipeline.domain.boundary import BoundaryKind

logger = structlog.get_logger(__name__)


class Capability(StrEnum):
    """A cross-boundary concern that is wired atomically or not at all."""

    REPOSITORY_SHARING = "repository_sharing"
    ARTIFACT_SHARING = "artifact_sharing"
    REMOTE_SOURCE = "remote_source"


@dataclass(frozen=True, slots=True)
class CapabilityRequirement:
    capability: Capability
    boundary: BoundaryKind
    identifiers: tuple[str, ...]


CAPABILITY_REQUIREMENTS: Final[tuple[CapabilityRequirement, ...]] = (
    CapabilityRequirement(
        Capability.REPOSITORY_SHARING,
        BoundaryKind.SOURCE,
        ("consumer_account_id", "consumer_store_arn", "consumer_key_arn"),
    ),
    CapabilityRequirement(
        Capability.ARTIFACT_SHARING,
        BoundaryKind.CONSUMER,
        ("source_account_id",),
    ),
    CapabilityRequirement(
        Capability.REMOTE_SOURCE,
        BoundaryKind.CONSUMER,
        ("source_account_id", "source_repository_arn", "source_role_arn"),
    ),
)


class ConfigurationIncompleteError(ValueError):
    """A capability's identifiers are only partially configured."""

    def __init__(
        self,
        capability: Capability,
        missing: Sequence[str],
        present: Sequence[str],
    ) -> None:
        self.capability = Capability(capability)
        self.missing = tuple(sorted(missing))
        self.present = tuple(sorted(present))
        super().__init__(
            f"{self.capability.value} disabled: missing {', '.join(self.missing)} "
            f"(present: {', '.join(self.present)})"
        )


@dataclass(frozen=True, slots=True)
class CapabilityResolution:
    """Which capabilities are enabled for one boundary, plus soft issues."""

    kind: BoundaryKind
    enabled: frozenset[Capability]
    issues: tuple[ConfigurationIncompleteError, ...] = ()

    def is_enabled(self, capability: Capability) -> bool:
        return Capability(capability) in self.enabled

    def issue_for(self, capability: Capability) -> ConfigurationIncompleteError | None:
        for issue in self.issues:
            if issue.capability == capability:
                return issue
        return None

    def require(self, capability: Capability) -> None:
        """Raise the recorded ``ConfigurationIncompleteError`` for ``capability``, if any."""
        issue = self.issue_for(capability)
        if issue is not None:
            raise issue

    def require_complete(self) -> None:
        if self.issues:
            raise self.issues[0]

    def to_dict(self) -> dict[str, object]:
        return {
            "boundary": self.kind.value,
            "enabled": sorted(item.value for item in self.enabled),
            "issues": [
                {
                    "capability": issue.capability.value,
                    "missing": list(issue.missing),
                    "present": list(issue.present),
                }
                for issue in self.issues
            ],
        }


def resolve_capabilities(
    config: SourceBoundaryConfig | ConsumerBoundaryConfig,
) -> CapabilityResolution:
    """Resolve the capability flags for one boundary's configuration."""

    kind = (
        BoundaryKind.SOURCE if isinstance(config, SourceBoundaryConfig) else BoundaryKind.CONSUMER
    )
    identifiers = config.remote_identifiers()
    requirements = [item for item in CAPABILITY_REQUIREMENTS if item.boundary is kind]
    enabled: set[Capability] = set()
    consumed: set[str] = set()
    for requirement in requirements:
        if all(_is_present(identifiers, name) for name in requirement.identifiers):
            enabled.add(requirement.capability)
            consumed.update(requirement.identifiers)

    # An identifier already used by an enabled capability is not evidence of intent.
    issues: list[ConfigurationIncompleteError] = []
    for requirement in requirements:
        if requirement.capability in enabled:
            continue
        present = [name for name in requirement.identifiers if _is_present(identifiers, name)]
        if any(name not in consumed for name in present):
            missing = [name for name in requirement.identifiers if name not in present]
            issues.append(ConfigurationIncompleteError(requirement.capability, missing, present))

    resolution = CapabilityResolution(kind=kind, enabled=frozenset(enabled), issues=tuple(issues))
    for issue in resolution.issues:
        logger.warning(
            "capability_incomplete",
            boundary=kind.value,
            capability=issue.capability.value,
            missing=list(issue.missing),
        )
    logger.info(
        "capabilities_resolved",
        boundary=kind.value,
        enabled=sorted(item.value for item in resolution.enabled),
    )
    return resolution


def resolve_all(config: CompositionConfig) -> dict[BoundaryKind, CapabilityResolution]:
    """Resolve both directions independently."""
    return {
        BoundaryKind.SOURCE: resolve_capabilities(config.source),
        BoundaryKind.CONSUMER: resolve_capabilities(config.consumer),
    }


def _is_present(identifiers: Mapping[str, str | None], name: str) -> bool:
    value = identifiers.get(name)
    return isinstance(value, str) and bool(value.strip())


__all__ = [
    "CAPABILITY_REQUIREMENTS",
    "Capability",
    "CapabilityRequirement",
    "CapabilityResolution",
    "ConfigurationIncompleteError",
    "resolve_all",
    "resolve_capabilities",
]
