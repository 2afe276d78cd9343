"""Two-pass handshake between the boundaries.

Each boundary is composed, emitted and provisioned on its own. The identifiers one
provisioning pass returns become the other boundary's remote configuration:

1. consumer: shared key and store for the source account;
2. source: repository access role scoped to that key and store;
3. consumer: pipeline whose Source stage assumes the access role.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace

import structlog

from xacct_pipeline.config.boundaries import (
    CompositionConfig,
    ConsumerBoundaryConfig,
    SourceBoundaryConfig,
)
from xacct_pipeline.domain.boundary import BoundaryKind
from xacct_pipeline.graph.backend import ProvisioningBackend, provision_boundary
from xacct_pipeline.graph.emitter import ResourceGraph, emit
from xacct_pipeline.topology.composer import (
    ACCESS_ROLE_ARN_OUTPUT,
    KEY_ARN_OUTPUT,
    REPOSITORY_ARN_OUTPUT,
    STORE_ARN_OUTPUT,
    ComposedBoundary,
    compose_consumer_boundary,
    compose_source_boundary,
)
from xacct_pipeline.topology.registry import CapabilityResolution, resolve_capabilities

logger = structlog.get_logger(__name__)


class HandshakeError(ValueError):
    """Raised when the handshake cannot start from the given configuration."""


@dataclass(frozen=True, slots=True)
class HandshakePass:
    kind: BoundaryKind
    composed: ComposedBoundary
    graph: ResourceGraph
    outputs: Mapping[str, str]


@dataclass(frozen=True, slots=True)
class HandshakeResult:
    passes: tuple[HandshakePass, ...]

    @property
    def final_graph(self) -> ResourceGraph:
        """Graph of the last source pass and the last consumer pass together."""
        latest: dict[BoundaryKind, ComposedBoundary] = {}
        for item in self.passes:
            latest[item.kind] = item.composed
        return emit(latest.values())


def handoff_to_consumer(
    outputs: Mapping[str, str], source_account_id: str | None
) -> dict[str, str | None]:
    """Map the source boundary's live outputs onto the consumer's remote identifiers."""
    return {
        "source_account_id": source_account_id,
        "source_repository_arn": outputs.get(REPOSITORY_ARN_OUTPUT),
        "source_role_arn": outputs.get(ACCESS_ROLE_ARN_OUTPUT),
    }


def handoff_to_source(
    outputs: Mapping[str, str], consumer_account_id: str | None
) -> dict[str, str | None]:
    """Map the consumer boundary's live outputs onto the source's remote identifiers."""
    return {
        "consumer_account_id": consumer_account_id,
        "consumer_store_arn": outputs.get(STORE_ARN_OUTPUT),
        "consumer_key_arn": outputs.get(KEY_ARN_OUTPUT),
    }


def run_handshake(config: CompositionConfig, backend: ProvisioningBackend) -> HandshakeResult:
    """Run the three provisioning passes in order; backend errors propagate unchanged.

    With ``config.strict`` set, each pass checks its capabilities before provisioning and
    raises ``ConfigurationIncompleteError`` instead of composing without them.
    """

    source_account = config.source.account_id
    consumer_account = config.consumer.account_id
    if source_account is None or consumer_account is None:
        raise HandshakeError("handshake needs account_id for both boundaries")

    passes: list[HandshakePass] = []

    consumer = replace(config.consumer, source_account_id=source_account)
    consumer_outputs = _consumer_pass(consumer, backend, passes, strict=config.strict)

    source = replace(config.source, **handoff_to_source(consumer_outputs, consumer_account))
    source_pass = _run_pass(
        BoundaryKind.SOURCE,
        compose_source_boundary(source, _resolve(source, strict=config.strict)),
        backend,
    )
    passes.append(source_pass)

    consumer = replace(consumer, **handoff_to_consumer(source_pass.outputs, source_account))
    _consumer_pass(consumer, backend, passes, strict=config.strict)

    logger.info("handshake_finished", passes=len(passes))
    return HandshakeResult(passes=tuple(passes))


def _resolve(
    config: SourceBoundaryConfig | ConsumerBoundaryConfig, *, strict: bool
) -> CapabilityResolution:
    resolution = resolve_capabilities(config)
    if strict:
        resolution.require_complete()
    return resolution


def _consumer_pass(
    config: ConsumerBoundaryConfig,
    backend: ProvisioningBackend,
    passes: list[HandshakePass],
    *,
    strict: bool,
) -> Mapping[str, str]:
    composed = compose_consumer_boundary(config, _resolve(config, strict=strict))
    result = _run_pass(BoundaryKind.CONSUMER, composed, backend)
    passes.append(result)
    return result.outputs


def _run_pass(
    kind: BoundaryKind, composed: ComposedBoundary, backend: ProvisioningBackend
) -> HandshakePass:
    graph = emit((composed,))
    outputs = provision_boundary(graph, composed.name, backend)
    logger.info("handshake_pass", boundary=composed.name, kind=kind.value)
    return HandshakePass(kind=kind, composed=composed, graph=graph, outputs=outputs)


__all__ = [
    "HandshakeError",
    "HandshakePass",
    "HandshakeResult",
    "handoff_to_consumer",
    "handoff_to_source",
    "run_handshake",
]
