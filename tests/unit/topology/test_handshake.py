"""
xacct-pipeline — unit tests for the two-pass boundary handshake

File: tests/unit/topology/test_handshake.py
Last updated: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Mapping

import pytest
from conftest import CONSUMER_ACCOUNT, REGION, SOURCE_ACCOUNT, SOURCE_ROLE_ARN

from xacct_pipeline.config.boundaries import (
    CompositionConfig,
    ConsumerBoundaryConfig,
    SourceBoundaryConfig,
)
from xacct_pipeline.domain.boundary import BoundaryKind
from xacct_pipeline.graph.backend import DryRunBackend, ProvisioningError
from xacct_pipeline.graph.emitter import ResourceGraph
from xacct_pipeline.topology.composer import (
    ACCESS_ROLE_ARN_OUTPUT,
    KEY_ARN_OUTPUT,
    REPOSITORY_ARN_OUTPUT,
    STORE_ARN_OUTPUT,
)
from xacct_pipeline.topology.handshake import (
    HandshakeError,
    handoff_to_consumer,
    handoff_to_source,
    run_handshake,
)
from xacct_pipeline.topology.registry import Capability, ConfigurationIncompleteError


class _FailingBackend:
    def __init__(self, error: ProvisioningError) -> None:
        self.error = error

    def provision(self, graph: ResourceGraph) -> Mapping[str, str]:
        raise self.error


def _config() -> CompositionConfig:
    return CompositionConfig(
        source=SourceBoundaryConfig(account_id=SOURCE_ACCOUNT, region=REGION),
        consumer=ConsumerBoundaryConfig(account_id=CONSUMER_ACCOUNT, region=REGION),
    )


def test_handoff_helpers_map_outputs_onto_remote_identifiers() -> None:
    consumer_outputs = {KEY_ARN_OUTPUT: "arn:key", STORE_ARN_OUTPUT: "arn:store"}
    source_outputs = {REPOSITORY_ARN_OUTPUT: "arn:repo", ACCESS_ROLE_ARN_OUTPUT: "arn:role"}

    assert handoff_to_source(consumer_outputs, CONSUMER_ACCOUNT) == {
        "consumer_account_id": CONSUMER_ACCOUNT,
        "consumer_store_arn": "arn:store",
        "consumer_key_arn": "arn:key",
    }
    assert handoff_to_consumer(source_outputs, SOURCE_ACCOUNT) == {
        "source_account_id": SOURCE_ACCOUNT,
        "source_repository_arn": "arn:repo",
        "source_role_arn": "arn:role",
    }


def test_handoff_leaves_missing_outputs_absent() -> None:
    identifiers = handoff_to_consumer({REPOSITORY_ARN_OUTPUT: "arn:repo"}, SOURCE_ACCOUNT)

    assert identifiers["source_role_arn"] is None


def test_handshake_runs_three_passes_and_enables_everything() -> None:
    backend = DryRunBackend()

    result = run_handshake(_config(), backend)

    assert [item.kind for item in result.passes] == [
        BoundaryKind.CONSUMER,
        BoundaryKind.SOURCE,
        BoundaryKind.CONSUMER,
    ]
    assert backend.provisioned == ["consumer", "source", "consumer"]
    first, source, last = result.passes
    assert first.composed.capabilities.enabled == {Capability.ARTIFACT_SHARING}
    assert source.composed.capabilities.enabled == {Capability.REPOSITORY_SHARING}
    assert last.composed.capabilities.enabled == {
        Capability.ARTIFACT_SHARING,
        Capability.REMOTE_SOURCE,
    }
    # The access role is granted exactly the key and store the first pass produced.
    access = source.composed.roles["CodeCommitAccessRole"].permissions
    kms = access.find("KMSAccessPolicy")
    upload = access.find("UploadArtifactPolicy")
    assert kms is not None and upload is not None
    assert kms.resources == (first.outputs[KEY_ARN_OUTPUT],)
    assert upload.resources == (f"{first.outputs[STORE_ARN_OUTPUT]}/*",)
    imported = {item.logical_id: item.arn for item in last.composed.imports}
    assert imported == {
        "SourceRepository": source.outputs[REPOSITORY_ARN_OUTPUT],
        "CodeCommitRole": source.outputs[ACCESS_ROLE_ARN_OUTPUT],
    }
    assert result.final_graph.boundary_names == ("consumer", "source")


def test_handshake_needs_both_accounts() -> None:
    config = CompositionConfig(
        source=SourceBoundaryConfig(region=REGION),
        consumer=ConsumerBoundaryConfig(account_id=CONSUMER_ACCOUNT, region=REGION),
    )

    with pytest.raises(HandshakeError, match="account_id for both boundaries"):
        run_handshake(config, DryRunBackend())


def test_backend_error_propagates_unchanged() -> None:
    error = ProvisioningError("stack rollback", boundary="consumer")

    with pytest.raises(ProvisioningError) as excinfo:
        run_handshake(_config(), _FailingBackend(error))

    assert excinfo.value is error


def test_strict_handshake_refuses_partial_consumer_before_provisioning() -> None:
    config = CompositionConfig(
        source=SourceBoundaryConfig(account_id=SOURCE_ACCOUNT, region=REGION),
        consumer=ConsumerBoundaryConfig(
            account_id=CONSUMER_ACCOUNT, region=REGION, source_role_arn=SOURCE_ROLE_ARN
        ),
        strict=True,
    )
    backend = _FailingBackend(ProvisioningError("must not be reached", boundary="consumer"))

    with pytest.raises(ConfigurationIncompleteError) as excinfo:
        run_handshake(config, backend)

    assert excinfo.value.capability is Capability.REMOTE_SOURCE
    assert excinfo.value.missing == ("source_repository_arn",)


def test_partial_consumer_without_strict_drops_the_remote_source() -> None:
    config = CompositionConfig(
        source=SourceBoundaryConfig(account_id=SOURCE_ACCOUNT, region=REGION),
        consumer=ConsumerBoundaryConfig(
            account_id=CONSUMER_ACCOUNT, region=REGION, source_role_arn=SOURCE_ROLE_ARN
        ),
    )

    result = run_handshake(config, DryRunBackend())

    assert result.passes[0].composed.capabilities.enabled == frozenset(
        {Capability.ARTIFACT_SHARING}
    )
    assert len(result.passes) == 3


def test_strict_handshake_with_clean_config_runs_all_passes() -> None:
    config = _config()
    strict = CompositionConfig(source=config.source, consumer=config.consumer, strict=True)

    result = run_handshake(strict, DryRunBackend())

    assert [item.kind for item in result.passes] == [
        BoundaryKind.CONSUMER,
        BoundaryKind.SOURCE,
        BoundaryKind.CONSUMER,
    ]
