"""
xacct-pipeline — unit tests for the resource graph emitter

File: tests/unit/graph/test_emitter.py
Last updated: 2026-10-19

Purpose
- Validate graph structure, determinism and all-or-nothing reference checking.

What this test file should cover
- Sections, ordering and the content fingerprint.
- JSON and YAML renderings hold the same payload.
- Dangling references and unknown attributes abort emission.
"""

from __future__ import annotations

import json

import pytest
import yaml

from xacct_pipeline.config.boundaries import ConsumerBoundaryConfig, SourceBoundaryConfig
from xacct_pipeline.domain.boundary import ResourceRef
from xacct_pipeline.graph.emitter import (
    GRAPH_SECTIONS,
    DanglingReference,
    DanglingReferenceError,
    ResourceGraph,
    emit,
    find_dangling,
)
from xacct_pipeline.topology.composer import (
    ComposedBoundary,
    compose_consumer_boundary,
    compose_source_boundary,
)


def _with_outputs(composed: ComposedBoundary, **outputs: ResourceRef) -> ComposedBoundary:
    return ComposedBoundary(
        boundary=composed.boundary,
        capabilities=composed.capabilities,
        resources=composed.resources,
        imports=composed.imports,
        outputs={**composed.outputs, **outputs},
    )


def _emit_both(source: SourceBoundaryConfig, consumer: ConsumerBoundaryConfig) -> ResourceGraph:
    return emit((compose_source_boundary(source), compose_consumer_boundary(consumer)))


def test_graph_lists_boundaries_by_name_with_every_section(
    sharing_source: SourceBoundaryConfig, remote_consumer: ConsumerBoundaryConfig
) -> None:
    graph = _emit_both(sharing_source, remote_consumer)

    assert graph.boundary_names == ("consumer", "source")
    consumer = graph.boundary("consumer")
    for section in GRAPH_SECTIONS:
        assert isinstance(consumer[section], list)
    assert [item["logical_id"] for item in consumer["roles"]] == [
        "CodeBuildServiceRole",
        "CodePipelineServiceRole",
    ]
    assert [item["logical_id"] for item in consumer["imports"]] == [
        "CodeCommitRole",
        "SourceRepository",
    ]
    assert consumer["capabilities"]["enabled"] == ["artifact_sharing", "remote_source"]
    assert consumer["outputs"]["ArtifactCryptKeyArn"] == {"ref": "ArtifactKey", "attr": "arn"}


def test_policy_statement_order_is_preserved(sharing_consumer: ConsumerBoundaryConfig) -> None:
    graph = emit((compose_consumer_boundary(sharing_consumer),))

    (store,) = graph.boundary("consumer")["stores"]
    sids = [item["Sid"] for item in store["bucket_policy"]["Statement"]]
    assert sids == [
        "DenyUnEncryptedObjectUploads",
        "DenyInsecureConnections",
        "CrossAccountS3GetPutPolicy",
        "CrossAccountS3ListPolicy",
    ]


def test_emission_is_deterministic(
    sharing_source: SourceBoundaryConfig, remote_consumer: ConsumerBoundaryConfig
) -> None:
    first = _emit_both(sharing_source, remote_consumer)
    reversed_order = (
        compose_consumer_boundary(remote_consumer),
        compose_source_boundary(sharing_source),
    )
    second = emit(reversed_order)

    assert first.fingerprint == second.fingerprint
    assert first.to_json() == second.to_json()
    assert len(first.fingerprint) == 64


def test_yaml_and_json_renderings_agree(local_consumer: ConsumerBoundaryConfig) -> None:
    graph = emit((compose_consumer_boundary(local_consumer),))

    assert yaml.safe_load(graph.to_yaml()) == json.loads(graph.to_json())
    assert json.loads(graph.to_json(indent=2)) == graph.payload


def test_dangling_output_reference_aborts_emission(local_source: SourceBoundaryConfig) -> None:
    composed = _with_outputs(
        compose_source_boundary(local_source), Missing=ResourceRef("NotDeclared")
    )

    with pytest.raises(DanglingReferenceError) as excinfo:
        emit((composed,))

    assert excinfo.value.dangling == (
        DanglingReference("source", "outputs.Missing", "NotDeclared", "arn"),
    )
    assert "source/outputs.Missing -> NotDeclared.arn" in str(excinfo.value)


def test_unknown_attribute_is_dangling(local_source: SourceBoundaryConfig) -> None:
    composed = _with_outputs(
        compose_source_boundary(local_source),
        Bogus=ResourceRef("Repository", "clone_url_http"),
    )

    assert find_dangling(composed) == [
        DanglingReference("source", "outputs.Bogus", "Repository", "clone_url_http")
    ]


def test_one_bad_boundary_blocks_the_whole_graph(
    local_source: SourceBoundaryConfig, local_consumer: ConsumerBoundaryConfig
) -> None:
    broken = _with_outputs(compose_consumer_boundary(local_consumer), X=ResourceRef("Nope"))

    with pytest.raises(DanglingReferenceError):
        emit((compose_source_boundary(local_source), broken))


def test_duplicate_boundary_names_are_rejected(local_source: SourceBoundaryConfig) -> None:
    composed = compose_source_boundary(local_source)

    with pytest.raises(ValueError, match="must be unique"):
        emit((composed, composed))


def test_subgraph_holds_one_boundary(
    local_source: SourceBoundaryConfig, local_consumer: ConsumerBoundaryConfig
) -> None:
    graph = _emit_both(local_source, local_consumer)

    subgraph = graph.subgraph("source")

    assert subgraph.boundary_names == ("source",)
    assert subgraph.boundary("source") == graph.boundary("source")
    assert subgraph.fingerprint != graph.fingerprint
    with pytest.raises(KeyError):
        subgraph.boundary("consumer")
