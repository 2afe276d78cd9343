"""Unit tests for boundary-owned entities."""

from __future__ import annotations

import pytest

from xacct_pipeline.domain.boundary import ResourceRef
from xacct_pipeline.domain.models import (
    Action,
    ActionKind,
    ArtifactStore,
    BuildProject,
    DeploySink,
    EncryptionKey,
    ImportedResource,
    ImportKind,
    Pipeline,
    Role,
    Stage,
)
from xacct_pipeline.policy.statements import PolicyDocument, PolicyKind
from xacct_pipeline.policy.trust import service_trust

_ROLE_REF = ResourceRef("PipelineRole")


def _source_action(**overrides: object) -> Action:
    values: dict[str, object] = {
        "name": "Source",
        "kind": ActionKind.SOURCE,
        "identity": _ROLE_REF,
        "target": ResourceRef("Repository"),
        "output_artifact": "SourceArtifact",
        "branch": "stg",
    }
    values.update(overrides)
    return Action(**values)  # type: ignore[arg-type]


def test_role_requires_trust_and_identity_documents() -> None:
    identity = PolicyDocument(kind=PolicyKind.IDENTITY)
    trust = service_trust("codepipeline.amazonaws.com")

    role = Role(" PipelineRole ", "pipeline-role", trust, identity)

    assert role.logical_id == "PipelineRole"
    assert role.ref().to_dict() == {"ref": "PipelineRole", "attr": "arn"}
    with pytest.raises(ValueError, match="trust must be a trust policy"):
        Role("PipelineRole", "pipeline-role", identity, identity)


def test_key_and_store_demand_sensitive_resource_policies() -> None:
    plain = PolicyDocument(kind=PolicyKind.RESOURCE)

    with pytest.raises(ValueError, match="sensitive resource policy"):
        EncryptionKey("ArtifactKey", "shared key", plain)
    with pytest.raises(ValueError, match="sensitive resource policy"):
        ArtifactStore("ArtifactBucket", "artifacts", ResourceRef("ArtifactKey"), plain)


def test_store_references_include_its_key() -> None:
    policy = PolicyDocument(kind=PolicyKind.RESOURCE, sensitive=True)
    store = ArtifactStore("ArtifactBucket", "artifacts", ResourceRef("ArtifactKey"), policy)

    assert [ref.logical_id for ref in store.references()] == ["ArtifactKey"]
    assert store.to_dict()["encryption"] == {
        "algorithm": "aws:kms",
        "key": {"ref": "ArtifactKey", "attr": "arn"},
    }


def test_imported_resource_normalizes_kind() -> None:
    imported = ImportedResource("RemoteRole", "role", " arn:aws:iam::111111111111:role/x ")

    assert imported.kind is ImportKind.ROLE
    assert imported.to_dict()["arn"] == "arn:aws:iam::111111111111:role/x"


def test_sink_name_is_optional_but_not_blank() -> None:
    assert DeploySink("FrontendBucket").to_dict() == {
        "logical_id": "FrontendBucket",
        "bucket_name": None,
    }
    with pytest.raises(ValueError, match="bucket_name"):
        DeploySink("FrontendBucket", " ")


def test_build_project_references_role_and_optional_key() -> None:
    project = BuildProject("BuildProject", "frontend", _ROLE_REF, "standard:7.0", "buildspec.yml")
    keyed = BuildProject(
        "BuildProject",
        "frontend",
        _ROLE_REF,
        "standard:7.0",
        "buildspec.yml",
        encryption_key=ResourceRef("ArtifactKey"),
    )

    assert [ref.logical_id for ref in project.references()] == ["PipelineRole"]
    assert [ref.logical_id for ref in keyed.references()] == ["PipelineRole", "ArtifactKey"]
    assert project.to_dict()["encryption_key"] is None


def test_source_action_shape_is_enforced() -> None:
    assert _source_action().kind is ActionKind.SOURCE

    with pytest.raises(ValueError, match="must not take an input artifact"):
        _source_action(input_artifact="Other")
    with pytest.raises(ValueError, match="must produce an output artifact"):
        _source_action(output_artifact=None)
    with pytest.raises(ValueError, match="needs a branch"):
        _source_action(branch=None)


def test_non_source_actions_need_inputs_and_positive_run_order() -> None:
    with pytest.raises(ValueError, match="needs an input artifact"):
        Action("Deploy", ActionKind.DEPLOY, _ROLE_REF, ResourceRef("FrontendBucket"))
    with pytest.raises(ValueError, match="run_order"):
        Action(
            "Deploy",
            ActionKind.DEPLOY,
            _ROLE_REF,
            ResourceRef("FrontendBucket"),
            input_artifact="SourceArtifact",
            run_order=0,
        )


def test_pipeline_references_walk_role_store_and_actions() -> None:
    deploy = Action(
        "Deploy",
        ActionKind.DEPLOY,
        _ROLE_REF,
        ResourceRef("FrontendBucket"),
        input_artifact="SourceArtifact",
    )
    pipeline = Pipeline(
        "Pipeline",
        "frontend",
        _ROLE_REF,
        [Stage("Source", _source_action()), Stage("Deploy", deploy)],  # type: ignore[arg-type]
        artifact_store=ResourceRef("ArtifactBucket"),
    )

    assert isinstance(pipeline.stages, tuple)
    assert [ref.logical_id for ref in pipeline.references()] == [
        "PipelineRole",
        "ArtifactBucket",
        "PipelineRole",
        "Repository",
        "PipelineRole",
        "FrontendBucket",
    ]
    rendered = pipeline.to_dict()
    assert rendered["artifact_store"] == {"ref": "ArtifactBucket", "attr": "arn"}
    stages = rendered["stages"]
    assert isinstance(stages, list)
    assert [stage["name"] for stage in stages] == ["Source", "Deploy"]
