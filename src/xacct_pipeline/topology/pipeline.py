"""
xacct-pipeline — pipeline topology builder.

File: src/xacct_pipeline/topology/pipeline.py
Last updated: 2026-10-19

Purpose
- Assemble ordered stage sequences for each boundary and check their wiring.

What should be included in this file
- Source-boundary topology: Source -> Deploy (one bounded build action).
- Consumer-boundary topology: Source -> Build -> Deploy (boundary-local sink).
- ``validate_topology`` for artifact chaining, build identity scope and deploy sinks.

Functional requirements
- Stage i's input artifact is exactly stage i-1's output artifact.
- Build actions run under identities whose permissions stay inside
  ``BUILD_ACTION_ALLOWLIST``.
- Deploy actions target exactly one declared sink.

Non-functional requirements
- Pure functions returning immutable values.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping

from xacct_pipeline.config.boundaries import ConsumerBoundaryConfig, SourceBoundaryConfig
from xacct_pipeline.constants import BUILD_ACTION_ALLOWLIST, BUILD_ARTIFACT, SOURCE_ARTIFACT
from xacct_pipeline.domain.boundary import ResourceRef
from xacct_pipeline.domain.models import Action, ActionKind, Pipeline, Role, Stage

SOURCE_PIPELINE_LOGICAL_ID = "SourcePipeline"
CONSUMER_PIPELINE_LOGICAL_ID = "FrontCodePipeline"


class PipelineWiringError(ValueError):
    """Raised when a composed pipeline breaks stage ordering or identity bounds."""

    def __init__(self, pipeline: str, problems: Collection[str]) -> None:
        self.pipeline = pipeline
        self.problems = tuple(problems)
        rendered = "\n".join(f"- {item}" for item in self.problems)
        super().__init__(f"pipeline {pipeline!r} is miswired:\n{rendered}")


def build_source_pipeline(
    config: SourceBoundaryConfig,
    *,
    repository: ResourceRef,
    pipeline_role: ResourceRef,
    deploy_project: ResourceRef,
    deploy_role: ResourceRef,
) -> Pipeline:
    """Source (local repository) -> Deploy (single build action, run order 2)."""
    return Pipeline(
        logical_id=SOURCE_PIPELINE_LOGICAL_ID,
        pipeline_name=config.pipeline_name,
        role=pipeline_role,
        stages=(
            Stage(
                "Source",
                Action(
                    name="Source",
                    kind=ActionKind.SOURCE,
                    identity=pipeline_role,
                    target=repository,
                    output_artifact=SOURCE_ARTIFACT,
                    branch=config.branch,
                ),
            ),
            Stage(
                "Deploy",
                Action(
                    name="DeployBackend",
                    kind=ActionKind.BUILD,
                    identity=deploy_role,
                    target=deploy_project,
                    input_artifact=SOURCE_ARTIFACT,
                    run_order=2,
                ),
            ),
        ),
    )


def build_consumer_pipeline(
    config: ConsumerBoundaryConfig,
    *,
    repository: ResourceRef,
    source_identity: ResourceRef,
    pipeline_role: ResourceRef,
    build_project: ResourceRef,
    build_role: ResourceRef,
    sink: ResourceRef,
    artifact_store: ResourceRef | None = None,
) -> Pipeline:
    """Source -> Build -> Deploy into a boundary-local sink.

    ``source_identity`` is the imported access role for a remote repository, or the
    pipeline role itself for the local fallback. Cross-account keys are enabled only
    with a shared ``artifact_store``.
    """
    return Pipeline(
        logical_id=CONSUMER_PIPELINE_LOGICAL_ID,
        pipeline_name=config.pipeline_name,
        role=pipeline_role,
        artifact_store=artifact_store,
        cross_account_keys=artifact_store is not None,
        stages=(
            Stage(
                "Source",
                Action(
                    name="CodeCommit",
                    kind=ActionKind.SOURCE,
                    identity=source_identity,
                    target=repository,
                    output_artifact=SOURCE_ARTIFACT,
                    branch=config.branch,
                ),
            ),
            Stage(
                "Build",
                Action(
                    name="CodeBuild",
                    kind=ActionKind.BUILD,
                    identity=build_role,
                    target=build_project,
                    input_artifact=SOURCE_ARTIFACT,
                    output_artifact=BUILD_ARTIFACT,
                    run_order=2,
                ),
            ),
            Stage(
                "Deploy",
                Action(
                    name="S3_Deploy",
                    kind=ActionKind.DEPLOY,
                    identity=pipeline_role,
                    target=sink,
                    input_artifact=BUILD_ARTIFACT,
                ),
            ),
        ),
    )


def validate_topology(
    pipeline: Pipeline,
    *,
    roles: Mapping[str, Role],
    sinks: Collection[str],
) -> None:
    """Check artifact chaining, build identity scope and deploy targets.

    ``roles`` maps logical ids of roles declared in the same boundary; ``sinks`` holds
    the logical ids of declared deploy sinks.

    Raises:
        PipelineWiringError: listing every problem found.
    """

    problems: list[str] = []
    stages = pipeline.stages
    if not stages:
        problems.append("pipeline has no stages")
    elif stages[0].action.kind is not ActionKind.SOURCE:
        problems.append(f"first stage {stages[0].name!r} is not a source stage")

    seen_names: set[str] = set()
    for index, stage in enumerate(stages):
        if stage.name in seen_names:
            problems.append(f"duplicate stage name {stage.name!r}")
        seen_names.add(stage.name)

        action = stage.action
        if index > 0:
            if action.kind is ActionKind.SOURCE:
                problems.append(f"stage {stage.name!r}: source action after the first stage")
            expected = stages[index - 1].output_artifact
            if stage.input_artifact != expected:
                problems.append(
                    f"stage {stage.name!r} reads {stage.input_artifact!r} "
                    f"but the previous stage produces {expected!r}"
                )

        if action.kind is ActionKind.BUILD:
            problems.extend(_build_identity_problems(stage, roles))
        elif action.kind is ActionKind.DEPLOY and action.target.logical_id not in sinks:
            problems.append(
                f"stage {stage.name!r}: deploy target {action.target.logical_id!r} "
                "is not a declared sink"
            )

    if problems:
        raise PipelineWiringError(pipeline.pipeline_name, problems)


def _build_identity_problems(stage: Stage, roles: Mapping[str, Role]) -> list[str]:
    identity = stage.action.identity
    role = roles.get(identity.logical_id)
    if role is None:
        return [
            f"stage {stage.name!r}: build identity {identity.logical_id!r} is not a declared role"
        ]
    excess = sorted(role.permissions.actions - BUILD_ACTION_ALLOWLIST)
    if excess:
        return [
            f"stage {stage.name!r}: build identity {identity.logical_id!r} "
            f"exceeds build scope with {', '.join(excess)}"
        ]
    return []


__all__ = [
    "CONSUMER_PIPELINE_LOGICAL_ID",
    "PipelineWiringError",
    "SOURCE_PIPELINE_LOGICAL_ID",
    "build_consumer_pipeline",
    "build_source_pipeline",
    "validate_topology",
]
