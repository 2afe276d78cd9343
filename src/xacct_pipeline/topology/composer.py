"""
xacct-pipeline — per-boundary composition.

File: src/xacct_pipeline/topology/composer.py
Last updated: 2026-10-19

Purpose
- Compose every entity one boundary owns, gated by its resolved capabilities.

What should be included in this file
- ``ComposedBoundary``: the boundary, its capabilities, declared and imported entities,
  and the named outputs handed to the other boundary.
- ``compose_source_boundary`` / ``compose_consumer_boundary`` / ``compose``.

Functional requirements
- Boundaries are composed independently; each reads only its own config and the
  opaque remote identifiers in it.
- Cross-boundary constructs exist only when their capability is enabled; local
  stages are always composed.

Non-functional requirements
- Same config in, structurally identical boundary out.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field

import structlog

from xacct_pipeline.config.boundaries import (
    CompositionConfig,
    ConsumerBoundaryConfig,
    SourceBoundaryConfig,
)
from xacct_pipeline.domain.boundary import Boundary, BoundaryKind, ResourceRef
from xacct_pipeline.domain.models import (
    BuildProject,
    DeclaredResource,
    DeploySink,
    ImportedResource,
    ImportKind,
    Pipeline,
    Repository,
    Role,
)
from xacct_pipeline.policy.key_policy import build_artifact_key
from xacct_pipeline.policy.service_roles import build_build_role, build_pipeline_role
from xacct_pipeline.policy.store_policy import build_artifact_store
from xacct_pipeline.policy.trust import build_repository_access_role
from xacct_pipeline.topology.pipeline import (
    CONSUMER_PIPELINE_LOGICAL_ID,
    SOURCE_PIPELINE_LOGICAL_ID,
    build_consumer_pipeline,
    build_source_pipeline,
    validate_topology,
)
from xacct_pipeline.topology.registry import (
    Capability,
    CapabilityResolution,
    resolve_capabilities,
)

logger = structlog.get_logger(__name__)

REPOSITORY_LOGICAL_ID = "Repository"
SOURCE_PIPELINE_ROLE_LOGICAL_ID = "SourcePipelineRole"
DEPLOY_ROLE_LOGICAL_ID = "DeployRole"
DEPLOY_PROJECT_LOGICAL_ID = "DeployBuildProject"
PIPELINE_ROLE_LOGICAL_ID = "CodePipelineServiceRole"
BUILD_ROLE_LOGICAL_ID = "CodeBuildServiceRole"
BUILD_PROJECT_LOGICAL_ID = "BuildProject"
DEPLOY_SINK_LOGICAL_ID = "FrontendBucket"
IMPORTED_REPOSITORY_LOGICAL_ID = "SourceRepository"
IMPORTED_ROLE_LOGICAL_ID = "CodeCommitRole"

# Output names handed to the other boundary after provisioning.
REPOSITORY_ARN_OUTPUT = "CodeCommitRepositoryArn"
ACCESS_ROLE_ARN_OUTPUT = "CodeCommitAccessRoleArn"
KEY_ARN_OUTPUT = "ArtifactCryptKeyArn"
STORE_ARN_OUTPUT = "ArtifactBucketArn"
PIPELINE_ROLE_ARN_OUTPUT = "CodePipelineServiceRoleArn"
BUILD_ROLE_ARN_OUTPUT = "CodeBuildServiceRoleArn"

_MANAGED_ARTIFACT_BUCKET = "artifact_bucket_arn"


@dataclass(frozen=True, slots=True)
class ComposedBoundary:
    """Everything one boundary declares, imports and exports, fully composed."""

    boundary: Boundary
    capabilities: CapabilityResolution
    resources: tuple[DeclaredResource, ...]
    imports: tuple[ImportedResource, ...] = ()
    outputs: Mapping[str, ResourceRef] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "resources", tuple(self.resources))
        object.__setattr__(self, "imports", tuple(self.imports))
        object.__setattr__(
            self, "outputs", {name: self.outputs[name] for name in sorted(self.outputs)}
        )
        if self.capabilities.kind is not self.boundary.kind:
            raise ValueError(
                f"boundary {self.boundary.name!r} is {self.boundary.kind.value} but its "
                f"capabilities were resolved for {self.capabilities.kind.value}"
            )
        seen: set[str] = set()
        for entity in self.entities():
            if entity.logical_id in seen:
                raise ValueError(
                    f"boundary {self.boundary.name!r} declares {entity.logical_id!r} twice"
                )
            seen.add(entity.logical_id)

    @property
    def name(self) -> str:
        return self.boundary.name

    def entities(self) -> Iterator[DeclaredResource | ImportedResource]:
        yield from self.resources
        yield from self.imports

    def find(self, logical_id: str) -> DeclaredResource | ImportedResource | None:
        for entity in self.entities():
            if entity.logical_id == logical_id:
                return entity
        return None

    def of_type(self, resource_type: str) -> tuple[DeclaredResource, ...]:
        return tuple(item for item in self.resources if item.resource_type == resource_type)

    @property
    def roles(self) -> dict[str, Role]:
        return {item.logical_id: item for item in self.resources if isinstance(item, Role)}

    @property
    def pipelines(self) -> tuple[Pipeline, ...]:
        return tuple(item for item in self.resources if isinstance(item, Pipeline))


def compose_source_boundary(
    config: SourceBoundaryConfig,
    capabilities: CapabilityResolution | None = None,
) -> ComposedBoundary:
    """Compose the repository-owning boundary.

    With ``REPOSITORY_SHARING`` enabled it also declares the access role the consumer
    boundary assumes to pull source and push encrypted artifacts.
    """

    resolution = capabilities if capabilities is not None else resolve_capabilities(config)
    boundary = config.boundary

    repository = Repository(REPOSITORY_LOGICAL_ID, config.repository_name)
    artifact_bucket = ResourceRef(SOURCE_PIPELINE_LOGICAL_ID, _MANAGED_ARTIFACT_BUCKET)
    project_ref = ResourceRef(DEPLOY_PROJECT_LOGICAL_ID)

    pipeline_role = build_pipeline_role(
        logical_id=SOURCE_PIPELINE_ROLE_LOGICAL_ID,
        role_name=config.pipeline_role_name,
        artifact_bucket=artifact_bucket,
        build_project=project_ref,
        repository=repository.ref(),
    )
    deploy_role = build_build_role(
        boundary,
        logical_id=DEPLOY_ROLE_LOGICAL_ID,
        role_name=config.deploy_role_name,
        project_name=config.build_project_name,
        artifact_bucket=artifact_bucket,
    )
    deploy_project = BuildProject(
        logical_id=DEPLOY_PROJECT_LOGICAL_ID,
        project_name=config.build_project_name,
        role=deploy_role.ref(),
        build_image=config.build_image,
        buildspec=config.buildspec,
    )
    pipeline = build_source_pipeline(
        config,
        repository=repository.ref(),
        pipeline_role=pipeline_role.ref(),
        deploy_project=deploy_project.ref(),
        deploy_role=deploy_role.ref(),
    )

    resources: list[DeclaredResource] = [
        repository,
        pipeline_role,
        deploy_role,
        deploy_project,
        pipeline,
    ]
    outputs = {REPOSITORY_ARN_OUTPUT: repository.ref()}

    if resolution.is_enabled(Capability.REPOSITORY_SHARING):
        # Enabled implies all three identifiers are present.
        access_role = build_repository_access_role(
            grantee_account_id=str(config.consumer_account_id),
            repository=repository.ref(),
            store_arn=str(config.consumer_store_arn),
            key_arn=str(config.consumer_key_arn),
            role_name=config.access_role_name,
        )
        resources.append(access_role)
        outputs[ACCESS_ROLE_ARN_OUTPUT] = access_role.ref()

    composed = ComposedBoundary(
        boundary=boundary,
        capabilities=resolution,
        resources=tuple(resources),
        outputs=outputs,
    )
    _validate_pipelines(composed)
    _log_composed(composed)
    return composed


def compose_consumer_boundary(
    config: ConsumerBoundaryConfig,
    capabilities: CapabilityResolution | None = None,
) -> ComposedBoundary:
    """Compose the boundary owning the shared key, store and build pipeline.

    ``ARTIFACT_SHARING`` adds the shared key and store; ``REMOTE_SOURCE`` swaps the
    local repository for the imported remote repository and access role.
    """

    resolution = capabilities if capabilities is not None else resolve_capabilities(config)
    boundary = config.boundary
    sharing = resolution.is_enabled(Capability.ARTIFACT_SHARING)
    remote_source = resolution.is_enabled(Capability.REMOTE_SOURCE)

    pipeline_role_ref = ResourceRef(PIPELINE_ROLE_LOGICAL_ID)
    build_role_ref = ResourceRef(BUILD_ROLE_LOGICAL_ID)
    project_ref = ResourceRef(BUILD_PROJECT_LOGICAL_ID)
    sink = DeploySink(DEPLOY_SINK_LOGICAL_ID, config.deploy_bucket_name)

    resources: list[DeclaredResource] = []
    imports: list[ImportedResource] = []
    outputs: dict[str, ResourceRef] = {}

    key_ref: ResourceRef | None = None
    store_ref: ResourceRef | None = None
    if sharing:
        remote_account = str(config.source_account_id)
        key = build_artifact_key(
            boundary,
            pipeline_role=pipeline_role_ref,
            build_role=build_role_ref,
            remote_account_id=remote_account,
        )
        store = build_artifact_store(
            boundary,
            bucket_name=config.artifact_bucket_name,
            encryption_key=key.ref(),
            remote_account_id=remote_account,
        )
        resources.extend((key, store))
        key_ref, store_ref = key.ref(), store.ref()
        outputs[KEY_ARN_OUTPUT] = key_ref
        outputs[STORE_ARN_OUTPUT] = store_ref

    artifact_bucket = (
        store_ref
        if store_ref is not None
        else ResourceRef(CONSUMER_PIPELINE_LOGICAL_ID, _MANAGED_ARTIFACT_BUCKET)
    )

    if remote_source:
        repository = ImportedResource(
            IMPORTED_REPOSITORY_LOGICAL_ID,
            ImportKind.REPOSITORY,
            str(config.source_repository_arn),
        )
        access_role = ImportedResource(
            IMPORTED_ROLE_LOGICAL_ID, ImportKind.ROLE, str(config.source_role_arn)
        )
        imports.extend((repository, access_role))
        repository_ref = repository.ref()
        source_identity = access_role.ref()
        pipeline_role = build_pipeline_role(
            logical_id=PIPELINE_ROLE_LOGICAL_ID,
            role_name=config.pipeline_role_name,
            artifact_bucket=artifact_bucket,
            build_project=project_ref,
            remote_source_role=access_role.ref(),
            deploy_sink=sink.ref(),
        )
    else:
        local_repository = Repository(REPOSITORY_LOGICAL_ID, config.repository_name)
        resources.append(local_repository)
        repository_ref = local_repository.ref()
        source_identity = pipeline_role_ref
        pipeline_role = build_pipeline_role(
            logical_id=PIPELINE_ROLE_LOGICAL_ID,
            role_name=config.pipeline_role_name,
            artifact_bucket=artifact_bucket,
            build_project=project_ref,
            repository=repository_ref,
            deploy_sink=sink.ref(),
        )

    build_role = build_build_role(
        boundary,
        logical_id=BUILD_ROLE_LOGICAL_ID,
        role_name=config.build_role_name,
        project_name=config.build_project_name,
        artifact_bucket=artifact_bucket,
        encryption_key=key_ref,
    )
    build_project = BuildProject(
        logical_id=BUILD_PROJECT_LOGICAL_ID,
        project_name=config.build_project_name,
        role=build_role.ref(),
        build_image=config.build_image,
        buildspec=config.buildspec,
        encryption_key=key_ref,
    )
    pipeline = build_consumer_pipeline(
        config,
        repository=repository_ref,
        source_identity=source_identity,
        pipeline_role=pipeline_role.ref(),
        build_project=build_project.ref(),
        build_role=build_role.ref(),
        sink=sink.ref(),
        artifact_store=store_ref,
    )
    resources.extend((pipeline_role, build_role, build_project, sink, pipeline))
    outputs[PIPELINE_ROLE_ARN_OUTPUT] = pipeline_role.ref()
    outputs[BUILD_ROLE_ARN_OUTPUT] = build_role.ref()

    composed = ComposedBoundary(
        boundary=boundary,
        capabilities=resolution,
        resources=tuple(resources),
        imports=tuple(imports),
        outputs=outputs,
    )
    _validate_pipelines(composed)
    _log_composed(composed)
    return composed


def compose(
    config: CompositionConfig,
    kinds: Iterable[BoundaryKind] = (BoundaryKind.SOURCE, BoundaryKind.CONSUMER),
) -> tuple[ComposedBoundary, ...]:
    """Compose the selected boundaries, each independently of the other.

    With ``config.strict`` set, any partially configured capability raises its
    ``ConfigurationIncompleteError`` instead of being silently omitted.
    """

    composed: list[ComposedBoundary] = []
    for kind in _ordered_kinds(kinds):
        if kind is BoundaryKind.SOURCE:
            resolution = resolve_capabilities(config.source)
            if config.strict:
                resolution.require_complete()
            composed.append(compose_source_boundary(config.source, resolution))
        else:
            resolution = resolve_capabilities(config.consumer)
            if config.strict:
                resolution.require_complete()
            composed.append(compose_consumer_boundary(config.consumer, resolution))
    return tuple(composed)


def _ordered_kinds(kinds: Iterable[BoundaryKind]) -> Sequence[BoundaryKind]:
    selected = {BoundaryKind(kind) for kind in kinds}
    return [kind for kind in (BoundaryKind.SOURCE, BoundaryKind.CONSUMER) if kind in selected]


def _validate_pipelines(composed: ComposedBoundary) -> None:
    sinks = {item.logical_id for item in composed.resources if isinstance(item, DeploySink)}
    roles = composed.roles
    for pipeline in composed.pipelines:
        validate_topology(pipeline, roles=roles, sinks=sinks)


def _log_composed(composed: ComposedBoundary) -> None:
    logger.info(
        "boundary_composed",
        boundary=composed.name,
        kind=composed.boundary.kind.value,
        capabilities=sorted(item.value for item in composed.capabilities.enabled),
        resources=len(composed.resources),
        imports=len(composed.imports),
        outputs=sorted(composed.outputs),
    )


__all__ = [
    "ACCESS_ROLE_ARN_OUTPUT",
    "BUILD_ROLE_ARN_OUTPUT",
    "ComposedBoundary",
    "KEY_ARN_OUTPUT",
    "PIPELINE_ROLE_ARN_OUTPUT",
    "REPOSITORY_ARN_OUTPUT",
    "STORE_ARN_OUTPUT",
    "compose",
    "compose_consumer_boundary",
    "compose_source_boundary",
]
