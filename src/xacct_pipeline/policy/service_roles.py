"""Service roles for pipeline and build identities, each bound to named resources.

Build identities are limited to ``BUILD_ACTION_ALLOWLIST`` (logs, artifact objects and key
usage); nothing here grants account-wide administration.
"""

from __future__ import annotations

from xacct_pipeline.constants import (
    ASSUME_ROLE_ACTIONS,
    BUILD_LOG_ACTIONS,
    BUILD_OBJECT_ACTIONS,
    BUILD_TRIGGER_ACTIONS,
    CODEBUILD_SERVICE,
    CODEPIPELINE_SERVICE,
    KEY_USAGE_ACTIONS,
    PIPELINE_BUCKET_ACTIONS,
    PIPELINE_STORE_ACTIONS,
    REPOSITORY_READ_ACTIONS,
    STORE_OBJECT_WRITE_ACTIONS,
)
from xacct_pipeline.domain.boundary import Boundary, ResourceRef
from xacct_pipeline.domain.models import Role
from xacct_pipeline.policy.statements import (
    Effect,
    PermissionStatement,
    PolicyDocument,
    PolicyKind,
)
from xacct_pipeline.policy.trust import service_trust


def _allow(
    sid: str, actions: tuple[str, ...], *resources: str | ResourceRef
) -> PermissionStatement:
    return PermissionStatement(sid=sid, effect=Effect.ALLOW, actions=actions, resources=resources)


def build_pipeline_role(
    *,
    logical_id: str,
    role_name: str,
    artifact_bucket: ResourceRef,
    build_project: ResourceRef,
    repository: ResourceRef | None = None,
    remote_source_role: ResourceRef | None = None,
    deploy_sink: ResourceRef | None = None,
) -> Role:
    """Pipeline service role.

    Exactly one of ``repository`` (local source) or ``remote_source_role`` (assumed
    cross-boundary source) must be given.
    """
    if (repository is None) == (remote_source_role is None):
        raise ValueError("pipeline role needs exactly one of repository or remote_source_role")

    statements: list[PermissionStatement] = []
    if remote_source_role is not None:
        statements.append(_allow("AssumeRolePolicy", ASSUME_ROLE_ACTIONS, remote_source_role))
    elif repository is not None:
        statements.append(_allow("CodeCommitSourcePolicy", REPOSITORY_READ_ACTIONS, repository))
    statements.append(_allow("S3Policy", PIPELINE_STORE_ACTIONS, artifact_bucket.child("/*")))
    statements.append(_allow("S3BucketPolicy", PIPELINE_BUCKET_ACTIONS, artifact_bucket))
    statements.append(_allow("CodeBuildPolicy", BUILD_TRIGGER_ACTIONS, build_project))
    if deploy_sink is not None:
        statements.append(
            _allow("DeploySinkPolicy", STORE_OBJECT_WRITE_ACTIONS, deploy_sink.child("/*"))
        )

    return Role(
        logical_id=logical_id,
        role_name=role_name,
        trust=service_trust(CODEPIPELINE_SERVICE),
        permissions=PolicyDocument(kind=PolicyKind.IDENTITY, statements=tuple(statements)),
    )


def build_build_role(
    owner: Boundary,
    *,
    logical_id: str,
    role_name: str,
    project_name: str,
    artifact_bucket: ResourceRef,
    encryption_key: ResourceRef | None = None,
) -> Role:
    """Build service role: log delivery for one project, artifact objects, optional key usage."""
    log_group = owner.log_group_arn(project_name)
    statements = [
        _allow("CloudWatchLogsPolicy", BUILD_LOG_ACTIONS, log_group, f"{log_group}:*"),
        _allow("S3ObjectPolicy", BUILD_OBJECT_ACTIONS, artifact_bucket.child("/*")),
    ]
    if encryption_key is not None:
        statements.append(_allow("KMSUsagePolicy", KEY_USAGE_ACTIONS, encryption_key))

    return Role(
        logical_id=logical_id,
        role_name=role_name,
        trust=service_trust(CODEBUILD_SERVICE),
        permissions=PolicyDocument(kind=PolicyKind.IDENTITY, statements=tuple(statements)),
    )


__all__ = ["build_build_role", "build_pipeline_role"]
