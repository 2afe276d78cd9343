"""Boundary-owned entities of the composed trust topology.

Every entity is an immutable value that carries its own logical id, the attributes other
entities may reference, and a deterministic ``to_dict`` rendering. Entities never perform
side effects; the provisioning backend materializes them from the emitted graph.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

from xacct_pipeline.domain.boundary import (
    ARN_ATTRIBUTE,
    NAME_ATTRIBUTE,
    ResourceRef,
)
from xacct_pipeline.policy.statements import PolicyDocument, PolicyKind


class ActionKind(StrEnum):
    SOURCE = "source"
    BUILD = "build"
    DEPLOY = "deploy"


class ImportKind(StrEnum):
    ROLE = "role"
    REPOSITORY = "repository"


def _require_text(value: object, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    return value.strip()


@dataclass(frozen=True, slots=True)
class Role:
    """An assumable identity with a trust document and an inline permission document."""

    resource_type: ClassVar[str] = "role"
    attributes: ClassVar[frozenset[str]] = frozenset({ARN_ATTRIBUTE, NAME_ATTRIBUTE})

    logical_id: str
    role_name: str
    trust: PolicyDocument
    permissions: PolicyDocument

    def __post_init__(self) -> None:
        object.__setattr__(self, "logical_id", _require_text(self.logical_id, "logical_id"))
        object.__setattr__(self, "role_name", _require_text(self.role_name, "role_name"))
        if self.trust.kind is not PolicyKind.TRUST:
            raise ValueError(f"role {self.logical_id!r}: trust must be a trust policy")
        if self.permissions.kind is not PolicyKind.IDENTITY:
            raise ValueError(f"role {self.logical_id!r}: permissions must be an identity policy")

    def ref(self, attribute: str = ARN_ATTRIBUTE) -> ResourceRef:
        return ResourceRef(self.logical_id, attribute)

    def references(self) -> Iterator[ResourceRef]:
        yield from self.trust.references()
        yield from self.permissions.references()

    def to_dict(self) -> dict[str, object]:
        return {
            "logical_id": self.logical_id,
            "role_name": self.role_name,
            "trust_policy": self.trust.to_dict(),
            "inline_policy": self.permissions.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class EncryptionKey:
    """A customer-managed key shared through its resource policy."""

    resource_type: ClassVar[str] = "key"
    attributes: ClassVar[frozenset[str]] = frozenset({ARN_ATTRIBUTE})

    logical_id: str
    description: str
    policy: PolicyDocument

    def __post_init__(self) -> None:
        object.__setattr__(self, "logical_id", _require_text(self.logical_id, "logical_id"))
        if self.policy.kind is not PolicyKind.RESOURCE or not self.policy.sensitive:
            raise ValueError(f"key {self.logical_id!r}: policy must be a sensitive resource policy")

    def ref(self, attribute: str = ARN_ATTRIBUTE) -> ResourceRef:
        return ResourceRef(self.logical_id, attribute)

    def references(self) -> Iterator[ResourceRef]:
        yield from self.policy.references()

    def to_dict(self) -> dict[str, object]:
        return {
            "logical_id": self.logical_id,
            "description": self.description,
            "key_policy": self.policy.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class ArtifactStore:
    """The shared, key-encrypted bucket pipeline artifacts travel through."""

    resource_type: ClassVar[str] = "store"
    attributes: ClassVar[frozenset[str]] = frozenset({ARN_ATTRIBUTE, NAME_ATTRIBUTE})

    logical_id: str
    bucket_name: str
    encryption_key: ResourceRef
    policy: PolicyDocument

    def __post_init__(self) -> None:
        object.__setattr__(self, "logical_id", _require_text(self.logical_id, "logical_id"))
        object.__setattr__(self, "bucket_name", _require_text(self.bucket_name, "bucket_name"))
        if self.policy.kind is not PolicyKind.RESOURCE or not self.policy.sensitive:
            raise ValueError(
                f"store {self.logical_id!r}: policy must be a sensitive resource policy"
            )

    def ref(self, attribute: str = ARN_ATTRIBUTE) -> ResourceRef:
        return ResourceRef(self.logical_id, attribute)

    def references(self) -> Iterator[ResourceRef]:
        yield self.encryption_key
        yield from self.policy.references()

    def to_dict(self) -> dict[str, object]:
        return {
            "logical_id": self.logical_id,
            "bucket_name": self.bucket_name,
            "encryption": {"algorithm": "aws:kms", "key": self.encryption_key.to_dict()},
            "bucket_policy": self.policy.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class Repository:
    resource_type: ClassVar[str] = "repository"
    attributes: ClassVar[frozenset[str]] = frozenset({ARN_ATTRIBUTE, NAME_ATTRIBUTE})

    logical_id: str
    repository_name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "logical_id", _require_text(self.logical_id, "logical_id"))
        object.__setattr__(
            self, "repository_name", _require_text(self.repository_name, "repository_name")
        )

    def ref(self, attribute: str = ARN_ATTRIBUTE) -> ResourceRef:
        return ResourceRef(self.logical_id, attribute)

    def references(self) -> Iterator[ResourceRef]:
        return iter(())

    def to_dict(self) -> dict[str, object]:
        return {"logical_id": self.logical_id, "repository_name": self.repository_name}


@dataclass(frozen=True, slots=True)
class ImportedResource:
    """A remote boundary's role or repository, known only by its ARN."""

    resource_type: ClassVar[str] = "import"
    attributes: ClassVar[frozenset[str]] = frozenset({ARN_ATTRIBUTE})

    logical_id: str
    kind: ImportKind
    arn: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "logical_id", _require_text(self.logical_id, "logical_id"))
        object.__setattr__(self, "kind", ImportKind(self.kind))
        object.__setattr__(self, "arn", _require_text(self.arn, "arn"))

    def ref(self, attribute: str = ARN_ATTRIBUTE) -> ResourceRef:
        return ResourceRef(self.logical_id, attribute)

    def references(self) -> Iterator[ResourceRef]:
        return iter(())

    def to_dict(self) -> dict[str, object]:
        return {"logical_id": self.logical_id, "kind": self.kind.value, "arn": self.arn}


@dataclass(frozen=True, slots=True)
class DeploySink:
    """Boundary-local bucket a deploy action publishes into."""

    resource_type: ClassVar[str] = "sink"
    attributes: ClassVar[frozenset[str]] = frozenset({ARN_ATTRIBUTE, NAME_ATTRIBUTE})

    logical_id: str
    bucket_name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "logical_id", _require_text(self.logical_id, "logical_id"))
        if self.bucket_name is not None:
            object.__setattr__(self, "bucket_name", _require_text(self.bucket_name, "bucket_name"))

    def ref(self, attribute: str = ARN_ATTRIBUTE) -> ResourceRef:
        return ResourceRef(self.logical_id, attribute)

    def references(self) -> Iterator[ResourceRef]:
        return iter(())

    def to_dict(self) -> dict[str, object]:
        return {"logical_id": self.logical_id, "bucket_name": self.bucket_name}


@dataclass(frozen=True, slots=True)
class BuildProject:
    resource_type: ClassVar[str] = "build_project"
    attributes: ClassVar[frozenset[str]] = frozenset({ARN_ATTRIBUTE, NAME_ATTRIBUTE})

    logical_id: str
    project_name: str
    role: ResourceRef
    build_image: str
    buildspec: str
    encryption_key: ResourceRef | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "logical_id", _require_text(self.logical_id, "logical_id"))
        object.__setattr__(self, "project_name", _require_text(self.project_name, "project_name"))

    def ref(self, attribute: str = ARN_ATTRIBUTE) -> ResourceRef:
        return ResourceRef(self.logical_id, attribute)

    def references(self) -> Iterator[ResourceRef]:
        yield self.role
        if self.encryption_key is not None:
            yield self.encryption_key

    def to_dict(self) -> dict[str, object]:
        return {
            "logical_id": self.logical_id,
            "project_name": self.project_name,
            "role": self.role.to_dict(),
            "build_image": self.build_image,
            "buildspec": self.buildspec,
            "encryption_key": (
                self.encryption_key.to_dict() if self.encryption_key is not None else None
            ),
        }


@dataclass(frozen=True, slots=True)
class Action:
    """A unit of pipeline work bound to the identity it runs as."""

    name: str
    kind: ActionKind
    identity: ResourceRef
    target: ResourceRef
    input_artifact: str | None = None
    output_artifact: str | None = None
    run_order: int = 1
    branch: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _require_text(self.name, "action name"))
        object.__setattr__(self, "kind", ActionKind(self.kind))
        if self.run_order < 1:
            raise ValueError(f"action {self.name!r}: run_order must be >= 1")
        if self.kind is ActionKind.SOURCE:
            if self.input_artifact is not None:
                raise ValueError(f"source action {self.name!r} must not take an input artifact")
            if self.output_artifact is None:
                raise ValueError(f"source action {self.name!r} must produce an output artifact")
            if not self.branch:
                raise ValueError(f"source action {self.name!r} needs a branch")
        elif self.input_artifact is None:
            raise ValueError(f"{self.kind.value} action {self.name!r} needs an input artifact")

    def references(self) -> Iterator[ResourceRef]:
        yield self.identity
        yield self.target

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "identity": self.identity.to_dict(),
            "target": self.target.to_dict(),
            "input_artifact": self.input_artifact,
            "output_artifact": self.output_artifact,
            "run_order": self.run_order,
            "branch": self.branch,
        }


@dataclass(frozen=True, slots=True)
class Stage:
    name: str
    action: Action

    @property
    def input_artifact(self) -> str | None:
        return self.action.input_artifact

    @property
    def output_artifact(self) -> str | None:
        return self.action.output_artifact

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "actions": [self.action.to_dict()]}


@dataclass(frozen=True, slots=True)
class Pipeline:
    """Ordered automation for one boundary.

    ``artifact_store`` is ``None`` when the backend manages a private artifact bucket;
    that bucket is then addressable through the ``artifact_bucket_arn`` attribute.
    """

    resource_type: ClassVar[str] = "pipeline"
    attributes: ClassVar[frozenset[str]] = frozenset(
        {ARN_ATTRIBUTE, NAME_ATTRIBUTE, "artifact_bucket_arn"}
    )

    logical_id: str
    pipeline_name: str
    role: ResourceRef
    stages: tuple[Stage, ...]
    artifact_store: ResourceRef | None = None
    cross_account_keys: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "logical_id", _require_text(self.logical_id, "logical_id"))
        object.__setattr__(
            self, "pipeline_name", _require_text(self.pipeline_name, "pipeline_name")
        )
        object.__setattr__(self, "stages", tuple(self.stages))

    def ref(self, attribute: str = ARN_ATTRIBUTE) -> ResourceRef:
        return ResourceRef(self.logical_id, attribute)

    def references(self) -> Iterator[ResourceRef]:
        yield self.role
        if self.artifact_store is not None:
            yield self.artifact_store
        for stage in self.stages:
            yield from stage.action.references()

    def to_dict(self) -> dict[str, object]:
        return {
            "logical_id": self.logical_id,
            "pipeline_name": self.pipeline_name,
            "role": self.role.to_dict(),
            "artifact_store": (
                self.artifact_store.to_dict() if self.artifact_store is not None else None
            ),
            "cross_account_keys": self.cross_account_keys,
            "stages": [stage.to_dict() for stage in self.stages],
        }


DeclaredResource = (
    Role | EncryptionKey | ArtifactStore | Repository | DeploySink | BuildProject | Pipeline
)


__all__ = [
    "Action",
    "ActionKind",
    "ArtifactStore",
    "BuildProject",
    "DeclaredResource",
    "DeploySink",
    "EncryptionKey",
    "ImportKind",
    "ImportedResource",
    "Pipeline",
    "Repository",
    "Role",
    "Stage",
]
