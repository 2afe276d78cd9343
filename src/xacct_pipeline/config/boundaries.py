"""Typed per-boundary configuration views over a validated config mapping."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields

from xacct_pipeline.constants import (
    DEFAULT_ACCESS_ROLE_NAME,
    DEFAULT_ARTIFACT_BUCKET_NAME,
    DEFAULT_BUILD_IMAGE,
    DEFAULT_BUILDSPEC,
    DEFAULT_CONSUMER_BRANCH,
    DEFAULT_CONSUMER_BUILD_ROLE_NAME,
    DEFAULT_CONSUMER_PIPELINE_NAME,
    DEFAULT_CONSUMER_PIPELINE_ROLE_NAME,
    DEFAULT_CONSUMER_PROJECT_NAME,
    DEFAULT_DEPLOY_PROJECT_NAME,
    DEFAULT_DEPLOY_ROLE_NAME,
    DEFAULT_REPOSITORY_NAME,
    DEFAULT_SOURCE_BRANCH,
    DEFAULT_SOURCE_PIPELINE_NAME,
    DEFAULT_SOURCE_PIPELINE_ROLE_NAME,
)
from xacct_pipeline.domain.boundary import Boundary, BoundaryKind

SOURCE_REMOTE_FIELDS: tuple[str, ...] = (
    "consumer_account_id",
    "consumer_store_arn",
    "consumer_key_arn",
)
CONSUMER_REMOTE_FIELDS: tuple[str, ...] = (
    "source_account_id",
    "source_repository_arn",
    "source_role_arn",
)


def _blank_to_none(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected string identifier, got {type(value).__name__}")
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True, slots=True)
class SourceBoundaryConfig:
    """Settings for the repository-owning boundary.

    The ``consumer_*`` identifiers are opaque values handed over from the consumer
    boundary's provisioning pass; blank values are treated as absent.
    """

    name: str = "source"
    account_id: str | None = None
    region: str | None = None
    repository_name: str = DEFAULT_REPOSITORY_NAME
    branch: str = DEFAULT_SOURCE_BRANCH
    pipeline_name: str = DEFAULT_SOURCE_PIPELINE_NAME
    pipeline_role_name: str = DEFAULT_SOURCE_PIPELINE_ROLE_NAME
    deploy_role_name: str = DEFAULT_DEPLOY_ROLE_NAME
    build_project_name: str = DEFAULT_DEPLOY_PROJECT_NAME
    build_image: str = DEFAULT_BUILD_IMAGE
    buildspec: str = DEFAULT_BUILDSPEC
    access_role_name: str = DEFAULT_ACCESS_ROLE_NAME
    consumer_account_id: str | None = None
    consumer_store_arn: str | None = None
    consumer_key_arn: str | None = None

    def __post_init__(self) -> None:
        for name in ("account_id", "region", *SOURCE_REMOTE_FIELDS):
            object.__setattr__(self, name, _blank_to_none(getattr(self, name)))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> SourceBoundaryConfig:
        """Build from the ``source`` section of a validated config."""
        return cls(**_flatten(cls, payload))

    @property
    def boundary(self) -> Boundary:
        return Boundary(self.name, BoundaryKind.SOURCE, self.account_id, self.region)

    def remote_identifiers(self) -> dict[str, str | None]:
        return {name: getattr(self, name) for name in SOURCE_REMOTE_FIELDS}


@dataclass(frozen=True, slots=True)
class ConsumerBoundaryConfig:
    """Settings for the boundary owning the shared key, store and build pipeline."""

    name: str = "consumer"
    account_id: str | None = None
    region: str | None = None
    repository_name: str = DEFAULT_REPOSITORY_NAME
    branch: str = DEFAULT_CONSUMER_BRANCH
    pipeline_name: str = DEFAULT_CONSUMER_PIPELINE_NAME
    pipeline_role_name: str = DEFAULT_CONSUMER_PIPELINE_ROLE_NAME
    build_role_name: str = DEFAULT_CONSUMER_BUILD_ROLE_NAME
    build_project_name: str = DEFAULT_CONSUMER_PROJECT_NAME
    build_image: str = DEFAULT_BUILD_IMAGE
    buildspec: str = DEFAULT_BUILDSPEC
    artifact_bucket_name: str = DEFAULT_ARTIFACT_BUCKET_NAME
    deploy_bucket_name: str | None = None
    source_account_id: str | None = None
    source_repository_arn: str | None = None
    source_role_arn: str | None = None

    def __post_init__(self) -> None:
        for name in ("account_id", "region", "deploy_bucket_name", *CONSUMER_REMOTE_FIELDS):
            object.__setattr__(self, name, _blank_to_none(getattr(self, name)))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> ConsumerBoundaryConfig:
        """Build from the ``consumer`` section of a validated config."""
        return cls(**_flatten(cls, payload))

    @property
    def boundary(self) -> Boundary:
        return Boundary(self.name, BoundaryKind.CONSUMER, self.account_id, self.region)

    def remote_identifiers(self) -> dict[str, str | None]:
        return {name: getattr(self, name) for name in CONSUMER_REMOTE_FIELDS}


@dataclass(frozen=True, slots=True)
class CompositionConfig:
    """Both boundaries' settings as one immutable bundle."""

    source: SourceBoundaryConfig
    consumer: ConsumerBoundaryConfig
    strict: bool = False

    @classmethod
    def from_mapping(cls, config: Mapping[str, object]) -> CompositionConfig:
        source = config.get("source", {})
        consumer = config.get("consumer", {})
        composition = config.get("composition", {})
        if not isinstance(source, Mapping) or not isinstance(consumer, Mapping):
            raise ValueError("config sections 'source' and 'consumer' must be objects")
        strict = composition.get("strict", False) if isinstance(composition, Mapping) else False
        return cls(
            source=SourceBoundaryConfig.from_mapping(source),
            consumer=ConsumerBoundaryConfig.from_mapping(consumer),
            strict=bool(strict),
        )


def _flatten(cls: type, payload: Mapping[str, object]) -> dict[str, object]:
    known = {item.name for item in fields(cls)}
    values: dict[str, object] = {}
    for key, value in payload.items():
        if key == "remote" and isinstance(value, Mapping):
            values.update({name: item for name, item in value.items() if name in known})
        elif key in known:
            values[key] = value
    return values


__all__ = [
    "CONSUMER_REMOTE_FIELDS",
    "CompositionConfig",
    "ConsumerBoundaryConfig",
    "SOURCE_REMOTE_FIELDS",
    "SourceBoundaryConfig",
]
