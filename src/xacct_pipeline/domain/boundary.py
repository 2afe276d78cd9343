"""Boundary identities and logical resource references."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from xacct_pipeline.constants import PSEUDO_ACCOUNT_ID, PSEUDO_REGION

ARN_ATTRIBUTE: Final[str] = "arn"
NAME_ATTRIBUTE: Final[str] = "name"


class BoundaryKind(StrEnum):
    """Which side of the two-party trust relationship a boundary sits on."""

    SOURCE = "source"
    CONSUMER = "consumer"


@dataclass(frozen=True, slots=True)
class Boundary:
    """An isolated trust domain (one account) with a single immutable identity.

    ``account_id`` and ``region`` may be unknown at composition time; ARNs then carry
    pseudo parameters that the provisioning backend resolves.
    """

    name: str
    kind: BoundaryKind
    account_id: str | None = None
    region: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("boundary name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "kind", BoundaryKind(self.kind))
        object.__setattr__(self, "account_id", _optional_text(self.account_id))
        object.__setattr__(self, "region", _optional_text(self.region))

    @property
    def account(self) -> str:
        return self.account_id if self.account_id is not None else PSEUDO_ACCOUNT_ID

    @property
    def partition_region(self) -> str:
        return self.region if self.region is not None else PSEUDO_REGION

    @property
    def root_arn(self) -> str:
        return account_root_arn(self.account)

    def role_arn(self, role_name: str) -> str:
        return f"arn:aws:iam::{self.account}:role/{role_name}"

    def log_group_arn(self, project_name: str) -> str:
        return (
            f"arn:aws:logs:{self.partition_region}:{self.account}"
            f":log-group:/aws/codebuild/{project_name}"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "account_id": self.account_id,
            "region": self.region,
        }


@dataclass(frozen=True, slots=True)
class ResourceRef:
    """Reference to an attribute of a declared or imported entity in the same boundary."""

    logical_id: str
    attribute: str = ARN_ATTRIBUTE
    suffix: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.logical_id, str) or not self.logical_id.strip():
            raise ValueError("logical_id must be a non-empty string")
        if not isinstance(self.attribute, str) or not self.attribute.strip():
            raise ValueError("attribute must be a non-empty string")

    def child(self, suffix: str) -> ResourceRef:
        """Return a reference to a path below this resource, e.g. ``bucket/*``."""
        return ResourceRef(self.logical_id, self.attribute, f"{self.suffix}{suffix}")

    def to_dict(self) -> dict[str, str]:
        payload = {"ref": self.logical_id, "attr": self.attribute}
        if self.suffix:
            payload["suffix"] = self.suffix
        return payload


def account_root_arn(account_id: str) -> str:
    return f"arn:aws:iam::{account_id}:root"


def bucket_arn(bucket_name: str) -> str:
    return f"arn:aws:s3:::{bucket_name}"


def render_value(value: str | ResourceRef) -> str | dict[str, str]:
    """Render a literal string or a logical reference for graph output."""
    if isinstance(value, ResourceRef):
        return value.to_dict()
    return value


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected string, got {type(value).__name__}")
    stripped = value.strip()
    return stripped or None


__all__ = [
    "ARN_ATTRIBUTE",
    "NAME_ATTRIBUTE",
    "Boundary",
    "BoundaryKind",
    "ResourceRef",
    "account_root_arn",
    "bucket_arn",
    "render_value",
]
