"""Principals that may be named in permission statements."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

from xacct_pipeline.domain.boundary import ResourceRef, account_root_arn, render_value

PrincipalType = Literal["AWS", "Service"]


@dataclass(frozen=True, slots=True)
class ServicePrincipal:
    """A cloud service identity such as ``codebuild.amazonaws.com``."""

    service: str

    def __post_init__(self) -> None:
        if not isinstance(self.service, str) or not self.service.strip():
            raise ValueError("service must be a non-empty string")

    @property
    def principal_type(self) -> PrincipalType:
        return "Service"

    @property
    def is_wildcard(self) -> bool:
        return False

    def render(self) -> str:
        return self.service

    def references(self) -> Iterator[ResourceRef]:
        return iter(())


@dataclass(frozen=True, slots=True)
class ArnPrincipal:
    """A named role or user, by literal ARN or by reference to a declared role."""

    arn: str | ResourceRef

    def __post_init__(self) -> None:
        if isinstance(self.arn, str):
            if not self.arn.strip():
                raise ValueError("arn must be a non-empty string")
            if self.arn.strip() == "*":
                raise ValueError("use AnyPrincipal for the wildcard principal")
        elif not isinstance(self.arn, ResourceRef):
            raise ValueError("arn must be a string or ResourceRef")

    @property
    def principal_type(self) -> PrincipalType:
        return "AWS"

    @property
    def is_wildcard(self) -> bool:
        return False

    def render(self) -> str | dict[str, str]:
        return render_value(self.arn)

    def references(self) -> Iterator[ResourceRef]:
        if isinstance(self.arn, ResourceRef):
            yield self.arn


@dataclass(frozen=True, slots=True)
class AccountRootPrincipal:
    """The root identity of a boundary; trust is delegated to that account's IAM."""

    account_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.account_id, str) or not self.account_id.strip():
            raise ValueError("account_id must be a non-empty string")

    @property
    def principal_type(self) -> PrincipalType:
        return "AWS"

    @property
    def is_wildcard(self) -> bool:
        return False

    @property
    def arn(self) -> str:
        return account_root_arn(self.account_id)

    def render(self) -> str:
        return self.arn

    def references(self) -> Iterator[ResourceRef]:
        return iter(())


@dataclass(frozen=True, slots=True)
class AnyPrincipal:
    """The wildcard principal. Only deny statements may carry it."""

    @property
    def principal_type(self) -> PrincipalType:
        return "AWS"

    @property
    def is_wildcard(self) -> bool:
        return True

    def render(self) -> str:
        return "*"

    def references(self) -> Iterator[ResourceRef]:
        return iter(())


Principal = ServicePrincipal | ArnPrincipal | AccountRootPrincipal | AnyPrincipal


def render_principals(principals: tuple[Principal, ...]) -> dict[str, object]:
    """Render principals grouped by type, the way IAM policy JSON expects them."""
    grouped: dict[str, list[object]] = {}
    for principal in principals:
        grouped.setdefault(principal.principal_type, []).append(principal.render())
    return {key: grouped[key] for key in sorted(grouped)}


__all__ = [
    "AccountRootPrincipal",
    "AnyPrincipal",
    "ArnPrincipal",
    "Principal",
    "PrincipalType",
    "ServicePrincipal",
    "render_principals",
]
