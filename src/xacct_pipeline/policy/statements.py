"""Permission statements and the policy documents that hold them.

Statements are immutable values. A :class:`PolicyDocument` validates its statements as a
set when it is constructed, so a document that exists is internally consistent:

- statement ids are unique;
- no allow statement and deny statement share an identical scope;
- at most one statement grants full (service-wide wildcard) control;
- on sensitive resources (keys, buckets) no allow statement names the wildcard principal;
- resource and trust policies name principals, identity policies name resources instead.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from xacct_pipeline.constants import POLICY_VERSION
from xacct_pipeline.domain.boundary import ResourceRef, render_value
from xacct_pipeline.policy.principals import Principal, render_principals

Resource = str | ResourceRef


class Effect(StrEnum):
    ALLOW = "Allow"
    DENY = "Deny"


class PolicyKind(StrEnum):
    """Where a document is attached, which decides the statement shape it accepts."""

    IDENTITY = "identity"
    RESOURCE = "resource"
    TRUST = "trust"


class PolicyConflictError(ValueError):
    """Raised when a policy would hold mutually exclusive or unsafe statements."""

    def __init__(self, message: str, *, sids: Iterable[str] = ()) -> None:
        self.sids = tuple(sids)
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class PermissionStatement:
    """One allow or deny rule."""

    sid: str
    effect: Effect
    actions: tuple[str, ...]
    resources: tuple[Resource, ...] = ()
    principals: tuple[Principal, ...] = ()
    conditions: Mapping[str, Mapping[str, object]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.sid, str) or not self.sid.strip():
            raise ValueError("sid must be a non-empty string")
        object.__setattr__(self, "effect", Effect(self.effect))
        actions = tuple(self.actions)
        if not actions:
            raise ValueError(f"statement {self.sid!r}: action set must not be empty")
        for action in actions:
            if not isinstance(action, str) or not action.strip():
                raise ValueError(f"statement {self.sid!r}: actions must be non-empty strings")
            if action != "*" and ":" not in action:
                raise ValueError(
                    f"statement {self.sid!r}: action {action!r} must be 'service:Action'"
                )
        object.__setattr__(self, "actions", actions)
        object.__setattr__(self, "resources", tuple(self.resources))
        object.__setattr__(self, "principals", tuple(self.principals))
        object.__setattr__(
            self,
            "conditions",
            {
                operator: dict(self.conditions[operator])
                for operator in sorted(self.conditions)
            },
        )

    @property
    def has_wildcard_principal(self) -> bool:
        return any(principal.is_wildcard for principal in self.principals)

    @property
    def grants_full_control(self) -> bool:
        """True for an allow whose actions include a service-wide wildcard."""
        if self.effect is not Effect.ALLOW:
            return False
        return any(action == "*" or action.endswith(":*") for action in self.actions)

    def scope_key(self) -> str:
        """Effect-independent canonical key of what the statement applies to."""
        payload = {
            "actions": sorted(self.actions),
            "resources": [render_value(item) for item in self.resources],
            "principals": render_principals(self.principals),
            "conditions": self.conditions,
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)

    def references(self) -> Iterator[ResourceRef]:
        for resource in self.resources:
            if isinstance(resource, ResourceRef):
                yield resource
        for principal in self.principals:
            yield from principal.references()

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"Sid": self.sid, "Effect": self.effect.value}
        if self.principals:
            payload["Principal"] = render_principals(self.principals)
        payload["Action"] = list(self.actions)
        if self.resources:
            payload["Resource"] = [render_value(item) for item in self.resources]
        if self.conditions:
            payload["Condition"] = {
                operator: dict(values) for operator, values in self.conditions.items()
            }
        return payload


@dataclass(frozen=True, slots=True)
class PolicyDocument:
    """An ordered, conflict-free set of statements."""

    kind: PolicyKind
    statements: tuple[PermissionStatement, ...] = ()
    sensitive: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", PolicyKind(self.kind))
        object.__setattr__(self, "statements", tuple(self.statements))
        _check_document(self)

    def with_statement(self, statement: PermissionStatement) -> PolicyDocument:
        """Return a new document with ``statement`` appended."""
        return PolicyDocument(
            kind=self.kind,
            statements=(*self.statements, statement),
            sensitive=self.sensitive,
        )

    @property
    def sids(self) -> tuple[str, ...]:
        return tuple(statement.sid for statement in self.statements)

    @property
    def allows(self) -> tuple[PermissionStatement, ...]:
        return tuple(item for item in self.statements if item.effect is Effect.ALLOW)

    @property
    def denies(self) -> tuple[PermissionStatement, ...]:
        return tuple(item for item in self.statements if item.effect is Effect.DENY)

    @property
    def actions(self) -> frozenset[str]:
        return frozenset(action for item in self.allows for action in item.actions)

    def find(self, sid: str) -> PermissionStatement | None:
        for statement in self.statements:
            if statement.sid == sid:
                return statement
        return None

    def references(self) -> Iterator[ResourceRef]:
        for statement in self.statements:
            yield from statement.references()

    def to_dict(self) -> dict[str, object]:
        return {
            "Version": POLICY_VERSION,
            "Statement": [statement.to_dict() for statement in self.statements],
        }


def _check_document(document: PolicyDocument) -> None:
    seen_sids: set[str] = set()
    scopes: dict[str, PermissionStatement] = {}
    full_control: PermissionStatement | None = None

    for statement in document.statements:
        if not isinstance(statement, PermissionStatement):
            raise ValueError("policy statements must be PermissionStatement instances")

        if statement.sid in seen_sids:
            raise PolicyConflictError(
                f"duplicate statement id {statement.sid!r}", sids=(statement.sid,)
            )
        seen_sids.add(statement.sid)

        _check_shape(document.kind, statement)

        if (
            document.sensitive
            and statement.effect is Effect.ALLOW
            and statement.has_wildcard_principal
        ):
            raise PolicyConflictError(
                f"allow statement {statement.sid!r} names the wildcard principal "
                "on a sensitive resource",
                sids=(statement.sid,),
            )

        if statement.grants_full_control:
            if full_control is not None:
                raise PolicyConflictError(
                    "policy holds two full-control statements: "
                    f"{full_control.sid!r} and {statement.sid!r}",
                    sids=(full_control.sid, statement.sid),
                )
            full_control = statement

        scope = statement.scope_key()
        other = scopes.get(scope)
        if other is not None and other.effect is not statement.effect:
            raise PolicyConflictError(
                f"statements {other.sid!r} and {statement.sid!r} allow and deny "
                "an identical scope",
                sids=(other.sid, statement.sid),
            )
        scopes.setdefault(scope, statement)


def _check_shape(kind: PolicyKind, statement: PermissionStatement) -> None:
    if kind is PolicyKind.IDENTITY:
        if statement.principals:
            raise ValueError(
                f"identity policy statement {statement.sid!r} must not name principals"
            )
        if not statement.resources:
            raise ValueError(f"identity policy statement {statement.sid!r} needs resources")
        return
    if not statement.principals:
        raise ValueError(f"{kind.value} policy statement {statement.sid!r} needs principals")
    if kind is PolicyKind.RESOURCE and not statement.resources:
        raise ValueError(f"resource policy statement {statement.sid!r} needs resources")


__all__ = [
    "Effect",
    "PermissionStatement",
    "PolicyConflictError",
    "PolicyDocument",
    "PolicyKind",
    "Resource",
]
