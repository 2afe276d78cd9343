"""Trust statements and bounded capability grants for cross-boundary roles."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from xacct_pipeline.constants import (
    ASSUME_ROLE_ACTIONS,
    KEY_USAGE_ACTIONS,
    REPOSITORY_READ_ACTIONS,
    STORE_OBJECT_WRITE_ACTIONS,
)
from xacct_pipeline.domain.boundary import ResourceRef
from xacct_pipeline.domain.models import Role
from xacct_pipeline.policy.principals import AccountRootPrincipal, ServicePrincipal
from xacct_pipeline.policy.statements import (
    Effect,
    PermissionStatement,
    PolicyDocument,
    PolicyKind,
    Resource,
)

ACCESS_ROLE_LOGICAL_ID = "CodeCommitAccessRole"


class TrustCapability(StrEnum):
    """Capabilities a remote boundary can be granted through an assumed role."""

    REPOSITORY_READ = "repository_read"
    KEY_USAGE = "key_usage"
    STORE_WRITE = "store_write"


_CAPABILITY_SIDS: dict[TrustCapability, str] = {
    TrustCapability.REPOSITORY_READ: "CodeCommitAccessPolicy",
    TrustCapability.KEY_USAGE: "KMSAccessPolicy",
    TrustCapability.STORE_WRITE: "UploadArtifactPolicy",
}

_CAPABILITY_ACTIONS: dict[TrustCapability, tuple[str, ...]] = {
    TrustCapability.REPOSITORY_READ: REPOSITORY_READ_ACTIONS,
    TrustCapability.KEY_USAGE: KEY_USAGE_ACTIONS,
    TrustCapability.STORE_WRITE: STORE_OBJECT_WRITE_ACTIONS,
}


@dataclass(frozen=True, slots=True)
class TrustGrant:
    """The trust statement admitting a grantee, paired with one bounded permission."""

    capability: TrustCapability
    trust: PermissionStatement
    permission: PermissionStatement


def assume_role_statement(grantee_account_id: str) -> PermissionStatement:
    """Allow exactly the grantee boundary's root identity to assume the role."""
    return PermissionStatement(
        sid="AssumeFromRemoteBoundary",
        effect=Effect.ALLOW,
        actions=ASSUME_ROLE_ACTIONS,
        principals=(AccountRootPrincipal(grantee_account_id),),
    )


def service_trust(service: str) -> PolicyDocument:
    """Trust policy for a role assumed by a pipeline service."""
    return PolicyDocument(
        kind=PolicyKind.TRUST,
        statements=(
            PermissionStatement(
                sid="AssumeFromService",
                effect=Effect.ALLOW,
                actions=ASSUME_ROLE_ACTIONS,
                principals=(ServicePrincipal(service),),
            ),
        ),
    )


def capability_statement(capability: TrustCapability, resource: Resource) -> PermissionStatement:
    """Bounded permission statement for ``capability`` on ``resource``.

    Store writes are scoped to objects, so a bucket reference gets ``/*`` appended.
    """
    capability = TrustCapability(capability)
    resources: tuple[Resource, ...]
    if capability is TrustCapability.STORE_WRITE:
        resources = (_objects_of(resource),)
    else:
        resources = (resource,)
    return PermissionStatement(
        sid=_CAPABILITY_SIDS[capability],
        effect=Effect.ALLOW,
        actions=_CAPABILITY_ACTIONS[capability],
        resources=resources,
    )


def build_trust(
    grantee_account_id: str, capability: TrustCapability, resource: Resource
) -> TrustGrant:
    """Return the trust statement for ``grantee_account_id`` and the capability grant."""
    return TrustGrant(
        capability=TrustCapability(capability),
        trust=assume_role_statement(grantee_account_id),
        permission=capability_statement(capability, resource),
    )


def build_repository_access_role(
    *,
    grantee_account_id: str,
    repository: ResourceRef,
    store_arn: str,
    key_arn: str,
    role_name: str,
) -> Role:
    """Role the remote boundary assumes to pull source and push encrypted artifacts.

    The role can read the repository but never push to it or delete it, and can use the
    shared key but not manage it.
    """
    grants = (
        build_trust(grantee_account_id, TrustCapability.STORE_WRITE, store_arn),
        build_trust(grantee_account_id, TrustCapability.KEY_USAGE, key_arn),
        build_trust(grantee_account_id, TrustCapability.REPOSITORY_READ, repository),
    )
    return Role(
        logical_id=ACCESS_ROLE_LOGICAL_ID,
        role_name=role_name,
        trust=PolicyDocument(kind=PolicyKind.TRUST, statements=(grants[0].trust,)),
        permissions=PolicyDocument(
            kind=PolicyKind.IDENTITY,
            statements=tuple(grant.permission for grant in grants),
        ),
    )


def _objects_of(resource: Resource) -> Resource:
    if isinstance(resource, ResourceRef):
        return resource if resource.suffix.endswith("/*") else resource.child("/*")
    return resource if resource.endswith("/*") else f"{resource}/*"


__all__ = [
    "ACCESS_ROLE_LOGICAL_ID",
    "TrustCapability",
    "TrustGrant",
    "assume_role_statement",
    "build_repository_access_role",
    "build_trust",
    "capability_statement",
    "service_trust",
]
