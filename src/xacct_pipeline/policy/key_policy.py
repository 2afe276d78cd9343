"""Resource policy composition for the shared artifact encryption key.

Usage and grant management are separate privilege tiers and are emitted as separate
statements so that either can be revoked without touching the other.
"""

from __future__ import annotations

from collections.abc import Sequence

from xacct_pipeline.constants import KEY_ADMIN_ACTIONS, KEY_GRANT_ACTIONS, KEY_USAGE_ACTIONS
from xacct_pipeline.domain.boundary import Boundary, ResourceRef
from xacct_pipeline.domain.models import EncryptionKey
from xacct_pipeline.policy.principals import AccountRootPrincipal, ArnPrincipal, Principal
from xacct_pipeline.policy.statements import (
    Effect,
    PermissionStatement,
    PolicyConflictError,
    PolicyDocument,
    PolicyKind,
)

OWNER_FULL_CONTROL_SID = "Enable IAM User Permissions"
KEY_USAGE_SID = "Allow use of the key"
KEY_GRANT_SID = "Allow attachment of persistent resources"
ARTIFACT_KEY_LOGICAL_ID = "ArtifactKey"


def owner_full_control(owner: Boundary) -> PermissionStatement:
    """Full key administration for the owning boundary's root identity."""
    return PermissionStatement(
        sid=OWNER_FULL_CONTROL_SID,
        effect=Effect.ALLOW,
        actions=KEY_ADMIN_ACTIONS,
        resources=("*",),
        principals=(AccountRootPrincipal(owner.account),),
    )


def compose_key_policy(
    owner: Boundary,
    usage_principals: Sequence[Principal],
    grant_management_principals: Sequence[Principal],
) -> PolicyDocument:
    """Compose the key's resource policy.

    Raises:
        PolicyConflictError: if principals name more than one remote boundary root, or
            if any statement would be unsafe on a sensitive resource.
    """

    usage = tuple(usage_principals)
    grant_management = tuple(grant_management_principals)
    _assert_single_remote_root(owner, usage, "usage")
    _assert_single_remote_root(owner, grant_management, "grant management")

    document = PolicyDocument(
        kind=PolicyKind.RESOURCE,
        statements=(owner_full_control(owner),),
        sensitive=True,
    )
    if usage:
        document = document.with_statement(
            PermissionStatement(
                sid=KEY_USAGE_SID,
                effect=Effect.ALLOW,
                actions=KEY_USAGE_ACTIONS,
                resources=("*",),
                principals=usage,
            )
        )
    if grant_management:
        document = document.with_statement(
            PermissionStatement(
                sid=KEY_GRANT_SID,
                effect=Effect.ALLOW,
                actions=KEY_GRANT_ACTIONS,
                resources=("*",),
                principals=grant_management,
                conditions={"Bool": {"kms:GrantIsForAWSResource": True}},
            )
        )
    return document


def build_artifact_key(
    owner: Boundary,
    *,
    pipeline_role: ResourceRef,
    build_role: ResourceRef,
    remote_account_id: str | None,
) -> EncryptionKey:
    """Shared artifact key usable by the pipeline identities and, optionally, one remote root."""
    principals: list[Principal] = [ArnPrincipal(pipeline_role), ArnPrincipal(build_role)]
    description = "Pipeline artifact key"
    if remote_account_id is not None:
        principals.append(AccountRootPrincipal(remote_account_id))
        description = f"Pipeline artifact key shared with {remote_account_id}"
    return EncryptionKey(
        logical_id=ARTIFACT_KEY_LOGICAL_ID,
        description=description,
        policy=compose_key_policy(owner, principals, principals),
    )


def _assert_single_remote_root(
    owner: Boundary, principals: tuple[Principal, ...], tier: str
) -> None:
    remote_roots = sorted(
        {
            principal.account_id
            for principal in principals
            if isinstance(principal, AccountRootPrincipal)
            and principal.account_id != owner.account
        }
    )
    if len(remote_roots) > 1:
        raise PolicyConflictError(
            f"key {tier} principals name {len(remote_roots)} remote boundaries "
            f"({', '.join(remote_roots)}); at most one is allowed"
        )


__all__ = [
    "ARTIFACT_KEY_LOGICAL_ID",
    "KEY_GRANT_SID",
    "KEY_USAGE_SID",
    "OWNER_FULL_CONTROL_SID",
    "build_artifact_key",
    "compose_key_policy",
    "owner_full_control",
]
