"""Bucket policy composition for the shared artifact store."""

from __future__ import annotations

from xacct_pipeline.constants import (
    MANAGED_KEY_ALGORITHM,
    STORE_LIST_ACTIONS,
    STORE_OBJECT_READ_WRITE_ACTIONS,
)
from xacct_pipeline.domain.boundary import Boundary, ResourceRef, bucket_arn
from xacct_pipeline.domain.models import ArtifactStore
from xacct_pipeline.policy.principals import AccountRootPrincipal, AnyPrincipal, Principal
from xacct_pipeline.policy.statements import (
    Effect,
    PermissionStatement,
    PolicyConflictError,
    PolicyDocument,
    PolicyKind,
)

DENY_UNENCRYPTED_SID = "DenyUnEncryptedObjectUploads"
DENY_INSECURE_TRANSPORT_SID = "DenyInsecureConnections"
CROSS_ACCOUNT_GET_PUT_SID = "CrossAccountS3GetPutPolicy"
CROSS_ACCOUNT_LIST_SID = "CrossAccountS3ListPolicy"
ARTIFACT_STORE_LOGICAL_ID = "ArtifactBucket"


def deny_unencrypted_uploads(store_name: str) -> PermissionStatement:
    return PermissionStatement(
        sid=DENY_UNENCRYPTED_SID,
        effect=Effect.DENY,
        actions=("s3:PutObject",),
        resources=(f"{bucket_arn(store_name)}/*",),
        principals=(AnyPrincipal(),),
        conditions={
            "StringNotEquals": {"s3:x-amz-server-side-encryption": MANAGED_KEY_ALGORITHM}
        },
    )


def deny_insecure_transport(store_name: str) -> PermissionStatement:
    return PermissionStatement(
        sid=DENY_INSECURE_TRANSPORT_SID,
        effect=Effect.DENY,
        actions=("s3:*",),
        resources=(bucket_arn(store_name), f"{bucket_arn(store_name)}/*"),
        principals=(AnyPrincipal(),),
        conditions={"Bool": {"aws:SecureTransport": False}},
    )


def compose_store_policy(
    store_name: str,
    owner: Boundary,
    remote_principal: Principal | None = None,
) -> PolicyDocument:
    """Compose the store's bucket policy.

    The two deny statements come first and are present regardless of configuration.
    Allow statements are added only for an explicit remote principal, never a wildcard.
    """

    if not isinstance(store_name, str) or not store_name.strip():
        raise ValueError("store_name must be a non-empty string")
    store_name = store_name.strip()

    document = PolicyDocument(
        kind=PolicyKind.RESOURCE,
        statements=(deny_unencrypted_uploads(store_name), deny_insecure_transport(store_name)),
        sensitive=True,
    )
    if remote_principal is None:
        return document

    if (
        isinstance(remote_principal, AccountRootPrincipal)
        and remote_principal.account_id == owner.account
    ):
        raise PolicyConflictError(
            f"store {store_name!r}: remote principal {remote_principal.account_id} must belong "
            "to a different boundary than the owner",
            sids=(CROSS_ACCOUNT_GET_PUT_SID,),
        )

    document = document.with_statement(
        PermissionStatement(
            sid=CROSS_ACCOUNT_GET_PUT_SID,
            effect=Effect.ALLOW,
            actions=STORE_OBJECT_READ_WRITE_ACTIONS,
            resources=(f"{bucket_arn(store_name)}/*",),
            principals=(remote_principal,),
        )
    )
    return document.with_statement(
        PermissionStatement(
            sid=CROSS_ACCOUNT_LIST_SID,
            effect=Effect.ALLOW,
            actions=STORE_LIST_ACTIONS,
            resources=(bucket_arn(store_name),),
            principals=(remote_principal,),
        )
    )


def build_artifact_store(
    owner: Boundary,
    *,
    bucket_name: str,
    encryption_key: ResourceRef,
    remote_account_id: str | None,
) -> ArtifactStore:
    remote: Principal | None = None
    if remote_account_id is not None:
        remote = AccountRootPrincipal(remote_account_id)
    return ArtifactStore(
        logical_id=ARTIFACT_STORE_LOGICAL_ID,
        bucket_name=bucket_name,
        encryption_key=encryption_key,
        policy=compose_store_policy(bucket_name, owner, remote),
    )


__all__ = [
    "ARTIFACT_STORE_LOGICAL_ID",
    "CROSS_ACCOUNT_GET_PUT_SID",
    "CROSS_ACCOUNT_LIST_SID",
    "DENY_INSECURE_TRANSPORT_SID",
    "DENY_UNENCRYPTED_SID",
    "build_artifact_store",
    "compose_store_policy",
    "deny_insecure_transport",
    "deny_unencrypted_uploads",
]
