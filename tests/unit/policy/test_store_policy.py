"""
xacct-pipeline — unit tests for the artifact store bucket policy

File: tests/unit/policy/test_store_policy.py
Last updated: 2026-10-19

Purpose
- Validate the unconditional deny rules and the remote-principal allow rules.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from xacct_pipeline.domain.boundary import Boundary, BoundaryKind, ResourceRef
from xacct_pipeline.policy.principals import AccountRootPrincipal, AnyPrincipal
from xacct_pipeline.policy.statements import Effect, PolicyConflictError
from xacct_pipeline.policy.store_policy import (
    CROSS_ACCOUNT_GET_PUT_SID,
    CROSS_ACCOUNT_LIST_SID,
    DENY_INSECURE_TRANSPORT_SID,
    DENY_UNENCRYPTED_SID,
    build_artifact_store,
    compose_store_policy,
)

OWNER = Boundary("consumer", BoundaryKind.CONSUMER, account_id="222222222222")
REMOTE = AccountRootPrincipal("111111111111")

_BUCKET_NAMES = st.from_regex(r"[a-z0-9][a-z0-9-]{2,40}[a-z0-9]", fullmatch=True)


def test_denies_without_remote_principal() -> None:
    policy = compose_store_policy("artifacts", OWNER)

    assert policy.sids == (DENY_UNENCRYPTED_SID, DENY_INSECURE_TRANSPORT_SID)
    assert policy.allows == ()
    unencrypted, insecure = policy.statements
    assert unencrypted.actions == ("s3:PutObject",)
    assert unencrypted.conditions == {
        "StringNotEquals": {"s3:x-amz-server-side-encryption": "aws:kms"}
    }
    assert insecure.actions == ("s3:*",)
    assert insecure.resources == ("arn:aws:s3:::artifacts", "arn:aws:s3:::artifacts/*")
    assert insecure.conditions == {"Bool": {"aws:SecureTransport": False}}


def test_remote_principal_adds_scoped_allows_after_denies() -> None:
    policy = compose_store_policy("artifacts", OWNER, REMOTE)

    assert policy.sids == (
        DENY_UNENCRYPTED_SID,
        DENY_INSECURE_TRANSPORT_SID,
        CROSS_ACCOUNT_GET_PUT_SID,
        CROSS_ACCOUNT_LIST_SID,
    )
    get_put = policy.find(CROSS_ACCOUNT_GET_PUT_SID)
    listing = policy.find(CROSS_ACCOUNT_LIST_SID)
    assert get_put is not None and listing is not None
    assert get_put.principals == (REMOTE,)
    assert get_put.resources == ("arn:aws:s3:::artifacts/*",)
    assert listing.principals == (REMOTE,)
    assert listing.actions == ("s3:ListBucket",)
    assert listing.resources == ("arn:aws:s3:::artifacts",)


def test_wildcard_remote_principal_is_refused() -> None:
    with pytest.raises(PolicyConflictError, match="wildcard principal"):
        compose_store_policy("artifacts", OWNER, AnyPrincipal())


def test_owner_root_is_not_a_remote_principal() -> None:
    with pytest.raises(PolicyConflictError, match="different boundary"):
        compose_store_policy("artifacts", OWNER, AccountRootPrincipal("222222222222"))


def test_store_name_must_be_present() -> None:
    with pytest.raises(ValueError, match="store_name"):
        compose_store_policy("  ", OWNER)


def test_artifact_store_binds_key_reference() -> None:
    store = build_artifact_store(
        OWNER,
        bucket_name="artifacts",
        encryption_key=ResourceRef("ArtifactKey"),
        remote_account_id=None,
    )

    assert store.encryption_key == ResourceRef("ArtifactKey")
    assert store.to_dict()["encryption"] == {
        "algorithm": "aws:kms",
        "key": {"ref": "ArtifactKey", "attr": "arn"},
    }
    assert store.policy.sensitive is True


@given(bucket=_BUCKET_NAMES, with_remote=st.booleans())
@settings(max_examples=50, deadline=None)
def test_denies_always_precede_allows(bucket: str, with_remote: bool) -> None:
    policy = compose_store_policy(bucket, OWNER, REMOTE if with_remote else None)

    effects = [statement.effect for statement in policy.statements]
    assert effects[:2] == [Effect.DENY, Effect.DENY]
    assert Effect.DENY not in effects[2:]
    assert all(not statement.has_wildcard_principal for statement in policy.allows)
