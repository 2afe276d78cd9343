"""
xacct-pipeline — policy plane

File: src/xacct_pipeline/policy/__init__.py
Last updated: 2026-10-19

Purpose
- Permission statement values and the composers that build trust, key, and
  storage policies for the cross-boundary topology.

Import boundaries
- Only the statement and principal value types are re-exported here. Composers
  (``policy.trust``, ``policy.key_policy``, ``policy.store_policy``) depend on
  ``domain.models`` and are imported explicitly.
"""

from xacct_pipeline.policy.principals import (
    AccountRootPrincipal,
    AnyPrincipal,
    ArnPrincipal,
    Principal,
    ServicePrincipal,
)
from xacct_pipeline.policy.statements import (
    Effect,
    PermissionStatement,
    PolicyConflictError,
    PolicyDocument,
    PolicyKind,
)

__all__ = [
    "AccountRootPrincipal",
    "AnyPrincipal",
    "ArnPrincipal",
    "Effect",
    "PermissionStatement",
    "PolicyConflictError",
    "PolicyDocument",
    "PolicyKind",
    "Principal",
    "ServicePrincipal",
]
