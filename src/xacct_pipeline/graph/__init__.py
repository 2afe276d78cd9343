"""
xacct-pipeline — graph plane

File: src/xacct_pipeline/graph/__init__.py
Last updated: 2026-10-19

Purpose
- Emit composed boundaries as a deterministic declarative graph and hand it to a
  provisioning backend.
"""

from xacct_pipeline.graph.backend import (
    DryRunBackend,
    ProvisioningBackend,
    ProvisioningError,
    provision_boundary,
)
from xacct_pipeline.graph.emitter import (
    DanglingReferenceError,
    ResourceGraph,
    emit,
)

__all__ = [
    "DanglingReferenceError",
    "DryRunBackend",
    "ProvisioningBackend",
    "ProvisioningError",
    "ResourceGraph",
    "emit",
    "provision_boundary",
]
