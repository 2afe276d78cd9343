"""
xacct-pipeline — domain layer

File: src/xacct_pipeline/domain/__init__.py
Last updated: 2026-10-19

Purpose
- Boundary identities, logical references, and the boundary-owned entities
  (roles, keys, stores, repositories, pipelines) shared across planes.

Import boundaries
- ``domain.boundary`` has no intra-package dependencies beyond constants.
- ``domain.models`` depends on ``policy.statements``; import it explicitly rather
  than through this package to keep the import graph acyclic.
"""
