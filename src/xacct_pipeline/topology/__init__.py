"""
xacct-pipeline — topology plane

File: src/xacct_pipeline/topology/__init__.py
Last updated: 2026-10-19

Purpose
- Capability resolution, pipeline topology, per-boundary composition and the
  two-pass handshake.

Import boundaries
- ``topology.handshake`` depends on ``graph``; import submodules explicitly so
  ``graph.emitter`` can depend on ``topology.composer`` without a cycle.
"""
