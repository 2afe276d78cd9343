"""
xacct-pipeline — package root

File: src/xacct_pipeline/__init__.py
Last updated: 2026-10-19

Purpose
- Compose the cross-account trust and artifact-exchange topology of a two-stage
  delivery pipeline as a declarative resource graph.

Import boundaries
- The package root stays side-effect free: no config loading, no logging setup.
- Planes are imported explicitly (``xacct_pipeline.policy``, ``xacct_pipeline.topology``,
  ``xacct_pipeline.graph``).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
