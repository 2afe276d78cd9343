"""Observability helpers: structlog configuration and run-scoped context."""

from xacct_pipeline.observability.logging import bind_run_context, configure_logging

__all__ = ["bind_run_context", "configure_logging"]
