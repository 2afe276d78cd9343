"""
xacct-pipeline config package public API.

File: src/xacct_pipeline/config/__init__.py
Last updated: 2026-10-19

Purpose
- Export config loading/validation entrypoints, typed boundary views and error types.

What should be included in this file
- Public schema constants and validation/report types.
- Loader APIs for effective config and deterministic dumps.
- No composition logic or side effects.

Functional requirements
- Support loading from ``xacct.toml`` + ``XACCT_`` env overrides.
- Fail fast with clear structured validation/load errors.

Non-functional requirements
- Keep import-time surface small and deterministic.
"""

from xacct_pipeline.config.boundaries import (
    CONSUMER_REMOTE_FIELDS,
    SOURCE_REMOTE_FIELDS,
    CompositionConfig,
    ConsumerBoundaryConfig,
    SourceBoundaryConfig,
)
from xacct_pipeline.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    env_bindings,
    load_config,
)
from xacct_pipeline.config.schema import (
    DEFAULT_CONFIG,
    ConfigSchemaVersion,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)

__all__ = [
    "CONSUMER_REMOTE_FIELDS",
    "CompositionConfig",
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ConsumerBoundaryConfig",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "SOURCE_REMOTE_FIELDS",
    "SourceBoundaryConfig",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "env_bindings",
    "load_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
