"""
xacct-pipeline — configuration schema and validation.

File: src/xacct_pipeline/config/schema.py
Last updated: 2026-10-19

Purpose
- Define authoritative configuration defaults and strict validation rules.

What should be included in this file
- Schema versioning and migration guidance.
- Field table for every section: type, requiredness, allowed values.
- Deterministic deep-merge helper.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Remote identifiers are optional opaque strings; presence is the only check.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal

from xacct_pipeline.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_ACCESS_ROLE_NAME,
    DEFAULT_ARTIFACT_BUCKET_NAME,
    DEFAULT_BUILD_IMAGE,
    DEFAULT_BUILDSPEC,
    DEFAULT_CONSUMER_BRANCH,
    DEFAULT_CONSUMER_BUILD_ROLE_NAME,
    DEFAULT_CONSUMER_PIPELINE_NAME,
    DEFAULT_CONSUMER_PIPELINE_ROLE_NAME,
    DEFAULT_CONSUMER_PROJECT_NAME,
    DEFAULT_DEPLOY_PROJECT_NAME,
    DEFAULT_DEPLOY_ROLE_NAME,
    DEFAULT_REPOSITORY_NAME,
    DEFAULT_SOURCE_BRANCH,
    DEFAULT_SOURCE_PIPELINE_NAME,
    DEFAULT_SOURCE_PIPELINE_ROLE_NAME,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "console")

ValueType = Literal["str", "int", "bool"]


@dataclass(frozen=True, slots=True)
class FieldSpec:
    value_type: ValueType
    required: bool = True
    choices: tuple[str, ...] = ()


_TEXT: Final[FieldSpec] = FieldSpec("str")
_OPTIONAL_TEXT: Final[FieldSpec] = FieldSpec("str", required=False)

# Section path -> field name -> spec. Nested sections are addressed by tuple paths.
SECTION_FIELDS: Final[dict[tuple[str, ...], dict[str, FieldSpec]]] = {
    ("meta",): {"schema_version": FieldSpec("int")},
    ("source",): {
        "name": _TEXT,
        "account_id": _OPTIONAL_TEXT,
        "region": _OPTIONAL_TEXT,
        "repository_name": _TEXT,
        "branch": _TEXT,
        "pipeline_name": _TEXT,
        "pipeline_role_name": _TEXT,
        "deploy_role_name": _TEXT,
        "build_project_name": _TEXT,
        "build_image": _TEXT,
        "buildspec": _TEXT,
        "access_role_name": _TEXT,
    },
    ("source", "remote"): {
        "consumer_account_id": _OPTIONAL_TEXT,
        "consumer_store_arn": _OPTIONAL_TEXT,
        "consumer_key_arn": _OPTIONAL_TEXT,
    },
    ("consumer",): {
        "name": _TEXT,
        "account_id": _OPTIONAL_TEXT,
        "region": _OPTIONAL_TEXT,
        "repository_name": _TEXT,
        "branch": _TEXT,
        "pipeline_name": _TEXT,
        "pipeline_role_name": _TEXT,
        "build_role_name": _TEXT,
        "build_project_name": _TEXT,
        "build_image": _TEXT,
        "buildspec": _TEXT,
        "artifact_bucket_name": _TEXT,
        "deploy_bucket_name": _OPTIONAL_TEXT,
    },
    ("consumer", "remote"): {
        "source_account_id": _OPTIONAL_TEXT,
        "source_repository_arn": _OPTIONAL_TEXT,
        "source_role_arn": _OPTIONAL_TEXT,
    },
    ("composition",): {"strict": FieldSpec("bool")},
    ("observability",): {
        "log_level": FieldSpec("str", choices=LOG_LEVELS),
        "log_format": FieldSpec("str", choices=LOG_FORMATS),
    },
}


DEFAULT_CONFIG: Final[dict[str, Any]] = {
    "meta": {"schema_version": ConfigSchemaVersion},
    "source": {
        "name": "source",
        "repository_name": DEFAULT_REPOSITORY_NAME,
        "branch": DEFAULT_SOURCE_BRANCH,
        "pipeline_name": DEFAULT_SOURCE_PIPELINE_NAME,
        "pipeline_role_name": DEFAULT_SOURCE_PIPELINE_ROLE_NAME,
        "deploy_role_name": DEFAULT_DEPLOY_ROLE_NAME,
        "build_project_name": DEFAULT_DEPLOY_PROJECT_NAME,
        "build_image": DEFAULT_BUILD_IMAGE,
        "buildspec": DEFAULT_BUILDSPEC,
        "access_role_name": DEFAULT_ACCESS_ROLE_NAME,
        "remote": {},
    },
    "consumer": {
        "name": "consumer",
        "repository_name": DEFAULT_REPOSITORY_NAME,
        "branch": DEFAULT_CONSUMER_BRANCH,
        "pipeline_name": DEFAULT_CONSUMER_PIPELINE_NAME,
        "pipeline_role_name": DEFAULT_CONSUMER_PIPELINE_ROLE_NAME,
        "build_role_name": DEFAULT_CONSUMER_BUILD_ROLE_NAME,
        "build_project_name": DEFAULT_CONSUMER_PROJECT_NAME,
        "build_image": DEFAULT_BUILD_IMAGE,
        "buildspec": DEFAULT_BUILDSPEC,
        "artifact_bucket_name": DEFAULT_ARTIFACT_BUCKET_NAME,
        "remote": {},
    },
    "composition": {"strict": False},
    "observability": {"log_level": "INFO", "log_format": "json"},
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> dict[str, Any]:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Return deterministic migration guidance for schema version mismatch."""

    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade xacct.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the xacct-pipeline runtime"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = copy.deepcopy(dict(base))
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    if not isinstance(config, Mapping):
        issues.add("<root>", f"expected object, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=issues.items())

    section_names = {path[0] for path in SECTION_FIELDS}
    for key in sorted(config):
        if key not in section_names:
            issues.add(str(key), "unknown section")

    normalized: dict[str, Any] = {}
    for section_path in sorted(SECTION_FIELDS):
        raw = _get_section(config, section_path, issues)
        if raw is None:
            continue
        values = _validate_section(raw, section_path, issues)
        target = normalized
        for part in section_path:
            target = target.setdefault(part, {})
        target.update(values)

    meta_version = normalized.get("meta", {}).get("schema_version")
    if isinstance(meta_version, int) and meta_version != ConfigSchemaVersion:
        issues.add("meta.schema_version", migration_guidance(meta_version))

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _get_section(
    config: Mapping[str, object], section_path: tuple[str, ...], issues: _IssueCollector
) -> Mapping[str, object] | None:
    cursor: object = config
    for part in section_path:
        if not isinstance(cursor, Mapping):
            return None
        cursor = cursor.get(part)
        if cursor is None:
            if any(spec.required for spec in SECTION_FIELDS[section_path].values()):
                issues.add(".".join(section_path), "missing required section")
            return None
    if not isinstance(cursor, Mapping):
        issues.add(".".join(section_path), f"expected object, got {type(cursor).__name__}")
        return None
    return cursor


def _validate_section(
    payload: Mapping[str, object], section_path: tuple[str, ...], issues: _IssueCollector
) -> dict[str, Any]:
    fields = SECTION_FIELDS[section_path]
    nested = {path[len(section_path)] for path in SECTION_FIELDS if _is_child(section_path, path)}
    prefix = ".".join(section_path)
    out: dict[str, Any] = {}

    for key in sorted(payload):
        if key in fields or key in nested:
            continue
        issues.add(f"{prefix}.{key}", "unknown field")

    for name in sorted(fields):
        spec = fields[name]
        path = f"{prefix}.{name}"
        if name not in payload:
            if spec.required:
                issues.add(path, "missing required field")
            continue
        parsed = _coerce(payload[name], spec, path, issues)
        if parsed is not None:
            out[name] = parsed
    return out


def _coerce(value: object, spec: FieldSpec, path: str, issues: _IssueCollector) -> object | None:
    if spec.value_type == "bool":
        if isinstance(value, bool):
            return value
        issues.add(path, f"expected boolean, got {type(value).__name__}")
        return None
    if spec.value_type == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            issues.add(path, f"expected integer, got {type(value).__name__}")
            return None
        if value < 1:
            issues.add(path, "must be >= 1")
            return None
        return value

    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        if spec.required:
            issues.add(path, "must not be empty")
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    if spec.choices and parsed not in spec.choices:
        expected = ", ".join(spec.choices)
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _is_child(parent: tuple[str, ...], path: tuple[str, ...]) -> bool:
    return len(path) == len(parent) + 1 and path[: len(parent)] == parent


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if not isinstance(existing, dict):
                existing = {}
                target[key] = existing
            _merge_into(existing, value)
        else:
            target[key] = copy.deepcopy(value)


__all__ = [
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "FieldSpec",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "SECTION_FIELDS",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
