"""Executable CLI entrypoint for ``xacct_pipeline``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    """Deterministic process exit-code contract."""

    SUCCESS = 0
    CONFIG_ERROR = 2
    COMPOSITION_ERROR = 3
    PROVISIONING_ERROR = 4
    INTERNAL_ERROR = 5


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m xacct_pipeline`` and script shims."""

    try:
        from xacct_pipeline.ui.cli import run_cli

        return _normalize_exit_code(run_cli(argv))
    except SystemExit as exc:
        return _normalize_exit_code(exc.code)
    except Exception as exc:  # noqa: BLE001 - CLI boundary normalization.
        exit_code = _route_exception(exc)
        _emit_failure(exc, exit_code)
        return int(exit_code)


def _normalize_exit_code(raw_code: object) -> int:
    if isinstance(raw_code, int) and raw_code in {int(item) for item in ExitCode}:
        return raw_code
    if raw_code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw_code, str) and raw_code.strip():
        _write_stderr(raw_code.strip())
    return int(ExitCode.INTERNAL_ERROR)


def _route_exception(exc: BaseException) -> ExitCode:
    from xacct_pipeline.config.loader import ConfigLoadError
    from xacct_pipeline.config.schema import ConfigValidationError
    from xacct_pipeline.graph.backend import ProvisioningError
    from xacct_pipeline.graph.emitter import DanglingReferenceError
    from xacct_pipeline.policy.statements import PolicyConflictError
    from xacct_pipeline.topology.handshake import HandshakeError
    from xacct_pipeline.topology.pipeline import PipelineWiringError
    from xacct_pipeline.topology.registry import ConfigurationIncompleteError

    composition_errors = (PolicyConflictError, PipelineWiringError, DanglingReferenceError)
    config_errors = (
        ConfigLoadError,
        ConfigValidationError,
        ConfigurationIncompleteError,
        HandshakeError,
    )

    for item in _iter_exception_chain(exc):
        if isinstance(item, ProvisioningError):
            return ExitCode.PROVISIONING_ERROR
        if isinstance(item, composition_errors):
            return ExitCode.COMPOSITION_ERROR
        if isinstance(item, config_errors):
            return ExitCode.CONFIG_ERROR
    for item in _iter_exception_chain(exc):
        if isinstance(item, (FileNotFoundError, PermissionError, ValueError)):
            return ExitCode.CONFIG_ERROR
    return ExitCode.INTERNAL_ERROR


def _iter_exception_chain(exc: BaseException) -> list[BaseException]:
    seen: set[int] = set()
    items: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None:
        marker = id(current)
        if marker in seen:
            break
        seen.add(marker)
        items.append(current)
        if current.__cause__ is not None:
            current = current.__cause__
            continue
        if current.__context__ is not None and not current.__suppress_context__:
            current = current.__context__
            continue
        break
    return items


def _emit_failure(exc: BaseException, exit_code: ExitCode) -> None:
    if exit_code is ExitCode.INTERNAL_ERROR:
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        return
    _write_stderr(f"error: {str(exc).strip() or exc.__class__.__name__}")


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint"]
