"""Command-line interface router for xacct-pipeline."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Final

from xacct_pipeline.config import (
    CompositionConfig,
    dump_effective_config,
    load_config,
)
from xacct_pipeline.domain.boundary import BoundaryKind
from xacct_pipeline.graph.backend import DryRunBackend
from xacct_pipeline.graph.emitter import ResourceGraph, emit
from xacct_pipeline.observability.logging import bind_run_context, configure_logging
from xacct_pipeline.topology.composer import compose
from xacct_pipeline.topology.handshake import run_handshake
from xacct_pipeline.topology.registry import resolve_all

BOUNDARY_CHOICES: Final[tuple[str, ...]] = ("all", "source", "consumer")
FORMAT_CHOICES: Final[tuple[str, ...]] = ("json", "yaml")


class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    def __init__(self, message: str, exit_code: int = 2) -> None:
        self.message = message
        self.exit_code = exit_code
        super().__init__(message)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="xacct",
        description=(
            "xacct-pipeline — cross-account trust and artifact-exchange composer.\n\n"
            "Common workflows:\n"
            "  xacct capabilities          Show which cross-boundary capabilities are wired\n"
            "  xacct compose               Emit the resource graph for both boundaries\n"
            "  xacct handshake             Dry-run the two-pass provisioning handshake\n"
            "  xacct config                Show the effective configuration\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to xacct TOML config (default: ./xacct.toml if present).",
    )
    common.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="SECTION.FIELD=VALUE",
        help="Override a config value, e.g. consumer.remote.source_account_id=111111111111.",
    )
    common.add_argument(
        "--strict",
        action="store_true",
        default=False,
        help="Fail on partially configured capabilities instead of omitting them.",
    )
    common.add_argument(
        "--log-level",
        default=None,
        help="Log level override (DEBUG, INFO, WARNING, ERROR).",
    )
    common.add_argument(
        "--log-format",
        choices=("json", "console"),
        default=None,
        help="Log rendering override.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # capabilities --------------------------------------------------------
    capabilities_parser = subparsers.add_parser(
        "capabilities",
        parents=[common],
        help="Resolve cross-boundary capabilities from configured identifiers",
    )
    capabilities_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    capabilities_parser.set_defaults(handler=_cmd_capabilities)

    # compose -------------------------------------------------------------
    compose_parser = subparsers.add_parser(
        "compose",
        parents=[common],
        help="Compose boundaries and emit the declarative resource graph",
        description=(
            "Compose one or both boundaries and print the resource graph.\n\n"
            "Examples:\n"
            "  xacct compose --boundary consumer\n"
            "  xacct compose --format yaml --output graph.yaml\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    compose_parser.add_argument("--boundary", choices=BOUNDARY_CHOICES, default="all")
    compose_parser.add_argument("--format", choices=FORMAT_CHOICES, default="json")
    compose_parser.add_argument("--output", default=None, help="Write the graph to a file")
    compose_parser.set_defaults(handler=_cmd_compose)

    # handshake -----------------------------------------------------------
    handshake_parser = subparsers.add_parser(
        "handshake",
        parents=[common],
        help="Dry-run the consumer -> source -> consumer provisioning passes",
    )
    handshake_parser.add_argument("--format", choices=FORMAT_CHOICES, default="json")
    handshake_parser.add_argument(
        "--summary",
        action="store_true",
        help="Print per-pass outputs instead of the final graph",
    )
    handshake_parser.set_defaults(handler=_cmd_handshake)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show the effective configuration after all overrides",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        config = _load_effective_config(namespace)
        observability = config["observability"]
        configure_logging(observability["log_level"], observability["log_format"])
        with bind_run_context(command=namespace.command):
            result = handler(namespace, config)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_capabilities(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    composition = CompositionConfig.from_mapping(config)
    resolutions = resolve_all(composition)
    payload = {kind.value: resolutions[kind].to_dict() for kind in sorted(resolutions)}

    if composition.strict:
        for kind in sorted(resolutions):
            resolutions[kind].require_complete()

    if getattr(args, "json", False):
        _emit_json(payload)
        return 0

    for kind in sorted(resolutions):
        resolution = resolutions[kind]
        enabled = ", ".join(sorted(item.value for item in resolution.enabled)) or "(none)"
        print(f"{kind.value}: {enabled}")
        for issue in resolution.issues:
            print(f"  incomplete: {issue}")
    return 0


def _cmd_compose(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    composition = CompositionConfig.from_mapping(config)
    graph = emit(compose(composition, _selected_kinds(args.boundary)))
    _write_graph(graph, args.format, getattr(args, "output", None))
    return 0


def _cmd_handshake(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    composition = CompositionConfig.from_mapping(config)
    result = run_handshake(composition, DryRunBackend())

    if args.summary:
        _emit_json(
            {
                "passes": [
                    {
                        "boundary": item.composed.name,
                        "kind": item.kind.value,
                        "fingerprint": item.graph.fingerprint,
                        "outputs": dict(item.outputs),
                    }
                    for item in result.passes
                ]
            }
        )
        return 0

    _write_graph(result.final_graph, args.format, None)
    return 0


def _cmd_config(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    del args
    print(dump_effective_config(config))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_effective_config(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for item in getattr(args, "overrides", []) or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise CLIError(f"invalid --set value {item!r}; expected SECTION.FIELD=VALUE")
        overrides[key.strip()] = value
    if getattr(args, "strict", False):
        overrides["composition.strict"] = True
    if args.log_level is not None:
        overrides["observability.log_level"] = args.log_level.upper()
    if args.log_format is not None:
        overrides["observability.log_format"] = args.log_format

    return load_config(args.config_path, cli_overrides=overrides)


def _selected_kinds(choice: str) -> tuple[BoundaryKind, ...]:
    if choice == "all":
        return (BoundaryKind.SOURCE, BoundaryKind.CONSUMER)
    return (BoundaryKind(choice),)


def _write_graph(graph: ResourceGraph, fmt: str, output: str | None) -> None:
    rendered = graph.to_yaml() if fmt == "yaml" else graph.to_json(indent=2) + "\n"
    if output is None:
        sys.stdout.write(rendered)
        return
    path = Path(output).expanduser()
    try:
        path.write_text(rendered, encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"unable to write graph to {path}: {exc}", exit_code=5) from exc
    print(f"wrote {path} ({graph.fingerprint})")


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


__all__ = ["CLIError", "build_parser", "run_cli"]
