"""
xacct-pipeline — CLI smoke contracts

File: tests/integration/test_cli_smoke.py
Last updated: 2026-10-19

Purpose
- Enforce CLI exit codes and output shape for capabilities/compose/handshake/config.
- Verify `python -m xacct_pipeline` runs as a subprocess.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
import yaml
from conftest import CONSUMER_ACCOUNT, REGION, SOURCE_ACCOUNT, SOURCE_ROLE_ARN

from xacct_pipeline.config.loader import env_bindings
from xacct_pipeline.main import ExitCode, cli_entrypoint

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

_ACCOUNTS = (
    "--set",
    f"source.account_id={SOURCE_ACCOUNT}",
    "--set",
    f"source.region={REGION}",
    "--set",
    f"consumer.account_id={CONSUMER_ACCOUNT}",
    "--set",
    f"consumer.region={REGION}",
)


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    monkeypatch.chdir(tmp_path)
    for name in env_bindings():
        monkeypatch.delenv(name, raising=False)
    yield tmp_path


def _write(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def _run_module(cwd: Path, *args: str) -> subprocess.CompletedProcess[str]:
    env = {key: value for key, value in os.environ.items() if not key.startswith("XACCT_")}
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    return subprocess.run(
        [sys.executable, "-m", "xacct_pipeline", *args],
        cwd=cwd,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def test_compose_prints_graph_for_both_boundaries(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_entrypoint(["compose"])

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    graph = json.loads(captured.out)
    assert [item["name"] for item in graph["boundaries"]] == ["consumer", "source"]


def test_compose_single_boundary_as_yaml(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_entrypoint(["compose", "--boundary", "consumer", "--format", "yaml"])

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    graph = yaml.safe_load(captured.out)
    assert [item["name"] for item in graph["boundaries"]] == ["consumer"]


def test_compose_writes_output_file(
    _isolated_cwd: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    target = _isolated_cwd / "graph.json"

    exit_code = cli_entrypoint(["compose", "--output", str(target)])

    assert exit_code == ExitCode.SUCCESS
    assert json.loads(target.read_text(encoding="utf-8"))["schema_version"] == 1
    assert capsys.readouterr().out.startswith(f"wrote {target}")


def test_capabilities_json_reflects_overrides(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_entrypoint(
        [
            "capabilities",
            "--json",
            "--set",
            f"consumer.remote.source_account_id={SOURCE_ACCOUNT}",
        ]
    )

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    payload = json.loads(captured.out)
    assert payload["consumer"]["enabled"] == ["artifact_sharing"]
    assert payload["source"]["enabled"] == []


def test_strict_mode_fails_on_partial_configuration(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_entrypoint(
        ["compose", "--strict", "--set", f"source.remote.consumer_account_id={CONSUMER_ACCOUNT}"]
    )

    captured = capsys.readouterr()
    assert exit_code == ExitCode.CONFIG_ERROR
    assert "repository_sharing disabled" in captured.err
    assert captured.out == ""


def test_partial_configuration_without_strict_still_composes(
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = cli_entrypoint(
        ["compose", "--set", f"source.remote.consumer_account_id={CONSUMER_ACCOUNT}"]
    )

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    source = next(
        item for item in json.loads(captured.out)["boundaries"] if item["name"] == "source"
    )
    assert "CodeCommitAccessRole" not in {item["logical_id"] for item in source["roles"]}


def test_handshake_without_accounts_is_a_config_error(
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = cli_entrypoint(["handshake"])

    assert exit_code == ExitCode.CONFIG_ERROR
    assert "account_id for both boundaries" in capsys.readouterr().err


def test_handshake_summary_lists_three_passes(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_entrypoint(["handshake", "--summary", *_ACCOUNTS])

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    passes = json.loads(captured.out)["passes"]
    assert [item["boundary"] for item in passes] == ["consumer", "source", "consumer"]
    assert "CodeCommitAccessRoleArn" in passes[1]["outputs"]


def test_handshake_prints_final_graph(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_entrypoint(["handshake", *_ACCOUNTS])

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    graph = json.loads(captured.out)
    consumer = next(item for item in graph["boundaries"] if item["name"] == "consumer")
    assert consumer["capabilities"]["enabled"] == ["artifact_sharing", "remote_source"]


def test_missing_config_file_is_a_config_error(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_entrypoint(["compose", "--config", "does-not-exist.toml"])

    assert exit_code == ExitCode.CONFIG_ERROR
    assert "config file not found" in capsys.readouterr().err


def test_invalid_set_override_is_a_config_error(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_entrypoint(["config", "--set", "consumer.branch"])

    assert exit_code == ExitCode.CONFIG_ERROR
    assert "expected SECTION.FIELD=VALUE" in capsys.readouterr().err


def test_config_file_and_env_are_merged(
    _isolated_cwd: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _write(_isolated_cwd / "xacct.toml", '[consumer]\nbranch = "release"\n')
    monkeypatch.setenv("XACCT_SOURCE_BRANCH", "trunk")

    exit_code = cli_entrypoint(["config"])

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    effective = json.loads(captured.out)
    assert effective["consumer"]["branch"] == "release"
    assert effective["source"]["branch"] == "trunk"


def test_unknown_command_exits_with_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint(["teardown"]) == 2
    assert "invalid choice" in capsys.readouterr().err


def test_module_entrypoint_runs_as_subprocess(_isolated_cwd: Path) -> None:
    completed = _run_module(_isolated_cwd, "capabilities", "--log-level", "ERROR")

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout.splitlines() == ["consumer: (none)", "source: (none)"]


def test_set_coerces_boolean_fields(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_entrypoint(["config", "--set", "composition.strict=true"])

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    assert json.loads(captured.out)["composition"]["strict"] is True


def test_set_strict_through_override_fails_partial_compose(
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = cli_entrypoint(
        [
            "compose",
            "--set",
            "composition.strict=1",
            "--set",
            f"source.remote.consumer_account_id={CONSUMER_ACCOUNT}",
        ]
    )

    assert exit_code == ExitCode.CONFIG_ERROR
    assert "repository_sharing disabled" in capsys.readouterr().err


def test_strict_handshake_rejects_partial_remote_source(
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = cli_entrypoint(
        [
            "handshake",
            "--strict",
            *_ACCOUNTS,
            "--set",
            f"consumer.remote.source_role_arn={SOURCE_ROLE_ARN}",
        ]
    )

    captured = capsys.readouterr()
    assert exit_code == ExitCode.CONFIG_ERROR
    assert "remote_source disabled: missing source_repository_arn" in captured.err
    assert captured.out == ""


def test_self_sharing_consumer_is_a_composition_error(
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = cli_entrypoint(
        [
            "compose",
            "--boundary",
            "consumer",
            "--set",
            f"consumer.account_id={CONSUMER_ACCOUNT}",
            "--set",
            f"consumer.remote.source_account_id={CONSUMER_ACCOUNT}",
        ]
    )

    assert exit_code == ExitCode.COMPOSITION_ERROR
    assert "different boundary" in capsys.readouterr().err
