"""CLI behaviour for synth, graph and check."""

from __future__ import annotations

import json

import pytest
import yaml

from cli.main import app as cli_app


@pytest.fixture(autouse=True)
def _isolate(monkeypatch, tmp_path):
    monkeypatch.delenv("CDK_DEFAULT_ACCOUNT", raising=False)
    monkeypatch.delenv("AWS_ACCOUNT_ID", raising=False)
    monkeypatch.chdir(tmp_path)


def test_cli_synth_writes_template(tmp_path):
    out = tmp_path / "out" / "template.json"
    exit_code = cli_app(["synth", "--output", str(out)])
    assert exit_code == 0
    template = json.loads(out.read_text(encoding="utf-8"))
    assert "Trail" in template["Resources"]
    assert template["Resources"]["ResourceDeletionAlarm"]["Properties"]["Threshold"] == 1


def test_cli_synth_yaml_queue_variant(tmp_path):
    out = tmp_path / "template.yaml"
    exit_code = cli_app(
        ["synth", "--variant", "queue", "--account-id", "111111111111", "--format", "yaml", "--output", str(out)]
    )
    assert exit_code == 0
    resources = yaml.safe_load(out.read_text(encoding="utf-8"))["Resources"]
    assert resources["TrailReadyQueue"]["DependsOn"] == ["Trail"]


def test_cli_queue_variant_without_account_fails(capsys):
    exit_code = cli_app(["synth", "--variant", "queue"])
    assert exit_code == 2
    assert "account_id" in capsys.readouterr().err


def test_cli_config_file_errors_exit_with_configuration_code(tmp_path, capsys):
    config_path = tmp_path / "trailalert.yml"
    config_path.write_text("stack:\n  log_role_actions: []\n", encoding="utf-8")
    exit_code = cli_app(["--config", str(config_path), "synth"])
    assert exit_code == 2
    assert "action list" in capsys.readouterr().err


def test_cli_invalid_account_rejected(capsys):
    assert cli_app(["synth", "--account-id", "42"]) == 2
    assert "12 digits" in capsys.readouterr().err


def test_cli_graph_json(capsys):
    assert cli_app(["graph", "--stack-id", "Audit"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["stack"] == "Audit"
    assert {"dependent": "Trail", "dependency": "CloudTrail"} in payload["edges"]
    assert payload["order"].index("CloudTrailLogGroup") < payload["order"].index("Trail")


def test_cli_graph_table(capsys):
    assert cli_app(["graph", "--format", "table"]) == 0
    out = capsys.readouterr().out
    assert "logicalId" in out
    assert "ResourceDeletionEventFilter" in out


def test_cli_check_passes(tmp_path):
    out = tmp_path / "check.json"
    assert cli_app(["check", "--output", str(out)]) == 0
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["findings"] == []
    assert all(row["passed"] for row in payload["checks"])


def test_cli_check_sarif_has_no_results_when_clean(capsys):
    assert cli_app(["check", "--variant", "queue", "--account-id", "111111111111", "--format", "sarif"]) == 0
    sarif = json.loads(capsys.readouterr().out)
    assert sarif["runs"][0]["results"] == []
