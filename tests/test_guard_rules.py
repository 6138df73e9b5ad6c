import json
import shutil
import subprocess
from pathlib import Path

import pytest

from core.builder import build
from core.synth.template import render_template

GUARD_BIN = shutil.which("cfn-guard")
RULES = Path(__file__).resolve().parents[1] / "policy-as-code/guard/rules.guard"


def _validate(template: dict, tmp_path: Path) -> subprocess.CompletedProcess:
    data = tmp_path / "template.json"
    data.write_text(json.dumps(template), encoding="utf-8")
    return subprocess.run(
        [GUARD_BIN, "validate", "--rules", str(RULES), "--data", str(data)],
        capture_output=True,
        text=True,
    )


@pytest.mark.skipif(GUARD_BIN is None, reason="cfn-guard not installed")
def test_guard_project_template_passes(tmp_path: Path) -> None:
    result = _validate(render_template(build("CloudTrailAlert")), tmp_path)
    assert result.returncode == 0, result.stderr


@pytest.mark.skipif(GUARD_BIN is None, reason="cfn-guard not installed")
@pytest.mark.parametrize(
    "mutate",
    [
        lambda resources: resources["CloudTrailPolicy"]["Properties"]["PolicyDocument"]["Statement"][1].pop("Condition"),
        lambda resources: resources["Trail"]["Properties"].update({"IsLogging": False}),
        lambda resources: resources["CloudTrailLogGroup"]["Properties"].pop("RetentionInDays"),
    ],
)
def test_guard_negative_cases_fail(tmp_path: Path, mutate) -> None:
    template = render_template(build("CloudTrailAlert"))
    mutate(template["Resources"])
    result = _validate(template, tmp_path)
    assert result.returncode != 0
