"""Output helpers for the trailalert CLI."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, List

import yaml
from pydantic import BaseModel

SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
SARIF_LEVELS = {
    "ERROR": "error",
    "WARNING": "warning",
    "FAIL": "error",
    "INFO": "note",
}


def _default_serializer(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, set):
        return sorted(value)
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def render(data: Any, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(data, indent=2, default=_default_serializer)
    if fmt == "yaml":
        plain = json.loads(json.dumps(data, default=_default_serializer))
        return yaml.safe_dump(plain, sort_keys=False, default_flow_style=False)
    if fmt == "md":
        return _to_markdown(data)
    if fmt == "table":
        return _to_table(data)
    if fmt == "sarif":
        return _to_sarif(data)
    raise ValueError(f"Unsupported format: {fmt}")


def emit(data: Any, fmt: str, output_path: Path | None = None) -> None:
    rendered = render(data, fmt)
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(rendered + ("\n" if not rendered.endswith("\n") else ""), encoding="utf-8")
    else:
        print(rendered.rstrip("\n"))


def _columns(rows: List[dict[str, Any]]) -> List[str]:
    columns: List[str] = []
    for row in rows:
        columns.extend(key for key in row if key not in columns)
    return columns


def _cell(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if value is None:
        return "-"
    return str(value)


def _require_rows(data: Any, fmt: str) -> List[dict[str, Any]]:
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise ValueError(f"{fmt} output expects a list of rows")
    return data


def _to_markdown(data: Any) -> str:
    rows = _require_rows(data, "md")
    if not rows:
        return "_No rows._"
    columns = _columns(rows)
    lines = [
        "| " + " | ".join(columns) + " |",
        "|" + "|".join("---:" if column == "order" else "---" for column in columns) + "|",
    ]
    for row in rows:
        cells = (_cell(row.get(column)).replace("|", "\\|") for column in columns)
        lines.append("| " + " | ".join(cells) + " |")
    if "passed" in columns:
        passed = sum(1 for row in rows if row.get("passed"))
        lines.extend(["", f"**{passed}/{len(rows)} checks passed**"])
    return "\n".join(lines)


def _to_table(data: Any) -> str:
    rows = _require_rows(data, "table")
    if not rows:
        return "(no rows)"
    columns = _columns(rows)
    cells = [[_cell(row.get(column)) for column in columns] for row in rows]
    widths = [max(len(column), *(len(values[index]) for values in cells)) for index, column in enumerate(columns)]

    def line(values: List[str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths)).rstrip()

    return "\n".join([line(columns), line(["=" * width for width in widths]), *(line(values) for values in cells)])


def _to_sarif(data: Any) -> str:
    results: List[dict[str, Any]] = []

    def add_result(rule_id: str, message: str, severity: str, properties: dict[str, Any] | None = None) -> None:
        result: dict[str, Any] = {
            "ruleId": rule_id or "result",
            "level": SARIF_LEVELS.get(severity.upper(), "note"),
            "message": {"text": message},
        }
        if properties:
            result["properties"] = properties
        results.append(result)

    if isinstance(data, dict):
        for finding in data.get("findings") or []:
            add_result(finding.get("ruleId", "finding"), finding.get("message", ""), finding.get("severity", "info"), finding)
        for row in data.get("checks") or []:
            if row.get("passed"):
                continue
            message = f"{row.get('check')}: expected {row.get('expected')}, got {row.get('actual')}"
            add_result("access-check", message, "fail", row)

    sarif = {
        "version": "2.1.0",
        "$schema": SARIF_SCHEMA,
        "runs": [
            {
                "tool": {"driver": {"name": "trailalert"}},
                "results": results,
            }
        ],
    }
    return json.dumps(sarif, indent=2)


__all__ = ["emit", "render"]
