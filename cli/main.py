"""Command line interface for building and synthesizing the trail stack."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from cli import config, output
from core.builder import StackBuilder
from core.config import Variant
from core.environment import resolve_account
from core.errors import TrailAlertError
from core.graph import depends_on, topological_order
from core.models import ResourceGraph
from core.policy.checks import run_checks
from core.policy.validation import audit_graph
from core.synth.template import render_template, validate_remote


class CLIError(Exception):
    def __init__(self, message: str, exit_code: int = 2) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trailalert", description="CloudTrail alert stack builder")
    parser.add_argument("--config", type=Path, default=Path("trailalert.yml"), help="Path to CLI configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log build steps to stderr")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_stack_options(cmd: argparse.ArgumentParser) -> None:
        cmd.add_argument("--stack-id")
        cmd.add_argument("--variant", choices=[item.value for item in Variant])
        cmd.add_argument("--account-id")
        cmd.add_argument("--resolve-account", action="store_true", help="Look up the account id via STS")
        cmd.add_argument("--output", type=Path)

    # synth ------------------------------------------------------------------
    synth_cmd = subparsers.add_parser("synth", help="Render the CloudFormation template")
    add_stack_options(synth_cmd)
    synth_cmd.add_argument("--format", choices=["json", "yaml"], help="Output format override")
    synth_cmd.add_argument("--validate", action="store_true", help="Validate the template with CloudFormation")

    # graph ------------------------------------------------------------------
    graph_cmd = subparsers.add_parser("graph", help="Show declarations, edges and creation order")
    add_stack_options(graph_cmd)
    graph_cmd.add_argument("--format", choices=["json", "md", "table"], help="Output format override")

    # check ------------------------------------------------------------------
    check_cmd = subparsers.add_parser("check", help="Audit policies and simulate the delivery access matrix")
    add_stack_options(check_cmd)
    check_cmd.add_argument("--format", choices=["json", "md", "table", "sarif"], help="Output format override")

    return parser


def app(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = config.load_settings(args.config)
        account = resolve_account(args.account_id or settings.stack.account_id, lookup=args.resolve_account)
        merged = settings.merge_cli(
            getattr(args, "format", None),
            stack_id=args.stack_id,
            variant=args.variant,
            account_id=account,
        )

        if args.command == "synth":
            return _cmd_synth(args, merged)
        if args.command == "graph":
            return _cmd_graph(args, merged)
        if args.command == "check":
            return _cmd_check(args, merged)
    except (CLIError, TrailAlertError) as exc:
        print(exc, file=sys.stderr)
        return exc.exit_code
    except Exception as exc:  # pragma: no cover - unexpected errors bubble up
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


# ---------------------------------------------------------------------------
# Command implementations


def _cmd_synth(args: argparse.Namespace, settings: config.Settings) -> int:
    fmt = settings.default_format
    if fmt not in {"json", "yaml"}:
        raise CLIError(f"synth supports json or yaml output, not {fmt!r}")
    graph = StackBuilder(settings.stack).build()
    template = render_template(graph, description=settings.description)
    if args.validate:
        validate_remote(template)
    output.emit(template, fmt, output_path=args.output)
    return 0


def _cmd_graph(args: argparse.Namespace, settings: config.Settings) -> int:
    graph = StackBuilder(settings.stack).build()
    fmt = settings.default_format if settings.default_format in {"json", "md", "table"} else "json"
    if fmt == "json":
        payload: Any = _graph_payload(graph)
    else:
        payload = _graph_rows(graph)
    output.emit(payload, fmt, output_path=args.output)
    return 0


def _cmd_check(args: argparse.Namespace, settings: config.Settings) -> int:
    graph = StackBuilder(settings.stack).build()
    findings = [finding.as_dict() for finding in audit_graph(graph)]
    checks = run_checks(graph, account_id=settings.stack.account_id)
    fmt = settings.default_format if settings.default_format in {"json", "md", "table", "sarif"} else "json"
    payload: dict[str, Any] = {"stack": graph.stack_id, "findings": findings, "checks": checks}
    if fmt in {"md", "table"}:
        output.emit(checks, fmt, output_path=args.output)
    else:
        output.emit(payload, fmt, output_path=args.output)

    failed = [row for row in checks if not row["passed"]]
    if failed or any(item["severity"] == "ERROR" for item in findings):
        return 3
    return 0


# ---------------------------------------------------------------------------
# Helpers


def _graph_payload(graph: ResourceGraph) -> dict[str, Any]:
    return {
        "stack": graph.stack_id,
        "declarations": [
            {"logicalId": item.logical_id, "kind": item.kind.value, "attachedTo": item.attached_to}
            for item in graph.declarations
        ],
        "edges": [{"dependent": edge.dependent, "dependency": edge.dependency} for edge in graph.edges],
        "order": topological_order(graph),
    }


def _graph_rows(graph: ResourceGraph) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for position, logical_id in enumerate(topological_order(graph), start=1):
        declaration = graph.get(logical_id)
        rows.append(
            {
                "order": position,
                "logicalId": logical_id,
                "kind": declaration.kind.value,
                "dependsOn": ", ".join(depends_on(graph, logical_id)) or "-",
            }
        )
    return rows


def main() -> None:
    raise SystemExit(app())


if __name__ == "__main__":
    main()
