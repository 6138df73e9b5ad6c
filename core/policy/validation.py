"""Structural validation and least-privilege audit of policy statements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core import constants
from core.errors import ConfigurationError
from core.models import GetAtt, PolicyStatement, ResourceGraph, ResourceKind

ERROR = "ERROR"
WARNING = "WARNING"


@dataclass(slots=True)
class Finding:
    rule_id: str
    logical_id: str
    message: str
    severity: str = ERROR
    sid: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "resource": self.logical_id,
            "sid": self.sid,
            "severity": self.severity,
            "message": self.message,
        }


def validate_statement(statement: PolicyStatement, owner: str = "") -> None:
    """Raise ConfigurationError when a statement cannot be rendered into a valid policy."""
    label = f"{owner}/{statement.sid}" if statement.sid else owner or "statement"
    if statement.effect not in {"Allow", "Deny"}:
        raise ConfigurationError(f"{label}: effect must be Allow or Deny, got {statement.effect!r}")
    if not statement.actions:
        raise ConfigurationError(f"{label}: action list must not be empty")
    if any(not action or ":" not in action and action != "*" for action in statement.actions):
        raise ConfigurationError(f"{label}: actions must look like 'service:Action'")
    if not statement.resources:
        raise ConfigurationError(f"{label}: resource list must not be empty")
    for condition in statement.conditions:
        if condition.operator not in constants.CONDITION_OPERATORS:
            raise ConfigurationError(f"{label}: unsupported condition operator {condition.operator!r}")


def audit_graph(graph: ResourceGraph) -> list[Finding]:
    """Return least-privilege findings for every statement in the graph."""
    findings: list[Finding] = []
    paired_log_groups = _paired_log_groups(graph)

    for declaration, statement in graph.statements():
        for resource in statement.resources:
            if resource == "*":
                findings.append(
                    Finding(
                        rule_id="wildcard-resource",
                        logical_id=declaration.logical_id,
                        sid=statement.sid,
                        message="Statement grants access to every resource ('*').",
                    )
                )

        if (
            declaration.kind == ResourceKind.BUCKET_POLICY
            and "s3:PutObject" in statement.actions
            and statement.effect == "Allow"
            and statement.condition_value("StringEquals", constants.ACL_CONDITION_KEY)
            != constants.BUCKET_OWNER_FULL_CONTROL
        ):
            findings.append(
                Finding(
                    rule_id="bucket-owner-full-control",
                    logical_id=declaration.logical_id,
                    sid=statement.sid,
                    message=(
                        "s3:PutObject must require "
                        f"StringEquals {constants.ACL_CONDITION_KEY}={constants.BUCKET_OWNER_FULL_CONTROL}."
                    ),
                )
            )

        if declaration.kind == ResourceKind.ROLE and any(action.startswith("logs:") for action in statement.actions):
            expected = paired_log_groups.get(declaration.logical_id)
            if expected is None or tuple(statement.resources) != (expected,):
                findings.append(
                    Finding(
                        rule_id="log-role-scope",
                        logical_id=declaration.logical_id,
                        sid=statement.sid,
                        message="Log delivery statement must be scoped to exactly its log group ARN.",
                    )
                )

        if statement.effect == "Allow" and any(action.endswith(":*") or action == "*" for action in statement.actions):
            findings.append(
                Finding(
                    rule_id="wildcard-action",
                    logical_id=declaration.logical_id,
                    sid=statement.sid,
                    severity=WARNING,
                    message="Statement allows every action of a service.",
                )
            )

    return findings


def _paired_log_groups(graph: ResourceGraph) -> dict[str, GetAtt]:
    """Map each log delivery role to the log group ARN its trail pairs it with."""
    log_groups = {declaration.logical_id for declaration in graph.of_kind(ResourceKind.LOG_GROUP)}
    pairs: dict[str, GetAtt] = {}
    for trail in graph.of_kind(ResourceKind.TRAIL):
        role_arn = trail.properties.get("CloudWatchLogsRoleArn")
        group_arn = trail.properties.get("CloudWatchLogsLogGroupArn")
        if isinstance(role_arn, GetAtt) and isinstance(group_arn, GetAtt) and group_arn.logical_id in log_groups:
            pairs[role_arn.logical_id] = group_arn
    return pairs


def enforce(findings: list[Finding]) -> None:
    errors = [finding for finding in findings if finding.severity == ERROR]
    if errors:
        details = "; ".join(f"{item.logical_id}: {item.message}" for item in errors)
        raise ConfigurationError(f"Policy validation failed: {details}")


__all__ = ["Finding", "audit_graph", "enforce", "validate_statement", "ERROR", "WARNING"]
