"""Least-privilege audit of the declared policy statements."""

from __future__ import annotations

import pytest

from core import constants
from core.builder import build
from core.errors import ConfigurationError
from core.models import Condition, GetAtt, PolicyStatement
from core.policy.validation import audit_graph, enforce, validate_statement


def _replace_statements(graph, logical_id, transform):
    declarations = []
    for declaration in graph.declarations:
        if declaration.logical_id == logical_id:
            statements = tuple(transform(statement) for statement in declaration.statements)
            declaration = declaration.model_copy(update={"statements": statements})
        declarations.append(declaration)
    return graph.model_copy(update={"declarations": tuple(declarations)})


def test_built_graph_has_no_findings():
    assert audit_graph(build("CloudTrailAlert")) == []


def test_missing_bucket_owner_condition_fails_validation():
    graph = _replace_statements(
        build("CloudTrailAlert"),
        constants.BUCKET_POLICY_ID,
        lambda statement: statement.model_copy(update={"conditions": ()}),
    )
    findings = audit_graph(graph)
    assert [finding.rule_id for finding in findings] == ["bucket-owner-full-control"]
    assert findings[0].sid == "AWSCloudTrailWrite"
    with pytest.raises(ConfigurationError, match="bucket-owner-full-control"):
        enforce(findings)


def test_wrong_acl_value_fails_validation():
    wrong = Condition(operator="StringEquals", key="s3:x-amz-acl", value="public-read")
    graph = _replace_statements(
        build("CloudTrailAlert"),
        constants.BUCKET_POLICY_ID,
        lambda statement: statement.model_copy(update={"conditions": (wrong,)}) if statement.conditions else statement,
    )
    assert any(finding.rule_id == "bucket-owner-full-control" for finding in audit_graph(graph))


def test_wildcard_log_role_scope_fails_validation():
    graph = _replace_statements(
        build("CloudTrailAlert"),
        constants.LOG_ROLE_ID,
        lambda statement: statement.model_copy(update={"resources": ("*",)}),
    )
    rules = {finding.rule_id for finding in audit_graph(graph)}
    assert rules == {"wildcard-resource", "log-role-scope"}


def test_log_role_scoped_to_foreign_log_group_fails_validation():
    graph = _replace_statements(
        build("CloudTrailAlert"),
        constants.LOG_ROLE_ID,
        lambda statement: statement.model_copy(update={"resources": (GetAtt(logical_id="CloudTrail"),)}),
    )
    assert [finding.rule_id for finding in audit_graph(graph)] == ["log-role-scope"]


def test_service_wildcard_action_is_a_warning():
    graph = _replace_statements(
        build("CloudTrailAlert"),
        constants.LOG_ROLE_ID,
        lambda statement: statement.model_copy(update={"actions": ("logs:*",)}),
    )
    findings = audit_graph(graph)
    assert [(finding.rule_id, finding.severity) for finding in findings] == [("wildcard-action", "WARNING")]
    enforce(findings)


@pytest.mark.parametrize(
    "statement, message",
    [
        (PolicyStatement(actions=(), resources=("*",)), "action list"),
        (PolicyStatement(actions=("s3:GetObject",), resources=()), "resource list"),
        (PolicyStatement(effect="Maybe", actions=("s3:GetObject",), resources=("*",)), "effect"),
        (PolicyStatement(actions=("GetObject",), resources=("*",)), "service:Action"),
        (
            PolicyStatement(
                actions=("s3:GetObject",),
                resources=("*",),
                conditions=(Condition(operator="NumericEquals", key="k", value="1"),),
            ),
            "operator",
        ),
    ],
)
def test_validate_statement_rejects_malformed(statement, message):
    with pytest.raises(ConfigurationError, match=message):
        validate_statement(statement, owner="Role")
