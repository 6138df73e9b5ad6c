"""Access matrix the log delivery service needs, and must not exceed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from core import constants
from core.models import GetAtt, Ref, ResourceGraph, ResourceKind
from core.policy.simulator import PolicySimulator, SimulationCase

ACCOUNT_PLACEHOLDER = "${AWS::AccountId}"
OTHER_PRINCIPAL = "ec2.amazonaws.com"


@dataclass
class ExpectedCase:
    owner: str
    case: SimulationCase
    expected: str
    description: str


def expected_cases(graph: ResourceGraph, account_id: str | None = None) -> list[ExpectedCase]:
    expectations: list[ExpectedCase] = []
    for trail in graph.of_kind(ResourceKind.TRAIL):
        expectations.extend(_bucket_cases(graph, trail.properties, account_id))
        expectations.extend(_log_role_cases(trail.properties))
    return expectations


def run_checks(
    graph: ResourceGraph,
    *,
    account_id: str | None = None,
    simulator: PolicySimulator | None = None,
) -> list[dict[str, Any]]:
    simulator = simulator or PolicySimulator()
    rows: list[dict[str, Any]] = []
    for item in expected_cases(graph, account_id):
        statements = list(graph.get(item.owner).statements) if item.owner in graph.logical_ids() else []
        actual = simulator.decide(statements, item.case)
        rows.append(
            {
                "check": item.description,
                "resource": item.owner,
                "action": item.case.action,
                "target": item.case.resource,
                "expected": item.expected,
                "actual": actual,
                "passed": actual == item.expected,
            }
        )
    return rows


def _bucket_cases(graph: ResourceGraph, trail: Mapping[str, Any], account_id: str | None) -> list[ExpectedCase]:
    bucket_ref = trail.get("S3BucketName")
    if not isinstance(bucket_ref, Ref):
        return []
    policies = graph.attachments(bucket_ref.logical_id)
    owner = policies[0].logical_id if policies else bucket_ref.logical_id
    bucket_arn = str(GetAtt(logical_id=bucket_ref.logical_id))
    prefix = trail.get("S3KeyPrefix")
    account = account_id or ACCOUNT_PLACEHOLDER
    delivery_key = f"AWSLogs/{account}/CloudTrail/us-east-1/2024/01/01/{account}_CloudTrail_us-east-1.json.gz"
    object_arn = f"{bucket_arn}/{prefix}/{delivery_key}" if prefix else f"{bucket_arn}/{delivery_key}"
    acl = {constants.ACL_CONDITION_KEY: constants.BUCKET_OWNER_FULL_CONTROL}
    service = constants.CLOUDTRAIL_PRINCIPAL

    def case(action: str, resource: str, expected: str, description: str, principal: str = service, context: dict[str, Any] | None = None) -> ExpectedCase:
        return ExpectedCase(owner, SimulationCase(action, resource, principal, context), expected, description)

    return [
        case("s3:GetBucketAcl", bucket_arn, "Allow", "trail can read bucket ACL"),
        case("s3:PutObject", object_arn, "Allow", "trail can deliver log files", context=acl),
        case("s3:PutObject", object_arn, "Deny", "delivery without bucket-owner-full-control is refused"),
        case("s3:PutObject", f"{bucket_arn}/elsewhere/object.json", "Deny", "delivery outside the prefix is refused", context=acl),
        case("s3:DeleteObject", object_arn, "Deny", "trail cannot delete log files"),
        case("s3:GetBucketAcl", bucket_arn, "Deny", "other services cannot read bucket ACL", principal=OTHER_PRINCIPAL),
    ]


def _log_role_cases(trail: Mapping[str, Any]) -> list[ExpectedCase]:
    role_arn = trail.get("CloudWatchLogsRoleArn")
    group_arn = trail.get("CloudWatchLogsLogGroupArn")
    if not isinstance(role_arn, GetAtt) or not isinstance(group_arn, GetAtt):
        return []
    owner = role_arn.logical_id
    group = str(group_arn)
    other_group = str(GetAtt(logical_id="UnrelatedLogGroup"))
    return [
        ExpectedCase(owner, SimulationCase("logs:CreateLogStream", group), "Allow", "role can create log streams"),
        ExpectedCase(owner, SimulationCase("logs:PutLogEvents", group), "Allow", "role can write log events"),
        ExpectedCase(owner, SimulationCase("logs:PutLogEvents", other_group), "Deny", "role cannot write to other log groups"),
        ExpectedCase(owner, SimulationCase("logs:DeleteLogGroup", group), "Deny", "role cannot delete its log group"),
    ]


__all__ = ["ExpectedCase", "expected_cases", "run_checks"]
