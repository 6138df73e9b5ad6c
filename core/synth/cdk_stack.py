"""AWS CDK stack materializing a resource graph as CDK constructs."""

from __future__ import annotations

import logging
from typing import Any

from aws_cdk import Duration, Fn, Stack
from aws_cdk import aws_cloudtrail as cloudtrail
from aws_cdk import aws_cloudwatch as cloudwatch
from aws_cdk import aws_iam as iam
from aws_cdk import aws_logs as logs
from aws_cdk import aws_s3 as s3
from aws_cdk import aws_sqs as sqs
from constructs import Construct

from core.errors import SynthesisError
from core.graph import topological_order, validate_graph
from core.models import GetAtt, Join, PolicyStatement, Ref, ResourceDeclaration, ResourceGraph, ResourceKind

logger = logging.getLogger(__name__)

RETENTION_NAMES = {
    1: "ONE_DAY",
    3: "THREE_DAYS",
    5: "FIVE_DAYS",
    7: "ONE_WEEK",
    14: "TWO_WEEKS",
    30: "ONE_MONTH",
    60: "TWO_MONTHS",
    90: "THREE_MONTHS",
    120: "FOUR_MONTHS",
    150: "FIVE_MONTHS",
    180: "SIX_MONTHS",
    365: "ONE_YEAR",
    400: "THIRTEEN_MONTHS",
    545: "EIGHTEEN_MONTHS",
    731: "TWO_YEARS",
    1096: "THREE_YEARS",
    1827: "FIVE_YEARS",
    2192: "SIX_YEARS",
    2557: "SEVEN_YEARS",
    2922: "EIGHT_YEARS",
    3288: "NINE_YEARS",
    3653: "TEN_YEARS",
}


class TrailAlertStack(Stack):
    """Instantiate one CDK construct per declaration and replay the graph's edges."""

    def __init__(self, scope: Construct, construct_id: str, graph: ResourceGraph, **kwargs) -> None:
        validate_graph(graph)
        super().__init__(scope, construct_id, **kwargs)
        self.graph = graph
        self.resources: dict[str, Any] = {}

        for logical_id in topological_order(graph):
            declaration = graph.get(logical_id)
            self.resources[logical_id] = self._materialize(declaration)

        for edge in graph.edges:
            self.resources[edge.dependent].node.add_dependency(self.resources[edge.dependency])

    # ------------------------------------------------------------------
    def _materialize(self, declaration: ResourceDeclaration) -> Construct:
        props = declaration.properties
        logical_id = declaration.logical_id
        kind = declaration.kind

        if kind == ResourceKind.BUCKET:
            construct: Construct = s3.Bucket(self, logical_id)
        elif kind == ResourceKind.BUCKET_POLICY:
            bucket = self.resources[declaration.attached_to]
            for statement in declaration.statements:
                bucket.add_to_resource_policy(self._statement(statement))
            construct = bucket.policy
        elif kind == ResourceKind.LOG_GROUP:
            construct = logs.LogGroup(self, logical_id, retention=_retention(props["RetentionInDays"]))
        elif kind == ResourceKind.ROLE:
            principal = props["AssumeRolePolicyDocument"]["Statement"][0]["Principal"]["Service"]
            construct = iam.Role(self, logical_id, assumed_by=iam.ServicePrincipal(principal))
            for statement in declaration.statements:
                construct.add_to_policy(self._statement(statement))
        elif kind == ResourceKind.TRAIL:
            trail = cloudtrail.CfnTrail(
                self,
                logical_id,
                s3_bucket_name=self._resolve(props["S3BucketName"]),
                s3_key_prefix=props.get("S3KeyPrefix"),
                cloud_watch_logs_log_group_arn=self._resolve(props["CloudWatchLogsLogGroupArn"]),
                cloud_watch_logs_role_arn=self._resolve(props["CloudWatchLogsRoleArn"]),
                is_logging=bool(props.get("IsLogging", True)),
            )
            trail.override_logical_id(logical_id)
            return trail
        elif kind == ResourceKind.METRIC_FILTER:
            transformation = props["MetricTransformations"][0]
            construct = logs.MetricFilter(
                self,
                logical_id,
                log_group=self.resources[props["LogGroupName"].logical_id],
                filter_pattern=logs.FilterPattern.literal(props["FilterPattern"]),
                metric_namespace=transformation["MetricNamespace"],
                metric_name=transformation["MetricName"],
                metric_value=transformation["MetricValue"],
            )
        elif kind == ResourceKind.ALARM:
            metric = cloudwatch.Metric(
                namespace=props["Namespace"],
                metric_name=props["MetricName"],
                period=Duration.seconds(props["Period"]),
                statistic=props["Statistic"],
            )
            construct = cloudwatch.Alarm(
                self,
                logical_id,
                metric=metric,
                threshold=props["Threshold"],
                evaluation_periods=props["EvaluationPeriods"],
                comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
            )
        elif kind == ResourceKind.QUEUE:
            construct = sqs.Queue(self, logical_id)
        else:
            raise SynthesisError(f"Unsupported resource kind {kind.value!r} for {logical_id}")

        construct.node.default_child.override_logical_id(logical_id)
        logger.debug("Materialized %s as %s", logical_id, type(construct).__name__)
        return construct

    def _statement(self, statement: PolicyStatement) -> iam.PolicyStatement:
        conditions: dict[str, dict[str, str]] = {}
        for condition in statement.conditions:
            conditions.setdefault(condition.operator, {})[condition.key] = condition.value
        return iam.PolicyStatement(
            sid=statement.sid,
            effect=iam.Effect.ALLOW if statement.effect == "Allow" else iam.Effect.DENY,
            principals=[iam.ServicePrincipal(principal) for principal in statement.principals] or None,
            actions=list(statement.actions),
            resources=[self._resolve(resource) for resource in statement.resources],
            conditions=conditions or None,
        )

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, Join):
            return Fn.join("", [self._resolve(part) for part in value.parts])
        if isinstance(value, (Ref, GetAtt)):
            target = self.resources.get(value.logical_id)
            if target is None:
                raise SynthesisError(f"{value.logical_id} is referenced before it is materialized")
            return _attribute(target, value)
        return value


def _attribute(target: Construct, value: Ref | GetAtt) -> str:
    if isinstance(target, s3.Bucket):
        return target.bucket_name if isinstance(value, Ref) else target.bucket_arn
    if isinstance(target, logs.LogGroup):
        return target.log_group_name if isinstance(value, Ref) else target.log_group_arn
    if isinstance(target, iam.Role):
        return target.role_name if isinstance(value, Ref) else target.role_arn
    if isinstance(target, sqs.Queue):
        return target.queue_url if isinstance(value, Ref) else target.queue_arn
    raise SynthesisError(f"Cannot resolve {value} on {type(target).__name__}")


def _retention(days: int) -> logs.RetentionDays:
    try:
        return getattr(logs.RetentionDays, RETENTION_NAMES[days])
    except KeyError as exc:
        raise SynthesisError(f"No CDK retention for {days} days") from exc


__all__ = ["TrailAlertStack"]
