"""Build the CloudTrail alerting resource graph."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from core import constants
from core.config import StackConfig, Variant
from core.errors import ConfigurationError
from core.graph import validate_graph
from core.models import (
    Condition,
    DependencyEdge,
    GetAtt,
    Join,
    PolicyStatement,
    Ref,
    ResourceDeclaration,
    ResourceGraph,
    ResourceKind,
)
from core.policy.validation import audit_graph, enforce

logger = logging.getLogger(__name__)


class StackBuilder:
    """Declare the trail, its delivery targets and the chosen alerting variant."""

    def __init__(self, config: StackConfig | None = None) -> None:
        self.config = config or StackConfig()
        self._declarations: list[ResourceDeclaration] = []
        self._edges: list[DependencyEdge] = []

    def build(self, stack_id: str | None = None) -> ResourceGraph:
        config = self.config.with_overrides(stack_id=stack_id) if stack_id is not None else self.config
        config.validate()
        self._declarations = []
        self._edges = []

        try:
            bucket = self._declare_bucket(config)
            log_group, role = self._declare_log_delivery(config)
            trail = self._declare_trail(config, bucket, log_group, role)
            if config.variant is Variant.ALERT:
                self._declare_deletion_alarm(config, log_group)
            else:
                self._declare_ready_queue(trail)
            graph = ResourceGraph(
                stack_id=config.stack_id,
                declarations=tuple(self._declarations),
                edges=tuple(self._edges),
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid declaration: {exc}") from exc

        validate_graph(graph)
        enforce(audit_graph(graph))
        logger.info("Built %s (%s): %d resources", graph.stack_id, config.variant.value, len(graph.declarations))
        return graph

    # ------------------------------------------------------------------
    def _declare(
        self,
        logical_id: str,
        kind: ResourceKind,
        properties: dict[str, Any] | None = None,
        statements: list[PolicyStatement] | None = None,
        attached_to: str | None = None,
    ) -> str:
        declaration = ResourceDeclaration(
            logical_id=logical_id,
            kind=kind,
            properties=properties or {},
            statements=tuple(statements or ()),
            attached_to=attached_to,
        )
        self._declarations.append(declaration)
        logger.debug("Declared %s %s", kind.value, logical_id)
        return logical_id

    def _depend(self, dependent: str, dependency: str) -> None:
        self._edges.append(DependencyEdge(dependent=dependent, dependency=dependency))
        logger.debug("Edge %s -> %s", dependent, dependency)

    def _declare_bucket(self, config: StackConfig) -> str:
        bucket = self._declare(constants.BUCKET_ID, ResourceKind.BUCKET)
        if config.variant is Variant.ALERT:
            write_path = f"/{config.key_prefix.strip('/')}/*"
        else:
            write_path = f"/AWSLogs/{config.account_id}/*"

        statements = [
            PolicyStatement(
                sid="AWSCloudTrailAclCheck",
                principals=(config.principal,),
                actions=("s3:GetBucketAcl",),
                resources=(GetAtt(logical_id=bucket),),
            ),
            PolicyStatement(
                sid="AWSCloudTrailWrite",
                principals=(config.principal,),
                actions=("s3:PutObject",),
                resources=(Join(parts=(GetAtt(logical_id=bucket), write_path)),),
                conditions=(
                    Condition(
                        operator="StringEquals",
                        key=constants.ACL_CONDITION_KEY,
                        value=constants.BUCKET_OWNER_FULL_CONTROL,
                    ),
                ),
            ),
        ]
        self._declare(
            constants.BUCKET_POLICY_ID,
            ResourceKind.BUCKET_POLICY,
            properties={"Bucket": Ref(logical_id=bucket)},
            statements=statements,
            attached_to=bucket,
        )
        return bucket

    def _declare_log_delivery(self, config: StackConfig) -> tuple[str, str]:
        log_group = self._declare(
            constants.LOG_GROUP_ID,
            ResourceKind.LOG_GROUP,
            properties={"RetentionInDays": config.retention_days},
        )
        role = self._declare(
            constants.LOG_ROLE_ID,
            ResourceKind.ROLE,
            properties={
                "AssumeRolePolicyDocument": {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Action": "sts:AssumeRole",
                            "Effect": "Allow",
                            "Principal": {"Service": config.principal},
                        }
                    ],
                }
            },
            statements=[
                PolicyStatement(
                    actions=config.log_role_actions,
                    resources=(GetAtt(logical_id=log_group),),
                )
            ],
        )
        self._depend(role, log_group)
        return log_group, role

    def _declare_trail(self, config: StackConfig, bucket: str, log_group: str, role: str) -> str:
        properties: dict[str, Any] = {"S3BucketName": Ref(logical_id=bucket)}
        if config.variant is Variant.ALERT:
            properties["S3KeyPrefix"] = config.key_prefix.strip("/")
        properties.update(
            {
                "CloudWatchLogsLogGroupArn": GetAtt(logical_id=log_group),
                "CloudWatchLogsRoleArn": GetAtt(logical_id=role),
                "IsLogging": True,
            }
        )
        trail = self._declare(constants.TRAIL_ID, ResourceKind.TRAIL, properties=properties)
        for dependency in (log_group, role, bucket):
            self._depend(trail, dependency)
        return trail

    def _declare_deletion_alarm(self, config: StackConfig, log_group: str) -> None:
        metric_filter = self._declare(
            constants.METRIC_FILTER_ID,
            ResourceKind.METRIC_FILTER,
            properties={
                "LogGroupName": Ref(logical_id=log_group),
                "FilterPattern": f'{{ $.eventName = "{config.deletion_pattern}" }}',
                "MetricTransformations": [
                    {
                        "MetricNamespace": config.stack_id,
                        "MetricName": config.metric_name,
                        "MetricValue": "1",
                    }
                ],
            },
        )
        self._depend(metric_filter, log_group)
        self._declare(
            constants.ALARM_ID,
            ResourceKind.ALARM,
            properties={
                "Namespace": config.stack_id,
                "MetricName": config.metric_name,
                "ComparisonOperator": "GreaterThanOrEqualToThreshold",
                "Threshold": config.alarm_threshold,
                "EvaluationPeriods": config.alarm_evaluation_periods,
                "Period": config.alarm_period_seconds,
                "Statistic": "Average",
            },
        )

    def _declare_ready_queue(self, trail: str) -> None:
        # ordering only, no trail event delivery into the queue is declared
        queue = self._declare(constants.QUEUE_ID, ResourceKind.QUEUE)
        self._depend(queue, trail)


def build(stack_id: str, config: StackConfig | None = None) -> ResourceGraph:
    return StackBuilder(config).build(stack_id)


__all__ = ["StackBuilder", "build"]
