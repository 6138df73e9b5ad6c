"""Render resource graphs into CloudFormation templates."""

from __future__ import annotations

import json
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core import constants
from core.errors import SynthesisError
from core.graph import depends_on, topological_order, validate_graph
from core.models import ResourceDeclaration, ResourceGraph, ResourceKind, render_value

logger = logging.getLogger(__name__)


def render_template(graph: ResourceGraph, description: str | None = None) -> dict[str, Any]:
    """Return the template document for ``graph``; invalid graphs raise before anything renders."""
    validate_graph(graph)

    resources: dict[str, Any] = {}
    for logical_id in topological_order(graph):
        declaration = graph.get(logical_id)
        resource: dict[str, Any] = {
            "Type": _resource_type(declaration),
            "Properties": _properties(declaration),
        }
        if not resource["Properties"]:
            del resource["Properties"]
        dependencies = depends_on(graph, logical_id)
        if dependencies:
            resource["DependsOn"] = dependencies
        if declaration.kind in {ResourceKind.BUCKET, ResourceKind.LOG_GROUP, ResourceKind.QUEUE}:
            resource["UpdateReplacePolicy"] = "Retain"
            resource["DeletionPolicy"] = "Retain"
        resources[logical_id] = resource

    template: dict[str, Any] = {}
    if description:
        template["Description"] = description
    template["Resources"] = resources
    _ensure_serializable(template)
    logger.debug("Rendered %d resources for %s", len(resources), graph.stack_id)
    return template


def validate_remote(template: dict[str, Any], client: Any | None = None) -> dict[str, Any]:
    """Ask CloudFormation to validate the template; rejections surface verbatim."""
    body = json.dumps(template)
    if len(body.encode("utf-8")) > constants.MAX_TEMPLATE_BODY_BYTES:
        raise SynthesisError(
            f"Template is {len(body)} bytes; inline validation is limited to {constants.MAX_TEMPLATE_BODY_BYTES}"
        )
    cfn = client or boto3.client("cloudformation")
    try:
        return cfn.validate_template(TemplateBody=body)
    except ClientError as exc:
        raise SynthesisError(exc.response.get("Error", {}).get("Message", str(exc))) from exc
    except BotoCoreError as exc:
        raise SynthesisError(str(exc)) from exc


# ---------------------------------------------------------------------------


def _resource_type(declaration: ResourceDeclaration) -> str:
    try:
        return constants.RESOURCE_TYPES[declaration.kind.value]
    except KeyError as exc:
        raise SynthesisError(f"No resource type for kind {declaration.kind.value!r}") from exc


def _properties(declaration: ResourceDeclaration) -> dict[str, Any]:
    properties = render_value(declaration.properties)
    if not declaration.statements:
        return properties
    document = {
        "Version": "2012-10-17",
        "Statement": [statement.render() for statement in declaration.statements],
    }
    if declaration.kind == ResourceKind.BUCKET_POLICY:
        properties["PolicyDocument"] = document
    elif declaration.kind == ResourceKind.ROLE:
        properties["Policies"] = [{"PolicyName": f"{declaration.logical_id}DefaultPolicy", "PolicyDocument": document}]
    else:
        raise SynthesisError(f"{declaration.logical_id}: {declaration.kind.value} cannot carry policy statements")
    return properties


def _ensure_serializable(template: dict[str, Any]) -> None:
    try:
        json.dumps(template)
    except (TypeError, ValueError) as exc:
        raise SynthesisError(f"Template is not serializable: {exc}") from exc


__all__ = ["render_template", "validate_remote"]
