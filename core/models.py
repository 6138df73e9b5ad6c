"""Data models shared across the build pipeline."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Union

from pydantic import BaseModel, Field, computed_field, field_serializer, field_validator


class ResourceKind(str, Enum):
    BUCKET = "bucket"
    BUCKET_POLICY = "bucket-policy"
    LOG_GROUP = "log-group"
    ROLE = "role"
    TRAIL = "trail"
    QUEUE = "queue"
    METRIC_FILTER = "metric-filter"
    ALARM = "alarm"


class Ref(BaseModel):
    """Identifier of a declared resource (bucket name, log group name, queue URL)."""

    logical_id: str

    model_config = {"frozen": True}

    def render(self) -> dict[str, Any]:
        return {"Ref": self.logical_id}

    def __str__(self) -> str:
        return f"${{{self.logical_id}}}"


class GetAtt(BaseModel):
    """Attribute of a declared resource, most often its ARN."""

    logical_id: str
    attribute: str = "Arn"

    model_config = {"frozen": True}

    def render(self) -> dict[str, Any]:
        return {"Fn::GetAtt": [self.logical_id, self.attribute]}

    def __str__(self) -> str:
        return f"${{{self.logical_id}.{self.attribute}}}"


class Join(BaseModel):
    """Concatenation of literals and references, e.g. an object ARN under a prefix."""

    parts: tuple[Union[str, Ref, GetAtt], ...]

    model_config = {"frozen": True}

    def render(self) -> dict[str, Any]:
        return {"Fn::Join": ["", [render_value(part) for part in self.parts]]}

    def __str__(self) -> str:
        return "".join(str(part) for part in self.parts)


Value = Union[str, Ref, GetAtt, Join]


def render_value(value: Any) -> Any:
    """Render literals, references and nested containers into template JSON."""
    if isinstance(value, (Ref, GetAtt, Join)):
        return value.render()
    if isinstance(value, Mapping):
        return {key: render_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [render_value(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    return value


def iter_references(value: Any) -> Iterator[str]:
    """Yield every logical id referenced anywhere inside ``value``."""
    if isinstance(value, (Ref, GetAtt)):
        yield value.logical_id
    elif isinstance(value, Join):
        for part in value.parts:
            yield from iter_references(part)
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


def freeze(value: Any) -> Any:
    """Return a read-only copy: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


class Condition(BaseModel):
    """IAM condition entry, e.g. StringEquals s3:x-amz-acl = bucket-owner-full-control."""

    operator: str
    key: str
    value: str

    model_config = {"frozen": True}


class PolicyStatement(BaseModel):
    """IAM policy statement attached to a role or a bucket."""

    sid: str | None = None
    effect: str = "Allow"
    principals: tuple[str, ...] = Field(default_factory=tuple, description="Service principals")
    actions: tuple[str, ...] = Field(default_factory=tuple)
    resources: tuple[Value, ...] = Field(default_factory=tuple)
    conditions: tuple[Condition, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    def condition_value(self, operator: str, key: str) -> str | None:
        for condition in self.conditions:
            if condition.operator == operator and condition.key == key:
                return condition.value
        return None

    def render(self) -> dict[str, Any]:
        rendered: dict[str, Any] = {}
        if self.sid:
            rendered["Sid"] = self.sid
        rendered["Effect"] = self.effect
        if self.principals:
            services = list(self.principals)
            rendered["Principal"] = {"Service": services[0] if len(services) == 1 else services}
        rendered["Action"] = self.actions[0] if len(self.actions) == 1 else list(self.actions)
        resources = [render_value(resource) for resource in self.resources]
        rendered["Resource"] = resources[0] if len(resources) == 1 else resources
        if self.conditions:
            block: dict[str, dict[str, str]] = {}
            for condition in self.conditions:
                block.setdefault(condition.operator, {})[condition.key] = condition.value
            rendered["Condition"] = block
        return rendered


class ResourceDeclaration(BaseModel):
    """One declared resource; ``attached_to`` names the resource a policy attachment belongs to."""

    logical_id: str
    kind: ResourceKind
    properties: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)
    statements: tuple[PolicyStatement, ...] = Field(default_factory=tuple)
    attached_to: str | None = None

    model_config = {"frozen": True}

    @field_validator("properties", mode="after")
    @classmethod
    def _freeze_properties(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze(value)

    @field_serializer("properties")
    def _serialize_properties(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return thaw(value)

    def references(self) -> set[str]:
        refs = set(iter_references(self.properties))
        for statement in self.statements:
            refs.update(iter_references(list(statement.resources)))
        if self.attached_to:
            refs.add(self.attached_to)
        return refs


class DependencyEdge(BaseModel):
    """``dependent`` must not be provisioned before ``dependency`` exists."""

    dependent: str
    dependency: str

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.dependent}->{self.dependency}"


class ResourceGraph(BaseModel):
    """Declarations and ordering edges of one deployable stack."""

    stack_id: str
    declarations: tuple[ResourceDeclaration, ...] = Field(default_factory=tuple)
    edges: tuple[DependencyEdge, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    @computed_field
    @property
    def kinds(self) -> list[str]:
        """Return the sorted resource kinds present in the graph."""
        return sorted({declaration.kind.value for declaration in self.declarations})

    def logical_ids(self) -> list[str]:
        return [declaration.logical_id for declaration in self.declarations]

    def get(self, logical_id: str) -> ResourceDeclaration:
        for declaration in self.declarations:
            if declaration.logical_id == logical_id:
                return declaration
        raise KeyError(logical_id)

    def of_kind(self, kind: ResourceKind) -> list[ResourceDeclaration]:
        return [declaration for declaration in self.declarations if declaration.kind == kind]

    def attachments(self, logical_id: str) -> list[ResourceDeclaration]:
        return [declaration for declaration in self.declarations if declaration.attached_to == logical_id]

    def edge_pairs(self) -> set[tuple[str, str]]:
        return {(edge.dependent, edge.dependency) for edge in self.edges}

    def statements(self) -> Iterator[tuple[ResourceDeclaration, PolicyStatement]]:
        for declaration in self.declarations:
            for statement in declaration.statements:
                yield declaration, statement


__all__ = [
    "Condition",
    "DependencyEdge",
    "GetAtt",
    "Join",
    "PolicyStatement",
    "Ref",
    "ResourceDeclaration",
    "ResourceGraph",
    "ResourceKind",
    "Value",
    "freeze",
    "iter_references",
    "render_value",
    "thaw",
]
