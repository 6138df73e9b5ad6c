"""Evaluate declared policy statements locally."""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any, Dict, Iterable, List

from core.models import Condition, PolicyStatement


@dataclass
class SimulationCase:
    action: str
    resource: str = "*"
    principal: str | None = None
    context: Dict[str, Any] | None = None


class PolicySimulator:
    """Decide Allow/Deny for request cases against a set of statements.

    Resources are compared in their symbolic form (``${Bucket.Arn}/prefix/*``)
    so graphs can be checked before anything is provisioned. An explicit
    Deny wins over any Allow; no matching Allow means an implicit Deny.
    """

    def evaluate(self, statements: Iterable[PolicyStatement], cases: Iterable[SimulationCase]) -> list[dict[str, Any]]:
        policy = list(statements)
        results: list[dict[str, Any]] = []
        for case in cases:
            results.append(
                {
                    "action": case.action,
                    "resource": case.resource,
                    "principal": case.principal,
                    "context": case.context or {},
                    "decision": self.decide(policy, case),
                }
            )
        return results

    def decide(self, statements: List[PolicyStatement], case: SimulationCase) -> str:
        decision = "Deny"
        for statement in statements:
            if not self._statement_applies(statement, case):
                continue
            if statement.effect == "Deny":
                return "Deny"
            decision = "Allow"
        return decision

    def _statement_applies(self, statement: PolicyStatement, case: SimulationCase) -> bool:
        if statement.principals and case.principal not in statement.principals:
            return False
        if not self._action_matches(case.action, statement.actions):
            return False
        if not self._resource_matches(case.resource, [str(resource) for resource in statement.resources]):
            return False
        return all(self._condition_holds(condition, case.context or {}) for condition in statement.conditions)

    @staticmethod
    def _action_matches(action: str, patterns: Iterable[str]) -> bool:
        for pattern in patterns:
            if pattern == action or fnmatchcase(action, pattern):
                return True
        return False

    @staticmethod
    def _resource_matches(resource: str, patterns: list[str]) -> bool:
        if not patterns:
            return resource == "*"
        for pattern in patterns:
            if pattern == "*" or pattern == resource:
                return True
            if pattern.endswith("*") and resource.startswith(pattern[:-1]):
                return True
        return False

    @staticmethod
    def _condition_holds(condition: Condition, context: Dict[str, Any]) -> bool:
        if condition.key not in context:
            return condition.operator == "StringNotEquals"
        actual = str(context[condition.key])
        if condition.operator in {"StringEquals", "ArnEquals"}:
            return actual == condition.value
        if condition.operator == "StringNotEquals":
            return actual != condition.value
        if condition.operator in {"StringLike", "ArnLike"}:
            return fnmatchcase(actual, condition.value)
        return False


__all__ = ["PolicySimulator", "SimulationCase"]
