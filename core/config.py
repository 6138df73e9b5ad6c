"""Static build configuration passed into the stack builder."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from core import constants
from core.errors import ConfigurationError


class Variant(str, Enum):
    ALERT = "alert"
    QUEUE = "queue"


@dataclass(slots=True, frozen=True)
class StackConfig:
    stack_id: str = constants.DEFAULT_STACK_ID
    variant: Variant = Variant.ALERT
    account_id: str | None = None
    region: str | None = None
    key_prefix: str = constants.DEFAULT_KEY_PREFIX
    retention_days: int = constants.DEFAULT_RETENTION_DAYS
    metric_name: str = constants.DEFAULT_METRIC_NAME
    deletion_pattern: str = constants.DEFAULT_DELETION_PATTERN
    alarm_threshold: float = 1
    alarm_evaluation_periods: int = 1
    alarm_period_seconds: int = 300
    log_role_actions: tuple[str, ...] = field(default_factory=lambda: tuple(constants.DEFAULT_LOG_ROLE_ACTIONS))
    principal: str = constants.CLOUDTRAIL_PRINCIPAL

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "StackConfig":
        defaults = cls()
        try:
            variant = Variant(data.get("variant", defaults.variant.value))
        except ValueError as exc:
            choices = ", ".join(item.value for item in Variant)
            raise ConfigurationError(f"variant must be one of: {choices}") from exc
        actions = data.get("log_role_actions", defaults.log_role_actions)
        if isinstance(actions, str):
            actions = [item.strip() for item in actions.split(",") if item.strip()]
        try:
            return cls(
                stack_id=str(data.get("stack_id", defaults.stack_id)),
                variant=variant,
                account_id=_optional_str(data.get("account_id", defaults.account_id)),
                region=_optional_str(data.get("region", defaults.region)),
                key_prefix=str(data.get("key_prefix", defaults.key_prefix)),
                retention_days=int(data.get("retention_days", defaults.retention_days)),
                metric_name=str(data.get("metric_name", defaults.metric_name)),
                deletion_pattern=str(data.get("deletion_pattern", defaults.deletion_pattern)),
                alarm_threshold=float(data.get("alarm_threshold", defaults.alarm_threshold)),
                alarm_evaluation_periods=int(data.get("alarm_evaluation_periods", defaults.alarm_evaluation_periods)),
                alarm_period_seconds=int(data.get("alarm_period_seconds", defaults.alarm_period_seconds)),
                log_role_actions=tuple(actions or ()),
                principal=str(data.get("principal", defaults.principal)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid stack configuration: {exc}") from exc

    def with_overrides(self, **overrides: Any) -> "StackConfig":
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})

    def validate(self) -> None:
        if not self.stack_id:
            raise ConfigurationError("stack_id must not be empty")
        if self.retention_days not in constants.RETENTION_DAYS:
            raise ConfigurationError(f"retention_days={self.retention_days} is not a CloudWatch Logs retention value")
        if self.alarm_evaluation_periods < 1:
            raise ConfigurationError("alarm_evaluation_periods must be at least 1")
        if self.alarm_period_seconds < 10:
            raise ConfigurationError("alarm_period_seconds must be at least 10")
        if self.variant is Variant.QUEUE and not self.account_id:
            raise ConfigurationError("account_id is required for the queue variant")
        if self.variant is Variant.ALERT and not self.key_prefix.strip("/"):
            raise ConfigurationError("key_prefix must not be empty")
        if not self.deletion_pattern.strip():
            raise ConfigurationError("deletion_pattern must not be empty")
        # the pattern is quoted inside a JSON filter expression
        bad = sorted(set(self.deletion_pattern) & set('"{}\\'))
        if bad:
            raise ConfigurationError(f"deletion_pattern must not contain {' '.join(bad)}")


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


__all__ = ["StackConfig", "Variant"]
