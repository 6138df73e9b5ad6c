"""Configuration loader for the trailalert CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.config import StackConfig, Variant
from core.errors import ConfigurationError

DEFAULTS = {
    "default_format": "json",
    "description": "CloudTrail audit trail with deletion alerting",
}


@dataclass(slots=True)
class Settings:
    default_format: str = DEFAULTS["default_format"]
    description: str | None = DEFAULTS["description"]
    stack: StackConfig = field(default_factory=StackConfig)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "Settings":
        stack_data = data.get("stack", {}) or {}
        if not isinstance(stack_data, dict):
            raise ConfigurationError("'stack' must be a mapping of keys to values.")
        return cls(
            default_format=data.get("default_format", DEFAULTS["default_format"]),
            description=data.get("description", DEFAULTS["description"]),
            stack=StackConfig.from_mapping(stack_data),
        )

    def merge_cli(
        self,
        format_override: str | None = None,
        *,
        stack_id: str | None = None,
        variant: str | None = None,
        account_id: str | None = None,
    ) -> "Settings":
        return Settings(
            default_format=format_override or self.default_format,
            description=self.description,
            stack=self.stack.with_overrides(
                stack_id=stack_id,
                variant=Variant(variant) if variant else None,
                account_id=account_id,
            ),
        )


def load_settings(path: Path) -> Settings:
    if not path.exists():
        return Settings()

    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must be a mapping of keys to values.")

    return Settings.from_mapping(data)


__all__ = ["Settings", "load_settings"]
