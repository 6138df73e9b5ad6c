"""Configuration loading and account resolution."""

from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from cli.config import Settings, load_settings
from core.config import StackConfig, Variant
from core.environment import resolve_account
from core.errors import ConfigurationError


class FakeSts:
    def __init__(self, account: str = "222222222222", fail: bool = False) -> None:
        self.account = account
        self.fail = fail
        self.calls = 0

    def get_caller_identity(self) -> dict:
        self.calls += 1
        if self.fail:
            raise ClientError({"Error": {"Code": "ExpiredToken", "Message": "expired"}}, "GetCallerIdentity")
        return {"Account": self.account, "Arn": f"arn:aws:iam::{self.account}:user/dev"}


@pytest.fixture(autouse=True)
def _clear_account_env(monkeypatch):
    monkeypatch.delenv("CDK_DEFAULT_ACCOUNT", raising=False)
    monkeypatch.delenv("AWS_ACCOUNT_ID", raising=False)


def test_missing_file_uses_defaults(tmp_path):
    settings = load_settings(tmp_path / "absent.yml")
    assert settings.default_format == "json"
    assert settings.stack == StackConfig()


def test_yaml_file_populates_stack(tmp_path):
    path = tmp_path / "trailalert.yml"
    path.write_text(
        "default_format: yaml\n"
        "stack:\n"
        "  stack_id: AuditTrail\n"
        "  variant: queue\n"
        "  account_id: '111111111111'\n"
        "  retention_days: 30\n"
        "  log_role_actions: logs:CreateLogStream, logs:PutLogEvents\n",
        encoding="utf-8",
    )
    settings = load_settings(path)
    assert settings.default_format == "yaml"
    assert settings.stack.stack_id == "AuditTrail"
    assert settings.stack.variant is Variant.QUEUE
    assert settings.stack.account_id == "111111111111"
    assert settings.stack.retention_days == 30
    assert settings.stack.log_role_actions == ("logs:CreateLogStream", "logs:PutLogEvents")


def test_non_mapping_file_rejected(tmp_path):
    path = tmp_path / "trailalert.yml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_unknown_variant_rejected():
    with pytest.raises(ConfigurationError, match="variant"):
        StackConfig.from_mapping({"variant": "pager"})


def test_bad_number_rejected():
    with pytest.raises(ConfigurationError):
        StackConfig.from_mapping({"retention_days": "forever"})


def test_cli_overrides_file_values():
    merged = Settings().merge_cli("md", stack_id="Other", variant="queue", account_id="111111111111")
    assert merged.default_format == "md"
    assert merged.stack.stack_id == "Other"
    assert merged.stack.variant is Variant.QUEUE
    assert merged.stack.account_id == "111111111111"
    assert merged.stack.key_prefix == "CloudTrail/logs"


def test_resolve_account_prefers_explicit(monkeypatch):
    monkeypatch.setenv("CDK_DEFAULT_ACCOUNT", "333333333333")
    assert resolve_account("111111111111") == "111111111111"
    assert resolve_account(None) == "333333333333"


def test_resolve_account_uses_sts_only_on_lookup():
    sts = FakeSts()
    assert resolve_account(None, sts_client=sts) is None
    assert sts.calls == 0
    assert resolve_account(None, lookup=True, sts_client=sts) == "222222222222"
    assert sts.calls == 1


def test_resolve_account_wraps_sts_errors():
    with pytest.raises(ConfigurationError, match="STS"):
        resolve_account(None, lookup=True, sts_client=FakeSts(fail=True))


@pytest.mark.parametrize("value", ["12345", "abcdefghijkl", "1111111111111"])
def test_resolve_account_validates_format(value):
    with pytest.raises(ConfigurationError, match="12 digits"):
        resolve_account(value)
