"""Resolve the target AWS account used to scope delivery paths."""

from __future__ import annotations

import logging
import os
import re
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

ACCOUNT_PATTERN = re.compile(r"^\d{12}$")
ACCOUNT_ENV_VARS = ("CDK_DEFAULT_ACCOUNT", "AWS_ACCOUNT_ID")


def resolve_account(
    explicit: str | None = None,
    *,
    lookup: bool = False,
    sts_client: Any | None = None,
) -> str | None:
    """Return the account id from the argument, the environment, or STS.

    STS is only consulted when ``lookup`` is set. The result is validated;
    ``None`` means no account could be determined.
    """
    account = explicit
    if not account:
        for name in ACCOUNT_ENV_VARS:
            if os.getenv(name):
                account = os.environ[name]
                logger.debug("Account id taken from %s", name)
                break
    if not account and lookup:
        account = _caller_account(sts_client)
    if account is None:
        return None
    account = str(account).strip()
    if not ACCOUNT_PATTERN.match(account):
        raise ConfigurationError(f"Account id must be 12 digits, got {account!r}")
    return account


def _caller_account(sts_client: Any | None) -> str:
    client = sts_client or boto3.client("sts")
    try:
        identity = client.get_caller_identity()
    except (BotoCoreError, ClientError) as exc:
        raise ConfigurationError(f"Unable to resolve account id via STS: {exc}") from exc
    logger.debug("Account id resolved via STS for %s", identity.get("Arn"))
    return identity["Account"]


__all__ = ["resolve_account", "ACCOUNT_ENV_VARS"]
