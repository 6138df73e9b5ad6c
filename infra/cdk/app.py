"""AWS CDK app entry point used by `cdk synth` (see cdk.json)."""

from __future__ import annotations

import os
from pathlib import Path

from aws_cdk import App, Environment

from cli import config
from core.builder import StackBuilder
from core.config import StackConfig
from core.environment import resolve_account
from core.synth.cdk_stack import TrailAlertStack


def build_app(stack_config: StackConfig | None = None) -> App:
    app = App()
    stack_config = stack_config or StackConfig()
    account = resolve_account(stack_config.account_id)
    stack_config = stack_config.with_overrides(account_id=account)
    graph = StackBuilder(stack_config).build()
    region = stack_config.region or os.getenv("CDK_DEFAULT_REGION")
    env = Environment(account=account, region=region) if account or region else None
    TrailAlertStack(app, graph.stack_id, graph, env=env)
    return app


def main() -> None:
    settings = config.load_settings(Path(os.getenv("TRAILALERT_CONFIG", "trailalert.yml")))
    app = build_app(settings.stack)
    app.synth()


if __name__ == "__main__":
    main()
