"""Minimal live harness: add, detach the stage, then remove one key against a real AWS account.

Run with: uv run live_check  (reads AWS_PROFILE, AWS_REGION, LIVE_SERVICE, LIVE_STAGE from .env)
"""

from __future__ import annotations

import sys
from pathlib import Path

from dotenv import dotenv_values

from .. import AddApiKeyPlugin, ServiceDefinition, StaticProvider, build_settings
from .._gateway import Collaborators, build_session
from .._logging import Reporter
from .._resolver import find_usage_plan
from .._stage import detach_api_stages

ROOT = Path(__file__).resolve().parent
ENV = dotenv_values(ROOT / ".env")


def _env_value(key: str, default: str | None = None) -> str | None:
    value = ENV.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def main() -> int:
    service_name = _env_value("LIVE_SERVICE")
    if not service_name:
        print(f"ERROR: LIVE_SERVICE not found in {ROOT / '.env'}")
        return 1

    stage = _env_value("LIVE_STAGE", "dev") or "dev"
    region = _env_value("AWS_REGION", "us-east-1") or "us-east-1"
    key_name = f"{service_name}-live-key"
    service = ServiceDefinition.from_mapping(
        {
            "service": service_name,
            "provider": {"stage": stage, "region": region},
            "custom": {"apiKeys": [{"name": key_name}]},
        }
    )
    settings = build_settings(log_level="DEBUG", profile=_env_value("AWS_PROFILE"))
    session = build_session(credentials=None, profile=settings.profile, region=region)
    collaborators = Collaborators.from_session(session, region, settings.timeout)
    plugin = AddApiKeyPlugin(
        service, StaticProvider(region=region, stage=stage), settings=settings, collaborators=collaborators
    )

    added = plugin.add_api_keys()
    print(f"Created: {[secret.name for secret in added.created]}  Failures: {list(added.failures)}")
    second = plugin.add_api_keys()
    print(f"Second run created: {[secret.name for secret in second.created]} (expected none)")

    # The deploy path links the stage; teardown only deletes plans with no stages left.
    reporter = Reporter("RemoveApiKey")
    plan = find_usage_plan(f"{key_name}-usage-plan", collaborators.plans, reporter, max_pages=settings.max_pages)
    if plan is not None:
        detached = detach_api_stages(plan, collaborators.plans, reporter)
        print(f"Detached {detached} stage(s) from {plan.name}")

    removed = plugin.remove_api_keys()
    print(f"Deleted keys: {list(removed.deleted_keys)}  Skipped: {list(removed.skipped)}")
    return 1 if added.failures or second.created or removed.deleted_keys != (key_name,) else 0


if __name__ == "__main__":
    sys.exit(main())
