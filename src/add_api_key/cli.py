"""Run the add or remove reconciliation from a service definition file.

Axis of change: CLI interface and boto3 wiring for ad-hoc runs outside the deployment tool.
"""
from __future__ import annotations

import argparse
import sys
import textwrap
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from ._config import ServiceDefinition, build_settings, load_service_definition
from ._errors import AddApiKeyError
from ._models import AddReport
from ._plugin import AddApiKeyPlugin, StaticProvider

_DEFAULT_REGION: Final[str] = "us-east-1"
_DEFAULT_STAGE: Final[str] = "dev"


@dataclass(frozen=True)
class RunOptions:
    """Capture CLI arguments as structured options.

    'why': keep parsing separate from orchestration logic
    """

    service_file: Path
    stage: str | None
    region: str | None
    profile: str | None
    conceal: bool
    log_level: str | None
    max_pages: int | None


def add_api_keys(argv: Sequence[str] | None = None) -> None:
    """Create declared API keys, usage plans, and stage links."""

    options = _parse_args(argv, prog="uv run add_api_keys", with_conceal=True)
    report = _run(options, remove=False)
    if report is not None and report.failures:
        print(f"\n{len(report.failures)} key(s) failed; see log above.", file=sys.stderr)
    print("\nDone.")


def remove_api_keys(argv: Sequence[str] | None = None) -> None:
    """Delete declared API keys and their unlinked usage plans."""

    options = _parse_args(argv, prog="uv run remove_api_keys", with_conceal=False)
    _ = _run(options, remove=True)
    print("\nDone.")


# --- Private helpers ---


def _run(options: RunOptions, *, remove: bool) -> AddReport | None:
    try:
        service = load_service_definition(options.service_file)
        settings = build_settings(
            log_level=options.log_level,
            conceal=options.conceal,
            max_pages=options.max_pages,
            profile=options.profile,
        )
        provider = _provider_for(service, options)
        plugin = AddApiKeyPlugin(service, provider, settings=settings)
        if remove:
            _ = plugin.remove_api_keys()
            return None
        return plugin.add_api_keys()
    except AddApiKeyError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


def _provider_for(service: ServiceDefinition, options: RunOptions) -> StaticProvider:
    stage = options.stage or _string_or_none(service.provider.get("stage")) or _DEFAULT_STAGE
    region = options.region or _string_or_none(service.provider.get("region")) or _DEFAULT_REGION
    return StaticProvider(region=region, stage=stage)


def _string_or_none(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _parse_args(argv: Sequence[str] | None, *, prog: str, with_conceal: bool) -> RunOptions:
    """Parse CLI arguments into a `RunOptions` instance.

    'why': isolate argparse wiring for straightforward testing
    """

    parser = argparse.ArgumentParser(
        prog=prog,
        description="Reconcile custom.apiKeys from a service definition against API Gateway.",
        epilog=textwrap.dedent(f"""\
            examples:
                {prog} serverless.yml --stage dev
                {prog} serverless.yml --stage prod --region eu-west-1 --profile admin
        """),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _ = parser.add_argument("service_file", type=Path, help="Service definition (.yml, .yaml or .json)")
    _ = parser.add_argument("--stage", help=f"Deployment stage (default: provider.stage or {_DEFAULT_STAGE})")
    _ = parser.add_argument("--region", help=f"AWS region (default: provider.region or {_DEFAULT_REGION})")
    _ = parser.add_argument("--profile", help="Named AWS profile to use")
    _ = parser.add_argument("--log-level", help="CRITICAL, ERROR, WARNING, INFO or DEBUG")
    _ = parser.add_argument("--max-pages", type=int, help="Upper bound on pages followed per listing")
    if with_conceal:
        _ = parser.add_argument("--conceal", action="store_true", help="Do not print generated key values")
    namespace = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])
    return RunOptions(
        service_file=namespace.service_file,
        stage=namespace.stage,
        region=namespace.region,
        profile=namespace.profile,
        conceal=bool(getattr(namespace, "conceal", False)),
        log_level=namespace.log_level,
        max_pages=namespace.max_pages,
    )
