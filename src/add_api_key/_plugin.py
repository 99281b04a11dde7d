"""Expose the reconciler to a deployment tool through lifecycle hooks.

'why': keep provider resolution and AWS wiring out of the reconciler so both stay testable
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Final, Protocol

from ._config import ServiceDefinition, build_settings, parse_key_specs, resolve_stack_name
from ._gateway import Collaborators, build_session
from ._logging import ReportSink, Reporter, get_logger
from ._models import AddReport, RemoveReport, Settings
from ._options import resolve_default_usage_plan
from ._reconcile import RunContext, add_api_keys, remove_api_keys


_logger = get_logger()

AFTER_DEPLOY_HOOK: Final[str] = "after:deploy:deploy"
REMOVE_HOOK: Final[str] = "remove:remove"


class Provider(Protocol):
    """Credential, region, and stage source supplied by the deployment tool."""

    def get_credentials(self) -> Mapping[str, Any] | None: ...

    def get_region(self) -> str: ...

    def get_stage(self) -> str: ...


@dataclass(frozen=True)
class StaticProvider:
    """Provider backed by fixed values, used by the CLI and the live harness."""

    region: str
    stage: str
    credentials: Mapping[str, Any] | None = None

    def get_credentials(self) -> Mapping[str, Any] | None:
        return self.credentials

    def get_region(self) -> str:
        return self.region

    def get_stage(self) -> str:
        return self.stage


class AddApiKeyPlugin:
    """Create API keys and usage plans after deploy and remove them on teardown.

    `collaborators` may be injected; otherwise boto3 clients are built from the
    provider credentials on each run.
    """

    def __init__(
        self,
        service: ServiceDefinition,
        provider: Provider,
        options: Mapping[str, Any] | None = None,
        *,
        settings: Settings | None = None,
        collaborators: Collaborators | None = None,
        sink: ReportSink | None = None,
    ) -> None:
        opts = options or {}
        self._service = service
        self._provider = provider
        resolved = settings or build_settings(apply_log_level=False)
        if opts.get("conceal"):
            resolved = replace(resolved, conceal=True)
        self._settings = resolved
        self._collaborators = collaborators
        self._sink = sink
        self.hooks: dict[str, Callable[[], object]] = {
            AFTER_DEPLOY_HOOK: self.add_api_keys,
            REMOVE_HOOK: self.remove_api_keys,
        }

    @property
    def settings(self) -> Settings:
        return self._settings

    def add_api_keys(self) -> AddReport:
        """Run the post-deploy reconciliation."""

        context, collaborators = self._prepare_run()
        specs = parse_key_specs(self._service.custom.get("apiKeys"), context.stage)
        return add_api_keys(specs, context, collaborators, Reporter("AddApiKey", self._sink))

    def remove_api_keys(self) -> RemoveReport:
        """Run the teardown reconciliation."""

        context, collaborators = self._prepare_run()
        specs = parse_key_specs(self._service.custom.get("apiKeys"), context.stage)
        return remove_api_keys(specs, context, collaborators, Reporter("RemoveApiKey", self._sink))

    def _prepare_run(self) -> tuple[RunContext, Collaborators]:
        credentials = self._provider.get_credentials()
        region = self._provider.get_region()
        stage = self._provider.get_stage()
        context = RunContext(
            stage=stage,
            region=region,
            stack_name=resolve_stack_name(self._service.provider, self._service.service_name, stage),
            default_plan=resolve_default_usage_plan(self._service.provider),
            conceal=self._settings.conceal,
            max_pages=self._settings.max_pages,
        )
        _logger.debug("run context: service=%s stage=%s region=%s", self._service.service_name, stage, region)
        if self._collaborators is not None:
            return context, self._collaborators
        session = build_session(credentials=credentials, profile=self._settings.profile, region=region)
        return context, Collaborators.from_session(session, region, self._settings.timeout)
