"""Define dataclasses and types for key reconciliation.

'why': capture configuration, remote resources, and run outcomes in typed, testable shapes
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Settings:
    """Capture runtime settings for a reconciliation run."""

    log_level: str
    conceal: bool
    max_pages: int
    timeout: float | None
    profile: str | None


@dataclass(frozen=True)
class LiteralValue:
    """A key value written verbatim in the service definition."""

    value: str


@dataclass(frozen=True)
class GeneratedValue:
    """No value configured; API Gateway generates one at creation."""


@dataclass(frozen=True)
class EncryptedValue:
    """A base64 KMS ciphertext that must be decrypted before use."""

    ciphertext: str
    kms_key_region: str | None = None


KeyValue = LiteralValue | GeneratedValue | EncryptedValue


@dataclass(frozen=True)
class DesiredKeySpec:
    """Declared configuration for one API key."""

    name: str
    value: KeyValue = field(default_factory=GeneratedValue)
    usage_plan: Mapping[str, Any] | None = None
    delete_at_removal: bool = True


@dataclass(frozen=True)
class EffectiveOptions:
    """Plan name and creation template resolved for a single key."""

    plan_name: str
    plan_template: Mapping[str, Any] | None


@dataclass(frozen=True)
class ApiStage:
    """A REST API stage linked to a usage plan."""

    api_id: str
    stage: str


@dataclass(frozen=True)
class RemoteApiKey:
    """An API key as listed by API Gateway."""

    id: str
    name: str
    enabled: bool = True

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> RemoteApiKey:
        return cls(id=item["id"], name=item.get("name", ""), enabled=bool(item.get("enabled", True)))


@dataclass(frozen=True)
class RemoteUsagePlan:
    """A usage plan and the API stages currently linked to it."""

    id: str
    name: str
    api_stages: tuple[ApiStage, ...] = ()

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> RemoteUsagePlan:
        stages = tuple(
            ApiStage(api_id=stage.get("apiId", ""), stage=stage.get("stage", ""))
            for stage in item.get("apiStages") or ()
        )
        return cls(id=item["id"], name=item.get("name", ""), api_stages=stages)

    def has_stage(self, api_id: str, stage: str) -> bool:
        return ApiStage(api_id=api_id, stage=stage) in self.api_stages


@dataclass(frozen=True)
class CreatedKey:
    """Identifier and value returned when a key is created."""

    id: str
    value: str | None = None


@dataclass(frozen=True)
class GeneratedSecret:
    """A newly created key value surfaced to the operator after the run."""

    name: str
    value: str | None


@dataclass(frozen=True)
class KeyFailure:
    """A declared key whose reconciliation stopped on an error."""

    name: str
    error: str


@dataclass(frozen=True)
class AddReport:
    """Communicate the outcome of the post-deploy run."""

    created: tuple[GeneratedSecret, ...] = ()
    failures: tuple[KeyFailure, ...] = ()


@dataclass(frozen=True)
class RemoveReport:
    """Communicate the outcome of the teardown run."""

    deleted_plans: tuple[str, ...] = ()
    deleted_keys: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    protected: str | None = None
