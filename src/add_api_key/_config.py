"""Validate runtime settings and parse the declarative service definition.

'why': normalize every loosely typed input once, at the boundary, so the reconciler sees typed values
"""
from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, cast

import yaml

from ._errors import ConfigurationError
from ._logging import set_log_level
from ._models import DesiredKeySpec, EncryptedValue, GeneratedValue, KeyValue, LiteralValue, Settings


DEFAULT_MAX_PAGES: Final[int] = 1000


def _normalized_level(level: str | None) -> str:
    if not level:
        return "INFO"
    upper = level.upper()
    if upper not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
        raise ConfigurationError(f"unsupported log_level: {level}")
    return upper


def _validated_timeout(timeout: float | None) -> float | None:
    if timeout is None:
        return None
    if timeout <= 0:
        raise ConfigurationError("timeout must be positive when provided")
    return float(timeout)


def _validated_max_pages(value: int | None) -> int:
    if value is None:
        return DEFAULT_MAX_PAGES
    if value <= 0:
        raise ConfigurationError("max_pages must be a positive integer")
    return int(value)


def _normalized_profile(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def build_settings(
    *,
    log_level: str | None = None,
    conceal: bool | None = None,
    max_pages: int | None = None,
    timeout: float | None = None,
    profile: str | None = None,
    apply_log_level: bool = True,
) -> Settings:
    """Return validated settings and, unless `apply_log_level` is False, apply the log level.

    Raises ConfigurationError on invalid values.
    """

    level = _normalized_level(log_level)
    settings = Settings(
        log_level=level,
        conceal=bool(conceal),
        max_pages=_validated_max_pages(max_pages),
        timeout=_validated_timeout(timeout),
        profile=_normalized_profile(profile),
    )
    if apply_log_level:
        set_log_level(level)
    return settings


@dataclass(frozen=True)
class ServiceDefinition:
    """The parts of a deployment service definition this package reads."""

    service_name: str
    provider: Mapping[str, Any] = field(default_factory=dict)
    custom: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ServiceDefinition:
        service = raw.get("service")
        if isinstance(service, Mapping):
            service = cast(Mapping[str, Any], service).get("name")
        if not isinstance(service, str) or not service.strip():
            raise ConfigurationError("service definition must declare a non-empty 'service' name")
        return cls(
            service_name=service.strip(),
            provider=_mapping_or_empty(raw.get("provider"), "provider"),
            custom=_mapping_or_empty(raw.get("custom"), "custom"),
        )


def load_service_definition(path: Path) -> ServiceDefinition:
    """Read a YAML or JSON service definition from disk."""

    if not path.exists():
        raise ConfigurationError(f"service definition not found: {path}")
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    try:
        if suffix in {".yml", ".yaml"}:
            raw = cast(object, yaml.safe_load(text))
        elif suffix == ".json":
            raw = cast(object, json.loads(text))
        else:
            raise ConfigurationError(f"unsupported service definition format: {path.name}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"service definition {path.name} could not be parsed: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"service definition {path.name} must be a mapping")
    return ServiceDefinition.from_mapping(cast(Mapping[str, Any], raw))


def parse_key_specs(raw: object, stage: str) -> tuple[DesiredKeySpec, ...]:
    """Select the key list applicable to `stage` and convert each entry.

    A flat list applies to every stage; a mapping applies only to the named stage.
    """

    entries = _entries_for_stage(raw, stage)
    return tuple(_key_spec(entry, index) for index, entry in enumerate(entries))


def resolve_stack_name(provider: Mapping[str, Any], service_name: str, stage: str) -> str:
    stack_name = provider.get("stackName")
    if isinstance(stack_name, str) and stack_name.strip():
        return stack_name.strip()
    return f"{service_name}-{stage}"


def normalized_delete_flag(value: object) -> bool:
    """Collapse the `deleteAtRemoval` surface syntax into a single boolean.

    Only boolean `False` and the exact string `"false"` protect a key; other spellings delete it.
    """

    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() != "false"
    return bool(value)


# --- Private helpers ---


def _mapping_or_empty(value: object, label: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"'{label}' must be a mapping")
    return cast(Mapping[str, Any], value)


def _entries_for_stage(raw: object, stage: str) -> list[object]:
    if raw is None:
        return []
    if isinstance(raw, list):
        return cast(list[object], raw)
    if isinstance(raw, Mapping):
        selected = cast(Mapping[str, object], raw).get(stage)
        if selected is None:
            return []
        if not isinstance(selected, list):
            raise ConfigurationError(f"custom.apiKeys.{stage} must be a list")
        return cast(list[object], selected)
    raise ConfigurationError("custom.apiKeys must be a list or a mapping of stage to list")


def _key_spec(entry: object, index: int) -> DesiredKeySpec:
    if not isinstance(entry, Mapping):
        raise ConfigurationError(f"custom.apiKeys[{index}] must be a mapping")
    item = cast(Mapping[str, Any], entry)
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError(f"custom.apiKeys[{index}] must have a non-empty 'name'")
    usage_plan = item.get("usagePlan")
    if usage_plan is not None and not isinstance(usage_plan, Mapping):
        raise ConfigurationError(f"custom.apiKeys[{index}].usagePlan must be a mapping")
    return DesiredKeySpec(
        name=name,
        value=_key_value(item.get("value"), name),
        usage_plan=cast(Mapping[str, Any] | None, usage_plan),
        delete_at_removal=normalized_delete_flag(item.get("deleteAtRemoval")),
    )


def _key_value(raw: object, name: str) -> KeyValue:
    if raw is None or raw == "":
        return GeneratedValue()
    if isinstance(raw, str):
        return LiteralValue(raw)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return LiteralValue(str(raw))
    if isinstance(raw, Mapping):
        descriptor = cast(Mapping[str, Any], raw)
        ciphertext = descriptor.get("encrypted")
        if isinstance(ciphertext, str) and ciphertext:
            region = descriptor.get("kmsKeyRegion")
            return EncryptedValue(ciphertext=ciphertext, kms_key_region=region or None)
    raise ConfigurationError(f"api key {name}: value must be a string or an {{encrypted: ...}} mapping")
