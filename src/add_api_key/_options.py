"""Resolve the usage plan name and creation template for each key.

'why': apply one precedence order (key, then provider default, then derived) in both run directions
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from ._models import DesiredKeySpec, EffectiveOptions


def resolve_default_usage_plan(provider: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """Return `provider.apiGateway.usagePlan`, else `provider.usagePlan`, else an empty mapping."""

    if not provider:
        return {}
    api_gateway = provider.get("apiGateway")
    if isinstance(api_gateway, Mapping):
        nested = cast(Mapping[str, Any], api_gateway).get("usagePlan")
        if isinstance(nested, Mapping):
            return cast(Mapping[str, Any], nested)
    flat = provider.get("usagePlan")
    if isinstance(flat, Mapping):
        return cast(Mapping[str, Any], flat)
    return {}


def resolve_plan_name(spec: DesiredKeySpec, default_plan: Mapping[str, Any]) -> str:
    if spec.usage_plan and spec.usage_plan.get("name"):
        return str(spec.usage_plan["name"])
    if default_plan.get("name"):
        return str(default_plan["name"])
    return f"{spec.name}-usage-plan"


def resolve_plan_template(spec: DesiredKeySpec, default_plan: Mapping[str, Any]) -> Mapping[str, Any] | None:
    """Return the mapping used to create the plan, or None to create it by name only."""

    if spec.usage_plan and (spec.usage_plan.get("quota") or spec.usage_plan.get("throttle")):
        return spec.usage_plan
    return default_plan or None


def resolve_options(spec: DesiredKeySpec, default_plan: Mapping[str, Any]) -> EffectiveOptions:
    return EffectiveOptions(
        plan_name=resolve_plan_name(spec, default_plan),
        plan_template=resolve_plan_template(spec, default_plan),
    )
