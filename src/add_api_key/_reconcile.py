"""Reconcile declared API keys against API Gateway.

'why': issue creates and associations only where remote state is missing, so any prior run,
complete or partial, converges to the same result
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ._config import DEFAULT_MAX_PAGES
from ._gateway import Collaborators
from ._logging import Reporter
from ._models import (
    AddReport,
    CreatedKey,
    DesiredKeySpec,
    EffectiveOptions,
    EncryptedValue,
    GeneratedSecret,
    KeyFailure,
    LiteralValue,
    RemoteUsagePlan,
    RemoveReport,
)
from ._options import resolve_options, resolve_plan_name
from ._resolver import find_api_key, find_usage_plan, usage_plan_key_ids
from ._secrets import decrypt_key_value
from ._stage import associate_rest_api


@dataclass(frozen=True)
class RunContext:
    """Per-run inputs resolved once from the provider and service definition."""

    stage: str
    region: str
    stack_name: str
    default_plan: Mapping[str, Any] = field(default_factory=dict)
    conceal: bool = False
    max_pages: int = DEFAULT_MAX_PAGES


def add_api_keys(
    specs: Sequence[DesiredKeySpec],
    context: RunContext,
    collaborators: Collaborators,
    reporter: Reporter,
) -> AddReport:
    """Ensure every declared key, its usage plan, and the stage link exist.

    A failing key is logged and recorded; the remaining keys are still processed.
    Generated values are reported after all keys, not between their progress lines.
    """

    if not specs:
        reporter.info(f"No ApiKey names specified for stage {context.stage} so skipping creation")
        return AddReport()

    created: list[GeneratedSecret] = []
    failures: list[KeyFailure] = []
    for spec in specs:
        options = resolve_options(spec, context.default_plan)
        try:
            _add_one(spec, options, context, collaborators, reporter, created)
        except Exception as exc:
            reporter.error(f"Failed to add api key {spec.name} to the service. Error {exc}")
            failures.append(KeyFailure(name=spec.name, error=str(exc)))

    for secret in created:
        reporter.info(f"{secret.name} - {secret.value}")
    return AddReport(created=tuple(created), failures=tuple(failures))


def remove_api_keys(
    specs: Sequence[DesiredKeySpec],
    context: RunContext,
    collaborators: Collaborators,
    reporter: Reporter,
) -> RemoveReport:
    """Delete declared keys and their usage plans when nothing else depends on the plan.

    A protected key ends the whole run: later keys in the list are left untouched.
    """

    deleted_plans: list[str] = []
    deleted_keys: list[str] = []
    skipped: list[str] = []
    protected: str | None = None

    for spec in specs:
        plan_name = resolve_plan_name(spec, context.default_plan)
        if not spec.delete_at_removal:
            reporter.info(f"Api Key {spec.name} is protected from deletion")
            protected = spec.name
            break

        plan = find_usage_plan(plan_name, collaborators.plans, reporter, max_pages=context.max_pages)
        if plan is None:
            reporter.warning(f"{plan_name} not found. Checking and deleting Api key.")
        elif plan.api_stages:
            reporter.warning(f"{plan_name} has apiStages associated with it. Skipping deletion.")
            skipped.append(spec.name)
            continue
        else:
            reporter.info(f"Deleting Usage plan {plan_name} - {plan.id}")
            _delete_usage_plan(plan.id, collaborators, reporter)
            reporter.info(f"Usage Plan {plan_name} deleted successfully")
            deleted_plans.append(plan_name)

        key = find_api_key(spec.name, collaborators.keys, reporter, max_pages=context.max_pages)
        if key is None:
            reporter.warning(f"{spec.name} not found.")
            continue
        reporter.info(f"Deleting Api Key {spec.name} - {key.id}")
        _delete_api_key(key.id, collaborators, reporter)
        reporter.info(f"Api Key {spec.name} deleted successfully")
        deleted_keys.append(spec.name)

    return RemoveReport(
        deleted_plans=tuple(deleted_plans),
        deleted_keys=tuple(deleted_keys),
        skipped=tuple(skipped),
        protected=protected,
    )


# --- Private helpers ---


def _add_one(
    spec: DesiredKeySpec,
    options: EffectiveOptions,
    context: RunContext,
    collaborators: Collaborators,
    reporter: Reporter,
    created_secrets: list[GeneratedSecret],
) -> None:
    """Run the per-key sequence, recording the value of a key this run creates."""

    value = _effective_value(spec, context, collaborators, reporter)

    existing_key = find_api_key(spec.name, collaborators.keys, reporter, max_pages=context.max_pages)
    if existing_key is None:
        created = _create_api_key(spec.name, value, collaborators, reporter)
        key_id = created.id
        if not context.conceal:
            created_secrets.append(GeneratedSecret(name=spec.name, value=created.value))
    else:
        reporter.info(f"Api key {spec.name} already exists, skipping creation.")
        key_id = existing_key.id

    plan = find_usage_plan(options.plan_name, collaborators.plans, reporter, max_pages=context.max_pages)
    if plan is None:
        plan_id = _create_usage_plan(options, collaborators, reporter)
        _create_usage_plan_key(key_id, plan_id, collaborators, reporter)
        plan = RemoteUsagePlan(id=plan_id, name=options.plan_name)
    else:
        reporter.info(f"Usage plan {options.plan_name} already exists, skipping creation.")
        linked = usage_plan_key_ids(plan.id, collaborators.plan_keys, reporter, max_pages=context.max_pages)
        if key_id in linked:
            reporter.info(
                f"Usage plan {options.plan_name} already has api key associated with it, skipping association."
            )
        else:
            _create_usage_plan_key(key_id, plan.id, collaborators, reporter)

    associate_rest_api(context.stack_name, plan, context.stage, collaborators.stacks, collaborators.plans, reporter)


def _effective_value(
    spec: DesiredKeySpec,
    context: RunContext,
    collaborators: Collaborators,
    reporter: Reporter,
) -> str | None:
    value = spec.value
    if isinstance(value, LiteralValue):
        return value.value
    if isinstance(value, EncryptedValue):
        kms_region = value.kms_key_region or context.region
        return decrypt_key_value(value.ciphertext, kms_region, collaborators.decryptor_for(kms_region), reporter)
    return None


def _create_api_key(name: str, value: str | None, collaborators: Collaborators, reporter: Reporter) -> CreatedKey:
    reporter.info(f"Creating new api key {name}")
    try:
        response = collaborators.keys.create_api_key(name, value)
    except Exception as exc:
        reporter.error(f"Failed to create new api key. Error {exc}")
        raise
    key = CreatedKey(id=response["id"], value=response.get("value"))
    reporter.info(f"Created new api key {name}:{key.id}")
    return key


def _create_usage_plan(options: EffectiveOptions, collaborators: Collaborators, reporter: Reporter) -> str:
    reporter.info(f"Creating new usage plan {options.plan_name}")
    template: dict[str, Any] = dict(options.plan_template or {})
    template["name"] = options.plan_name
    try:
        response = collaborators.plans.create_usage_plan(template)
    except Exception as exc:
        reporter.error(f"Failed to create new usage plan {options.plan_name}. Error {exc}")
        raise
    return response["id"]


def _create_usage_plan_key(key_id: str, plan_id: str, collaborators: Collaborators, reporter: Reporter) -> None:
    reporter.info(f"Associating api key {key_id} with usage plan {plan_id}")
    try:
        collaborators.plan_keys.create_usage_plan_key(plan_id, key_id)
    except Exception as exc:
        reporter.error(f"Failed to create usage plan key. Error {exc}")
        raise


def _delete_usage_plan(plan_id: str, collaborators: Collaborators, reporter: Reporter) -> None:
    try:
        collaborators.plans.delete_usage_plan(plan_id)
    except Exception:
        reporter.error(f"Failed to delete usage plan {plan_id}.")
        raise


def _delete_api_key(key_id: str, collaborators: Collaborators, reporter: Reporter) -> None:
    try:
        collaborators.keys.delete_api_key(key_id)
    except Exception:
        reporter.error(f"Failed to delete api key {key_id}.")
        raise
