"""Find remote keys and usage plans by exact name.

'why': every create is preceded by a full lookup, which makes repeated runs idempotent
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from botocore.exceptions import ClientError

from ._config import DEFAULT_MAX_PAGES
from ._gateway import ApiKeyStore, UsagePlanKeyStore, UsagePlanStore
from ._logging import Reporter
from ._models import RemoteApiKey, RemoteUsagePlan
from ._pagination import collect_items


def is_not_found(exc: BaseException) -> bool:
    """Return True for API Gateway `NotFoundException` errors."""

    if not isinstance(exc, ClientError):
        return False
    return exc.response.get("Error", {}).get("Code") == "NotFoundException"


def find_by_name(
    name: str,
    fetch_page: Callable[[str | None], Mapping[str, Any]],
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> Mapping[str, Any] | None:
    """Return the first item whose `name` equals `name`, or None.

    NotFoundException is treated as an empty listing; other errors propagate.
    """

    try:
        items = collect_items(fetch_page, max_pages=max_pages)
    except ClientError as exc:
        if is_not_found(exc):
            return None
        raise
    return next((item for item in items if item.get("name") == name), None)


def find_api_key(
    name: str, keys: ApiKeyStore, reporter: Reporter, *, max_pages: int = DEFAULT_MAX_PAGES
) -> RemoteApiKey | None:
    try:
        item = find_by_name(name, keys.list_api_keys, max_pages=max_pages)
    except Exception as exc:
        reporter.error(f"Failed to check if key already exists. Error {exc}")
        raise
    return RemoteApiKey.from_item(item) if item is not None else None


def find_usage_plan(
    name: str, plans: UsagePlanStore, reporter: Reporter, *, max_pages: int = DEFAULT_MAX_PAGES
) -> RemoteUsagePlan | None:
    try:
        item = find_by_name(name, plans.list_usage_plans, max_pages=max_pages)
    except Exception as exc:
        reporter.error(f"Failed to check if usage plan already exists. Error {exc}")
        raise
    return RemoteUsagePlan.from_item(item) if item is not None else None


def usage_plan_key_ids(
    plan_id: str, plan_keys: UsagePlanKeyStore, reporter: Reporter, *, max_pages: int = DEFAULT_MAX_PAGES
) -> set[str]:
    """Return the ids of every key already associated with the plan."""

    try:
        items = collect_items(lambda position: plan_keys.list_usage_plan_keys(plan_id, position), max_pages=max_pages)
    except Exception as exc:
        reporter.error(f"Failed to list keys of usage plan {plan_id}. Error {exc}")
        raise
    return {item["id"] for item in items if "id" in item}
