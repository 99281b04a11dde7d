"""Exercise the teardown reconciliation against the in-memory gateway.

'why': plans still serving API stages are never deleted, and protection halts the run
"""
from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from add_api_key._config import parse_key_specs
from add_api_key._logging import Reporter
from add_api_key._models import DesiredKeySpec, RemoteUsagePlan
from add_api_key._reconcile import RunContext, add_api_keys, remove_api_keys
from add_api_key._stage import detach_api_stages

from ._utils import FakeGateway, RecordingSink, client_error


def test_unlinked_plan_and_key_are_deleted(
    gateway: FakeGateway, run_context: RunContext, remove_reporter: Reporter, sink: RecordingSink
) -> None:
    key_id = gateway.seed_key("svc-key")
    plan_id = gateway.seed_plan("svc-key-usage-plan")

    report = remove_api_keys((DesiredKeySpec(name="svc-key"),), run_context, gateway.collaborators(), remove_reporter)

    assert gateway.calls == [("delete_usage_plan", plan_id), ("delete_api_key", key_id)]
    assert report.deleted_plans == ("svc-key-usage-plan",)
    assert report.deleted_keys == ("svc-key",)
    assert all(line.startswith("RemoveApiKey: ") for line in sink.lines)


def test_plan_with_api_stages_blocks_plan_and_key_deletion(
    gateway: FakeGateway, run_context: RunContext, remove_reporter: Reporter
) -> None:
    """
    Given: the first key's plan still has an API stage, the second key's plan has none
    When: the remove path runs
    Then: nothing is deleted for the first key and the second key is fully removed
    """
    _ = gateway.seed_key("first")
    _ = gateway.seed_plan("first-usage-plan", stages=[("abc123", "dev")])
    second_key = gateway.seed_key("second")
    second_plan = gateway.seed_plan("second-usage-plan")
    specs = (DesiredKeySpec(name="first"), DesiredKeySpec(name="second"))

    report = remove_api_keys(specs, run_context, gateway.collaborators(), remove_reporter)

    assert gateway.calls == [("delete_usage_plan", second_plan), ("delete_api_key", second_key)]
    assert report.skipped == ("first",)


def test_missing_plan_still_deletes_key(gateway: FakeGateway, run_context: RunContext, remove_reporter: Reporter) -> None:
    key_id = gateway.seed_key("svc-key")

    report = remove_api_keys((DesiredKeySpec(name="svc-key"),), run_context, gateway.collaborators(), remove_reporter)

    assert gateway.calls == [("delete_api_key", key_id)]
    assert report.deleted_plans == ()


def test_missing_key_continues_to_next(
    gateway: FakeGateway, run_context: RunContext, remove_reporter: Reporter, sink: RecordingSink
) -> None:
    other_key = gateway.seed_key("other")
    specs = (DesiredKeySpec(name="gone"), DesiredKeySpec(name="other"))

    report = remove_api_keys(specs, run_context, gateway.collaborators(), remove_reporter)

    assert gateway.calls == [("delete_api_key", other_key)]
    assert report.deleted_keys == ("other",)
    assert "RemoveApiKey: gone not found." in sink.lines


@pytest.mark.parametrize("flag", [False, "false"])
def test_protected_first_key_halts_whole_run(
    gateway: FakeGateway, run_context: RunContext, remove_reporter: Reporter, flag: object
) -> None:
    """A protected key stops the loop entirely; later keys are not even looked up.

    This mirrors long-standing plugin behaviour, which ends the run rather than skipping one key.
    """
    _ = gateway.seed_key("unprotected")
    specs = parse_key_specs([{"name": "protected", "deleteAtRemoval": flag}, {"name": "unprotected"}], "dev")

    report = remove_api_keys(specs, run_context, gateway.collaborators(), remove_reporter)

    assert gateway.reads == []
    assert gateway.calls == []
    assert report.protected == "protected"


def test_protected_key_after_deleted_key(gateway: FakeGateway, run_context: RunContext, remove_reporter: Reporter) -> None:
    first = gateway.seed_key("first")
    _ = gateway.seed_key("last")
    specs = (
        DesiredKeySpec(name="first"),
        DesiredKeySpec(name="protected", delete_at_removal=False),
        DesiredKeySpec(name="last"),
    )

    report = remove_api_keys(specs, run_context, gateway.collaborators(), remove_reporter)

    assert gateway.calls == [("delete_api_key", first)]
    assert report.deleted_keys == ("first",)


def test_custom_plan_name_is_resolved_for_removal(
    gateway: FakeGateway, run_context: RunContext, remove_reporter: Reporter
) -> None:
    plan_id = gateway.seed_plan("gold")
    _ = gateway.seed_plan("svc-key-usage-plan")

    _ = remove_api_keys(
        (DesiredKeySpec(name="svc-key", usage_plan={"name": "gold"}),),
        run_context,
        gateway.collaborators(),
        remove_reporter,
    )

    assert gateway.calls == [("delete_usage_plan", plan_id)]


def test_delete_failure_propagates(
    gateway: FakeGateway, run_context: RunContext, remove_reporter: Reporter, sink: RecordingSink
) -> None:
    plan_id = gateway.seed_plan("svc-key-usage-plan")
    gateway.failures["delete_usage_plan"] = client_error("ConflictException", "DeleteUsagePlan")

    with pytest.raises(ClientError):
        _ = remove_api_keys((DesiredKeySpec(name="svc-key"),), run_context, gateway.collaborators(), remove_reporter)

    assert sink.lines[-1] == f"RemoveApiKey: Failed to delete usage plan {plan_id}."


def test_detached_plan_is_removed_after_add(
    gateway: FakeGateway, run_context: RunContext, remove_reporter: Reporter
) -> None:
    """
    Given: a key added by the deploy path, so its plan serves the deployed stage
    When: the stage is detached from the plan and the teardown path runs
    Then: both the plan and the key are deleted
    """
    specs = (DesiredKeySpec(name="svc-key"),)
    collaborators = gateway.collaborators()
    _ = add_api_keys(specs, run_context, collaborators, Reporter("AddApiKey", RecordingSink()))

    blocked = remove_api_keys(specs, run_context, collaborators, remove_reporter)
    assert blocked.skipped == ("svc-key",)

    _ = detach_api_stages(RemoteUsagePlan.from_item(gateway.plans[0]), collaborators.plans, remove_reporter)
    report = remove_api_keys(specs, run_context, collaborators, remove_reporter)

    assert report.deleted_plans == ("svc-key-usage-plan",)
    assert report.deleted_keys == ("svc-key",)
    assert gateway.keys == []
    assert gateway.plans == []
