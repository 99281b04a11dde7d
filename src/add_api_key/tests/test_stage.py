"""Test linking the deployed REST API stage to a usage plan.

'why': the link is added exactly once and missing outputs fail loudly
"""
from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from add_api_key._errors import StackOutputError
from add_api_key._logging import Reporter
from add_api_key._models import RemoteUsagePlan
from add_api_key._stage import associate_rest_api, detach_api_stages, rest_api_id_from_outputs

from ._utils import FakeGateway, RecordingSink, client_error


def test_api_id_parsed_from_service_endpoint() -> None:
    outputs = [
        {"OutputKey": "ServerlessDeploymentBucketName", "OutputValue": "bucket"},
        {"OutputKey": "ServiceEndpoint", "OutputValue": "https://x1y2z3.execute-api.eu-west-1.amazonaws.com/prod"},
    ]

    assert rest_api_id_from_outputs(outputs) == "x1y2z3"


def test_missing_endpoint_output_raises() -> None:
    with pytest.raises(StackOutputError):
        _ = rest_api_id_from_outputs([{"OutputKey": "Other", "OutputValue": "https://a.b"}])


def test_malformed_endpoint_raises() -> None:
    with pytest.raises(StackOutputError):
        _ = rest_api_id_from_outputs([{"OutputKey": "ServiceEndpoint", "OutputValue": "not-a-url"}])


def test_patch_issued_when_stage_missing(gateway: FakeGateway, sink: RecordingSink) -> None:
    plan_id = gateway.seed_plan("plan", stages=[("other-api", "dev")])
    plan = RemoteUsagePlan.from_item(gateway.plans[0])

    patched = associate_rest_api("svc-dev", plan, "dev", gateway, gateway, Reporter("AddApiKey", sink))

    assert patched is True
    assert gateway.calls == [("add_api_stage", plan_id, "abc123", "dev")]
    assert ("describe_stack", "svc-dev") in gateway.reads
    assert sink.lines[-1] == "AddApiKey: Completed associating rest Api abc123 with the usage plan"


def test_existing_stage_link_is_a_no_op(gateway: FakeGateway, sink: RecordingSink) -> None:
    """
    Given: a plan whose apiStages already contains the deployed api/stage
    When: associate_rest_api runs
    Then: no patch call is made and no error is raised
    """
    _ = gateway.seed_plan("plan", stages=[("abc123", "dev")])
    plan = RemoteUsagePlan.from_item(gateway.plans[0])

    patched = associate_rest_api("svc-dev", plan, "dev", gateway, gateway, Reporter("AddApiKey", sink))

    assert patched is False
    assert gateway.calls == []


def test_same_api_other_stage_still_patched(gateway: FakeGateway, sink: RecordingSink) -> None:
    _ = gateway.seed_plan("plan", stages=[("abc123", "prod")])
    plan = RemoteUsagePlan.from_item(gateway.plans[0])

    assert associate_rest_api("svc-dev", plan, "dev", gateway, gateway, Reporter("AddApiKey", sink)) is True


def test_describe_failure_propagates(gateway: FakeGateway, sink: RecordingSink) -> None:
    gateway.failures["describe_stack"] = client_error("ValidationError", "DescribeStacks", "Stack does not exist")
    plan = RemoteUsagePlan(id="plan-1", name="plan")

    with pytest.raises(Exception) as exc:
        _ = associate_rest_api("svc-dev", plan, "dev", gateway, gateway, Reporter("AddApiKey", sink))

    assert "Stack does not exist" in str(exc.value)
    assert gateway.calls == []
    assert sink.lines[-1].startswith("AddApiKey: Failed to associate rest api")


def test_detach_removes_every_linked_stage(gateway: FakeGateway, sink: RecordingSink) -> None:
    plan_id = gateway.seed_plan("plan", stages=[("abc123", "dev"), ("other-api", "prod")])
    plan = RemoteUsagePlan.from_item(gateway.plans[0])

    removed = detach_api_stages(plan, gateway, Reporter("RemoveApiKey", sink))

    assert removed == 2
    assert gateway.calls == [
        ("remove_api_stage", plan_id, "abc123", "dev"),
        ("remove_api_stage", plan_id, "other-api", "prod"),
    ]
    assert gateway.plans[0]["apiStages"] == []


def test_detach_failure_propagates(gateway: FakeGateway, sink: RecordingSink) -> None:
    _ = gateway.seed_plan("plan", stages=[("abc123", "dev")])
    gateway.failures["remove_api_stage"] = client_error("ConflictException", "UpdateUsagePlan")
    plan = RemoteUsagePlan.from_item(gateway.plans[0])

    with pytest.raises(ClientError):
        _ = detach_api_stages(plan, gateway, Reporter("RemoveApiKey", sink))

    assert sink.lines[-1].startswith("RemoveApiKey: Failed to detach abc123:dev")
