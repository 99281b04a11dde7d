"""Link the deployed REST API stage to a usage plan.

'why': recover the API id from stack outputs and patch the plan only when the link is missing
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Final

from ._errors import StackOutputError
from ._gateway import StackDescriber, UsagePlanStore
from ._logging import Reporter
from ._models import RemoteUsagePlan

ENDPOINT_OUTPUT_KEY: Final[str] = "ServiceEndpoint"


def rest_api_id_from_outputs(outputs: Iterable[Mapping[str, Any]]) -> str:
    """Extract the API id from `https://{apiId}.execute-api.{region}.amazonaws.com/{stage}`."""

    for output in outputs:
        if output.get("OutputKey") != ENDPOINT_OUTPUT_KEY:
            continue
        value = str(output.get("OutputValue") or "")
        host_prefix = value.split(".")[0]
        _, separator, api_id = host_prefix.partition("//")
        if not separator or not api_id:
            raise StackOutputError(f"{ENDPOINT_OUTPUT_KEY} output is not an endpoint URL: {value!r}")
        return api_id
    raise StackOutputError(f"stack has no {ENDPOINT_OUTPUT_KEY} output")


def associate_rest_api(
    stack_name: str,
    plan: RemoteUsagePlan,
    stage: str,
    stacks: StackDescriber,
    plans: UsagePlanStore,
    reporter: Reporter,
) -> bool:
    """Add `{apiId}:{stage}` to the plan unless it is already there.

    Returns True when a patch was issued.
    """

    try:
        stack = stacks.describe_stack(stack_name)
        api_id = rest_api_id_from_outputs(stack.get("Outputs") or ())
        if plan.has_stage(api_id, stage):
            reporter.info(f"Rest Api {api_id} already associated with the usage plan")
            return False
        plans.add_api_stage(plan.id, api_id, stage)
    except Exception as exc:
        reporter.error(f"Failed to associate rest api with usage plan {plan.id}. Error {exc}")
        raise
    reporter.info(f"Completed associating rest Api {api_id} with the usage plan")
    return True


def detach_api_stages(plan: RemoteUsagePlan, plans: UsagePlanStore, reporter: Reporter) -> int:
    """Remove every stage linked to the plan so the teardown path will delete it.

    Returns the number of stages removed.
    """

    for api_stage in plan.api_stages:
        try:
            plans.remove_api_stage(plan.id, api_stage.api_id, api_stage.stage)
        except Exception as exc:
            reporter.error(f"Failed to detach {api_stage.api_id}:{api_stage.stage} from usage plan {plan.id}. Error {exc}")
            raise
        reporter.info(f"Detached {api_stage.api_id}:{api_stage.stage} from usage plan {plan.id}")
    return len(plan.api_stages)
