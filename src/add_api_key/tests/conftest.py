"""Provide shared pytest fixtures.

'why': centralize fake remote state and run context across scenarios
"""
from __future__ import annotations

import pytest

from add_api_key._logging import Reporter
from add_api_key._reconcile import RunContext

from ._utils import FakeGateway, RecordingSink


@pytest.fixture
def gateway() -> FakeGateway:
    """Return an empty in-memory gateway that pages two items at a time."""

    return FakeGateway()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def add_reporter(sink: RecordingSink) -> Reporter:
    return Reporter("AddApiKey", sink)


@pytest.fixture
def remove_reporter(sink: RecordingSink) -> Reporter:
    return Reporter("RemoveApiKey", sink)


@pytest.fixture
def run_context() -> RunContext:
    """Return a deterministic dev-stage context.

    'why': keep stack naming and region stable across reconciliation tests
    """

    return RunContext(stage="dev", region="us-east-1", stack_name="svc-dev")
