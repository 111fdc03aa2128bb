"""Root conftest — shared test configuration."""

import os

import pytest

from lifeline.core.request_context import RequestContext
from tests.helpers import FakeClock, RecordingSink

# Ensure tests never run the module-level app in production mode
os.environ.setdefault("LIFELINE_ENVIRONMENT", "testing")
os.environ.setdefault("LIFELINE_LOG_BUFFERED", "false")


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def context() -> RequestContext:
    return RequestContext(method="GET", path="/")
