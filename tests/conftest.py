"""
Shared fixtures for the error monitoring tests.
"""

import pytest

from models.data_models import Environment, SessionContext
from services.aggregator import ErrorAggregator
from services.context import ContextCollector
from services.monitor import ErrorMonitor
from services.report_builder import ReportBuilder
from services.storage import ReportStore


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    return SessionContext(user_id="42")


@pytest.fixture
def environment():
    return Environment(
        url="https://app.example.com/tasks",
        user_agent="Mozilla/5.0 (X11; Linux x86_64)",
        online=True,
        connection_type="wifi",
        effective_type="4g",
    )


@pytest.fixture
def collector(session, environment, clock):
    return ContextCollector(session, probe=lambda: environment, clock=clock)


@pytest.fixture
def builder(collector, clock):
    return ReportBuilder(collector, clock=clock)


@pytest.fixture
def aggregator(clock):
    return ErrorAggregator(max_errors=100, clock=clock)


@pytest.fixture
def store(tmp_path):
    return ReportStore(str(tmp_path / "data" / "errors.jsonl"))


@pytest.fixture
def monitor(builder, aggregator, store):
    return ErrorMonitor(builder, aggregator, store=store)
