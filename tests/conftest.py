"""
Pytest configuration and shared fixtures.
"""

import pytest

from src.analytics.models import AnalyticConfig, MetricQueryResult, Sample


class FakeMetricSource:
    """Metric source returning canned series and recording its queries"""

    def __init__(self, data=None, error=None):
        self.data = data or {}
        self.error = error
        self.queries = []

    async def query(self, from_, to, step):
        self.queries.append((from_, to, step))
        if self.error is not None:
            raise self.error
        return MetricQueryResult(data={k: [Sample(*p) for p in v] for k, v in self.data.items()})


@pytest.fixture
def analytic_config():
    """Analytic configuration for testing."""
    return AnalyticConfig(
        unit_id="unit-test",
        detection_step=10,
        prometheus_url="http://prometheus:9090",
        prometheus_query="node_load1",
        postgres_host="localhost",
        postgres_port=5432,
        postgres_database="test_db",
        postgres_user="test_user",
        postgres_password="test_password",
        redis_host="localhost",
    )


@pytest.fixture
def crossing_series():
    """Series that crosses 0.5 once and comes back below it."""
    return [(0, 0.1), (10, 0.9), (20, 0.95), (30, 0.2)]


@pytest.fixture
def metric_source(crossing_series):
    """Metric source with a single series."""
    return FakeMetricSource({'node_load1{instance="a"}': crossing_series})


@pytest.fixture
def empty_metric_source():
    """Metric source whose queries return no series."""
    return FakeMetricSource()


@pytest.fixture
def make_metric_source():
    """Factory for metric sources with custom data or errors."""
    return FakeMetricSource
