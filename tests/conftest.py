"""Shared pytest configuration and fixtures."""

import pytest
from datetime import datetime, timezone
from typing import Dict, List

from src.collectors.base import StatusProvider
from src.utils.logger import setup_logger
from src.utils.metrics import ClusterStats, ProcessSnapshot


FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeStatusProvider(StatusProvider):
    """In-memory status provider for collector tests."""

    def __init__(
        self,
        stats: ClusterStats = None,
        processes: List[ProcessSnapshot] = None,
        queues: Dict[str, int] = None,
        latencies: Dict[str, float] = None
    ):
        self._stats = stats or ClusterStats()
        self._processes = processes or []
        self._queues = queues or {}
        self._latencies = latencies or {}

    def stats(self) -> ClusterStats:
        return self._stats

    def processes(self) -> List[ProcessSnapshot]:
        return list(self._processes)

    def queues(self) -> Dict[str, int]:
        return dict(self._queues)

    def queue_latency(self, name: str) -> float:
        return self._latencies.get(name, 0.0)


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test", "DEBUG")


@pytest.fixture
def cluster_stats():
    """Cluster counters with distinct values per field."""
    return ClusterStats(
        processed=123,
        failed=4,
        enqueued=6,
        scheduled_size=2,
        retry_size=3,
        dead_size=1,
        workers_size=5,
        processes_size=3,
        default_queue_latency=1.5,
    )


@pytest.fixture
def processes():
    """Three processes: two tagged 'web', one untagged."""
    return [
        ProcessSnapshot(hostname="host-a", tag="web", concurrency=10, busy=5),
        ProcessSnapshot(hostname="host-b", tag="web", concurrency=10, busy=10),
        ProcessSnapshot(hostname="host-c", tag=None, concurrency=4, busy=0),
    ]


@pytest.fixture
def fixed_clock():
    """Clock returning a constant collection timestamp."""
    return lambda: FIXED_NOW
