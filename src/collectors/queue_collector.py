"""Job queue metrics collector."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..utils.metrics import (
    ClusterStats,
    Dimension,
    MetricRecord,
    ProcessSnapshot,
    QueueSnapshot,
)
from ..utils.units import MetricUnit
from .base import StatusProvider


Transform = Callable[[List[MetricRecord], datetime], List[MetricRecord]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MetricsCollector:
    """
    Turn the current job queue state into a flat list of metric records.

    Every record produced by a single collect() call shares one timestamp.
    The value of process_metrics is ignored when utilization_metrics is off.
    """

    def __init__(
        self,
        status: StatusProvider,
        default_metrics: bool = True,
        utilization_metrics: bool = True,
        process_metrics: bool = True,
        queue_metrics: bool = True,
        additional_dimensions: Optional[Dict[str, Any]] = None,
        transform: Optional[Transform] = None,
        clock: Callable[[], datetime] = _utc_now,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize metrics collector.

        Args:
            status: Job queue status provider
            default_metrics: Emit cluster-wide counters and capacity
            utilization_metrics: Emit cluster and per-tag utilization
            process_metrics: Emit per-process utilization
            queue_metrics: Emit per-queue size and latency
            additional_dimensions: Dimensions appended to every record
            transform: Optional hook applied before additional dimensions
            clock: Returns the collection timestamp
            logger: Optional logger instance
        """
        self.status = status
        self.default_metrics = default_metrics
        self.utilization_metrics = utilization_metrics
        self.process_metrics = process_metrics
        self.queue_metrics = queue_metrics
        self.additional_dimensions = [
            Dimension(str(name), str(value))
            for name, value in (additional_dimensions or {}).items()
        ]
        self.transform = transform
        self.clock = clock
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    def collect(self) -> List[MetricRecord]:
        """
        Collect a fresh snapshot of cluster metrics.

        Returns:
            List[MetricRecord]: Records sharing a single timestamp

        Raises:
            Exception: Status provider errors propagate unchanged
        """
        now = self.clock()
        stats = self.status.stats()
        processes = list(self.status.processes())
        queues = self.status.queues()
        metrics: List[MetricRecord] = []

        if self.default_metrics:
            metrics.extend(self._default_metrics(stats, processes, now))

        if self.utilization_metrics:
            metrics.extend(self._utilization_metrics(processes, now))

            if self.process_metrics:
                metrics.extend(self._process_metrics(processes, now))

        if self.queue_metrics:
            snapshots = [
                QueueSnapshot(name=name, size=size, latency=self.status.queue_latency(name))
                for name, size in queues.items()
            ]
            metrics.extend(self._queue_metrics(snapshots, now))

        if self.transform is not None:
            metrics = self.transform(metrics, now)

        if self.additional_dimensions:
            for metric in metrics:
                metric.dimensions = list(metric.dimensions) + self.additional_dimensions

        self.logger.debug(f"Collected {len(metrics)} metric(s)")
        return metrics

    def _default_metrics(
        self,
        stats: ClusterStats,
        processes: List[ProcessSnapshot],
        now: datetime
    ) -> List[MetricRecord]:
        counters = [
            ("ProcessedJobs", stats.processed, MetricUnit.COUNT),
            ("FailedJobs", stats.failed, MetricUnit.COUNT),
            ("EnqueuedJobs", stats.enqueued, MetricUnit.COUNT),
            ("ScheduledJobs", stats.scheduled_size, MetricUnit.COUNT),
            ("RetryJobs", stats.retry_size, MetricUnit.COUNT),
            ("DeadJobs", stats.dead_size, MetricUnit.COUNT),
            ("Workers", stats.workers_size, MetricUnit.COUNT),
            ("Processes", stats.processes_size, MetricUnit.COUNT),
            ("DefaultQueueLatency", stats.default_queue_latency, MetricUnit.SECONDS),
            ("Capacity", calculate_capacity(processes), MetricUnit.COUNT),
        ]
        return [
            MetricRecord(name=name, timestamp=now, value=value, unit=unit)
            for name, value, unit in counters
        ]

    def _utilization_metrics(
        self,
        processes: List[ProcessSnapshot],
        now: datetime
    ) -> List[MetricRecord]:
        metrics = []

        utilization = calculate_utilization(processes)
        if utilization is not None:
            metrics.append(MetricRecord(
                name="Utilization",
                timestamp=now,
                value=utilization * 100.0,
                unit=MetricUnit.PERCENT
            ))

        # Group by tag, keeping first-seen order
        by_tag: Dict[str, List[ProcessSnapshot]] = {}
        for process in processes:
            if process.tag:
                by_tag.setdefault(process.tag, []).append(process)

        for tag, tag_processes in by_tag.items():
            tag_utilization = calculate_utilization(tag_processes)
            if tag_utilization is None:
                continue
            metrics.append(MetricRecord(
                name="Utilization",
                timestamp=now,
                value=tag_utilization * 100.0,
                unit=MetricUnit.PERCENT,
                dimensions=[Dimension("Tag", tag)]
            ))

        return metrics

    def _process_metrics(
        self,
        processes: List[ProcessSnapshot],
        now: datetime
    ) -> List[MetricRecord]:
        metrics = []
        for process in processes:
            process_utilization = process.utilization()
            if process_utilization is None:
                continue

            dimensions = [Dimension("Hostname", process.hostname)]
            if process.tag:
                dimensions.append(Dimension("Tag", process.tag))

            metrics.append(MetricRecord(
                name="Utilization",
                timestamp=now,
                value=process_utilization * 100.0,
                unit=MetricUnit.PERCENT,
                dimensions=dimensions
            ))
        return metrics

    def _queue_metrics(
        self,
        queues: List[QueueSnapshot],
        now: datetime
    ) -> List[MetricRecord]:
        metrics = []
        for queue in queues:
            dimensions = [Dimension("QueueName", queue.name)]
            metrics.append(MetricRecord(
                name="QueueSize",
                timestamp=now,
                value=queue.size,
                unit=MetricUnit.COUNT,
                dimensions=list(dimensions)
            ))
            metrics.append(MetricRecord(
                name="QueueLatency",
                timestamp=now,
                value=queue.latency,
                unit=MetricUnit.SECONDS,
                dimensions=list(dimensions)
            ))
        return metrics


def calculate_capacity(processes: Iterable[ProcessSnapshot]) -> int:
    """Total number of worker threads across all processes."""
    return sum(process.concurrency for process in processes)


def calculate_utilization(processes: Iterable[ProcessSnapshot]) -> Optional[float]:
    """
    Average busy / concurrency across processes, as a fraction.

    Processes not yet running any threads (concurrency 0) are left out of
    the average rather than counted as idle.

    Returns:
        Optional[float]: Mean utilization, or None if no process qualifies
    """
    ratios = [
        ratio for ratio in (process.utilization() for process in processes)
        if ratio is not None
    ]
    if not ratios:
        return None
    return sum(ratios) / float(len(ratios))
