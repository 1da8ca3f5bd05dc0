"""Metric data structures shared by the collector and publisher."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional

from .units import MetricUnit


class Dimension(NamedTuple):
    """A single name/value pair used to slice a metric."""

    name: str
    value: str


@dataclass
class MetricRecord:
    """One data point to be shipped to CloudWatch."""

    name: str
    timestamp: datetime
    value: float
    unit: MetricUnit
    dimensions: List[Dimension] = field(default_factory=list)

    def __post_init__(self):
        """Reject NaN values; they must be filtered before a record exists."""
        self.value = float(self.value)
        if math.isnan(self.value):
            raise ValueError(f"Metric {self.name} has a NaN value")

    def to_metric_datum(self) -> Dict[str, Any]:
        """
        Render the record as a CloudWatch MetricDatum.

        Returns:
            dict: Entry suitable for put_metric_data(MetricData=[...])
        """
        datum = {
            'MetricName': self.name,
            'Timestamp': self.timestamp,
            'Value': self.value,
            'Unit': self.unit.value,
        }
        if self.dimensions:
            datum['Dimensions'] = [
                {'Name': dimension.name, 'Value': dimension.value}
                for dimension in self.dimensions
            ]
        return datum


@dataclass
class ProcessSnapshot:
    """A worker process as seen at collection time."""

    hostname: str
    concurrency: int
    busy: int
    tag: Optional[str] = None

    def utilization(self) -> Optional[float]:
        """Return busy / concurrency, or None while the process has no threads."""
        if not self.concurrency:
            return None
        return self.busy / float(self.concurrency)


@dataclass
class QueueSnapshot:
    """Pending depth and age of a single queue."""

    name: str
    size: int
    latency: float = 0.0


@dataclass
class ClusterStats:
    """Cluster-wide counters reported by the job queue."""

    processed: int = 0
    failed: int = 0
    enqueued: int = 0
    scheduled_size: int = 0
    retry_size: int = 0
    dead_size: int = 0
    workers_size: int = 0
    processes_size: int = 0
    default_queue_latency: float = 0.0
