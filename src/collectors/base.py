"""Abstract job queue status provider consumed by the metrics collector."""

from abc import ABC, abstractmethod
from typing import Dict, List

from ..utils.metrics import ClusterStats, ProcessSnapshot


class StatusProvider(ABC):
    """Read-only view of a job queue cluster."""

    @abstractmethod
    def stats(self) -> ClusterStats:
        """
        Read cluster-wide counters.

        Returns:
            ClusterStats: Processed/failed/enqueued totals and set sizes

        Raises:
            Exception: Any backend error; callers do not retry
        """

    @abstractmethod
    def processes(self) -> List[ProcessSnapshot]:
        """Return every live worker process."""

    @abstractmethod
    def queues(self) -> Dict[str, int]:
        """Return a mapping of queue name to pending job count."""

    @abstractmethod
    def queue_latency(self, name: str) -> float:
        """
        Seconds the oldest pending job in a queue has been waiting.

        Args:
            name: Queue name

        Returns:
            float: Latency in seconds, 0.0 for an empty queue
        """
