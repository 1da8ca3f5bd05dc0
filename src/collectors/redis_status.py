"""Job queue status read directly from Sidekiq's Redis keys."""

import json
import logging
import time
from typing import Callable, Dict, List, Optional

import redis

from ..utils.metrics import ClusterStats, ProcessSnapshot
from .base import StatusProvider


# enqueued_at values above this are epoch milliseconds rather than seconds
MILLISECONDS_THRESHOLD = 1e12


class RedisStatusProvider(StatusProvider):
    """
    Status provider backed by the Redis layout Sidekiq writes.

    Keys read:
        stat:processed, stat:failed      - lifetime counters
        queues / queue:<name>            - queue names and pending jobs
        schedule, retry, dead            - sorted sets of deferred jobs
        processes / <identity>           - live process heartbeats

    The client is expected to decode responses to str.
    """

    def __init__(
        self,
        client: redis.Redis,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize Redis status provider.

        Args:
            client: Redis client created with decode_responses=True
            clock: Returns the current epoch time in seconds
            logger: Optional logger instance
        """
        self.client = client
        self.clock = clock
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    @classmethod
    def from_url(cls, url: str, logger: Optional[logging.Logger] = None) -> "RedisStatusProvider":
        """Build a provider from a redis:// URL."""
        client = redis.Redis.from_url(url, decode_responses=True)
        return cls(client, logger=logger)

    def stats(self) -> ClusterStats:
        """
        Read cluster-wide counters.

        Enqueued is summed from LLEN per queue and busy workers from the
        busy field of each process hash, without decoding process info.
        """
        identities = self.client.smembers("processes")
        enqueued = sum(
            self.client.llen(f"queue:{name}") for name in self.client.smembers("queues")
        )
        workers = sum(
            int(self.client.hget(identity, "busy") or 0) for identity in identities
        )

        return ClusterStats(
            processed=self._counter("stat:processed"),
            failed=self._counter("stat:failed"),
            enqueued=enqueued,
            scheduled_size=self.client.zcard("schedule"),
            retry_size=self.client.zcard("retry"),
            dead_size=self.client.zcard("dead"),
            workers_size=workers,
            processes_size=len(identities),
            default_queue_latency=self.queue_latency("default"),
        )

    def processes(self) -> List[ProcessSnapshot]:
        snapshots = []
        for identity in sorted(self.client.smembers("processes")):
            info, busy = self.client.hmget(identity, ["info", "busy"])

            # Heartbeat expired but the identity was not pruned yet
            if info is None:
                self.logger.debug(f"Skipping process without heartbeat: {identity}")
                continue

            details = json.loads(info)
            snapshots.append(ProcessSnapshot(
                hostname=details.get("hostname", ""),
                tag=details.get("tag") or None,
                concurrency=int(details.get("concurrency", 0)),
                busy=int(busy or 0),
            ))
        return snapshots

    def queues(self) -> Dict[str, int]:
        names = sorted(self.client.smembers("queues"))
        return {name: self.client.llen(f"queue:{name}") for name in names}

    def queue_latency(self, name: str) -> float:
        entries = self.client.lrange(f"queue:{name}", -1, -1)
        if not entries:
            return 0.0

        job = json.loads(entries[0])
        enqueued_at = job.get("enqueued_at")
        if enqueued_at is None:
            return 0.0

        enqueued_at = float(enqueued_at)
        if enqueued_at > MILLISECONDS_THRESHOLD:
            enqueued_at /= 1000.0

        return max(self.clock() - enqueued_at, 0.0)

    def _counter(self, key: str) -> int:
        value = self.client.get(key)
        return int(value) if value is not None else 0
