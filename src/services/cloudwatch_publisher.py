"""Background loop publishing job queue metrics to CloudWatch."""

import logging
import threading
import time
from typing import Any, Callable, List, Optional

import boto3
from botocore.config import Config

from ..collectors.queue_collector import MetricsCollector
from ..utils.metrics import MetricRecord


DEFAULT_INTERVAL = 60  # seconds

# PutMetricData accepts at most 20 metrics per call
MAX_METRICS_PER_CALL = 20


def build_cloudwatch_client(region: Optional[str] = None, max_attempts: int = 3):
    """
    Create a CloudWatch client with bounded standard-mode retries.

    Args:
        region: AWS region, or None for the boto3 default chain
        max_attempts: Total attempts per API call, including the first

    Returns:
        botocore client for the cloudwatch service
    """
    config = Config(retries={'max_attempts': max_attempts, 'mode': 'standard'})
    return boto3.client('cloudwatch', region_name=region, config=config)


def batched(records: List[MetricRecord], size: int = MAX_METRICS_PER_CALL) -> List[List[MetricRecord]]:
    """Split records into consecutive slices of at most `size` items."""
    return [records[i:i + size] for i in range(0, len(records), size)]


class MetricsPublisher:
    """
    Publish collector snapshots to CloudWatch every `interval` seconds.

    Runs on a dedicated thread. Errors raised by a single tick are logged and
    handed to the exception handler; the loop keeps going. quiet() lets the
    current sleep finish before exiting, stop() interrupts it and waits for
    the thread to exit.
    """

    def __init__(
        self,
        collector: MetricsCollector,
        client: Any = None,
        namespace: str = "Sidekiq",
        interval: float = DEFAULT_INTERVAL,
        exception_handler: Optional[Callable[[Exception], None]] = None,
        clock: Callable[[], float] = time.time,
        sleep: Optional[Callable[[float], Any]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize metrics publisher.

        Args:
            collector: Source of metric snapshots
            client: boto3 CloudWatch client (created when omitted)
            namespace: CloudWatch namespace for every metric
            interval: Seconds between ticks
            exception_handler: Called with any exception raised by a tick
            clock: Returns the current time in seconds
            sleep: Blocks for the given seconds; defaults to an interruptible wait
            logger: Optional logger instance
        """
        self.collector = collector
        self.client = client if client is not None else build_cloudwatch_client()
        self.namespace = namespace
        self.interval = interval
        self.exception_handler = exception_handler or self._log_exception
        self.clock = clock
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

        # Replaced on every start(); a quieted or stopped loop keeps its own pair
        self._done = threading.Event()
        self._wakeup = threading.Event()
        self._sleep = sleep
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Spawn the publishing thread and return immediately."""
        self.logger.debug("Starting CloudWatch metrics publisher")

        done = self._done = threading.Event()
        wakeup = self._wakeup = threading.Event()
        self._thread = threading.Thread(
            target=self._loop,
            args=(done, wakeup),
            name="cloudwatch-metrics-publisher",
            daemon=True
        )
        self._thread.start()

    def running(self) -> bool:
        """Whether the publishing thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        """
        Publish metrics every interval until asked to stop.

        A slow publish pushes the next tick to "now" instead of queueing
        catch-up ticks.
        """
        self._loop(self._done, self._wakeup)

    def _loop(self, done: threading.Event, wakeup: threading.Event) -> None:
        self.logger.info("Started CloudWatch metrics publisher")

        sleep = self._sleep or wakeup.wait

        tick = self.clock()
        while not done.is_set():
            self.logger.debug("Publishing CloudWatch metrics")
            try:
                self.publish()
            except Exception as e:
                self.logger.error(f"Error publishing CloudWatch metrics: {e}")
                self._handle_exception(e)

            now = self.clock()
            tick = max(tick + self.interval, now)
            if tick > now:
                sleep(tick - now)

        self.logger.info("Stopped CloudWatch metrics publisher")

    def publish(self) -> int:
        """
        Collect one snapshot and ship it in batches.

        Returns:
            int: Number of metric records sent

        Raises:
            Exception: Collector or CloudWatch errors propagate unchanged
        """
        metrics = self.collector.collect()

        for batch in batched(metrics):
            self.client.put_metric_data(
                Namespace=self.namespace,
                MetricData=[metric.to_metric_datum() for metric in batch]
            )

        self.logger.debug(f"Published {len(metrics)} metric(s) to {self.namespace}")
        return len(metrics)

    def quiet(self) -> None:
        """Stop after the current sleep, without interrupting it."""
        self.logger.debug("Quieting CloudWatch metrics publisher")
        self._done.set()

    def stop(self) -> None:
        """Interrupt the current sleep and wait for the thread to exit."""
        self.logger.debug("Stopping CloudWatch metrics publisher")
        self._done.set()
        self._wakeup.set()

        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        if thread.is_alive():
            thread.join()

    def _handle_exception(self, error: Exception) -> None:
        try:
            self.exception_handler(error)
        except Exception as handler_error:
            self.logger.error(
                f"Exception handler failed: {handler_error}",
                exc_info=True
            )

    def _log_exception(self, error: Exception) -> None:
        self.logger.error(
            "Publisher tick failed",
            exc_info=error,
            extra={
                "error_type": type(error).__name__,
                "error_message": str(error)
            }
        )
