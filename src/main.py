"""Main entry point for the job queue CloudWatch metrics publisher."""

import argparse
import logging
import signal
import sys
import time
from typing import Optional

from .collectors.queue_collector import MetricsCollector
from .collectors.redis_status import RedisStatusProvider
from .config.loader import ConfigLoader
from .config.models import PublisherSystemConfig
from .config.settings import Settings
from .services.cloudwatch_publisher import MetricsPublisher, build_cloudwatch_client
from .utils.logger import setup_logger


class MetricsApp:
    """
    Host process for the metrics publisher.

    Wires configuration, the Redis status provider, the collector and the
    CloudWatch publisher together, and maps process signals onto the
    publisher lifecycle.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        dry_run: bool = False,
        log_level: str = "INFO"
    ):
        """
        Initialize metrics application.

        Args:
            config_path: Path to configuration file, or None for defaults
            dry_run: If True, log collected metrics instead of publishing
            log_level: Logging level name
        """
        self.config_path = config_path
        self.dry_run = dry_run
        self.logger = setup_logger(
            "queue_metrics",
            log_level,
            static_fields={"service": "jobqueue-cloudwatch-metrics"}
        )

        self.config = self._load_config()

        status = RedisStatusProvider.from_url(self.config.redis.url, logger=self.logger)
        self.collector = self._build_collector(status)
        self.publisher: Optional[MetricsPublisher] = None

    def _load_config(self) -> PublisherSystemConfig:
        """
        Load and validate configuration.

        Raises:
            SystemExit: If configuration is invalid
        """
        try:
            self.logger.info(f"Loading configuration from {self.config_path or 'defaults'}")
            return ConfigLoader.load(self.config_path)

        except FileNotFoundError:
            self.logger.error(f"Configuration file not found: {self.config_path}")
            sys.exit(1)

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
            sys.exit(1)

    def _build_collector(self, status: RedisStatusProvider) -> MetricsCollector:
        metrics = self.config.metrics
        return MetricsCollector(
            status,
            default_metrics=metrics.default_metrics,
            utilization_metrics=metrics.utilization_metrics,
            process_metrics=metrics.process_metrics,
            queue_metrics=metrics.queue_metrics,
            additional_dimensions=metrics.additional_dimensions,
            logger=self.logger
        )

    def _build_publisher(self) -> MetricsPublisher:
        cloudwatch = self.config.cloudwatch
        return MetricsPublisher(
            self.collector,
            client=build_cloudwatch_client(cloudwatch.region, cloudwatch.max_attempts),
            namespace=cloudwatch.namespace,
            interval=cloudwatch.interval,
            logger=self.logger
        )

    def run_once(self) -> int:
        """
        Collect one snapshot and publish it, or log it in dry-run mode.

        Returns:
            int: Number of metric records collected
        """
        if self.dry_run:
            metrics = self.collector.collect()
            self.logger.info(f"DRY RUN - collected {len(metrics)} metric(s)")
            for metric in metrics:
                self.logger.info(
                    metric.name,
                    extra={
                        "value": metric.value,
                        "unit": metric.unit.value,
                        "dimensions": {d.name: d.value for d in metric.dimensions}
                    }
                )
            return len(metrics)

        publisher = self._build_publisher()
        count = publisher.publish()
        self.logger.info(f"Published {count} metric(s) to {publisher.namespace}")
        return count

    def run_forever(self) -> None:
        """Start the publisher and block until it stops."""
        self.publisher = self._build_publisher()

        signal.signal(signal.SIGTERM, self._stop_handler)
        signal.signal(signal.SIGINT, self._stop_handler)
        if hasattr(signal, "SIGTSTP"):
            signal.signal(signal.SIGTSTP, self._quiet_handler)

        self.publisher.start()
        self.logger.info(
            f"Publishing every {self.publisher.interval}s to namespace {self.publisher.namespace}"
        )

        while self.publisher.running():
            time.sleep(1)

        self.logger.info("Publisher exited")

    def _stop_handler(self, signum, frame):
        """Stop promptly on SIGTERM/SIGINT."""
        self.logger.info(f"Received {signal.Signals(signum).name}, stopping publisher")
        if self.publisher:
            self.publisher.stop()

    def _quiet_handler(self, signum, frame):
        """Finish the current interval, then stop, on SIGTSTP."""
        self.logger.info(f"Received {signal.Signals(signum).name}, quieting publisher")
        if self.publisher:
            self.publisher.quiet()


def main():
    """
    CLI entry point.

    Parses command-line arguments and starts the publisher.
    """
    parser = argparse.ArgumentParser(
        description='Publish job queue metrics to Amazon CloudWatch',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Publish every interval until stopped
  python -m src.main --config config/config.yaml

  # Publish a single snapshot and exit
  python -m src.main --run-once

  # Collect and log metrics without calling CloudWatch
  python -m src.main --run-once --dry-run
        """
    )

    parser.add_argument(
        '--config',
        default=None,
        help='Path to configuration file (default: built-in defaults)'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Publish one snapshot and exit'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Log collected metrics instead of publishing them'
    )

    parser.add_argument(
        '--log-level',
        default=Settings().LOG_LEVEL.upper(),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    args = parser.parse_args()

    try:
        app = MetricsApp(
            config_path=args.config,
            dry_run=args.dry_run,
            log_level=args.log_level
        )

        if args.run_once or args.dry_run:
            exit_code = 0
            try:
                app.run_once()
            except Exception as e:
                app.logger.error(f"Publish failed: {e}", exc_info=True)
                exit_code = 1

            sys.exit(exit_code)
        else:
            app.run_forever()

    except Exception as e:
        logging.error(f"Application startup failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
