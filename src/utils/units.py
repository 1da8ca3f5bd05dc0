"""Metric unit enumeration."""

from enum import Enum


class MetricUnit(Enum):
    """CloudWatch units emitted by the collector."""

    COUNT = "Count"
    SECONDS = "Seconds"
    PERCENT = "Percent"
