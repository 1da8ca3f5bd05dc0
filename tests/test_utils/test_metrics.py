"""Tests for metric data structures."""

import math
import pytest

from src.utils.metrics import Dimension, MetricRecord, ProcessSnapshot
from src.utils.units import MetricUnit

from tests.conftest import FIXED_NOW


class TestMetricRecord:

    def test_nan_rejected(self):
        with pytest.raises(ValueError, match="NaN"):
            MetricRecord("Utilization", FIXED_NOW, math.nan, MetricUnit.PERCENT)

    def test_value_coerced_to_float(self):
        record = MetricRecord("QueueSize", FIXED_NOW, 3, MetricUnit.COUNT)

        assert record.value == 3.0
        assert isinstance(record.value, float)

    def test_datum_includes_dimensions_in_order(self):
        record = MetricRecord(
            "Utilization", FIXED_NOW, 50, MetricUnit.PERCENT,
            [Dimension("Hostname", "host-a"), Dimension("Tag", "web"), Dimension("Tag", "web")]
        )

        assert record.to_metric_datum()['Dimensions'] == [
            {'Name': 'Hostname', 'Value': 'host-a'},
            {'Name': 'Tag', 'Value': 'web'},
            {'Name': 'Tag', 'Value': 'web'},
        ]


class TestProcessSnapshot:

    def test_utilization(self):
        assert ProcessSnapshot("a", concurrency=4, busy=1).utilization() == 0.25

    def test_zero_concurrency_is_undefined(self):
        assert ProcessSnapshot("a", concurrency=0, busy=0).utilization() is None
