"""Tests for RedisStatusProvider."""

import json
import pytest
from unittest.mock import MagicMock, patch

from src.collectors.redis_status import RedisStatusProvider
from src.utils.metrics import ProcessSnapshot

NOW = 1_700_000_000.0


@pytest.fixture
def redis_client():
    """MagicMock Redis client populated with a small Sidekiq layout."""
    client = MagicMock()

    sets = {
        "queues": {"default", "mailers"},
        "processes": {"host-a:1:abc", "host-b:2:def", "host-c:3:gone"},
    }
    lists = {
        "queue:default": [
            json.dumps({"jid": "2", "enqueued_at": NOW - 5}),
            json.dumps({"jid": "1", "enqueued_at": NOW - 30}),
        ],
        "queue:mailers": [],
    }
    hashes = {
        "host-a:1:abc": {
            "info": json.dumps({"hostname": "host-a", "tag": "web", "concurrency": 10}),
            "busy": "4",
        },
        "host-b:2:def": {
            "info": json.dumps({"hostname": "host-b", "tag": "", "concurrency": 5}),
            "busy": "1",
        },
    }
    strings = {"stat:processed": "1000", "stat:failed": "7"}
    zsets = {"schedule": 2, "retry": 3, "dead": 1}

    client.smembers.side_effect = lambda key: sets.get(key, set())
    client.llen.side_effect = lambda key: len(lists.get(key, []))
    client.lrange.side_effect = lambda key, start, end: lists.get(key, [])[start:]
    client.hmget.side_effect = lambda key, fields: [hashes.get(key, {}).get(f) for f in fields]
    client.hget.side_effect = lambda key, field: hashes.get(key, {}).get(field)
    client.get.side_effect = lambda key: strings.get(key)
    client.zcard.side_effect = lambda key: zsets.get(key, 0)
    client.scard.side_effect = lambda key: len(sets.get(key, set()))
    return client


@pytest.fixture
def provider(redis_client):
    return RedisStatusProvider(redis_client, clock=lambda: NOW)


class TestRedisStatusProvider:
    """Test suite for RedisStatusProvider."""

    def test_queues_sorted_with_sizes(self, provider):
        assert provider.queues() == {"default": 2, "mailers": 0}

    def test_queue_latency_uses_oldest_job(self, provider, redis_client):
        assert provider.queue_latency("default") == pytest.approx(30.0)
        redis_client.lrange.assert_called_with("queue:default", -1, -1)

    def test_queue_latency_empty_queue(self, provider):
        assert provider.queue_latency("mailers") == 0.0

    def test_queue_latency_milliseconds(self, redis_client):
        redis_client.lrange.side_effect = None
        redis_client.lrange.return_value = [json.dumps({"enqueued_at": (NOW - 2) * 1000})]
        provider = RedisStatusProvider(redis_client, clock=lambda: NOW)

        assert provider.queue_latency("default") == pytest.approx(2.0)

    def test_processes_skip_expired_heartbeats(self, provider):
        processes = provider.processes()

        assert processes == [
            ProcessSnapshot(hostname="host-a", tag="web", concurrency=10, busy=4),
            ProcessSnapshot(hostname="host-b", tag=None, concurrency=5, busy=1),
        ]

    def test_stats(self, provider):
        stats = provider.stats()

        assert stats.processed == 1000
        assert stats.failed == 7
        assert stats.enqueued == 2
        assert stats.scheduled_size == 2
        assert stats.retry_size == 3
        assert stats.dead_size == 1
        assert stats.workers_size == 5
        assert stats.processes_size == 3
        assert stats.default_queue_latency == pytest.approx(30.0)

    def test_stats_reads_busy_without_decoding_process_info(self, provider, redis_client):
        provider.stats()

        redis_client.hmget.assert_not_called()
        busy_reads = sorted(call.args for call in redis_client.hget.call_args_list)
        assert busy_reads == [
            ("host-a:1:abc", "busy"),
            ("host-b:2:def", "busy"),
            ("host-c:3:gone", "busy"),
        ]

    def test_missing_counters_default_to_zero(self, redis_client):
        redis_client.get.side_effect = lambda key: None
        stats = RedisStatusProvider(redis_client, clock=lambda: NOW).stats()

        assert stats.processed == 0
        assert stats.failed == 0

    def test_redis_errors_propagate(self, redis_client):
        redis_client.smembers.side_effect = ConnectionError("connection refused")
        provider = RedisStatusProvider(redis_client)

        with pytest.raises(ConnectionError):
            provider.queues()

    def test_from_url(self):
        with patch('src.collectors.redis_status.redis') as mock_redis:
            provider = RedisStatusProvider.from_url("redis://cache:6379/1")

        mock_redis.Redis.from_url.assert_called_once_with(
            "redis://cache:6379/1", decode_responses=True
        )
        assert provider.client is mock_redis.Redis.from_url.return_value
