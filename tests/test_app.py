import json
from datetime import datetime, timezone
from unittest import mock

import pytest

from texus.app import (
    REST_QUEUE,
    _push_coins,
    build_rest_queue,
    loop_save_candle,
    normalize_queue_item,
)
from texus.candle import RestQueue, period_to_minutes
from texus.config import AppConfig
from texus.core import Core


class FakeRedis:
    def __init__(self, queued=()):
        self.queued = list(queued)
        self.values = {}
        self.lists = {}
        self.sorted_sets = {}

    def brpop(self, key, timeout=0):
        if not self.queued:
            return None
        return (key, self.queued.pop(0))

    def lpush(self, key, value):
        self.lists.setdefault(key, []).insert(0, value)
        return len(self.lists[key])

    def set(self, key, value, ex=None):
        self.values[key] = value
        return True

    def getset(self, key, value):
        previous = self.values.get(key)
        self.values[key] = value
        return previous

    def expire(self, key, ttl):
        return True

    def zadd(self, name, mapping):
        self.sorted_sets.setdefault(name, {}).update(mapping)
        return len(mapping)

    def zrange(self, name, start, end):
        return []


def make_core(fake):
    config = AppConfig(config={"connect": {"restBaseUrl": "http://example.com"}})
    return Core(config, fake, env="")


def queue_item(inst_id, bar="15m"):
    return RestQueue(inst_id=inst_id, bar=bar).to_json()


def test_normalize_drops_usdt():
    assert normalize_queue_item(queue_item("USDT|position|key")) is None


def test_normalize_position_key_becomes_pair():
    request = normalize_queue_item(queue_item("BTC|position|key", "1H"))
    assert request.inst_id == "BTC-USDT"
    assert request.bar == "1H"


def test_normalize_keeps_plain_pair():
    request = normalize_queue_item(queue_item("ETH-USDT"))
    assert request.inst_id == "ETH-USDT"


def test_normalize_rejects_non_object():
    with pytest.raises(ValueError):
        normalize_queue_item("[1, 2]")


def test_build_rest_queue_single_bar_spread_is_minute_floor():
    now = datetime(2024, 1, 1, 0, 0, 30, tzinfo=timezone.utc)
    floor = int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)
    request = build_rest_queue("BTC-USDT", "15m", 1, now)
    assert request.after == floor
    assert request.inst_id == "BTC-USDT"
    assert request.bar == "15m"
    assert request.with_ws is False


def test_build_rest_queue_stays_within_spread():
    now = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
    floor = int(datetime(2024, 5, 6, 7, 8, tzinfo=timezone.utc).timestamp() * 1000)
    bar_ms = period_to_minutes("4H") * 60000
    for _ in range(50):
        request = build_rest_queue("ETH-USDT", "4H", 19, now)
        back = floor - request.after
        assert back >= 0
        assert back % bar_ms == 0
        assert back // bar_ms < 19


def test_build_rest_queue_rejects_empty_spread():
    with pytest.raises(ValueError):
        build_rest_queue("BTC-USDT", "1D", 0)


def test_loop_save_candle_fetches_and_stores():
    row = ["1700000000000", "1", "2", "0.5", "1.5", "10", "15", "1"]
    reply = mock.Mock()
    reply.content = json.dumps({"code": "0", "msg": "", "data": [row]}).encode("utf-8")
    fake = FakeRedis([queue_item("USDT|position|key"), queue_item("BTC|position|key")])
    core = make_core(fake)
    with mock.patch("requests.get", return_value=reply) as get:
        dispatched = loop_save_candle(core)
    assert dispatched == 1
    url = get.call_args[0][0]
    assert url.startswith("http://example.com/api/v5/market/candles?instId=BTC-USDT&bar=15m")
    key = "candle15m|BTC-USDT|ts:1700000000000"
    assert json.loads(fake.values[key]) == row
    assert key in fake.sorted_sets["candle15m|BTC-USDT|sortedSet"]


def test_loop_save_candle_empty_queue():
    assert loop_save_candle(make_core(FakeRedis())) == 0


def test_push_coins_leaves_out_last_coin():
    fake = FakeRedis()
    core = make_core(fake)
    pushed = _push_coins(core, ["A-USDT", "B-USDT", "C-USDT"], "1H", 3, 0.3)
    assert [request.inst_id for request in pushed] == ["A-USDT", "B-USDT"]
    queued = [RestQueue.from_json(raw).inst_id for raw in fake.lists[REST_QUEUE]]
    assert sorted(queued) == ["A-USDT", "B-USDT"]
    assert all(RestQueue.from_json(raw).bar == "1H" for raw in fake.lists[REST_QUEUE])