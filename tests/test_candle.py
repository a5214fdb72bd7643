import json
from datetime import datetime, timedelta, timezone

import pytest

from texus.candle import (
    Candle,
    CandleData,
    CandleStore,
    MatchCheck,
    MaX,
    PriceError,
    RestQueue,
    hash_string,
    is_mod_of,
    key_expiry,
    period_to_minutes,
)

ROW = ["1597026383085", "8533.02", "8553.74", "8527.17", "8548.26", "45247", "529.5858061"]


class FakeRedis:
    def __init__(self):
        self.values = {}
        self.expires = {}
        self.zsets = {}
        self.lists = {}

    def _b(self, value):
        return value if isinstance(value, bytes) else str(value).encode()

    def set(self, name, value, ex=None):
        self.values[name] = self._b(value)
        self.expires[name] = ex
        return True

    def getset(self, name, value):
        old = self.values.get(name)
        self.values[name] = self._b(value)
        return old

    def expire(self, name, when):
        self.expires[name] = when
        return True

    def zadd(self, name, mapping):
        zset = self.zsets.setdefault(name, {})
        added = sum(1 for k in mapping if k not in zset)
        zset.update(mapping)
        return added

    def lpush(self, name, *values):
        self.lists.setdefault(name, [])[:0] = list(reversed(values))
        return len(self.lists[name])

    def scan_iter(self, match=None, count=None):
        prefix = match.rstrip("*")
        return [k.encode() for k in self.values if k.startswith(prefix)]

    def get(self, name):
        return self.values.get(name)


def test_hash_string_empty():
    assert hash_string("") == "e3b0c44298fc1c149afbf4c"


def test_hash_string_length_and_stable():
    value = hash_string("BTC-USDT1m1597026383085")
    assert len(value) == 23
    assert value == hash_string("BTC-USDT1m1597026383085")


def test_period_to_minutes():
    assert period_to_minutes("15m") == 15
    assert period_to_minutes("4H") == 4 * period_to_minutes("1H")
    assert period_to_minutes("1D") == 24 * period_to_minutes("1H")
    assert period_to_minutes("2D") == 2 * period_to_minutes("1D")
    assert period_to_minutes("12H") == 12 * period_to_minutes("1H")
    assert period_to_minutes("1W") == 7 * period_to_minutes("1D")


def test_period_unknown_unit_and_bad_input():
    assert period_to_minutes("5x") == 1
    assert period_to_minutes("xm") == 0
    with pytest.raises(ValueError):
        period_to_minutes("m")


def test_key_expiry():
    assert key_expiry("1m") == timedelta(minutes=100)
    assert key_expiry("1H") < key_expiry("1D")


def test_is_mod_of_day():
    assert is_mod_of(1633881600000, timedelta(days=1))
    assert not is_mod_of(1633881600001, timedelta(days=1))


def test_is_mod_of_minutes():
    step = 15 * 60000
    cur = step * 100000 - 28800000
    assert is_mod_of(cur, timedelta(minutes=15))
    assert not is_mod_of(cur + 60000, timedelta(minutes=15))


def test_rest_queue_link_and_round_trip():
    queue = RestQueue(inst_id="BTC-USDT", bar="15m", after=1000, limit="3", duration=1.5, with_ws=True)
    assert queue.link() == "/api/v5/market/candles?instId=BTC-USDT&bar=15m&limit=3&after=1000"
    assert RestQueue.from_json(queue.to_json()) == queue
    assert RestQueue(inst_id="A", bar="1m").link() == "/api/v5/market/candles?instId=A&bar=1m"


def test_candle_data_from_dict():
    data = CandleData.from_dict({"code": "0", "msg": "", "data": [ROW]})
    assert data.code == "0"
    assert data.data == [ROW]
    with pytest.raises(ValueError):
        CandleData.from_dict({"data": "x"})


def test_candle_to_struct():
    candle = Candle(inst_id="BTC-USDT", period="1m", data=list(ROW), source="rest")
    parsed = candle.to_struct()
    assert parsed.open == 8533.02
    assert parsed.close == 8548.26
    assert parsed.vol_ccy == 529.5858061
    assert int(parsed.timestamp.timestamp() * 1000) == 1597026383085
    assert parsed.confirm is False
    confirmed = Candle(data=ROW[:6] + ["1"]).to_struct()
    assert confirmed.confirm is True
    with pytest.raises(ValueError):
        Candle(data=["x"] + ROW[1:]).to_struct()


def test_candle_key_name():
    candle = Candle(inst_id="BTC-USDT", period="1m", data=list(ROW))
    assert candle.key_name() == "candle1m|BTC-USDT|ts:1597026383085"


def test_max_key_name():
    ma = MaX(inst_id="BTC-USDT", period="1m", count=7, ts=1597026383085, value=1.5)
    assert ma.key_name() == "ma7|candle1m|BTC-USDT|ts:1597026383085"


def test_match_check():
    check = MatchCheck()
    check.set_matched(True)
    assert check.matched is True


def test_set_candle_stores_once():
    redis = FakeRedis()
    logs = []
    store = CandleStore(redis, logs.append)
    candle = Candle(inst_id="BTC-USDT", period="1m", data=list(ROW), source="rest")
    assert store.set_candle(candle) == ROW
    key = "candle1m|BTC-USDT|ts:1597026383085"
    assert json.loads(redis.values[key]) == ROW
    assert redis.expires[key] == key_expiry("1m")
    assert redis.zsets["candle1m|BTC-USDT|sortedSet"] == {key: 1597026383085.0}
    assert logs[0].tag == "sardine.log.candle.1m"
    assert logs[0].id == hash_string("BTC-USDT1m1597026383085")
    assert json.loads(logs[0].content)["Open"] == 8533.02
    assert store.save_uni_key("1m", key, key_expiry("1m"), 1597026383085, candle) is False


def test_set_candle_bad_price():
    store = CandleStore(FakeRedis())
    row = ROW[:6] + ["0"]
    with pytest.raises(PriceError):
        store.set_candle(Candle(inst_id="A", period="1m", data=row))


def test_save_candles_skips_bad_rows():
    redis = FakeRedis()
    store = CandleStore(redis)
    data = CandleData(data=[list(ROW), ROW[:6] + ["0"]])
    assert store.save_candles("BTC-USDT", "1m", data) == 1
    assert store.save_candles("BTC-USDT", "1m", None) == 0


def test_set_max():
    redis = FakeRedis()
    store = CandleStore(redis)
    ma = MaX(inst_id="BTC-USDT", period="1m", count=7, ts=1597026383085, value=1.5)
    assert store.set_max(ma) == [1597026383085, 1.5]
    assert json.loads(redis.values[ma.key_name()]) == [1597026383085, 1.5]


def test_get_range_key_list():
    redis = FakeRedis()
    pattern = "ma7|candle1m|BTC-USDT|ts:"
    base = 1597026360000
    for offset in range(3):
        redis.set(pattern + str(base + offset * 60000), json.dumps([offset]))
    store = CandleStore(redis)
    since = datetime.fromtimestamp((base + 60000) / 1000, tz=timezone.utc)
    assert store.get_range_key_list(pattern, since) == [[2], [1]]


def test_request_candles_with_rest():
    redis = FakeRedis()
    store = CandleStore(redis)
    queued = store.request_candles_with_rest("BTC-USDT", ["1m"], 0.3, 1)
    assert [q.bar for q in queued] == ["1m"]
    item = RestQueue.from_json(redis.lists["restQueue"][0])
    assert item.inst_id == "BTC-USDT"
    assert item.limit == "3"
    assert item.with_ws is True


def test_request_candles_too_short():
    with pytest.raises(ValueError):
        CandleStore(FakeRedis()).request_candles_with_rest("A", ["1m"], 0.01, 1)