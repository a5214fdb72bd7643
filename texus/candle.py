"""Candle storage in Redis: keys, expiry, uniqueness and sorted sets."""

from __future__ import annotations

import hashlib
import json
import logging
import math
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Sequence

from texus.utils import sort_descending, sqrt, to_int
from texus.writelog import WriteLog

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DAY = timedelta(days=1)
_REST_QUEUE = "restQueue"
_UNIT_MINUTES = {
    "m": 1,
    "H": 60,
    "D": 60 * 24,
    "W": 60 * 24 * 7,
    "M": 60 * 24 * 30,
    "Y": 60 * 24 * 365,
}


class PriceError(ValueError):
    """Raised when a candle's implied price is not positive."""


def hash_string(text: str) -> str:
    """First 23 hex digits of the SHA-256 of text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:23]


def period_to_minutes(period: str) -> int:
    """Length of a bar period such as "15m", "4H" or "1D" in minutes.

    An unknown unit gives 1; an unparsable multiplier gives 0.
    """
    chars = list(period)
    if len(chars) < 2:
        raise ValueError(f"invalid period {period!r}")
    if len(chars) == 3:
        count_text, unit = chars[0] + chars[1], chars[2]
    else:
        count_text, unit = chars[0], chars[1]
    try:
        count = int(count_text)
    except ValueError:
        count = 0
    if unit not in _UNIT_MINUTES:
        logger.warning("notmatch: %s", unit)
        return 1
    return count * _UNIT_MINUTES[unit]


def key_expiry(period: str) -> timedelta:
    """Key lifetime: sqrt(period in minutes) * 100 minutes, truncated."""
    return timedelta(minutes=int(sqrt(float(period_to_minutes(period))) * 100))


def is_mod_of(cur_ms: int, duration: timedelta) -> bool:
    """Tell whether a millisecond time is aligned to duration in the exchange's calendar."""
    if duration < _DAY:
        vol = cur_ms + 28800000
    elif duration < 2 * _DAY:
        vol = cur_ms - 1633881600000
    elif duration < 3 * _DAY:
        vol = cur_ms - 1633795200000
    elif duration < 5 * _DAY:
        vol = cur_ms - 1633708800000
    else:
        vol = cur_ms - 1633795200000
    step = duration // timedelta(milliseconds=1)
    if step == 0:
        raise ValueError("duration must be at least one millisecond")
    return vol % step == 0


@dataclass
class RestQueue:
    """A request for candles to be fetched over REST."""

    inst_id: str
    bar: str
    after: int = 0
    before: int = 0
    limit: str = ""
    duration: float = 0.0
    with_ws: bool = False

    def link(self) -> str:
        """The candles endpoint path with this request's query."""
        query = f"/api/v5/market/candles?instId={self.inst_id}&bar={self.bar}"
        if self.limit:
            query += f"&limit={self.limit}"
        if self.after > 0:
            query += f"&after={self.after}"
        if self.before > 0:
            query += f"&before={self.before}"
        return query

    def to_json(self) -> str:
        """Queue wire form; the duration is written in nanoseconds."""
        return json.dumps(
            {
                "InstId": self.inst_id,
                "Bar": self.bar,
                "After": self.after,
                "Before": self.before,
                "Limit": self.limit,
                "Duration": int(round(self.duration * 1e9)),
                "WithWs": self.with_ws,
            },
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> RestQueue:
        data = json.loads(raw)
        if not isinstance(data, Mapping):
            raise ValueError("rest queue item must be a JSON object")
        lowered = {str(k).lower(): v for k, v in data.items()}
        return cls(
            inst_id=str(lowered.get("instid") or ""),
            bar=str(lowered.get("bar") or ""),
            after=int(lowered.get("after") or 0),
            before=int(lowered.get("before") or 0),
            limit=str(lowered.get("limit") or ""),
            duration=float(lowered.get("duration") or 0) / 1e9,
            with_ws=bool(lowered.get("withws")),
        )


@dataclass
class CandleData:
    """The candles endpoint reply."""

    code: str = ""
    msg: str = ""
    data: list[list[Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> CandleData:
        if not isinstance(data, Mapping):
            raise ValueError("candle reply must be a JSON object")
        rows = data.get("data") or []
        if not isinstance(rows, list) or not all(isinstance(r, list) for r in rows):
            raise ValueError("field 'data' must be an array of arrays")
        return cls(
            code=str(data.get("code") or ""),
            msg=str(data.get("msg") or ""),
            data=[list(row) for row in rows],
        )


@dataclass
class Candle:
    """One candle: raw row data plus parsed values once converted."""

    inst_id: str = ""
    period: str = ""
    data: list[Any] = field(default_factory=list)
    source: str = ""
    id: str = ""
    timestamp: datetime | None = None
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    vol_ccy: float = 0.0
    confirm: bool = False

    def to_struct(self) -> Candle:
        """Parse the raw row into a new candle with numeric fields."""
        if len(self.data) < 7:
            raise ValueError("candle row has too few fields")
        ts = int(str(self.data[0]))
        values = [float(str(self.data[i])) for i in (1, 2, 3, 4, 6)]
        return Candle(
            inst_id=self.inst_id,
            period=self.period,
            source=self.source,
            id=self.id,
            timestamp=_EPOCH + timedelta(milliseconds=ts),
            open=values[0],
            high=values[1],
            low=values[2],
            close=values[3],
            vol_ccy=values[4],
            confirm=str(self.data[6]) == "1",
        )

    def key_name(self) -> str:
        ts = to_int(str(self.data[0])) if self.data else 0
        return f"candle{self.period}|{self.inst_id}|ts:{ts}"


def _candle_json(candle: Candle | None) -> bytes:
    if candle is None:
        return b"null"
    payload = {
        "_id": candle.id,
        "InstId": candle.inst_id,
        "Period": candle.period,
        "Data": candle.data,
        "From": candle.source,
        "Timestamp": candle.timestamp.isoformat() if candle.timestamp else None,
        "Open": candle.open,
        "High": candle.high,
        "Low": candle.low,
        "Close": candle.close,
        "VolCcy": candle.vol_ccy,
        "Confirm": candle.confirm,
    }
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


@dataclass
class MaX:
    """A moving average value for one instrument, period and timestamp."""

    inst_id: str = ""
    period: str = ""
    count: int = 0
    ts: int = 0
    value: float = 0.0
    data: list[Any] = field(default_factory=list)
    source: str = ""

    def key_name(self) -> str:
        return f"ma{self.count}|candle{self.period}|{self.inst_id}|ts:{self.ts}"


@dataclass
class MatchCheck:
    minutes: int = 0
    matched: bool = False

    def set_matched(self, value: bool) -> None:
        self.matched = value


def _parse_float(text: Any) -> float | None:
    try:
        return float(str(text))
    except ValueError:
        return None


def _divide(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator)


class CandleStore:
    """Writes candles and averages to Redis and forwards log records."""

    def __init__(
        self,
        redis_client: Any,
        log_sink: Callable[[WriteLog], Any] | None = None,
    ) -> None:
        self.redis = redis_client
        self.log_sink = log_sink

    def save_candles(
        self, inst_id: str, period: str, data: CandleData | Sequence[Sequence[Any]] | None
    ) -> int:
        """Store every row of a REST reply; returns how many were stored."""
        if data is None:
            return 0
        rows = data.data if isinstance(data, CandleData) else data
        stored = 0
        for row in rows:
            candle = Candle(inst_id=inst_id, period=period, data=list(row), source="rest")
            try:
                self.set_candle(candle)
            except PriceError as exc:
                logger.warning("candle not stored: %s", exc)
                continue
            stored += 1
        return stored

    def set_candle(self, candle: Candle) -> list[Any]:
        """Store a candle under its key and register it once in its sorted set."""
        data = candle.data
        tsi = to_int(str(data[0]))
        key = candle.key_name()
        raw = json.dumps(data, separators=(",", ":"))
        expire = key_expiry(candle.period)
        vol = _parse_float(data[5])
        if vol is None:
            logger.warning("err of convert vol: %r", data[5])
            vol = 0.0
        vol_ccy = _parse_float(data[6])
        price = _divide(vol_ccy if vol_ccy is not None else 0.0, vol)
        if price <= 0:
            raise PriceError(f"invalid price {price} for {raw} from {candle.source}")
        logger.info("setToKey: %s price: %s from: %s", key, price, candle.source)
        self.redis.set(key, raw, ex=expire)
        self.save_uni_key(candle.period, key, expire, tsi, candle)
        return data

    def set_max(self, max_value: MaX) -> list[Any]:
        """Store a moving average as [ts, value] under its key."""
        key = max_value.key_name()
        pair = [max_value.ts, max_value.value]
        self.redis.getset(key, json.dumps(pair, separators=(",", ":")))
        self.redis.expire(key, key_expiry(max_value.period))
        return pair

    def save_uni_key(
        self, period: str, key_name: str, expire: timedelta, tsi: int, candle: Candle
    ) -> bool:
        """Log the candle and add it to its sorted set once per period.

        Returns False when the key was already registered.
        """
        candle.id = hash_string(candle.inst_id + candle.period + str(candle.data[0]))
        try:
            parsed = candle.to_struct()
        except ValueError as exc:
            logger.warning("candle conversion failed: %s", exc)
            parsed = None
        if self.log_sink is not None:
            self.log_sink(
                WriteLog(
                    content=_candle_json(parsed),
                    tag="sardine.log.candle." + candle.period,
                    id=candle.id,
                )
            )
        ref_name = key_name + "|refer"
        previous = self.redis.getset(ref_name, 1)
        self.redis.expire(ref_name, expire)
        if previous:
            logger.info("refName exist: %s", ref_name)
            return False
        self.save_to_sorted_set(period, key_name, expire, tsi)
        return True

    def save_to_sorted_set(
        self, period: str, key_name: str, expire: timedelta, tsi: int
    ) -> int:
        """Add key_name, scored by tsi, to the sorted set for its prefix."""
        set_name = key_name.split("ts:")[0] + "sortedSet"
        added = self.redis.zadd(set_name, {key_name: float(tsi)})
        logger.info("sortedSet added to redis: %s %s", added, key_name)
        return added

    def get_range_key_list(self, pattern: str, since: datetime) -> list[Any]:
        """Decoded values of keys pattern+ts with ts at or after since's minute, newest first."""
        stamps = []
        for key in self.redis.scan_iter(match=pattern + "*", count=2000):
            text = key.decode("utf-8") if isinstance(key, bytes) else str(key)
            parts = text.split(":")
            stamps.append(to_int(parts[1]) if len(parts) > 1 else 0)
        since_ms = int(since.timestamp() * 1000)
        floor = since_ms - since_ms % 60000
        results = []
        for stamp in sort_descending(stamps):
            if stamp < floor:
                break
            name = pattern + str(stamp)
            raw = self.redis.get(name)
            try:
                results.append(json.loads(raw) if raw is not None else None)
            except ValueError:
                logger.warning("err of decoding key %s", name)
                results.append(None)
        return results

    def request_candles_with_rest(
        self,
        inst_id: str,
        dimensions: Sequence[str],
        duration: float,
        max_candles: int,
    ) -> list[RestQueue]:
        """Queue REST candle requests for a random subset of dimensions over duration seconds.

        Later dimensions are picked less often; the first is always picked.
        """
        selected = [
            bar for index, bar in enumerate(dimensions)
            if random.randrange(max((index * 2 + 2) * 3, 1)) < 8
        ]
        interval = duration / (len(selected) + 1) - 0.05
        if interval <= 0:
            raise ValueError("duration too short for the selected dimensions")
        start = time.monotonic()
        deadline = start + duration - 0.01
        queued = []
        for index, bar in enumerate(selected):
            fire_at = start + interval * (index + 1)
            if fire_at > deadline:
                break
            time.sleep(max(0.0, fire_at - time.monotonic()))
            max_candles = max_candles * (index + random.randrange(2)) * 2
            max_candles = min(max(max_candles, 3), 30)
            request = RestQueue(
                inst_id=inst_id,
                bar=bar,
                limit=str(max_candles),
                duration=interval,
                with_ws=True,
            )
            self.redis.lpush(_REST_QUEUE, request.to_json())
            queued.append(request)
        time.sleep(max(0.0, deadline - time.monotonic()))
        return queued