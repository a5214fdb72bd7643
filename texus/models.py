"""Market data records: accounts, candles, instruments, tickers and coins."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from texus.utils import BoundedStack, to_float, to_int


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return None


def _text(data: Mapping[str, Any], key: str) -> str:
    value = _lookup(data, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _number(data: Mapping[str, Any], key: str) -> float:
    value = _lookup(data, key)
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a number")
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"field {key!r} must be numeric") from None
    return to_float(value)


def _integer(data: Mapping[str, Any], key: str) -> int:
    value = _lookup(data, key)
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"field {key!r} must be an integer")
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"field {key!r} must be an integer") from None
    return to_int(value)


@dataclass
class Account:
    """Account summary; u_time is the balance update time in milliseconds."""

    u_time: int = 0


@dataclass
class CandleSummary:
    """A compact candle record."""

    inst_id: str = ""
    ts: int = 0
    o: float = 0.0
    c: str = ""
    vol: str = ""
    vol_ccy: str = ""


@dataclass
class Instrument:
    """A tradable instrument as listed by the exchange."""

    alias: str = ""
    base_ccy: str = ""
    category: int = 0
    ct_val: float = 0.0
    ct_val_ccy: str = ""
    inst_id: str = ""
    inst_type: str = ""
    lot_sz: float = 0.0
    min_sz: int = 0
    quote_ccy: str = ""
    state: str = ""
    tick_sz: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Instrument:
        """Build an instrument from its JSON object; numeric strings are accepted."""
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return cls(
            alias=_text(data, "alias"),
            base_ccy=_text(data, "baseCcy"),
            category=_integer(data, "category"),
            ct_val=_number(data, "ctVal"),
            ct_val_ccy=_text(data, "ctValCcy"),
            inst_id=_text(data, "instId"),
            inst_type=_text(data, "instType"),
            lot_sz=_number(data, "lotSz"),
            min_sz=_integer(data, "minSz"),
            quote_ccy=_text(data, "quoteCcy"),
            state=_text(data, "state"),
            tick_sz=_number(data, "tickSz"),
        )


@dataclass
class Ticker:
    """Latest market statistics of one instrument."""

    inst_type: str = ""
    inst_id: str = ""
    last: float = 0.0
    last_sz: float = 0.0
    ask_px: float = 0.0
    ask_sz: int = 0
    bid_px: float = 0.0
    bid_sz: int = 0
    open24h: int = 0
    high24h: int = 0
    low24h: float = 0.0
    vol_ccy24h: int = 0
    vol24h: int = 0
    sod_utc0: int = 0
    sod_utc8: int = 0
    ts: int = 0

    def to_dict(self) -> dict[str, Any]:
        """JSON form; empty values are left out and bid_px is not exported."""
        pairs = {
            "instType": self.inst_type,
            "instId": self.inst_id,
            "last": self.last,
            "lastSz": self.last_sz,
            "askPx": self.ask_px,
            "askSz": self.ask_sz,
            "bidSz": self.bid_sz,
            "open24h": self.open24h,
            "high24h": self.high24h,
            "low24h": self.low24h,
            "volCcy24h": self.vol_ccy24h,
            "vol24h": self.vol24h,
            "sodUtc0": self.sod_utc0,
            "sodUtc8": self.sod_utc8,
            "ts": self.ts,
        }
        return {key: value for key, value in pairs.items() if value}


@dataclass
class GlobalCoin:
    """A coin with its instrument, ticker and candle stacks per coin and period."""

    coin_name: str = ""
    instrument: Instrument | None = None
    ticker: Ticker | None = None
    candle_map_list: dict[str, dict[str, BoundedStack]] = field(default_factory=dict)