"""Ticker records from the REST tickers endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from texus.candle import hash_string
from texus.utils import to_float, to_int


@dataclass
class TickerInfo:
    """A ticker with parsed numbers."""

    id: str = ""
    inst_id: str = ""
    last: float = 0.0
    inst_type: str = ""
    vol_ccy24h: float = 0.0
    ts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "instId": self.inst_id,
            "last": self.last,
            "instType": self.inst_type,
            "volCcy24h": self.vol_ccy24h,
            "ts": self.ts,
        }


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


@dataclass
class TickerInfoResp:
    """A ticker as returned by the exchange, all fields as text."""

    inst_id: str = ""
    last: str = ""
    inst_type: str = ""
    vol_ccy24h: str = ""
    ts: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> TickerInfoResp:
        if not isinstance(data, Mapping):
            raise ValueError("ticker must be a JSON object")
        return cls(
            inst_id=_text(data, "instId"),
            last=_text(data, "last"),
            inst_type=_text(data, "instType"),
            vol_ccy24h=_text(data, "volCcy24h"),
            ts=_text(data, "ts"),
        )

    def convert(self) -> TickerInfo:
        """Parse numbers and derive the record id from instrument and time."""
        return TickerInfo(
            id=hash_string(self.inst_id + self.ts),
            inst_id=self.inst_id,
            inst_type=self.inst_type,
            last=to_float(self.last),
            vol_ccy24h=to_float(self.vol_ccy24h),
            ts=to_int(self.ts),
        )