"""Order book push data: parsing, merging and CRC32 verification."""

from __future__ import annotations

import logging
import zlib
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from texus.okx.events import DEPTH_SNAPSHOT, DEPTH_UPDATE

logger = logging.getLogger(__name__)

_CRC_DEPTH = 25
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


class ChecksumError(Exception):
    """Raised when depth data is malformed or fails its checksum."""


def _mapping(data: Any) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _field(data: Mapping[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return None


def _str(data: Mapping[str, Any], key: str) -> str:
    value = _field(data, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _str_map(data: Mapping[str, Any], key: str) -> dict[str, str]:
    value = _field(data, key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"field {key!r} must be an object")
    result: dict[str, str] = {}
    for name, item in value.items():
        if item is None:
            item = ""
        if not isinstance(item, str):
            raise ValueError(f"field {key!r} must hold strings")
        result[name] = item
    return result


def _list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = _field(data, key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"field {key!r} must be an array")
    return value


def _levels(data: Mapping[str, Any], key: str) -> list[list[str]]:
    levels = []
    for level in _list(data, key):
        if level is None:
            levels.append([])
            continue
        if not isinstance(level, list):
            raise ValueError(f"field {key!r} must hold arrays")
        row = []
        for item in level:
            if item is None:
                item = ""
            if not isinstance(item, str):
                raise ValueError(f"field {key!r} must hold strings")
            row.append(item)
        levels.append(row)
    return levels


def _int32(data: Mapping[str, Any], key: str) -> int:
    value = _field(data, key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer")
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(f"field {key!r} is out of the 32-bit range")
    return value


@dataclass
class MsgData:
    """An ordinary subscription push."""

    arg: dict[str, str] = field(default_factory=dict)
    data: list[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> MsgData:
        data = _mapping(data)
        return cls(arg=_str_map(data, "arg"), data=list(_list(data, "data")))


@dataclass
class DepthDetail:
    """One order book state: ask and bid levels, timestamp and checksum."""

    asks: list[list[str]] = field(default_factory=list)
    bids: list[list[str]] = field(default_factory=list)
    ts: str = ""
    checksum: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> DepthDetail:
        data = _mapping(data)
        return cls(
            asks=_levels(data, "asks"),
            bids=_levels(data, "bids"),
            ts=_str(data, "ts"),
            checksum=_int32(data, "checksum"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "asks": [list(level) for level in self.asks],
            "bids": [list(level) for level in self.bids],
            "ts": self.ts,
            "checksum": self.checksum,
        }


@dataclass
class DepthData:
    """A depth push: channel arguments, action and order book data."""

    arg: dict[str, str] = field(default_factory=dict)
    action: str = ""
    data: list[DepthDetail] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> DepthData:
        data = _mapping(data)
        return cls(
            arg=_str_map(data, "arg"),
            action=_str(data, "action"),
            data=[DepthDetail.from_dict(item) for item in _list(data, "data")],
        )

    def check_sum(self, snapshot: DepthDetail | None = None) -> DepthDetail | None:
        """Verify the push; for updates, merge into snapshot and return the result."""
        if len(self.data) != 1:
            raise ChecksumError("depth data error")
        detail = self.data[0]
        result: DepthDetail | None = None
        if self.action == DEPTH_SNAPSHOT:
            _, checksum = calc_crc32(detail.asks, detail.bids)
            if checksum != detail.checksum:
                raise ChecksumError("checksum mismatch")
            result = detail
            logger.debug("snapshot checksum ok %s", detail.checksum)
        if self.action == DEPTH_UPDATE:
            if snapshot is None:
                raise ChecksumError("depth snapshot must not be empty")
            result = merge_depth_data(snapshot, detail, detail.checksum)
            logger.debug("update checksum ok %s", detail.checksum)
        return result


def calc_crc32(
    asks: Sequence[Sequence[str]], bids: Sequence[Sequence[str]]
) -> tuple[str, int]:
    """Return the checksum base string and its signed CRC32 over the top 25 levels."""
    ask_depth = min(len(asks), _CRC_DEPTH)
    bid_depth = min(len(bids), _CRC_DEPTH)
    parts = []
    for index in range(max(ask_depth, bid_depth)):
        if index < bid_depth:
            parts.append(f"{bids[index][0]}:{bids[index][1]}")
        if index < ask_depth:
            parts.append(f"{asks[index][0]}:{asks[index][1]}")
    base = ":".join(parts)
    checksum = zlib.crc32(base.encode("utf-8"))
    if checksum > _INT32_MAX:
        checksum -= 2**32
    return base, checksum


def _parse_price(text: str) -> float:
    if not text or "_" in text or text != text.strip():
        raise ValueError(f"invalid price {text!r}")
    return float(text)


def merge_depth(
    old_depths: Sequence[Sequence[str]],
    new_depths: Sequence[Sequence[str]],
    side: str,
) -> list[list[str]]:
    """Merge updated levels into old ones; bids descend, asks ascend, size "0" removes."""
    if side not in ("bids", "asks"):
        raise ValueError(f"unknown book side {side!r}")
    descending = side == "bids"
    result: list[list[str]] = []
    old_index = new_index = 0
    while old_index < len(old_depths) and new_index < len(new_depths):
        old_item = old_depths[old_index]
        new_item = new_depths[new_index]
        old_price = _parse_price(old_item[0])
        new_price = _parse_price(new_item[0])
        if old_price == new_price:
            if new_item[1] != "0":
                result.append(list(new_item))
            old_index += 1
            new_index += 1
        elif (new_price > old_price) if descending else (new_price < old_price):
            result.append(list(new_item))
            new_index += 1
        else:
            result.append(list(old_item))
            old_index += 1
    result.extend(list(item) for item in old_depths[old_index:])
    result.extend(list(item) for item in new_depths[new_index:])
    return result


def merge_depth_data(
    snapshot: DepthDetail, update: DepthDetail, expected_checksum: int
) -> DepthDetail:
    """Merge an update into a snapshot and verify the expected checksum."""
    asks = merge_depth(snapshot.asks, update.asks, "asks")
    bids = merge_depth(snapshot.bids, update.bids, "bids")
    base, checksum = calc_crc32(asks, bids)
    if checksum != expected_checksum:
        logger.error("checksum buffer: %s (%s != %s)", base, checksum, expected_checksum)
        raise ChecksumError("checksum mismatch")
    return DepthDetail(asks=asks, bids=bids, ts=update.ts, checksum=update.checksum)