"""Websocket message classification, result checking and order book state."""

from __future__ import annotations

import copy
import json
import logging
import re
import threading
from typing import Any, Callable, Sequence, TypeVar

from texus.okx.depth import ChecksumError, DepthData, DepthDetail, MsgData
from texus.okx.events import (
    OP_ERROR,
    OP_LOGIN,
    OP_SUBSCRIBE,
    OP_UNSUBSCRIBE,
    Event,
    MsgType,
    get_event_id,
)
from texus.okx.messages import ErrData, JRPCRsp, ReqData, RspData, WSRequest, WSResponse

logger = logging.getLogger(__name__)

_LOGIN_ERROR_CODES = frozenset(f"600{n:02d}" for n in range(1, 12))
_ERR_CHANNEL = re.compile(r"channel:(.*?),")
_DEPTH_CHANNELS = frozenset({"books", "books-l2-tbt", "books50-l2-tbt", "books5"})

_T = TypeVar("_T")


class MessageError(ValueError):
    """Raised when a message cannot be understood or a reply is incomplete."""


def _depth_key(arg: dict[str, str]) -> str:
    return json.dumps(arg, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class DepthBook:
    """Order book snapshots kept per channel and merged from depth pushes."""

    def __init__(self, auto_manage: bool = True) -> None:
        self.auto_manage = auto_manage
        self._entries: dict[str, DepthDetail] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def enable_auto_manage(self, enabled: bool) -> None:
        """Switch automatic merging; refused while any book is held."""
        with self._lock:
            if self._entries:
                raise RuntimeError("depth data is currently subscribed")
            self.auto_manage = enabled

    def add(self, key: str, detail: DepthDetail) -> None:
        with self._lock:
            self._entries[key] = detail

    def update(self, key: str, detail: DepthDetail) -> None:
        """Replace an existing book; the key must already be held."""
        with self._lock:
            if key not in self._entries:
                raise KeyError(f"update failed, no record for {key}")
            self._entries[key] = detail

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def snapshot(self, data: DepthData) -> DepthDetail | None:
        """Return a copy of the merged book for the push's channel, if held."""
        key = _depth_key(data.arg)
        with self._lock:
            stored = self._entries.get(key)
            return copy.deepcopy(stored) if stored is not None else None

    def merge(self, data: DepthData) -> DepthDetail | None:
        """Merge a depth push into the held book and return the stored state."""
        if not self.auto_manage:
            return None
        key = _depth_key(data.arg)
        if data.arg.get("channel") == "books5":
            if not data.data:
                raise ChecksumError("depth data error")
            self.add(key, data.data[0])
            return data.data[0]
        if data.action == "snapshot":
            data.check_sum(None)
            self.add(key, data.data[0])
            return data.data[0]
        with self._lock:
            old = self._entries.get(key)
            if old is None:
                raise ChecksumError("depth data error, no snapshot held")
            merged = data.check_sum(old)
            if merged is None:
                raise ChecksumError("depth data error")
            self.update(key, merged)
            return merged


def get_info_from_err_code(data: ErrData) -> Event:
    """Map login error codes to the login event."""
    if data.code in _LOGIN_ERROR_CODES:
        return Event.LOGIN
    return Event.UNKNOWN


def get_info_from_err_msg(raw: str) -> str:
    """Extract the channel named in an error message, or an empty string."""
    found = _ERR_CHANNEL.findall(raw)
    return found[-1] if found else ""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _attempt(parse: Callable[[Any], _T], decoded: Any) -> _T | None:
    try:
        return parse(decoded)
    except ValueError:
        return None


def parse_message(raw: bytes | str) -> tuple[Event, Any]:
    """Classify a server message and return its event and decoded payload."""
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode("utf-8", errors="replace")
    else:
        text = raw
    if text == "pong":
        return Event.PING, raw
    try:
        decoded = json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        raise MessageError("message unknown") from None
    if decoded is None:
        decoded = {}

    rsp = _attempt(RspData.from_dict, decoded)
    if rsp is not None and rsp.event in (OP_SUBSCRIBE, OP_UNSUBSCRIBE):
        return get_event_id(rsp.arg.get("channel", "")), rsp

    err = _attempt(ErrData.from_dict, decoded)
    if err is not None:
        if err.event == OP_LOGIN:
            return Event.LOGIN, err
        if err.event == OP_ERROR:
            event = get_info_from_err_code(err)
            if event != Event.UNKNOWN:
                return event, err
            event = get_event_id(get_info_from_err_msg(err.msg))
            if event == Event.UNKNOWN:
                event = Event.ERROR
            return event, err

    jrpc = _attempt(JRPCRsp.from_dict, decoded)
    if jrpc is not None:
        event = get_event_id(jrpc.op)
        if event != Event.UNKNOWN:
            return event, jrpc

    depth = _attempt(DepthData.from_dict, decoded)
    if depth is not None and depth.arg.get("channel", "") in _DEPTH_CHANNELS:
        return Event.DEPTH_DATA, depth

    msg = _attempt(MsgData.from_dict, decoded)
    if msg is not None:
        return Event.BOOKED_DATA, msg

    raise MessageError("message unknown")


def check_result(request: WSRequest, responses: Sequence[Any]) -> bool:
    """Tell whether the replies show the request fully succeeded.

    Raises MessageError when a reply has the wrong type or an expected
    subscription reply is missing.
    """
    if not responses:
        return False
    for info in responses:
        if isinstance(info, ErrData):
            return False
        if not isinstance(info, WSResponse):
            return False
        if request.msg_type() != info.msg_type():
            raise MessageError("message type mismatch")

    if request.msg_type() == MsgType.NORMAL:
        if not isinstance(request, ReqData):
            raise MessageError("request type conversion failed")
        for arg in request.args:
            matched = False
            for info in responses:
                reply = info if isinstance(info, RspData) else RspData()
                if (
                    reply.event == request.op
                    and reply.arg.get("channel", "") == arg.get("channel", "")
                    and reply.arg.get("instType", "") == arg.get("instType", "")
                ):
                    matched = True
            if not matched:
                raise MessageError("not all expected replies were received")
    else:
        for info in responses:
            reply = info if isinstance(info, JRPCRsp) else JRPCRsp()
            if reply.code != "0":
                return False
    return True