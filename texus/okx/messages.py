"""Request and response payloads of the websocket API, and client settings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, runtime_checkable

from texus.okx.events import MsgType


@runtime_checkable
class WSRequest(Protocol):
    """A request that can be sent over the websocket."""

    def msg_type(self) -> MsgType: ...

    def __len__(self) -> int: ...

    def to_json(self) -> str: ...


@runtime_checkable
class WSResponse(Protocol):
    """A response received over the websocket."""

    def msg_type(self) -> MsgType: ...


def _dumps(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return None


def _str_field(data: Mapping[str, Any], key: str) -> str:
    value = _lookup(data, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _str_map_field(data: Mapping[str, Any], key: str) -> dict[str, str]:
    value = _lookup(data, key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"field {key!r} must be an object")
    result = {}
    for name, item in value.items():
        if item is None:
            item = ""
        if not isinstance(item, str):
            raise ValueError(f"field {key!r} must hold strings")
        result[name] = item
    return result


def _map_list_field(data: Mapping[str, Any], key: str) -> list[dict[str, Any]]:
    value = _lookup(data, key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"field {key!r} must be an array")
    result = []
    for item in value:
        if item is None:
            result.append({})
        elif isinstance(item, Mapping):
            result.append(dict(item))
        else:
            raise ValueError(f"field {key!r} must hold objects")
    return result


def _sorted_maps(items: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [dict(sorted(item.items())) for item in items]


@dataclass
class ErrData:
    """Error or login reply sent by the server."""

    event: str = ""
    code: str = ""
    msg: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ErrData:
        data = _require_mapping(data)
        return cls(
            event=_str_field(data, "event"),
            code=_str_field(data, "code"),
            msg=_str_field(data, "msg"),
        )


@dataclass
class JRPCReq:
    """A trading request (order, cancel, amend)."""

    id: str
    op: str
    args: list[dict[str, Any]] = field(default_factory=list)

    def msg_type(self) -> MsgType:
        return MsgType.JRPC

    def to_json(self) -> str:
        return _dumps({"id": self.id, "op": self.op, "args": _sorted_maps(self.args)})

    def __len__(self) -> int:
        return 1


@dataclass
class JRPCRsp:
    """Reply to a trading request."""

    id: str = ""
    op: str = ""
    data: list[dict[str, Any]] = field(default_factory=list)
    code: str = ""
    msg: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> JRPCRsp:
        data = _require_mapping(data)
        return cls(
            id=_str_field(data, "id"),
            op=_str_field(data, "op"),
            data=_map_list_field(data, "data"),
            code=_str_field(data, "code"),
            msg=_str_field(data, "msg"),
        )

    def msg_type(self) -> MsgType:
        return MsgType.JRPC

    def to_json(self) -> str:
        return _dumps(
            {
                "id": self.id,
                "op": self.op,
                "data": _sorted_maps(self.data),
                "code": self.code,
                "msg": self.msg,
            }
        )


@dataclass
class ReqData:
    """A subscribe, unsubscribe or login request."""

    op: str
    args: list[dict[str, str]] = field(default_factory=list)

    def msg_type(self) -> MsgType:
        return MsgType.NORMAL

    def to_json(self) -> str:
        return _dumps({"op": self.op, "args": _sorted_maps(self.args)})

    def __len__(self) -> int:
        return len(self.args)


@dataclass
class RspData:
    """Reply to a subscribe or unsubscribe request."""

    event: str = ""
    arg: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> RspData:
        data = _require_mapping(data)
        return cls(event=_str_field(data, "event"), arg=_str_map_field(data, "arg"))

    def msg_type(self) -> MsgType:
        return MsgType.NORMAL

    def to_json(self) -> str:
        return _dumps({"event": self.event, "arg": dict(sorted(self.arg.items()))})


@dataclass
class ApiInfo:
    """API credentials."""

    api_key: str = ""
    secret_key: str = ""
    passphrase: str = ""

    def __str__(self) -> str:
        return (
            f"ApiInfo{{ApiKey:{self.api_key},SecretKey:{self.secret_key},"
            f"Passphrase:{self.passphrase}}}"
        )


@dataclass
class EnvInfo:
    """Endpoints and simulation flag."""

    rest_endpoint: str = ""
    ws_endpoint: str = ""
    is_simulation: bool = False


@dataclass
class MetaData:
    description: str = ""


@dataclass
class ClientConfig:
    """Complete client settings: description, endpoints and credentials."""

    meta_data: MetaData = field(default_factory=MetaData)
    env: EnvInfo = field(default_factory=EnvInfo)
    api_info: ApiInfo = field(default_factory=ApiInfo)