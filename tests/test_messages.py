import json

import pytest

from texus.okx.events import MsgType
from texus.okx.messages import (
    ApiInfo,
    ErrData,
    JRPCReq,
    JRPCRsp,
    ReqData,
    RspData,
    WSRequest,
    WSResponse,
)


def test_req_data_wire_format():
    req = ReqData(op="subscribe", args=[{"instId": "BTC-USDT", "channel": "tickers"}])
    assert req.to_json() == '{"op":"subscribe","args":[{"channel":"tickers","instId":"BTC-USDT"}]}'


def test_req_data_length_and_type():
    req = ReqData(op="subscribe", args=[{"channel": "a"}, {"channel": "b"}])
    assert len(req) == 2
    assert req.msg_type() == MsgType.NORMAL
    assert isinstance(req, WSRequest)


def test_jrpc_req_round_trip():
    args = [{"instId": "BTC-USDT", "side": "sell", "sz": "1"}]
    req = JRPCReq(id="0011", op="order", args=args)
    decoded = json.loads(req.to_json())
    assert decoded == {"id": "0011", "op": "order", "args": args}
    assert len(req) == 1
    assert req.msg_type() == MsgType.JRPC


def test_jrpc_rsp_from_dict_round_trip():
    payload = {"id": "1", "op": "order", "data": [{"ordId": "42"}], "code": "0", "msg": ""}
    rsp = JRPCRsp.from_dict(payload)
    assert rsp.data[0]["ordId"] == "42"
    assert json.loads(rsp.to_json()) == payload
    assert isinstance(rsp, WSResponse)
    assert rsp.msg_type() == MsgType.JRPC


def test_rsp_data_from_dict():
    rsp = RspData.from_dict({"event": "subscribe", "arg": {"channel": "tickers"}})
    assert rsp.event == "subscribe"
    assert rsp.arg == {"channel": "tickers"}
    assert json.loads(rsp.to_json()) == {"event": "subscribe", "arg": {"channel": "tickers"}}


def test_err_data_case_insensitive_and_defaults():
    err = ErrData.from_dict({"Event": "error", "CODE": "60018"})
    assert err == ErrData(event="error", code="60018", msg="")


def test_err_data_rejects_bad_types():
    with pytest.raises(ValueError):
        ErrData.from_dict({"code": 5})
    with pytest.raises(ValueError):
        ErrData.from_dict(["not", "an", "object"])
    with pytest.raises(ValueError):
        RspData.from_dict({"arg": {"channel": 1}})


def test_api_info_str():
    info = ApiInfo(api_key="placeholder", secret_key="secret", passphrase="password")
    assert str(info) == "ApiInfo{ApiKey:placeholder,SecretKey:secret,Passphrase:password}"