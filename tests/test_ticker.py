import pytest

from texus.candle import hash_string
from texus.ticker import TickerInfo, TickerInfoResp

RAW = {
    "instId": "BTC-USDT",
    "last": "9999.99",
    "instType": "SPOT",
    "volCcy24h": "2222",
    "ts": "1597026383085",
}


def test_convert():
    info = TickerInfoResp.from_dict(RAW).convert()
    assert info.inst_id == "BTC-USDT"
    assert info.last == 9999.99
    assert info.vol_ccy24h == 2222.0
    assert info.ts == 1597026383085
    assert info.inst_type == "SPOT"
    assert info.id == hash_string("BTC-USDT1597026383085")


def test_convert_bad_numbers_give_zero():
    info = TickerInfoResp(inst_id="X", last="abc", ts="zz").convert()
    assert info.last == 0.0
    assert info.ts == 0


def test_to_dict_keys():
    info = TickerInfo(id="a", inst_id="BTC-USDT", last=1.0, inst_type="SPOT", vol_ccy24h=2.0, ts=3)
    assert info.to_dict() == {
        "_id": "a",
        "instId": "BTC-USDT",
        "last": 1.0,
        "instType": "SPOT",
        "volCcy24h": 2.0,
        "ts": 3,
    }


def test_from_dict_rejects_non_object():
    with pytest.raises(ValueError):
        TickerInfoResp.from_dict(["x"])