from unittest import mock

import requests

from texus.writelog import WriteLog


def test_url():
    log = WriteLog(content=b"{}", tag="sardine.log.ticker.BTC-USDT", id="x")
    assert log.url("localhost:8888") == "http://localhost:8888/sardine.log.ticker.BTC-USDT"


@mock.patch("texus.writelog.requests.post")
def test_process_posts_content(post):
    post.return_value = "ok"
    log = WriteLog(content=b'{"a":1}', tag="sardine.log.candle.1m", id="x")
    result = log.process({"TEXUS_FluentBitUrl": "localhost:8888"})
    assert result == "ok"
    args, kwargs = post.call_args
    assert args[0] == "http://localhost:8888/sardine.log.candle.1m"
    assert kwargs["data"] == b'{"a":1}'
    assert kwargs["headers"]["Content-Type"] == "application/json"


@mock.patch("texus.writelog.requests.post")
def test_process_failure_returns_none(post):
    post.side_effect = requests.ConnectionError("down")
    log = WriteLog(content=b"{}", tag="t")
    assert log.process({"TEXUS_FluentBitUrl": "localhost:1"}) is None