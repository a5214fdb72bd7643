import base64
import threading
from datetime import datetime, timezone

import pytest

from texus import utils


def test_bounded_stack_drops_oldest():
    stack = utils.BoundedStack(2, "candle")
    for item in (1, 2, 3):
        stack.push(item)
    assert len(stack) == 2
    assert stack.front() == 3
    assert stack.pop() == 3
    assert stack.front() == 2


def test_bounded_stack_empty_errors():
    stack = utils.BoundedStack(3)
    assert stack.is_empty()
    with pytest.raises(IndexError):
        stack.pop()
    with pytest.raises(IndexError):
        stack.front()


def test_bounded_stack_rejects_zero_capacity():
    with pytest.raises(ValueError):
        utils.BoundedStack(0)


def test_compute_hmac256_known_vector():
    result = utils.compute_hmac256("The quick brown fox jumps over the lazy dog", "key")
    assert base64.b64decode(result).hex() == (
        "f7bc83f430538424b13298e6aa6fb143ef4d59a14946175997479dbc2d1a3cd8"
    )


def test_sort_descending_is_ordered_permutation():
    values = [5, 1, 9, 3, 9, 0]
    result = utils.sort_descending(values)
    assert sorted(result) == sorted(values)
    assert all(a >= b for a, b in zip(result, result[1:]))


def test_random_int_strings_range():
    result = utils.random_int_strings(5, 20)
    assert len(result) == 20
    assert all(0 <= int(x) < 5 for x in result)


def test_random_string_letters():
    result = utils.random_string(32)
    assert len(result) == 32
    assert result.isalpha() and result.isascii()


def test_in_array():
    assert utils.in_array("b", ["a", "b", "b"]) == (True, 1)
    assert utils.in_array("z", ["a"]) == (False, -1)
    assert utils.in_array("a", "abc") == (False, -1)


def test_sqrt():
    assert abs(utils.sqrt(16) - 4) < 1e-6
    assert abs(utils.sqrt(2) ** 2 - 2) <= 0.000001
    with pytest.raises(ValueError):
        utils.sqrt(-1)


def test_ticker_wrapper_skips_last_item():
    seen = []
    lock = threading.Lock()

    def callback(index, items):
        with lock:
            seen.append(items[index])

    utils.ticker_wrapper(0.5, ["a", "b", "c"], callback)
    assert len(seen) == 2
    assert utils.in_array("c", seen) == (False, -1)
    found_a, _ = utils.in_array("a", seen)
    found_b, _ = utils.in_array("b", seen)
    assert found_a and found_b


def test_ticker_wrapper_survives_errors():
    def callback(index, items):
        raise RuntimeError("boom")

    utils.ticker_wrapper(0.4, ["a", "b"], callback)
    assert utils.to_int("1") == 1


def test_hash_dispatch_in_range_and_stable():
    for name in ("BTC-USDT", "ETH-USDT", "x"):
        bucket = utils.hash_dispatch(name, 7)
        assert 0 <= bucket < 7
        assert utils.hash_dispatch(name, 7) == bucket
    with pytest.raises(ValueError):
        utils.hash_dispatch("x", 0)


def test_iso_time():
    moment = datetime(2021, 4, 6, 3, 33, 21, 681000, tzinfo=timezone.utc)
    assert utils.iso_time(moment) == "2021-04-06T03:33:21.681Z"


def test_minute_alarm():
    moment = datetime(2021, 1, 1, 0, 0, 30, tzinfo=timezone.utc)
    assert utils.minute_alarm(60, moment) is True
    assert utils.minute_alarm(1, moment) is True


def test_conversions():
    assert utils.to_str("abc") == "abc"
    assert utils.to_str(255) == "ff"
    assert utils.to_str(1.5) == "1.500000"
    assert utils.to_int("42") == 42
    assert utils.to_int("4.2") == 0
    assert utils.to_int(3.9) == 3
    assert utils.to_float("2.5") == 2.5
    assert utils.to_float("bad") == 0.0
    assert utils.to_float(7) == 7.0
    assert utils.to_float(object()) == 0.0