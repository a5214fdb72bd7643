"""Websocket event identifiers, channel names and candle periods."""

from __future__ import annotations

import re
from enum import Enum, IntEnum

OP_LOGIN = "login"
OP_ERROR = "error"
OP_SUBSCRIBE = "subscribe"
OP_UNSUBSCRIBE = "unsubscribe"

SPOT = "SPOT"
SWAP = "SWAP"
FUTURES = "FUTURES"
OPTION = "OPTION"
ANY = "ANY"

DEPTH_SNAPSHOT = "snapshot"
DEPTH_UPDATE = "update"

_PERIOD_SUFFIX = re.compile(r"^(.*)([1-9][0-9]?[\w])$", re.ASCII)


class MsgType(IntEnum):
    NORMAL = 0
    JRPC = 1


class Period(str, Enum):
    YEAR_1 = "1Y"
    MON_6 = "6M"
    MON_3 = "3M"
    MON_1 = "1M"
    WEEK_1 = "1W"
    DAY_5 = "5D"
    DAY_3 = "3D"
    DAY_2 = "2D"
    DAY_1 = "1D"
    HOUR_12 = "12H"
    HOUR_6 = "6H"
    HOUR_4 = "4H"
    HOUR_2 = "2H"
    HOUR_1 = "1H"
    MIN_30 = "30m"
    MIN_15 = "15m"
    MIN_5 = "5m"
    MIN_3 = "3m"
    MIN_1 = "1m"
    NONE = ""


class Event(IntEnum):
    UNKNOWN = 0
    ERROR = 1
    PING = 2
    LOGIN = 3
    BOOK_INSTRUMENTS = 4
    STATUS = 5
    BOOK_TICKERS = 6
    BOOK_OPEN_INTEREST = 7
    BOOK_KLINE = 8
    BOOK_TRADE = 9
    BOOK_ESTIMATE_PRICE = 10
    BOOK_MARK_PRICE = 11
    BOOK_MARK_PRICE_CANDLE_CHART = 12
    BOOK_LIMIT_PRICE = 13
    BOOK_ORDER_BOOK = 14
    BOOK_ORDER_BOOK5 = 15
    BOOK_ORDER_BOOK_TBT = 16
    BOOK_ORDER_BOOK50_TBT = 17
    BOOK_OPTION_SUMMARY = 18
    BOOK_FUND_RATE = 19
    BOOK_KLINE_INDEX = 20
    BOOK_INDEX_TICKERS = 21
    BOOK_ACCOUNT = 22
    BOOK_POSTION = 23
    BOOK_ORDER = 24
    BOOK_ALG_ORDER = 25
    BOOK_B_AND_P = 26
    PLACE_ORDER = 27
    PLACE_BATCH_ORDERS = 28
    CANCEL_ORDER = 29
    CANCEL_BATCH_ORDERS = 30
    AMEND_ORDER = 31
    AMEND_BATCH_ORDERS = 32
    BOOKED_DATA = 33
    DEPTH_DATA = 34

    def label(self) -> str:
        """Human readable name of the event."""
        return _EVENT_TABLE[self][0]

    def channel(self, period: Period | str = Period.NONE) -> str:
        """Channel name for the event, with the period appended when it has one."""
        base = _EVENT_TABLE[self][1]
        if not base:
            return ""
        suffix = period.value if isinstance(period, Period) else str(period)
        return base + suffix


# Ordered: get_event_id scans in this order and the first match wins.
_EVENT_TABLE: dict[Event, tuple[str, str]] = {
    Event.UNKNOWN: ("unknown", ""),
    Event.ERROR: ("error", ""),
    Event.PING: ("ping", ""),
    Event.LOGIN: ("login", ""),
    Event.BOOK_INSTRUMENTS: ("instruments", "instruments"),
    Event.STATUS: ("status", "status"),
    Event.BOOK_TICKERS: ("tickers", "tickers"),
    Event.BOOK_OPEN_INTEREST: ("open interest", "open-interest"),
    Event.BOOK_KLINE: ("candles", "candle"),
    Event.BOOK_TRADE: ("trades", "trades"),
    Event.BOOK_ESTIMATE_PRICE: ("estimated delivery price", "estimated-price"),
    Event.BOOK_MARK_PRICE: ("mark price", "mark-price"),
    Event.BOOK_MARK_PRICE_CANDLE_CHART: ("mark price candles", "mark-price-candle"),
    Event.BOOK_LIMIT_PRICE: ("price limit", "price-limit"),
    Event.BOOK_ORDER_BOOK: ("400 level depth", "books"),
    Event.BOOK_ORDER_BOOK5: ("5 level depth", "books5"),
    Event.BOOK_ORDER_BOOK_TBT: ("tbt depth", "books-l2-tbt"),
    Event.BOOK_ORDER_BOOK50_TBT: ("tbt50 depth", "books50-l2-tbt"),
    Event.BOOK_OPTION_SUMMARY: ("option summary", "opt-summary"),
    Event.BOOK_FUND_RATE: ("funding rate", "funding-rate"),
    Event.BOOK_KLINE_INDEX: ("index candles", "index-candle"),
    Event.BOOK_INDEX_TICKERS: ("index tickers", "index-tickers"),
    Event.BOOK_ACCOUNT: ("account", "account"),
    Event.BOOK_POSTION: ("positions", "positions"),
    Event.BOOK_ORDER: ("orders", "orders"),
    Event.BOOK_ALG_ORDER: ("algo orders", "orders-algo"),
    Event.BOOK_B_AND_P: ("balance and position", "balance_and_position"),
    Event.PLACE_ORDER: ("place order", "order"),
    Event.PLACE_BATCH_ORDERS: ("place batch orders", "batch-orders"),
    Event.CANCEL_ORDER: ("cancel order", "cancel-order"),
    Event.CANCEL_BATCH_ORDERS: ("cancel batch orders", "batch-cancel-orders"),
    Event.AMEND_ORDER: ("amend order", "amend-order"),
    Event.AMEND_BATCH_ORDERS: ("amend batch orders", "batch-amend-orders"),
    Event.BOOKED_DATA: ("subscription push", ""),
    Event.DEPTH_DATA: ("depth push", ""),
}


def get_event_id(raw: str) -> Event:
    """Find the event for a channel name, allowing a trailing period such as 1m."""
    match = _PERIOD_SUFFIX.match(raw)
    stem = match.group(1) if match else None
    for event, (_, channel) in _EVENT_TABLE.items():
        if raw == channel or stem == channel:
            return event
    return Event.UNKNOWN