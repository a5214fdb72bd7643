"""Private account data: balances and orders, raw and converted."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping

from texus.utils import to_float, to_int


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return None


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _string_fields(cls: type, data: Any) -> dict[str, str]:
    data = _require_mapping(data)
    values = {}
    for item in fields(cls):
        value = _lookup(data, _camel(item.name))
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ValueError(f"field {_camel(item.name)!r} must be a string")
        values[item.name] = value
    return values


@dataclass
class CcyResp:
    """A currency balance as returned by the exchange, all fields as text."""

    avail_eq: str = ""
    cash_bal: str = ""
    ccy: str = ""
    dis_eq: str = ""
    eq: str = ""
    eq_usd: str = ""
    frozen_bal: str = ""
    ord_frozen: str = ""
    u_time: str = ""
    avail_bal: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> CcyResp:
        return cls(**_string_fields(cls, data))

    def convert(self) -> Ccy:
        """Parse the numeric fields; unparsable values become zero.

        The available balance is not carried over.
        """
        return Ccy(
            avail_eq=to_float(self.avail_eq),
            cash_bal=to_float(self.cash_bal),
            ccy=self.ccy,
            dis_eq=to_float(self.dis_eq),
            eq=to_float(self.eq),
            eq_usd=to_float(self.eq_usd),
            frozen_bal=to_float(self.frozen_bal),
            ord_frozen=to_float(self.ord_frozen),
            u_time=to_int(self.u_time),
        )


@dataclass
class Ccy:
    """A currency balance with numeric fields."""

    avail_eq: float = 0.0
    cash_bal: float = 0.0
    ccy: str = ""
    dis_eq: float = 0.0
    eq: float = 0.0
    eq_usd: float = 0.0
    frozen_bal: float = 0.0
    ord_frozen: float = 0.0
    u_time: int = 0
    avail_bal: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {_camel(item.name): getattr(self, item.name) for item in fields(self)}


@dataclass
class ArgResp:
    """Channel arguments echoed with an order push."""

    channel: str = ""
    inst_type: str = ""
    inst_id: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ArgResp:
        return cls(**_string_fields(cls, data))


@dataclass
class OrderDataResp:
    """One order as returned by the exchange, all fields as text."""

    inst_type: str = ""
    inst_id: str = ""
    ord_id: str = ""
    cl_ord_id: str = ""
    tag: str = ""
    px: str = ""
    sz: str = ""
    notional_usd: str = ""
    ord_type: str = ""
    side: str = ""
    pos_side: str = ""
    td_mode: str = ""
    tgt_ccy: str = ""
    fill_sz: str = ""
    fill_px: str = ""
    trade_id: str = ""
    acc_fill_sz: str = ""
    fill_notional_usd: str = ""
    fill_time: str = ""
    fill_fee: str = ""
    fill_fee_ccy: str = ""
    exec_type: str = ""
    source: str = ""
    state: str = ""
    avg_px: str = ""
    lever: str = ""
    tp_trigger_pxstring: str = ""
    tp_trigger_px_type: str = ""
    tp_ord_px: str = ""
    sl_trigger_px: str = ""
    sl_trigger_px_type: str = ""
    sl_ord_px: str = ""
    fee_ccy: str = ""
    fee: str = ""
    rebate_ccy: str = ""
    rebate: str = ""
    tgt_ccystring: str = ""
    pnl: str = ""
    category: str = ""
    u_time: str = ""
    c_time: str = ""
    req_id: str = ""
    amend_result: str = ""
    code: str = ""
    msg: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> OrderDataResp:
        return cls(**_string_fields(cls, data))


@dataclass
class Order:
    """An order with parsed times and amounts."""

    c_time: int = 0
    u_time: int = 0
    inst_id: str = ""
    ord_id: str = ""
    cl_ord_id: str = ""
    px: float = 0.0
    side: str = ""
    sz: float = 0.0
    acc_fill_sz: float = 0.0
    avg_px: float = 0.0
    state: str = ""
    tgt_ccy: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {_camel(item.name): getattr(self, item.name) for item in fields(self)}


@dataclass
class OrderResp:
    """A list of orders with the channel arguments they came with."""

    arg: ArgResp = field(default_factory=ArgResp)
    data: list[OrderDataResp] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> OrderResp:
        data = _require_mapping(data)
        items = _lookup(data, "data")
        if items is None:
            items = []
        if not isinstance(items, list):
            raise ValueError("field 'data' must be an array")
        return cls(
            arg=ArgResp.from_dict(_lookup(data, "arg")),
            data=[OrderDataResp.from_dict(item) for item in items],
        )

    def convert(self) -> list[Order]:
        """Parse every order; the target currency is not carried over."""
        return [
            Order(
                c_time=to_int(item.c_time),
                u_time=to_int(item.u_time),
                inst_id=item.inst_id,
                ord_id=item.ord_id,
                cl_ord_id=item.cl_ord_id,
                side=item.side,
                px=to_float(item.px),
                sz=to_float(item.sz),
                acc_fill_sz=to_float(item.acc_fill_sz),
                avg_px=to_float(item.avg_px),
                state=item.state,
            )
            for item in self.data
        ]