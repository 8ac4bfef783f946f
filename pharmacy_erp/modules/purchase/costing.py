"""
purchase/costing.py

Average cost and margin of a purchase line.

  weighted  : avg = (stock_avg * stock + line_cost) / (stock + incoming)
  last_cost : avg = line_cost / incoming

`incoming` counts bonus units, so free goods lower the average cost.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ...constants import AVG_PRICE_LAST_COST
from ...utils.numeric import D, HUNDRED, ZERO, to_decimal

__all__ = ["average_cost", "margin_of", "price_for_margin"]


def average_cost(
    *,
    line_cost: Decimal,
    incoming: Decimal,
    stock,
    stock_avg,
    net_unit_cost: Optional[Decimal],
    policy: str,
) -> Optional[Decimal]:
    if policy == AVG_PRICE_LAST_COST:
        if incoming > 0:
            return line_cost / incoming
        return net_unit_cost

    on_hand = D(stock)
    if on_hand < 0:
        on_hand = ZERO
    on_hand_avg = to_decimal(stock_avg)
    if on_hand_avg is None:
        on_hand = ZERO
        on_hand_avg = ZERO
    units = on_hand + incoming
    if units > 0 and (incoming > 0 or on_hand > 0):
        return (on_hand_avg * on_hand + line_cost) / units
    return net_unit_cost


def margin_of(sale_price, avg: Optional[Decimal]) -> Optional[Decimal]:
    """(sale - avg) / sale * 100, or None when it cannot be computed."""
    sale = to_decimal(sale_price)
    if sale is None or sale <= 0 or avg is None:
        return None
    return (sale - avg) / sale * HUNDRED


def price_for_margin(margin, avg: Optional[Decimal]) -> Optional[Decimal]:
    """Sale price giving `margin` percent over `avg`; None if impossible."""
    m = to_decimal(margin)
    if m is None or avg is None or m >= HUNDRED:
        return None
    return avg / (1 - m / HUNDRED)
