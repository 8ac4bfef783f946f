# utils/helpers.py
from datetime import date
from decimal import Decimal
import logging
from typing import Union, Optional

from .numeric import to_decimal, quantize

NumberLike = Union[Decimal, int, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default (strict=False, sentinel=None), returns str(v) unchanged.
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.

    Rounding is half-up, same as payloads.
    """
    d = to_decimal(v)
    if d is None:
        _log.debug("fmt_money: failed to parse %r as a decimal", v)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.")
        return str(sentinel) if sentinel is not None else str(v)
    return f"{quantize(d, places):,.{places}f}"
