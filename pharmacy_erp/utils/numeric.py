"""
utils/numeric.py

Canonicalization of raw keyboard text into decimal values.

Every numeric field of a document is kept as the text the user typed. The
empty string means "unset" and is never coerced to 0 here: callers decide
what unset means (for payment linkage, "" and "0" behave differently).

Arithmetic is done with Decimal; nothing in the engine touches binary floats.
Rounding to money places happens only on commit (blur) and in payloads,
never while typing, so "12." is not clobbered into "12.00" mid-entry.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, ROUND_FLOOR
from typing import Optional, Union

__all__ = [
    "coerce",
    "is_partial",
    "to_decimal",
    "D",
    "fmt",
    "quantize",
    "money",
    "commit",
    "floor_div",
]

NumberLike = Union[str, int, Decimal, None]

ZERO = Decimal("0")
HUNDRED = Decimal("100")

_PATTERNS = {
    (False, False): re.compile(r"^\d*$"),
    (True, False): re.compile(r"^\d*\.?\d*$"),
    (False, True): re.compile(r"^-?\d*$"),
    (True, True): re.compile(r"^-?\d*\.?\d*$"),
}

_PARTIAL = {"-", ".", "-."}


def coerce(raw: NumberLike, *, decimal: bool = False, negative: bool = False) -> str:
    """
    Keep `raw` if it is acceptable numeric text, otherwise drop trailing
    characters until it is (a single bad keystroke loses just that keystroke).

    Never raises. "" is returned for None.
    """
    if raw is None:
        return ""
    text = raw if isinstance(raw, str) else fmt(Decimal(raw))
    rx = _PATTERNS[(bool(decimal), bool(negative))]
    while text and not rx.match(text):
        text = text[:-1]
    return text


def is_partial(text: NumberLike) -> bool:
    """True for the transient states of a number being typed: '-', '.', '-.'."""
    return isinstance(text, str) and text.strip() in _PARTIAL


def to_decimal(value: NumberLike) -> Optional[Decimal]:
    """
    Parse to Decimal. Returns None for unset ("" / None), partial entries
    ('-', '.', '-.') and anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    text = str(value).strip()
    if not text or text in _PARTIAL:
        return None
    try:
        d = Decimal(text)
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


def D(value: NumberLike) -> Decimal:
    """Like to_decimal(), but unset/partial values read as 0."""
    d = to_decimal(value)
    return ZERO if d is None else d


def fmt(value: Optional[Decimal]) -> str:
    """Plain decimal text (no exponent, no trailing zeros). None -> ''."""
    if value is None:
        return ""
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def quantize(value: Decimal, places: int = 2) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def money(value: NumberLike, places: int = 2) -> str:
    """Fixed-places text; unset reads as 0 ('0.00')."""
    return f"{quantize(D(value), places):.{places}f}"


def commit(text: NumberLike, places: int = 2) -> str:
    """
    Blur/commit normalization of a typed amount.

    "" stays "", partial entries collapse to "", anything else is rounded
    half-up to `places` decimals.
    """
    d = to_decimal(text)
    if d is None:
        return ""
    return f"{quantize(d, places):.{places}f}"


def floor_div(a: Decimal, b: Decimal) -> Decimal:
    """Whole number of times b fits in a (b must be non-zero)."""
    return (a / b).to_integral_value(rounding=ROUND_FLOOR)
