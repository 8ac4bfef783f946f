# utils/validators.py
from .numeric import to_decimal


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_decimal(x):
    """
    Best-effort parse to Decimal.

    Returns:
        (ok: bool, value: Decimal|None)

    ok == False means the text is unset, partial ('-', '.') or unparseable.
    """
    d = to_decimal(x)
    return (d is not None), d


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses and value > 0.
    """
    ok, val = try_parse_decimal(x)
    return bool(ok and val > 0)


def is_negative_number(x) -> bool:
    ok, val = try_parse_decimal(x)
    return bool(ok and val < 0)
