from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

from .constants import (
    AVG_PRICE_POLICIES,
    AVG_PRICE_WEIGHTED,
    DATA_DIR,
    DB_FILE_NAME,
    DEFAULT_SALE_QUANTITY,
    ENV_PREFIX,
    INVOICE_AMOUNT_TOLERANCE,
    MONEY_PLACES,
)

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = Path(os.environ.get(ENV_PREFIX + "DATA_DIR", BASE_DIR / DATA_DIR))
DB_PATH = Path(os.environ.get(ENV_PREFIX + "DB", DATA_PATH / DB_FILE_NAME))


@dataclass(frozen=True)
class EngineSettings:
    """
    Knobs the reconciliation engine reads at call time.

    avg_price_policy:
      - 'weighted'  : moving weighted average of on-hand cost and incoming cost
      - 'last_cost' : average cost is simply the incoming net unit cost
    """
    money_places: int = MONEY_PLACES
    invoice_amount_tolerance: Decimal = Decimal(INVOICE_AMOUNT_TOLERANCE)
    avg_price_policy: str = AVG_PRICE_WEIGHTED
    default_sale_quantity: str = DEFAULT_SALE_QUANTITY


def _env(name: str) -> str | None:
    v = os.environ.get(ENV_PREFIX + name)
    return v.strip() if v and v.strip() else None


def load_settings() -> EngineSettings:
    """Build settings from defaults, overridden by PHARMACY_ERP_* environment variables."""
    defaults = EngineSettings()

    policy = (_env("AVG_PRICE_POLICY") or defaults.avg_price_policy).lower()
    if policy not in AVG_PRICE_POLICIES:
        raise ValueError(
            f"{ENV_PREFIX}AVG_PRICE_POLICY must be one of: {', '.join(AVG_PRICE_POLICIES)}"
        )

    tolerance = defaults.invoice_amount_tolerance
    raw_tol = _env("INVOICE_AMOUNT_TOLERANCE")
    if raw_tol is not None:
        try:
            tolerance = Decimal(raw_tol)
        except InvalidOperation as e:
            raise ValueError(f"Could not parse '{raw_tol}' as an invoice amount tolerance.") from e

    places = defaults.money_places
    raw_places = _env("MONEY_PLACES")
    if raw_places is not None:
        places = int(raw_places)

    return EngineSettings(
        money_places=places,
        invoice_amount_tolerance=tolerance,
        avg_price_policy=policy,
        default_sale_quantity=_env("DEFAULT_SALE_QUANTITY") or defaults.default_sale_quantity,
    )


SETTINGS = load_settings()
