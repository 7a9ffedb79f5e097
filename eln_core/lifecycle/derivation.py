# eln_core/lifecycle/derivation.py
"""
Derived status for chemical inventory.

Stored status on a chemical is only a cache of `derive_chemical_status`;
it is recomputed on every read and write.

Note: the low stock threshold is compared to the stored quantity as-is,
whatever its unit (mL, g, units). No unit conversion is attempted.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple

from .clock import today
from .errors import ValidationError
from .kinds import AVAILABLE, EXPIRED, LOW_STOCK, OUT_OF_STOCK, get_kind

LOW_STOCK_THRESHOLD = Decimal("10")
EXPIRY_WARNING_DAYS = 30


# ===============================================================
# Coercion
# ===============================================================

def to_decimal(value: Any, field: str = "quantity") -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise ValidationError(f"'{field}' must be a number.", field=field)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() keeps floats like 10.01 from turning into binary noise
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"'{field}' must be a number, got {value!r}.", field=field)
    # NaN and Infinity parse but cannot be compared or stored
    if not result.is_finite():
        raise ValidationError(f"'{field}' must be a finite number, got {value!r}.", field=field)
    return result


def to_date(value: Any, field: str = "expiry_date") -> Optional[date]:
    """
    Accepts a date, a datetime, or an ISO string for either. A datetime
    string is reduced to its date part; anything else is rejected.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError(f"'{field}' must be an ISO date, got {value!r}.", field=field)


def _as_of(now) -> date:
    if now is None:
        return today()
    if isinstance(now, datetime):
        return now.date()
    if isinstance(now, date):
        return now
    return now.now().date()


# ===============================================================
# Derivation
# ===============================================================

def derive_chemical_status(
    quantity: Any,
    expiry_date: Any,
    now=None,
    *,
    low_stock_threshold: Any = LOW_STOCK_THRESHOLD,
) -> str:
    """
    Priority order, first match wins:
      1) expiry date before today -> Expired
      2) quantity <= 0             -> Out of Stock
      3) quantity <= threshold     -> Low Stock
      4) otherwise                 -> Available

    `now` may be a datetime, a date or a Clock.
    The expiry date itself is the last usable day.
    """
    qty = to_decimal(quantity)
    expiry = to_date(expiry_date)
    as_of = _as_of(now)

    if expiry is not None and expiry < as_of:
        return EXPIRED
    if qty <= 0:
        return OUT_OF_STOCK
    if qty <= to_decimal(low_stock_threshold, field="low_stock_threshold"):
        return LOW_STOCK
    return AVAILABLE


def days_until(expiry_date: Any, now=None) -> Optional[int]:
    expiry = to_date(expiry_date)
    if expiry is None:
        return None
    return (expiry - _as_of(now)).days


def is_expiring_soon(expiry_date: Any, now=None, *, window_days: int = EXPIRY_WARNING_DAYS) -> bool:
    """
    Dashboard alert flag, independent of the derived status.
    """
    remaining = days_until(expiry_date, now)
    if remaining is None:
        return False
    return 0 <= remaining <= window_days


def display_status(kind, record: Mapping[str, Any], now=None, **options) -> Optional[str]:
    k = get_kind(kind)
    if k.derived_status:
        return derive_chemical_status(
            record.get("quantity"),
            record.get("expiry_date"),
            now,
            **options,
        )
    return record.get("status")


def stale_statuses(
    records: Iterable[Mapping[str, Any]],
    now=None,
    **options,
) -> Iterator[Tuple[Mapping[str, Any], str]]:
    """
    Yield (record, derived_status) for chemical records whose stored
    status no longer matches the derivation.
    """
    for record in records:
        derived = derive_chemical_status(
            record.get("quantity"),
            record.get("expiry_date"),
            now,
            **options,
        )
        if record.get("status") != derived:
            yield record, derived
