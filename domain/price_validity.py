"""Domain supplier price validity — pure functions, zero external dependencies.

Only stdlib and domain.models imports allowed. Time-dependent checks take an
explicit ``reference_time``; it defaults to the current time only when a
caller leaves it out.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta

from domain.models import SupplierPrice


def as_datetime(value, tzinfo=None):
    """Dates are taken at midnight, in the reference time zone.

    A naive datetime is placed in *tzinfo*; an aware one is kept as is.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None and tzinfo is not None:
            return value.replace(tzinfo=tzinfo)
        return value
    return datetime.combine(value, time.min, tzinfo=tzinfo)


def resolve_reference_time(reference_time=None):
    """Return *reference_time* as a datetime, defaulting to now."""
    if reference_time is None:
        return datetime.now()
    return as_datetime(reference_time)


def time_until(value, reference: datetime) -> timedelta:
    """Signed delay from *reference* to the date or datetime *value*.

    A naive side takes the time zone of the aware one, so naive and aware
    values can be mixed.
    """
    moment = as_datetime(value, reference.tzinfo)
    if moment.tzinfo is not None and reference.tzinfo is None:
        reference = reference.replace(tzinfo=moment.tzinfo)
    return moment - reference


def is_price_valid(price: SupplierPrice, reference_time=None) -> bool:
    """A price is valid if it never expires or expires strictly after the reference."""
    if price.validite_fin is None:
        return True
    return time_until(price.validite_fin, resolve_reference_time(reference_time)) > timedelta(0)


def valid_prices(prices: list[SupplierPrice], reference_time=None) -> list[SupplierPrice]:
    reference = resolve_reference_time(reference_time)
    return [p for p in prices if is_price_valid(p, reference)]
