"""Domain quote quality flags — pure functions, zero external dependencies.

Only stdlib and domain imports allowed.

Rules:
- ``prix_obsolete``: every supplier price is expired, or the oldest valid
  price expired more than ``stale_after_days`` ago
- ``prix_manquant``: no supplier price and no material index
- ``incoherence_um``: unit-of-measure check, reserved (never emitted)
- ``temps_manquant``: no unit time for the labor cost
"""

from __future__ import annotations

from domain.models import (
    CalculatedQuoteLine,
    QualityFlag,
    QualityReport,
    QuoteLine,
)
from domain.price_validity import resolve_reference_time, time_until, valid_prices

STALE_AFTER_DAYS = 90


def _oldest_price(prices, reference):
    """Price with the earliest ``validite_fin``, compared in the reference time zone.

    An open-ended price, once reached, is kept: the line is then never
    considered stale.
    """
    oldest = prices[0]
    for current in prices[1:]:
        if oldest.validite_fin is None:
            continue
        if current.validite_fin is None:
            oldest = current
        elif time_until(current.validite_fin, reference) < time_until(oldest.validite_fin, reference):
            oldest = current
    return oldest


def get_quality_flags(
    line: QuoteLine,
    calculated: CalculatedQuoteLine,
    reference_time=None,
    stale_after_days: int = STALE_AFTER_DAYS,
) -> list[QualityFlag]:
    """Evaluate the quality flags of a quote line.

    The staleness check runs on prices that are already valid, whose
    ``validite_fin`` lies in the future, so it cannot fire as long as
    ``validite_fin`` is an expiry date.
    """
    flags = []
    reference = resolve_reference_time(reference_time)

    temps = line.catalogue_item.temps_unitaire_h
    if not temps or temps <= 0:
        flags.append(QualityFlag.TEMPS_MANQUANT)

    if not line.supplier_prices:
        if line.last_material_index is None:
            flags.append(QualityFlag.PRIX_MANQUANT)
    else:
        valid = valid_prices(line.supplier_prices, reference)
        if not valid:
            flags.append(QualityFlag.PRIX_OBSOLETE)
        else:
            oldest = _oldest_price(valid, reference)
            if oldest.validite_fin is not None:
                age = -time_until(oldest.validite_fin, reference)
                if age.days > stale_after_days:
                    flags.append(QualityFlag.PRIX_OBSOLETE)

    # TODO: incoherence_um needs the unit of measure on supplier prices.

    return flags


def requires_update(line: QuoteLine, reference_time=None) -> bool:
    """Return True if the line needs a price or time update, whatever its computed values."""
    skeleton = CalculatedQuoteLine(cout_achat_u=0, mo_u=0, pv_u=0, total_ligne=0)
    return len(get_quality_flags(line, skeleton, reference_time)) > 0


def generate_quality_report(
    lines: list[QuoteLine],
    calculated_lines: list[CalculatedQuoteLine],
) -> QualityReport:
    """Count flagged lines and flag occurrences over already calculated lines."""
    flag_counts = {flag: 0 for flag in QualityFlag}
    lines_with_flags = 0

    for calculated in calculated_lines:
        if calculated.flags:
            lines_with_flags += 1
            for flag in calculated.flags:
                flag_counts[flag] += 1

    return QualityReport(
        total_lines=len(lines),
        lines_with_flags=lines_with_flags,
        flag_counts=flag_counts,
        requires_action=lines_with_flags > 0,
    )
