"""Domain quote pricing — pure functions, zero external dependencies.

Only stdlib and domain imports allowed.
"""

from __future__ import annotations

from domain.models import (
    CalculatedQuoteLine,
    CalculationResult,
    MaterialIndex,
    QuoteLine,
    SupplierPrice,
)
from domain.price_validity import resolve_reference_time, valid_prices
from domain.quality import STALE_AFTER_DAYS, get_quality_flags

DEFAULT_BASE_COST = 100.0


def last_material_index(indices: list[MaterialIndex], matiere: str | None) -> MaterialIndex | None:
    """Most recent index of *matiere* (case-insensitive), or None."""
    if not matiere:
        return None
    wanted = matiere.strip().lower()
    matching = [i for i in indices if i.matiere.strip().lower() == wanted]
    if not matching:
        return None
    return max(matching, key=lambda i: i.date)


def calculate_cout_achat_u(
    supplier_prices: list[SupplierPrice],
    last_material_index: MaterialIndex | None = None,
    base_cost: float = DEFAULT_BASE_COST,
    reference_time=None,
) -> float:
    """Unit purchase cost: cheapest valid supplier price, else indexed base cost.

    Without any valid price, ``base_cost`` is multiplied by the material index
    coefficient when one is available, or returned unchanged.
    """
    valid = valid_prices(supplier_prices, reference_time)
    if valid:
        return min(p.prix_net for p in valid)
    if last_material_index is None:
        return base_cost
    return base_cost * last_material_index.coefficient


def calculate_mo_u(temps_unitaire_h: float | None, taux_horaire_eur: float) -> float:
    """Unit labor cost: time x hourly rate, 0 when no time is known."""
    if not temps_unitaire_h or temps_unitaire_h <= 0:
        return 0.0
    return temps_unitaire_h * taux_horaire_eur


def calculate_pv_u(
    cout_achat_u: float,
    mo_u: float,
    marge_pct: float,
    diagnostics: list[str] | None = None,
) -> float:
    """Unit sale price: (purchase + labor) / (1 - margin).

    A margin of 100% or more cannot be applied; the total cost is doubled
    instead and a warning is appended to *diagnostics* when given.
    """
    cout_total_u = cout_achat_u + mo_u
    marge_fraction = marge_pct / 100

    if marge_fraction >= 1:
        if diagnostics is not None:
            diagnostics.append(f"Marge invalide: {marge_pct}%")
        return cout_total_u * 2

    return cout_total_u / (1 - marge_fraction)


def calculate_total_ligne(quantite: float, pv_u: float) -> float:
    return quantite * pv_u


def calculate_prix_net(prix_brut: float, remise_pct: float) -> float:
    """Net price after discount: prix_brut x (1 - remise%)."""
    return prix_brut * (1 - remise_pct / 100)


def calculate_quote_line(
    line: QuoteLine,
    reference_time=None,
    stale_after_days: int = STALE_AFTER_DAYS,
) -> CalculatedQuoteLine:
    """Compute cost, labor, sale price, line total and quality flags of a line."""
    reference = resolve_reference_time(reference_time)
    warnings: list[str] = []

    cout_achat_u = calculate_cout_achat_u(
        line.supplier_prices,
        line.last_material_index,
        line.context.cout_reference,
        reference,
    )
    mo_u = calculate_mo_u(line.catalogue_item.temps_unitaire_h, line.context.taux_horaire_eur)
    pv_u = calculate_pv_u(cout_achat_u, mo_u, line.context.marge_pct, warnings)
    total_ligne = calculate_total_ligne(line.quantite, pv_u)

    calculated = CalculatedQuoteLine(
        cout_achat_u=cout_achat_u,
        mo_u=mo_u,
        pv_u=pv_u,
        total_ligne=total_ligne,
        warnings=warnings,
    )
    calculated.flags = get_quality_flags(line, calculated, reference, stale_after_days)
    return calculated


def calculate_quote(
    lines: list[QuoteLine],
    reference_time=None,
    stale_after_days: int = STALE_AFTER_DAYS,
) -> CalculationResult:
    """Calculate every line and sum the quote totals.

    ``total_achats`` and ``total_mo`` sum unit values, while ``total_pv``
    sums line totals (already multiplied by quantity).
    """
    reference = resolve_reference_time(reference_time)
    calculated_lines = [
        calculate_quote_line(line, reference, stale_after_days) for line in lines
    ]

    return CalculationResult(
        lines=calculated_lines,
        total_achats=sum(l.cout_achat_u for l in calculated_lines),
        total_mo=sum(l.mo_u for l in calculated_lines),
        total_pv=sum(l.total_ligne for l in calculated_lines),
    )
