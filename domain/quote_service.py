"""Domain service for quote calculation.

Loads catalogue items, supplier prices and material indices through the
repository ports, then runs the pricing and quality engines.
"""

from __future__ import annotations

import logging

from domain.models import (
    CalculationResult,
    PricingContext,
    QualityReport,
    QuoteLine,
)
from domain.normalization import normalize_hex_code
from domain.ports import (
    CatalogueRepository,
    MaterialIndexRepository,
    SupplierPriceRepository,
)
from domain.price_validity import resolve_reference_time
from domain.pricing import calculate_quote, last_material_index
from domain.quality import STALE_AFTER_DAYS, generate_quality_report

logger = logging.getLogger(__name__)


class QuoteService:
    """Builds quote lines from the catalogue and prices them."""

    def __init__(
        self,
        catalogue: CatalogueRepository,
        prices: SupplierPriceRepository,
        indices: MaterialIndexRepository,
        stale_after_days: int = STALE_AFTER_DAYS,
    ) -> None:
        self._catalogue = catalogue
        self._prices = prices
        self._indices = indices
        self._stale_after_days = stale_after_days

    def build_line(self, hex_code: str, quantite: float, context: PricingContext) -> QuoteLine:
        """Assemble a quote line for a catalogue item.

        Raises ValueError when the HEX code is not in the catalogue.
        """
        item = self._catalogue.get_by_hex_code(normalize_hex_code(hex_code))
        if item is None:
            raise ValueError(f"Article {hex_code} introuvable")

        index = None
        if item.matiere:
            index = last_material_index(self._indices.list_by_material(item.matiere), item.matiere)

        return QuoteLine(
            quantite=quantite,
            catalogue_item=item,
            context=context,
            supplier_prices=self._prices.list_by_catalogue_item(item.id),
            last_material_index=index,
        )

    def chiffrer(
        self,
        items: list[tuple[str, float]],
        context: PricingContext,
        reference_time=None,
    ) -> tuple[CalculationResult, QualityReport]:
        """Price ``(hex_code, quantite)`` pairs and report their quality flags."""
        reference = resolve_reference_time(reference_time)
        lines = [self.build_line(hex_code, quantite, context) for hex_code, quantite in items]
        result = calculate_quote(lines, reference, self._stale_after_days)

        for line, calculated in zip(lines, result.lines):
            for warning in calculated.warnings:
                logger.warning("%s: %s", line.catalogue_item.hex_code, warning)

        report = generate_quality_report(lines, result.lines)
        if report.requires_action:
            logger.info(
                "%d/%d lignes a reactualiser", report.lines_with_flags, report.total_lines,
            )
        return result, report
