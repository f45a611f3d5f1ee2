#!/usr/bin/env python3
"""Load a demo catalogue, supplier prices, material indices and a DPGF import.

Usage:
    PYTHONPATH=. python scripts/load_demo_data.py

Prices the demo quote and prints its totals and quality flags.
"""
import os
import sys
from datetime import date, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from chiffrage.adapters.outbound.redis_cache import InMemoryCacheAdapter
from chiffrage.adapters.outbound.sqlalchemy_models import (
    CatalogueItem, MaterialIndex, SupplierPrice,
)
from chiffrage.bootstrap import build_mapping_service, build_quote_service
from chiffrage.config import configure_logging, load_config, pricing_context_from_config
from chiffrage.data.db import engine_from_config, session_factory
from chiffrage.data.ingestion import create_import, ingest_rows
from domain.models import ColumnMapping, FieldType, RawImportRow

TENANT = "demo"


def main():
    config = load_config()
    configure_logging(config)
    Session = session_factory(engine_from_config(config))

    today = date.today()

    with Session() as session:
        vanne = CatalogueItem(
            tenant_id=TENANT, hex_code="HX-VAN-050", designation="Vanne papillon DN50",
            temps_unitaire_h=1.5, matiere="Inox", unite_mesure="U",
        )
        tube = CatalogueItem(
            tenant_id=TENANT, hex_code="HX-TUB-100", designation="Tube acier DN100",
            temps_unitaire_h=None, matiere="Acier", unite_mesure="ML",
        )
        coude = CatalogueItem(
            tenant_id=TENANT, hex_code="HX-COU-080", designation="Coude 90 DN80",
            temps_unitaire_h=0.5, matiere="Fonte", unite_mesure="U",
        )
        session.add_all([vanne, tube, coude])
        session.flush()

        session.add_all([
            SupplierPrice(
                tenant_id=TENANT, catalogue_item_id=vanne.id, fournisseur="Robinetterie Durand",
                prix_brut=100.0, remise_pct=20.0, validite_fin=today + timedelta(days=180),
            ),
            SupplierPrice(
                tenant_id=TENANT, catalogue_item_id=vanne.id, fournisseur="Hydro Sud",
                prix_brut=95.0, remise_pct=0.0, prix_net=95.0,
                validite_fin=today + timedelta(days=30),
            ),
            SupplierPrice(
                tenant_id=TENANT, catalogue_item_id=coude.id, fournisseur="Hydro Sud",
                prix_brut=40.0, remise_pct=10.0, validite_fin=today - timedelta(days=10),
            ),
            MaterialIndex(tenant_id=TENANT, matiere="Acier", index_date=today - timedelta(days=60), coefficient=1.05),
            MaterialIndex(tenant_id=TENANT, matiere="Acier", index_date=today - timedelta(days=5), coefficient=1.1),
        ])
        session.commit()

        imp = create_import(session, TENANT, "DPGF_DEMO.xlsx", supplier="Robinetterie Durand")
        ingest_rows(session, imp, [
            RawImportRow(0, {"HEX Code": "HX-VAN-050", "Désignation": "Vanne", "Qté": "4"}),
            RawImportRow(1, {"HEX Code": "HX-TUB-100", "Désignation": "Tube", "Qté": "12"}),
            RawImportRow(2, {"HEX Code": "HX-VAN-050", "Désignation": "Vanne", "Qté": "abc"}),
        ])

        mapping = build_mapping_service(session, TENANT, config, cache=InMemoryCacheAdapter())
        result = mapping.save_mappings(imp.id, [
            ColumnMapping("HEX Code", "hex_code", FieldType.HEX_CODE, 0),
            ColumnMapping("Désignation", "designation", FieldType.TEXT, 1),
            ColumnMapping("Qté", "quantite", FieldType.NUMBER, 2),
        ], supplier=imp.supplier)
        print(f"Mapping version {result.version} ({result.count} colonnes)")

        best = mapping.get_best_suggestions(imp.supplier, ["Hex code", "Designation", "Qte"])
        for column, s in best.items():
            print(f"  {column!r} -> {s.target_field} ({s.confidence:.0%}, {s.source.value})")

        duplicates = mapping.get_duplicates(imp.id, ["HEX Code"])
        print(f"Doublons: {[g.row_indices for g in duplicates.duplicates]}")

        quotes = build_quote_service(session, TENANT, config)
        quote, report = quotes.chiffrer(
            [("HX-VAN-050", 4), ("hx-tub-100", 12), ("HX-COU-080", 2)],
            pricing_context_from_config(config),
        )

    print(f"Total achats: {quote.total_achats:.2f}")
    print(f"Total MO:     {quote.total_mo:.2f}")
    print(f"Total PV:     {quote.total_pv:.2f}")
    for flag, count in report.flag_counts.items():
        if count:
            print(f"  {flag.value}: {count}")


if __name__ == "__main__":
    main()
