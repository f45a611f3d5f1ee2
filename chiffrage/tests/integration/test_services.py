"""End-to-end tests: services wired by chiffrage.bootstrap on in-memory SQLite."""

from datetime import date, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from chiffrage.adapters.outbound.redis_cache import InMemoryCacheAdapter, RedisCacheAdapter
from chiffrage.adapters.outbound.sqlalchemy_models import (
    Base,
    CatalogueItem,
    DpgfImport,
    MaterialIndex,
    SupplierPrice,
)
from chiffrage.bootstrap import build_mapping_service, build_quote_service
from chiffrage.config import load_config, pricing_context_from_config
from chiffrage.data.ingestion import create_import, ingest_rows
from domain.models import (
    ColumnMapping,
    FieldType,
    IssueCode,
    QualityFlag,
    RawImportRow,
    SuggestionSource,
    ValidationRule,
)

TENANT = "demo"
NOW = datetime(2025, 6, 1, 12, 0)


@pytest.fixture
def session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


@pytest.fixture
def imp(session):
    imp = create_import(session, TENANT, "DPGF_Durand.xlsx", supplier="Robinetterie Durand")
    ingest_rows(session, imp, [
        RawImportRow(0, {"HEX Code": "HX-VAN-050", "Désignation": "Vanne", "Qté": "4"}),
        RawImportRow(1, {"HEX Code": "HX-TUB-100", "Désignation": "Tube", "Qté": "abc"}),
        RawImportRow(2, {"HEX Code": "HX-VAN-050", "Désignation": "", "Qté": "2"}),
    ])
    return imp


class TestMappingFlow:
    def test_default_cache_is_noop(self, session):
        service = build_mapping_service(session, TENANT)
        assert isinstance(service._cache, RedisCacheAdapter)

    def test_preview_save_and_learn(self, session, imp):
        service = build_mapping_service(session, TENANT, load_config(), cache=InMemoryCacheAdapter())

        preview = service.get_preview(imp.id)
        assert preview.columns == ["HEX Code", "Désignation", "Qté"]
        assert preview.total_rows == 3

        result = service.save_mappings(imp.id, [
            ColumnMapping("HEX Code", "hex_code", FieldType.HEX_CODE, 0),
            ColumnMapping("Désignation", "designation", FieldType.TEXT, 1),
            ColumnMapping("Qté", "quantite", FieldType.NUMBER, 2),
        ], supplier=imp.supplier)
        assert (result.version, result.count) == (1, 3)
        session.refresh(imp)
        assert imp.mapping_status == "draft"
        assert imp.mapping_version == 1

        suggestions = service.get_suggestions("  Robinetterie  Durand", ["hex code", "QTE", "Prix"])
        assert {(s.source_column, s.target_field) for s in suggestions} == {
            ("hex code", "hex_code"),
            ("QTE", "quantite"),
        }
        assert all(s.source is SuggestionSource.MEMORY for s in suggestions)

        assert service.save_mappings(imp.id, [ColumnMapping("Qté", "quantite")],
                                     supplier=imp.supplier).version == 2

    def test_templates(self, session, imp):
        service = build_mapping_service(session, TENANT, cache=InMemoryCacheAdapter())
        service.save_template("Hydro Sud", [ColumnMapping("Prix net", "prix_net", FieldType.CURRENCY, 3)])
        suggestions = service.get_suggestions("Hydro Sud", ["PRIX NET"])
        assert [(s.target_field, s.source) for s in suggestions] == [("prix_net", SuggestionSource.TEMPLATE)]

    def test_validate_and_duplicates(self, session, imp):
        service = build_mapping_service(session, TENANT, cache=InMemoryCacheAdapter())
        report = service.validate(imp.id, [
            ValidationRule(field="Désignation", required=True),
            ValidationRule(field="Qté", type=FieldType.NUMBER, min=1),
        ])
        assert [(i.row_index, i.code) for i in report.issues] == [
            (1, IssueCode.TYPE),
            (2, IssueCode.REQUIRED),
        ]
        duplicates = service.get_duplicates(imp.id, ["HEX Code"])
        assert [g.row_indices for g in duplicates.duplicates] == [[0, 2]]

    def test_other_tenant_cannot_save(self, session, imp):
        service = build_mapping_service(session, "other", cache=InMemoryCacheAdapter())
        with pytest.raises(ValueError):
            service.save_mappings(imp.id, [ColumnMapping("Qté", "quantite")])
        assert session.get(DpgfImport, imp.id).mapping_version == 0


class TestQuoteFlow:
    @pytest.fixture
    def catalogue(self, session):
        vanne = CatalogueItem(tenant_id=TENANT, hex_code="HX-VAN-050", designation="Vanne",
                              temps_unitaire_h=1.5, matiere="Inox")
        tube = CatalogueItem(tenant_id=TENANT, hex_code="HX-TUB-100", designation="Tube",
                             matiere="Acier")
        session.add_all([vanne, tube])
        session.flush()
        session.add_all([
            SupplierPrice(tenant_id=TENANT, catalogue_item_id=vanne.id, fournisseur="Durand",
                          prix_brut=100.0, remise_pct=20.0, validite_fin=date(2025, 12, 31)),
            MaterialIndex(tenant_id=TENANT, matiere="Acier", index_date=date(2025, 5, 1), coefficient=1.1),
        ])
        session.commit()

    def test_chiffrer(self, session, catalogue):
        config = load_config()
        service = build_quote_service(session, TENANT, config)
        ctx = pricing_context_from_config(config)
        result, report = service.chiffrer([("HX-VAN-050", 4), ("hx-tub-100", 10)], ctx, NOW)

        vanne, tube = result.lines
        assert vanne.cout_achat_u == pytest.approx(80.0)
        assert vanne.mo_u == pytest.approx(82.5)
        assert vanne.pv_u == pytest.approx((80.0 + 82.5) / 0.8)
        assert tube.cout_achat_u == pytest.approx(110.0)
        assert tube.flags == [QualityFlag.TEMPS_MANQUANT]
        assert report.lines_with_flags == 1
        assert result.total_pv == pytest.approx(vanne.total_ligne + tube.total_ligne)

    def test_unknown_article(self, session, catalogue):
        service = build_quote_service(session, TENANT)
        with pytest.raises(ValueError, match="introuvable"):
            service.chiffrer([("HX-NOPE", 1)], pricing_context_from_config({}), NOW)
