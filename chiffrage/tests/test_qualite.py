from datetime import datetime

import pandas as pd

from chiffrage.analytics.qualite import (
    LIGNE_COLUMNS,
    flags_par_type,
    lignes_dataframe,
    score_qualite,
)
from domain.models import (
    CalculatedQuoteLine,
    CatalogueItem,
    PricingContext,
    QualityFlag,
    QualityReport,
    QuoteLine,
)
from domain.pricing import calculate_quote
from domain.quality import generate_quality_report

NOW = datetime(2025, 6, 1, 12, 0)
CTX = PricingContext(taux_horaire_eur=50.0, marge_pct=20.0)


def _lines():
    return [
        QuoteLine(2, CatalogueItem(1, "HX-1", "Vanne", temps_unitaire_h=1.0), CTX),
        QuoteLine(3, CatalogueItem(2, "HX-2", "Tube", temps_unitaire_h=None), CTX),
    ]


def _report(total, flagged, counts):
    flag_counts = {flag: 0 for flag in QualityFlag}
    flag_counts.update(counts)
    return QualityReport(total, flagged, flag_counts, flagged > 0)


class TestLignesDataframe:
    def test_columns_and_values(self):
        lines = _lines()
        result = calculate_quote(lines, NOW)
        df = lignes_dataframe(lines, result.lines)
        assert list(df.columns) == LIGNE_COLUMNS
        assert len(df) == 2
        assert df.loc[0, "hex_code"] == "HX-1"
        assert df.loc[0, "flags"] == "prix_manquant"
        assert df.loc[1, "flags"] == "temps_manquant, prix_manquant"
        assert df["total_ligne"].sum() == result.total_pv

    def test_empty(self):
        df = lignes_dataframe([], [])
        assert df.empty
        assert list(df.columns) == LIGNE_COLUMNS


class TestFlagsParType:
    def test_sorted_desc(self):
        report = _report(3, 3, {QualityFlag.PRIX_MANQUANT: 3, QualityFlag.TEMPS_MANQUANT: 1})
        df = flags_par_type(report)
        assert list(df.columns) == ["flag", "nb_lignes"]
        assert df.iloc[0]["flag"] == "prix_manquant"
        assert df.iloc[0]["nb_lignes"] == 3
        assert df.iloc[1]["flag"] == "temps_manquant"
        assert len(df) == len(QualityFlag)

    def test_from_generated_report(self):
        lines = _lines()
        report = generate_quality_report(lines, calculate_quote(lines, NOW).lines)
        df = flags_par_type(report)
        counts = dict(zip(df["flag"], df["nb_lignes"]))
        assert counts["prix_manquant"] == 2
        assert counts["temps_manquant"] == 1
        assert counts["incoherence_um"] == 0


class TestScoreQualite:
    def test_score(self):
        score = score_qualite(_report(4, 1, {QualityFlag.TEMPS_MANQUANT: 1}))
        assert score == {"nb_lignes": 4, "pct_sans_flag": 75.0, "requires_action": True}

    def test_empty(self):
        assert score_qualite(_report(0, 0, {})) == {
            "nb_lignes": 0, "pct_sans_flag": 0, "requires_action": False,
        }

    def test_clean(self):
        calc = CalculatedQuoteLine(1, 0, 1, 1)
        report = generate_quality_report(_lines()[:1], [calc])
        assert score_qualite(report)["pct_sans_flag"] == 100.0
        assert isinstance(lignes_dataframe(_lines()[:1], [calc]), pd.DataFrame)
