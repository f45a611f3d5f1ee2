import pandas as pd

from domain.models import CalculatedQuoteLine, QualityFlag, QualityReport, QuoteLine


LIGNE_COLUMNS = [
    "hex_code", "designation", "quantite", "cout_achat_u", "mo_u",
    "pv_u", "total_ligne", "flags",
]


def lignes_dataframe(lines: list[QuoteLine], calculated: list[CalculatedQuoteLine]) -> pd.DataFrame:
    rows = [
        {
            "hex_code": line.catalogue_item.hex_code,
            "designation": line.catalogue_item.designation,
            "quantite": line.quantite,
            "cout_achat_u": calc.cout_achat_u,
            "mo_u": calc.mo_u,
            "pv_u": calc.pv_u,
            "total_ligne": calc.total_ligne,
            "flags": ", ".join(f.value for f in calc.flags),
        }
        for line, calc in zip(lines, calculated)
    ]
    return pd.DataFrame(rows, columns=LIGNE_COLUMNS)


def flags_par_type(report: QualityReport) -> pd.DataFrame:
    counts = {flag.value: report.flag_counts.get(flag, 0) for flag in QualityFlag}
    df = pd.DataFrame(
        {"flag": list(counts), "nb_lignes": list(counts.values())},
    )
    return df.sort_values("nb_lignes", ascending=False, kind="stable").reset_index(drop=True)


def score_qualite(report: QualityReport) -> dict:
    if report.total_lines == 0:
        return {"nb_lignes": 0, "pct_sans_flag": 0, "requires_action": False}

    sans_flag = report.total_lines - report.lines_with_flags
    return {
        "nb_lignes": report.total_lines,
        "pct_sans_flag": (sans_flag / report.total_lines) * 100,
        "requires_action": report.requires_action,
    }
