import pandas as pd
import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from chiffrage.adapters.outbound.sqlalchemy_models import Base, DpgfImport, DpgfRowRaw
from chiffrage.data import ingestion
from chiffrage.data.ingestion import (
    create_import,
    dataframe_to_rows,
    ingest_file,
    ingest_rows,
    read_rows,
)
from domain.models import RawImportRow


@pytest.fixture
def session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "DPGF_Hydro.csv"
    path.write_text(
        " HEX Code ;Désignation;Qté\n"
        "HX-1; Vanne papillon ;4\n"
        "HX-2;;abc\n"
        "HX-1;Vanne papillon;2\n",
        encoding="utf-8",
    )
    return path


class TestReadRows:
    def test_csv(self, csv_file):
        rows = read_rows(str(csv_file))
        assert [r.row_index for r in rows] == [0, 1, 2]
        assert rows[0].raw_data == {"HEX Code": "HX-1", "Désignation": "Vanne papillon", "Qté": "4"}
        assert rows[1].raw_data["Désignation"] == ""

    def test_xlsx_first_sheet(self, tmp_path):
        path = tmp_path / "DPGF.xlsx"
        with pd.ExcelWriter(path) as writer:
            pd.DataFrame({"Réf": ["A1", "A2"], "Qté": [4, None]}).to_excel(writer, sheet_name="DPGF", index=False)
            pd.DataFrame({"Autre": ["x"]}).to_excel(writer, sheet_name="Notes", index=False)
        rows = read_rows(str(path))
        assert len(rows) == 2
        assert set(rows[0].raw_data) == {"Réf", "Qté"}
        assert rows[0].raw_data["Qté"] == 4
        assert rows[1].raw_data["Qté"] == ""

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "DPGF.pdf"
        path.write_bytes(b"%PDF")
        with pytest.raises(ValueError, match="non supporte"):
            read_rows(str(path))

    def test_legacy_xls_rejected(self, tmp_path):
        path = tmp_path / "DPGF.xls"
        path.write_bytes(b"\xd0\xcf\x11\xe0")
        with pytest.raises(ValueError, match="non supporte: .xls"):
            read_rows(str(path))

    def test_supported_extensions(self):
        assert ingestion.SUPPORTED_EXTENSIONS == (".csv", ".xlsx")

    def test_timestamps_and_missing_cells(self):
        df = pd.DataFrame({"Date": [pd.Timestamp("2025-03-01"), None], "Prix": [1.5, float("nan")]})
        rows = dataframe_to_rows(df)
        assert rows[0].raw_data == {"Date": "2025-03-01T00:00:00", "Prix": 1.5}
        assert rows[1].raw_data == {"Date": "", "Prix": ""}


class TestIngest:
    def test_ingest_file(self, session, csv_file):
        imp = ingest_file(session, "t1", str(csv_file), supplier="Hydro Sud")
        assert imp.status == "parsed"
        assert imp.row_count == 3
        assert imp.parsed_at is not None
        assert imp.filename == "DPGF_Hydro.csv"
        stored = session.scalars(select(DpgfRowRaw).order_by(DpgfRowRaw.row_index)).all()
        assert [r.row_index for r in stored] == [0, 1, 2]
        assert stored[2].raw_data["HEX Code"] == "HX-1"

    def test_failed_import(self, session, tmp_path):
        path = tmp_path / "DPGF.pdf"
        path.write_bytes(b"%PDF")
        with pytest.raises(ValueError):
            ingest_file(session, "t1", str(path))
        imp = session.scalars(select(DpgfImport)).one()
        assert imp.status == "failed"
        assert session.scalars(select(DpgfRowRaw)).all() == []

    def test_batches(self, session, monkeypatch):
        monkeypatch.setattr(ingestion, "BATCH_SIZE", 2)
        imp = create_import(session, "t1", "x.csv")
        count = ingest_rows(session, imp, [RawImportRow(i, {"n": i}) for i in range(5)])
        assert count == 5
        assert len(session.scalars(select(DpgfRowRaw)).all()) == 5

    def test_empty_file(self, session):
        imp = create_import(session, "t1", "vide.csv")
        assert ingest_rows(session, imp, []) == 0
        assert imp.status == "parsed"
        assert imp.row_count == 0
