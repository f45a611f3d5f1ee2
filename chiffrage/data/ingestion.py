"""Ingestion of DPGF spreadsheets (CSV / XLSX) into raw import rows.

Files are read with pandas; every physical row becomes one ``dpgf_rows_raw``
record holding its cells as a JSON object keyed by the trimmed headers.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

import pandas as pd
from sqlalchemy import insert
from sqlalchemy.orm import Session

from chiffrage.adapters.outbound.sqlalchemy_models import DpgfImport, DpgfRowRaw
from domain.models import RawImportRow

logger = logging.getLogger(__name__)

BATCH_SIZE = 1000
SUPPORTED_EXTENSIONS = (".csv", ".xlsx")


def _cell(value):
    """Empty cells become "", strings are trimmed, timestamps become ISO strings."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if value is None or pd.isna(value):
        return ""
    return value


def read_dataframe(path: str) -> pd.DataFrame:
    """Read the first sheet of an XLSX file or a CSV file (separator sniffed)."""
    ext = os.path.splitext(path)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"Format de fichier non supporte: {ext or path}")
    if ext == ".csv":
        df = pd.read_csv(path, sep=None, engine="python", dtype=str, keep_default_na=False)
    else:
        df = pd.read_excel(path, sheet_name=0, engine="openpyxl")
    df.columns = [str(c).strip() for c in df.columns]
    return df.dropna(how="all")


def dataframe_to_rows(df: pd.DataFrame) -> list[RawImportRow]:
    records = df.astype(object).to_dict(orient="records")
    return [
        RawImportRow(
            row_index=idx,
            raw_data={k: _cell(v) for k, v in record.items()},
        )
        for idx, record in enumerate(records)
    ]


def read_rows(path: str) -> list[RawImportRow]:
    """Parse a DPGF file into raw rows, 0-based row indices."""
    return dataframe_to_rows(read_dataframe(path))


def create_import(
    session: Session,
    tenant_id: str,
    filename: str,
    storage_path: str | None = None,
    supplier: str | None = None,
) -> DpgfImport:
    """Create an import record with status 'pending'."""
    imp = DpgfImport(
        tenant_id=tenant_id,
        filename=filename,
        storage_path=storage_path,
        supplier=supplier,
        status="pending",
    )
    session.add(imp)
    session.commit()
    return imp


def ingest_rows(session: Session, imp: DpgfImport, rows: list[RawImportRow]) -> int:
    """Store *rows* for the import in batches and mark it 'parsed'."""
    imp.status = "processing"
    session.flush()

    for start in range(0, len(rows), BATCH_SIZE):
        batch = rows[start:start + BATCH_SIZE]
        session.execute(insert(DpgfRowRaw), [
            {
                "tenant_id": imp.tenant_id,
                "import_id": imp.id,
                "row_index": row.row_index,
                "raw_data": row.raw_data,
            }
            for row in batch
        ])
        logger.debug("Import %s: inserted %d rows", imp.id, len(batch))

    imp.status = "parsed"
    imp.parsed_at = datetime.now(timezone.utc)
    imp.row_count = len(rows)
    session.commit()
    logger.info("Import %s: %d rows parsed and stored", imp.id, len(rows))
    return len(rows)


def ingest_file(
    session: Session,
    tenant_id: str,
    path: str,
    supplier: str | None = None,
) -> DpgfImport:
    """Create an import for *path* and store its rows.

    The import is marked 'failed' and the error re-raised when the file
    cannot be read or stored.
    """
    imp = create_import(
        session, tenant_id, os.path.basename(path), storage_path=path, supplier=supplier,
    )
    try:
        ingest_rows(session, imp, read_rows(path))
    except Exception:
        session.rollback()
        imp.status = "failed"
        session.commit()
        logger.exception("Import %s failed: %s", imp.id, path)
        raise
    return imp
