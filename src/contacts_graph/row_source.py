"""Load raw spreadsheet rows from CSV or Excel files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Union

import pandas as pd

from .errors import RowSourceError
from .models import RawRow
from .normalization import cell_to_text

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


def _read_frame(path: Path, sheet_name: Union[int, str]) -> pd.DataFrame:
    if path.suffix.lower() in EXCEL_SUFFIXES:
        return pd.read_excel(path, sheet_name=sheet_name, header=None, dtype=str)
    return pd.read_csv(
        path,
        header=None,
        dtype=str,
        keep_default_na=False,
        encoding="utf-8-sig",
        skip_blank_lines=True,
    )


def read_rows(
    path: Union[str, Path], header_rows: int = 1, sheet_name: Union[int, str] = 0
) -> List[RawRow]:
    """
    Read ``path`` into positional rows of cell text.

    The first ``header_rows`` rows are dropped. Files that cannot be read, or
    that hold no data rows once headers are removed, raise RowSourceError.
    """
    source = Path(path)
    if not source.exists():
        raise RowSourceError(f"row source not found: {source}")
    if header_rows < 0:
        raise ValueError(f"header_rows must not be negative, got {header_rows}")

    try:
        frame = _read_frame(source, sheet_name)
    except pd.errors.EmptyDataError as exc:
        raise RowSourceError(f"row source is empty: {source}") from exc
    except (OSError, ValueError) as exc:
        raise RowSourceError(f"could not read {source}: {exc}") from exc

    rows = [[cell_to_text(value) for value in record] for record in frame.itertuples(index=False)]
    rows = rows[header_rows:]
    if not rows:
        raise RowSourceError(f"row source has no data rows: {source}")
    logger.info("Read %d row(s) from %s", len(rows), source)
    return rows


__all__ = ["EXCEL_SUFFIXES", "read_rows"]
