"""
Readers for the structure and requirement tables.

Both tables arrive as CSV (or an Excel export of the same columns). Rows are
returned as plain ``{column: value}`` dicts in file order with trimmed,
lower-cased headers and trimmed string values, so the loader and binder never
see pandas types.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

STRUCTURE_REQUIRED_COLUMNS = ("id",)
REQUIREMENT_REQUIRED_COLUMNS = ("id", "description")

# Alternate header spellings accepted for the same logical column.
REQUIREMENT_COLUMN_ALIASES: Dict[str, str] = {
    "reference_to": "reference to",
    "attached_files": "attached files",
}

EXCEL_SUFFIXES = {".xlsx", ".xls", ".xlsm"}


def clean_header(name: Any) -> str:
    return " ".join(str(name).strip().split()).lower()


def _clean_value(val: Any) -> str:
    if val is None:
        return ""
    try:
        if pd.isna(val):
            return ""
    except (TypeError, ValueError):
        pass
    return str(val).strip()


def _ensure_columns(columns: Iterable[str], required: Iterable[str], context: str) -> None:
    available = set(columns)
    missing = [col for col in required if col not in available]
    if missing:
        raise ValueError(f"{context} is missing required columns: {', '.join(missing)}")


def read_frame(path: Union[str, Path], sheet_name: Optional[str] = None) -> pd.DataFrame:
    table_path = Path(path)
    if not table_path.exists():
        raise FileNotFoundError(f"Table not found: {table_path}")

    if table_path.suffix.lower() in EXCEL_SUFFIXES:
        df = pd.read_excel(table_path, sheet_name=sheet_name or 0, dtype=str)
    else:
        df = pd.read_csv(table_path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    return df.rename(columns={c: clean_header(c) for c in df.columns})


def frame_to_rows(df: pd.DataFrame) -> List[Dict[str, str]]:
    rows: List[Dict[str, str]] = []
    for record in df.to_dict(orient="records"):
        row = {str(key): _clean_value(value) for key, value in record.items()}
        if not any(row.values()):
            continue
        rows.append(row)
    return rows


def read_structure_rows(path: Union[str, Path], sheet_name: Optional[str] = None) -> List[Dict[str, str]]:
    df = read_frame(path, sheet_name=sheet_name)
    _ensure_columns(df.columns, STRUCTURE_REQUIRED_COLUMNS, f"Structure table {path}")
    return frame_to_rows(df)


def read_requirement_rows(path: Union[str, Path], sheet_name: Optional[str] = None) -> List[Dict[str, str]]:
    df = read_frame(path, sheet_name=sheet_name)
    rename = {
        alias: canonical
        for alias, canonical in REQUIREMENT_COLUMN_ALIASES.items()
        if alias in df.columns and canonical not in df.columns
    }
    if rename:
        df = df.rename(columns=rename)
    _ensure_columns(df.columns, REQUIREMENT_REQUIRED_COLUMNS, f"Requirement table {path}")
    return frame_to_rows(df)
