from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..sampling.config import SamplingConfig

SUPPORTED_TABULAR_EXTS = {".csv", ".tsv", ".xlsx", ".xls"}


def read_table(path: str | Path, *, sheet: Optional[str] = None, skiprows: int = 0) -> pd.DataFrame:
    path = Path(path)
    ext = path.suffix.lower()
    if ext == ".csv":
        return pd.read_csv(path, encoding="utf-8-sig", skiprows=skiprows)
    if ext == ".tsv":
        return pd.read_csv(path, sep="\t", encoding="utf-8-sig", skiprows=skiprows)
    if ext in {".xlsx", ".xls"}:
        return pd.read_excel(path, sheet_name=sheet if sheet else 0, skiprows=skiprows)
    supported = sorted(SUPPORTED_TABULAR_EXTS)
    raise ValueError(f"Unsupported tabular file: {path} (supported: {supported})")


def write_table(df: pd.DataFrame, path: str | Path) -> None:
    path = Path(path)
    ext = path.suffix.lower()
    if ext == ".csv":
        df.to_csv(path, index=False, encoding="utf-8-sig")
        return
    if ext == ".tsv":
        df.to_csv(path, index=False, sep="\t", encoding="utf-8-sig")
        return
    if ext in {".xlsx", ".xls"}:
        df.to_excel(path, index=False)
        return
    raise ValueError(f"Unsupported output format: {path} (use .csv/.tsv/.xlsx)")


def read_population(
    path: str | Path,
    *,
    sheet: Optional[str] = None,
    required_columns: Optional[List[str]] = None,
) -> pd.DataFrame:
    """Read a population table and check that the named columns exist."""
    df = read_table(path, sheet=sheet)
    if df.empty:
        raise ValueError(f"Population file is empty: {path}")
    for col in required_columns or []:
        if col not in df.columns:
            raise ValueError(f"Column '{col}' not found. Available columns: {list(df.columns)}")
    return df


def read_config(path: str | Path) -> SamplingConfig:
    """Load a ``SamplingConfig`` from a JSON file (snake_case or camelCase keys)."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")
    return SamplingConfig.from_dict(data)
