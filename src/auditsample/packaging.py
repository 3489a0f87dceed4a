"""ZIP packaging for sampling reproducibility packs."""

from __future__ import annotations

import io
import json
import zipfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from .manifest import format_timestamp_filename, sanitize_basename


def make_zip_filename(input_basename: str, tool: str, timestamp: datetime) -> str:
    """Build ZIP filename.

    Pattern: ``{basename}__{tool}__{YYYYMMDDTHHMMSSZ}.zip``
    """
    safe_base = sanitize_basename(input_basename)
    safe_tool = sanitize_basename(tool)
    ts_str = format_timestamp_filename(timestamp)
    return f"{safe_base}__{safe_tool}__{ts_str}.zip"


def make_output_filename(input_basename: str, ext: str, *, excluded: bool = False) -> str:
    """Build a data filename inside the ZIP.

    Sample   → ``{basename}__sample.{ext}``
    Excluded → ``{basename}__excluded.{ext}``
    """
    safe_base = sanitize_basename(input_basename)
    suffix = "__excluded" if excluded else "__sample"
    return f"{safe_base}{suffix}.{ext}"


# -----------------------------------------------------------------------
# DataFrame serialisation
# -----------------------------------------------------------------------


def _df_to_bytes(df: pd.DataFrame, ext: str) -> bytes:
    """Serialise a DataFrame to bytes in the given format."""
    buf = io.BytesIO()
    if ext == "csv":
        df.to_csv(buf, index=False, encoding="utf-8-sig")
    elif ext == "tsv":
        df.to_csv(buf, index=False, sep="\t", encoding="utf-8-sig")
    else:  # xlsx
        df.to_excel(buf, index=False, engine="openpyxl")
    buf.seek(0)
    return buf.getvalue()


# -----------------------------------------------------------------------
# ZIP builder
# -----------------------------------------------------------------------


def build_zip(
    *,
    manifest: Dict[str, Any],
    sample_df: pd.DataFrame,
    input_basename: str,
    output_ext: str,
    summary: Optional[Dict[str, Any]] = None,
    audit_bytes: Optional[bytes] = None,
    excluded_df: Optional[pd.DataFrame] = None,
) -> Tuple[bytes, str]:
    """Build a ZIP reproducibility pack.

    Files are written in a deterministic, fixed order so that identical
    inputs always produce the same archive structure.

    Returns
    -------
    (zip_bytes, zip_filename)
    """
    tool = manifest.get("tool", "unknown")
    try:
        ts = datetime.fromisoformat(manifest["timestamp_utc"])
    except (ValueError, TypeError, KeyError):
        ts = datetime.now(timezone.utc)

    zip_name = make_zip_filename(input_basename, tool, ts)

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        # 1. run_manifest.json (always first)
        zf.writestr(
            "run_manifest.json",
            json.dumps(manifest, indent=2, ensure_ascii=False, default=str),
        )

        # 2. Sample rows
        zf.writestr(
            make_output_filename(input_basename, output_ext),
            _df_to_bytes(sample_df, output_ext),
        )

        # 3. sampling_summary.json
        if summary is not None:
            zf.writestr(
                "sampling_summary.json",
                json.dumps(summary, indent=2, sort_keys=True, ensure_ascii=False, default=str),
            )

        # 4. sampling_audit.xlsx
        if audit_bytes is not None:
            zf.writestr("sampling_audit.xlsx", audit_bytes)

        # 5. Excluded rows
        if excluded_df is not None:
            zf.writestr(
                make_output_filename(input_basename, "xlsx", excluded=True),
                _df_to_bytes(excluded_df, "xlsx"),
            )

    buf.seek(0)
    return buf.getvalue(), zip_name
