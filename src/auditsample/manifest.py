"""Run manifest generation for reproducibility packs."""

from __future__ import annotations

import importlib.metadata
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any, Dict, List, Optional

from auditsample import __version__

# ---------------------------------------------------------------------------
# Tool Registry — manifest name and draw strategy per sampling method
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolSpec:
    """Describes a sampling method's manifest metadata."""

    manifest_name: str
    draw: str


TOOL_REGISTRY: Dict[str, ToolSpec] = {
    "statistical": ToolSpec("statistical_sampling", "simple_random"),
    "simple_random": ToolSpec("simple_random_sampling", "simple_random"),
    "systematic": ToolSpec("systematic_sampling", "systematic"),
    "percentage": ToolSpec("percentage_sampling", "simple_random"),
}


# ---------------------------------------------------------------------------
# Timestamp utility
# ---------------------------------------------------------------------------


def utc_now() -> datetime:
    """Return current UTC datetime (single source for consistency)."""
    return datetime.now(timezone.utc)


def format_timestamp_filename(ts: datetime) -> str:
    """Format timestamp for ZIP filenames: ``YYYYMMDDTHHMMSSZ``."""
    return ts.strftime("%Y%m%dT%H%M%SZ")


# ---------------------------------------------------------------------------
# Basename sanitisation
# ---------------------------------------------------------------------------

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\s]+')


def sanitize_basename(name: str) -> str:
    """Remove/replace characters unsafe for filenames and strip path components."""
    clean = _UNSAFE_CHARS.sub("_", name)
    clean = PurePath(clean).name
    # Strip leading/trailing underscores and dots to avoid hidden or empty names
    clean = clean.strip("_.")
    return clean or "output"


# ---------------------------------------------------------------------------
# Library version detection
# ---------------------------------------------------------------------------

_RUNTIME_LIBRARIES = ("pandas", "numpy", "openpyxl")


def get_library_version(package_name: str) -> str:
    """Get installed version of a package via importlib.metadata."""
    try:
        return importlib.metadata.version(package_name)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def get_libraries() -> List[Dict[str, str]]:
    """Return ``{name, version}`` dicts for the libraries a run depends on."""
    return [{"name": name, "version": get_library_version(name)} for name in _RUNTIME_LIBRARIES]


# ---------------------------------------------------------------------------
# Manifest builder
# ---------------------------------------------------------------------------


def build_manifest(
    *,
    method: str,
    original_filename: str,
    file_type: str,
    row_count: int,
    column_mapping: Dict[str, Any],
    config: Dict[str, Any],
    libraries: Optional[List[Dict[str, str]]] = None,
    timestamp: Optional[datetime] = None,
    sheet_name: Optional[str] = None,
    sampling: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a complete ``run_manifest.json`` dict.

    Parameters
    ----------
    method:
        Sampling method value (e.g. ``"statistical"``).
    config:
        ``SamplingConfig.to_dict()``; together with the input file this is
        enough to reproduce the sample.
    timestamp:
        If ``None``, uses ``utc_now()``.
    """
    ts = timestamp or utc_now()
    spec = TOOL_REGISTRY.get(method)

    manifest: Dict[str, Any] = {
        "auditsample_version": __version__,
        "timestamp_utc": ts.isoformat(),
        "tool": spec.manifest_name if spec else method,
        "selection": spec.draw if spec else method,
        "input": {
            "original_filename": original_filename,
            "file_type": file_type,
            "row_count": row_count,
            "column_mapping": column_mapping,
        },
        "reproducibility": {
            "seed": config.get("seed"),
            "config": config,
        },
    }

    if sheet_name:
        manifest["input"]["sheet_name"] = sheet_name

    # Only include libraries when non-empty
    if libraries:
        manifest["libraries"] = libraries

    if sampling:
        manifest["sampling"] = sampling

    return manifest


# ---------------------------------------------------------------------------
# Manifest validation (for tests)
# ---------------------------------------------------------------------------

_REQUIRED_KEYS = {
    "auditsample_version",
    "timestamp_utc",
    "tool",
    "input",
    "reproducibility",
}
_REQUIRED_INPUT_KEYS = {"original_filename", "file_type", "row_count", "column_mapping"}
_REQUIRED_REPRO_KEYS = {"seed", "config"}


def validate_manifest(manifest: Dict[str, Any]) -> None:
    """Raise ``ValueError`` if the manifest is structurally invalid."""
    missing = _REQUIRED_KEYS - set(manifest.keys())
    if missing:
        raise ValueError(f"Missing top-level keys: {missing}")

    missing_input = _REQUIRED_INPUT_KEYS - set(manifest.get("input", {}).keys())
    if missing_input:
        raise ValueError(f"Missing input keys: {missing_input}")

    missing_repro = _REQUIRED_REPRO_KEYS - set(manifest.get("reproducibility", {}).keys())
    if missing_repro:
        raise ValueError(f"Missing reproducibility keys: {missing_repro}")

    if not isinstance(manifest["input"]["row_count"], int):
        raise ValueError("input.row_count must be an integer")
