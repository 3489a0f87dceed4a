import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Keep CLI logging at its default level during tests
os.environ.pop("AUDITSAMPLE_LOG_LEVEL", None)


def _risk_rows():
    rows = []
    for i in range(1000):
        m = i % 10
        risk = "Low" if m < 6 else ("Medium" if m < 9 else "High")
        rows.append({"id": f"ID{i:04d}", "risk": risk, "amount": (i * 37) % 1000})
    return rows


@pytest.fixture
def risk_population():
    """1000 rows: 600 Low, 300 Medium, 100 High, interleaved."""
    return _risk_rows()


@pytest.fixture
def flat_population():
    return [{"id": i, "value": i * 2} for i in range(200)]
