# conftest.py
# Put the repository root and this directory on sys.path so tests can import
# the serpavi package and the shared fakes module.

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
TESTS = Path(__file__).resolve().parent

for path in (str(ROOT), str(TESTS)):
    if path not in sys.path:
        sys.path.insert(0, path)

from serpavi.utils.cancellation import CancellationToken  # noqa: E402


@pytest.fixture
def token():
    """Generous deadline; individual tests build tighter ones when needed."""
    return CancellationToken(60)


@pytest.fixture
def sample_payload():
    return {
        "identifier": "9872023VH5797S0001WX",
        "energyLabel": "E",
        "condition": "bueno",
        "floor": "2",
        "elevator": True,
        "parking": "no",
        "area": 85,
    }
