"""Shared pytest fixtures for the nurbseval test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

_SRC_PATH: Path = Path(__file__).resolve().parents[1] / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from nurbseval.binomial import BinomialTable  # noqa: E402


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator, so sampled parameters are reproducible per test."""
    return np.random.default_rng(20240917)


@pytest.fixture
def binomials() -> BinomialTable:
    """Fresh binomial table with an empty cache."""
    return BinomialTable()
