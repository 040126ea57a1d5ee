# tests/conftest.py
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


def pytest_configure() -> None:
    # Ensure `src` is importable when running tests from the repo root.
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    if src_dir.exists():
        sys.path.insert(0, str(src_dir))


@pytest.fixture
def sample_image() -> np.ndarray:
    """200 x 100 gradient, so canvas limits are x=(0, 200), y=(0, 100)."""
    return np.tile(np.linspace(0.0, 1.0, 200), (100, 1))
