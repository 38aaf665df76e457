from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.batch_builder import BatchBuilder


@pytest.fixture
def batch_builder(tmp_path: Path) -> BatchBuilder:
    """Provide a reusable batch builder rooted at the pytest tmp_path."""
    return BatchBuilder(tmp_path)
