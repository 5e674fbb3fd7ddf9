from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.engine.strategy import StrategyConfig, instantiate  # noqa: E402


@pytest.fixture
def bi_long_draft() -> StrategyConfig:
    draft = instantiate("bi_long", author="tester")
    assert draft is not None
    return draft
