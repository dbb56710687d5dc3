from __future__ import annotations

import sys
from pathlib import Path

import pytest


SRC_PATH = Path(__file__).resolve().parent / "src"
if SRC_PATH.is_dir():
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture
def no_spawn(monkeypatch):
    """Freeze the spawner so scenarios only contain hand-placed rockets."""
    from novadefense.core import engine as engine_module

    monkeypatch.setattr(engine_module, "try_spawn", lambda state, probability, config: None)


@pytest.fixture
def playing_engine(no_spawn):
    from novadefense.core.engine import Engine

    engine = Engine(seed=1234)
    engine.restart()
    return engine
