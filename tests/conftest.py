import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ds1000z_scpi.mock_instruments import MockScope
from ds1000z_scpi.src.builder import CommandBuilder
from ds1000z_scpi.src.sequencer import SessionSequencer


class SleepRecorder:
    """Stands in for time.sleep and records every requested delay."""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def scope():
    return MockScope()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def builder():
    return CommandBuilder()


@pytest.fixture
def sequencer(scope, sleeps, builder):
    return SessionSequencer(scope, builder=builder, sleep=sleeps)
