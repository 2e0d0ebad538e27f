from __future__ import annotations

import pytest

from fakes import Harness, RecordingObserver


@pytest.fixture
def harness() -> Harness:
    return Harness()


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()
