import pytest

from subreader.models import Cue, CueSequence, Timestamp


def _label(seconds: float) -> str:
    ms = round(seconds * 1000)
    hrs, ms = divmod(ms, 3600000)
    mins, ms = divmod(ms, 60000)
    secs, ms = divmod(ms, 1000)
    return f"{hrs:02d}:{mins:02d}:{secs:02d}.{ms:03d}"


class FakeTime:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_cues():
    def build(*spans):
        return CueSequence(
            [Cue(Timestamp.parse(_label(start)), Timestamp.parse(_label(end)), text) for start, end, text in spans]
        )
    return build


@pytest.fixture
def hello_world(make_cues):
    return make_cues((0.0, 2.0, "Hello"), (2.5, 4.0, "World"))


@pytest.fixture
def fake_time():
    return FakeTime()
