import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


class ScriptedSource:
    """Replays a fixed list of uniforms, one ``uniform01()`` call at a time."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def uniform01(self) -> float:
        value = self.values[self.calls]
        self.calls += 1
        return value


class BatchedScriptedSource(ScriptedSource):
    """Same sequence as :class:`ScriptedSource`, also served in batches."""

    def uniform01_batch(self, n):
        out = np.asarray(self.values[self.calls:self.calls + n], dtype=np.float64)
        self.calls += n
        return out


class RecordingSink:
    """Render sink that logs every call instead of drawing."""

    def __init__(self):
        self.events = []
        self.live = {}
        self._next = 0

    def present(self, positions, colors, point_size):
        self._next += 1
        self.live[self._next] = (positions, colors, point_size)
        self.events.append(("present", self._next))
        return self._next

    def dispose(self, handle):
        del self.live[handle]
        self.events.append(("dispose", handle))


def point_draws(radius_draws, fill=0.5):
    """Seven draws per point: the given radius draw, then constant jitter."""
    seq = []
    for u in radius_draws:
        seq.extend([u] + [fill] * 6)
    return seq


@pytest.fixture
def recording_sink():
    return RecordingSink()
