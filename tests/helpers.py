"""
Shared test doubles: poses, executors, clients, camera and detector fakes.
"""

from concurrent.futures import Executor, Future

import numpy as np

from signspell.capture.camera import Frame
from signspell.core.exceptions import ClassificationError
from signspell.core.types import Landmark, ModelStatus, Pose


def create_mock_pose(offset: float = 0.0, with_z: bool = True) -> Pose:
    """Create a plausible open-hand Pose centred in the frame."""
    base_x, base_y = 0.5 + offset, 0.6
    points = [(base_x, base_y)]
    for finger in range(5):
        x = base_x - 0.1 + finger * 0.05
        for joint in range(4):
            points.append((x, base_y - 0.05 * (joint + 1)))
    landmarks = [Landmark(x, y, 0.0 if with_z else None) for x, y in points]
    return Pose(landmarks=tuple(landmarks), handedness="Right", confidence=0.9)


class ImmediateExecutor(Executor):
    """Runs submitted work synchronously; futures are done on return."""

    def __init__(self):
        self.submitted = 0
        self._shutdown = False

    def submit(self, fn, *args, **kwargs):
        if self._shutdown:
            raise RuntimeError("cannot schedule new futures after shutdown")
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True, *, cancel_futures=False):
        self._shutdown = True


class DeferredExecutor(Executor):
    """Holds submitted work until the test completes it, in any order."""

    def __init__(self):
        self.pending = []  # [(future, fn, args)]

    def submit(self, fn, *args, **kwargs):
        future = Future()
        future.set_running_or_notify_cancel()
        self.pending.append((future, fn, args))
        return future

    def complete(self, index: int):
        """Run the index-th submitted call and resolve its future."""
        future, fn, args = self.pending[index]
        try:
            future.set_result(fn(*args))
        except Exception as e:
            future.set_exception(e)

    def shutdown(self, wait=True, *, cancel_futures=False):
        pass


class FakeClient:
    """Classification client returning scripted answers.

    Each entry of ``answers`` is a label, None, or an exception instance
    to raise. The last entry repeats once the script runs out.
    """

    def __init__(self, answers=("A",)):
        self.answers = list(answers)
        self.calls = []

    def classify(self, pose):
        self.calls.append(pose)
        index = min(len(self.calls) - 1, len(self.answers) - 1)
        answer = self.answers[index]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def close(self):
        pass


def offline():
    return ClassificationError("Classifier unreachable: connection refused")


class FakeCamera:
    """Frame source producing a new blank frame every read()."""

    def __init__(self, start_ok=True, repeat_each=1, interval_ms=16.0):
        self.start_ok = start_ok
        self.repeat_each = repeat_each
        self.interval_ms = interval_ms
        self.running = False
        self.stopped = False
        self._reads = 0

    def start(self):
        self.running = self.start_ok
        return self.start_ok

    def stop(self):
        self.running = False
        self.stopped = True

    def read(self):
        if not self.running:
            return None
        number = self._reads // self.repeat_each + 1
        self._reads += 1
        return Frame(
            image=np.zeros((48, 64, 3), dtype=np.uint8),
            timestamp_ms=number * self.interval_ms,
            frame_number=number,
        )


class FakeDetector:
    """Detector returning scripted poses; exceptions in the script are raised."""

    def __init__(self, script=None, start_ok=True):
        self.script = list(script or [])
        self.start_ok = start_ok
        self.status = ModelStatus.INITIALIZING
        self.calls = []
        self.stopped = False
        self._listener = None

    def set_status_listener(self, listener):
        self._listener = listener

    def _set(self, status):
        self.status = status
        if self._listener:
            self._listener(status)

    def start(self):
        self._set(ModelStatus.LOADING_RUNTIME)
        self._set(ModelStatus.LOADING_MODEL)
        self._set(ModelStatus.READY if self.start_ok else ModelStatus.ERROR)
        return self.start_ok

    def stop(self):
        self.stopped = True

    @property
    def is_ready(self):
        return self.status is ModelStatus.READY

    def detect(self, image, timestamp_ms):
        self.calls.append(timestamp_ms)
        index = len(self.calls) - 1
        item = self.script[index] if index < len(self.script) else None
        if isinstance(item, Exception):
            raise item
        return item
