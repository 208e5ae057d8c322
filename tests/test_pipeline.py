"""
Tests for the Frame Loop
=========================
"""

from itertools import count

import pytest

from helpers import (
    FakeCamera,
    FakeClient,
    FakeDetector,
    ImmediateExecutor,
    create_mock_pose,
)
from signspell.core.events import Events
from signspell.core.pipeline import HAND_PRESENT_CONFIDENCE, Pipeline
from signspell.core.types import ApiStatus, ModelStatus
from signspell.detection.overlay import OverlayRenderer
from signspell.recognition.classifier_client import ClassifierConfig
from signspell.recognition.dispatcher import ClassificationDispatcher
from signspell.recognition.stability import Speller, StabilityConfig


def make_pipeline(bus, script, answers=("A",), camera=None, detector=None,
                  cooldown_ms=200.0, step_ms=250.0, overlay=None):
    """Pipeline over fakes with a clock advancing ``step_ms`` per call."""
    camera = camera or FakeCamera()
    detector = detector or FakeDetector(script)
    client = FakeClient(answers)
    dispatcher = ClassificationDispatcher(
        client, ClassifierConfig(dispatch_cooldown_ms=cooldown_ms),
        event_bus=bus, executor=ImmediateExecutor(),
    )
    ticks = count()
    pipeline = Pipeline(camera, detector, dispatcher, overlay=overlay, event_bus=bus,
                        clock=lambda: next(ticks) * step_ms)
    return pipeline, camera, detector, client, dispatcher


@pytest.fixture
def signs(bus):
    received = []
    bus.subscribe(Events.SIGN_DETECTED, received.append)
    return received


class TestLifecycle:

    def test_start_reports_ready(self, bus):
        statuses = []
        bus.subscribe(Events.STATUS_CHANGED, lambda e: statuses.append(e.status))
        pipeline, *_ = make_pipeline(bus, [])

        assert pipeline.start() is True
        assert pipeline.is_running
        assert pipeline.model_status is ModelStatus.READY
        assert statuses == ["LOADING_RUNTIME", "LOADING_MODEL", "READY"]

    def test_camera_failure_is_terminal_status(self, bus):
        pipeline, *_ = make_pipeline(bus, [], camera=FakeCamera(start_ok=False))

        assert pipeline.start() is False
        assert pipeline.model_status is ModelStatus.CAMERA_ERROR
        assert not pipeline.is_running
        assert pipeline.tick() is None

    def test_detector_failure_keeps_frames_flowing(self, bus):
        detector = FakeDetector([create_mock_pose()], start_ok=False)
        pipeline, _, _, client, _ = make_pipeline(bus, [], detector=detector)

        assert pipeline.start() is False
        assert pipeline.model_status is ModelStatus.ERROR

        result = pipeline.tick()
        assert result is not None
        assert result.pose is None
        assert detector.calls == []
        assert client.calls == []

    def test_stop_tears_everything_down(self, bus):
        pipeline, camera, detector, _, dispatcher = make_pipeline(bus, [])
        pipeline.start()

        pipeline.stop()
        pipeline.stop()

        assert camera.stopped
        assert detector.stopped
        assert dispatcher.is_closed
        assert pipeline.tick() is None


class TestTick:

    def test_pose_is_dispatched_and_published(self, bus, signs):
        pipeline, _, _, client, _ = make_pipeline(bus, [create_mock_pose()])
        pipeline.start()

        result = pipeline.tick()

        assert result.detection.has_hand
        assert result.detection.timestamp_ms == result.frame.timestamp_ms
        assert result.pose is not None
        assert result.dispatched
        assert len(client.calls) == 1
        assert [e.alphabet for e in signs] == ["A"]
        assert pipeline.api_status is ApiStatus.SUCCESS
        assert pipeline.hand_confidence == HAND_PRESENT_CONFIDENCE

    def test_no_hand_no_request(self, bus, signs):
        pipeline, _, _, client, _ = make_pipeline(bus, [None, None])
        pipeline.start()

        pipeline.tick()
        pipeline.tick()

        assert client.calls == []
        assert signs == []
        assert pipeline.hand_confidence == 0

    def test_detection_error_is_contained(self, bus):
        pose = create_mock_pose()
        pipeline, _, detector, client, _ = make_pipeline(
            bus, [RuntimeError("graph failed"), pose])
        pipeline.start()

        first = pipeline.tick()
        second = pipeline.tick()

        assert first.detection_error
        assert first.pose is None
        assert second.pose is pose
        assert pipeline.detection_errors == 1
        assert len(client.calls) == 1

    def test_classifier_bug_does_not_escape_tick(self, bus, signs):
        pipeline, *_ = make_pipeline(bus, [create_mock_pose()], answers=[KeyError("alphabet")])
        pipeline.start()

        result = pipeline.tick()

        assert result.dispatched
        assert pipeline.api_status is ApiStatus.OFFLINE
        assert signs == []

    def test_repeated_frame_not_redetected(self, bus):
        camera = FakeCamera(repeat_each=3)
        pipeline, _, detector, client, _ = make_pipeline(
            bus, [create_mock_pose()], camera=camera)
        pipeline.start()

        results = [pipeline.tick() for _ in range(3)]

        assert len(detector.calls) == 1
        assert [r.is_new_frame for r in results] == [True, False, False]
        assert all(r.pose is not None for r in results)
        assert len(client.calls) == 1

    def test_hand_lost_publishes_one_absence(self, bus, signs):
        pose = create_mock_pose()
        pipeline, *_ = make_pipeline(bus, [pose, None, None, None])
        pipeline.start()

        for _ in range(4):
            pipeline.tick()

        assert [e.alphabet for e in signs] == ["A", None]

    def test_dispatch_respects_cooldown(self, bus):
        pose = create_mock_pose()
        pipeline, _, _, client, _ = make_pipeline(
            bus, [pose] * 63, cooldown_ms=200.0, step_ms=16.0)
        pipeline.start()

        for _ in range(63):  # ~1 second at 60 fps
            pipeline.tick()

        assert len(client.calls) <= 5

    def test_overlay_draws_on_display_copy(self, bus):
        pipeline, *_ = make_pipeline(bus, [create_mock_pose()], overlay=OverlayRenderer())
        pipeline.start()

        result = pipeline.tick()

        assert result.display.any()
        assert not result.frame.image.any()


class TestEndToEnd:
    """Frames in, spelled text out."""

    def test_held_sign_is_spelled_once(self, bus):
        pose = create_mock_pose()
        pipeline, *_ = make_pipeline(bus, [pose] * 8, answers=["H"])
        speller_clock = count(0, 250)
        speller = Speller(StabilityConfig(), event_bus=bus,
                          clock=lambda: float(next(speller_clock)))
        speller.attach()
        pipeline.start()

        for _ in range(8):
            pipeline.tick()

        assert speller.text == "H"
        speller.detach()

    def test_hand_lost_breaks_the_run(self, bus):
        pose = create_mock_pose()
        script = [pose, pose, pose, None, pose, pose, pose, pose]
        pipeline, *_ = make_pipeline(bus, script, answers=["H"])
        speller_clock = count(0, 250)
        speller = Speller(StabilityConfig(), event_bus=bus,
                          clock=lambda: float(next(speller_clock)))
        speller.attach()
        pipeline.start()

        for _ in range(len(script)):
            pipeline.tick()

        assert speller.text == ""
        speller.detach()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
