"""
Core pipeline orchestrator for the SignSpell system.

Architecture:
    Camera -> HandDetector -> {OverlayRenderer, ClassificationDispatcher}
    -> EventBus -> Speller

tick() is one unit of cooperative work, called once per display refresh.
It never waits on the network: the dispatcher sends requests on worker
threads and tick() only drains whatever has already finished. Detector
failures are contained per frame. All pipeline state is mutated from the
thread that calls tick(), which is the only thread that may call it.
"""

import logging
import time
from typing import Callable, Optional

from .events import EventBus, Events, SignDetected, StatusChanged, get_bus
from .types import DetectionFrame, ModelStatus, Pose

logger = logging.getLogger(__name__)

HAND_PRESENT_CONFIDENCE = 10


class PipelineResult:
    """Result of a single pipeline iteration."""

    __slots__ = (
        "frame", "display", "detection", "dispatched",
        "detection_error", "is_new_frame",
    )

    def __init__(self):
        self.frame = None
        self.display = None
        self.detection: Optional[DetectionFrame] = None
        self.dispatched = False
        self.detection_error = False
        self.is_new_frame = False

    @property
    def pose(self) -> Optional[Pose]:
        return self.detection.pose if self.detection else None

    @property
    def timestamp_ms(self) -> float:
        return self.detection.timestamp_ms if self.detection else 0.0


class Pipeline:
    """Frame loop: capture, detect, draw, dispatch, drain.

    Lifecycle:
        start()  bring up detector and camera, returns False on failure
                 (the failure stays visible through model_status)
        tick()   one iteration; a no-op once stopped
        stop()   stop ticking, release camera and detector, close the
                 dispatcher so late responses are discarded
    """

    def __init__(
        self,
        camera,
        detector,
        dispatcher,
        overlay=None,
        event_bus: Optional[EventBus] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._camera = camera
        self._detector = detector
        self._dispatcher = dispatcher
        self._overlay = overlay
        self._bus = event_bus or get_bus()
        self._clock = clock or (lambda: time.monotonic() * 1000)

        # State
        self._running = False
        self._detector_status = getattr(detector, "status", ModelStatus.INITIALIZING)
        self._camera_failed = False
        self._last_frame_number = None
        self._last_pose: Optional[Pose] = None
        self._hand_present = False
        self._frame_count = 0
        self._detection_errors = 0

        if hasattr(detector, "set_status_listener"):
            detector.set_status_listener(self._on_detector_status)

    # -- lifecycle -------------------------------------------------------

    def start(self) -> bool:
        """Start detector and camera.

        Returns:
            True when frames can be processed
        """
        logger.info("Starting pipeline...")
        detector_ok = self._detector.start()
        self._on_detector_status(self._detector.status)

        if not self._camera.start():
            logger.error("Camera acquisition failed")
            self._camera_failed = True
            self._emit_model_status()
            return False

        self._running = True
        if not detector_ok:
            logger.error("Detector unavailable, frames will be shown without landmarks")
        return detector_ok

    def stop(self) -> None:
        """Tear down. Safe to call more than once."""
        if self._running:
            logger.info("Stopping pipeline after %d frames", self._frame_count)
        self._running = False
        self._camera.stop()
        self._detector.stop()
        self._dispatcher.close()

    # -- loop ------------------------------------------------------------

    def tick(self) -> Optional[PipelineResult]:
        """Execute one pipeline iteration.

        Returns:
            PipelineResult, or None if the pipeline is stopped or there is
            no frame yet
        """
        if not self._running:
            return None

        frame = self._camera.read()
        if frame is None:
            self._dispatcher.poll()
            return None

        result = PipelineResult()
        result.frame = frame
        result.display = frame.image.copy()

        # Latest wins: a frame already processed is shown again but not re-detected
        if frame.frame_number != self._last_frame_number:
            self._last_frame_number = frame.frame_number
            self._frame_count += 1
            result.is_new_frame = True
            self._last_pose, result.detection_error = self._detect(frame)
        result.detection = DetectionFrame(pose=self._last_pose, timestamp_ms=frame.timestamp_ms)

        if result.is_new_frame:
            self._hand_present_changed(result.detection.has_hand)
            if result.detection.has_hand:
                result.dispatched = self._dispatcher.submit(result.pose, self._clock())

        if self._overlay is not None:
            self._overlay.draw_pose(result.display, result.pose)

        self._dispatcher.poll()
        return result

    def _detect(self, frame):
        """Run the detector on one frame; any exception means no pose."""
        if not self._detector.is_ready:
            return None, False
        try:
            return self._detector.detect(frame.rgb, frame.timestamp_ms), False
        except Exception as e:
            self._detection_errors += 1
            logger.warning("Detection error on frame %d: %s", frame.frame_number, e)
            return None, True

    def _hand_present_changed(self, present: bool):
        # One absence observation per disappearance breaks any stability run
        if self._hand_present and not present:
            self._bus.emit(Events.SIGN_DETECTED, SignDetected(alphabet=None))
        self._hand_present = present

    # -- status ----------------------------------------------------------

    def _on_detector_status(self, status: ModelStatus):
        if status is self._detector_status:
            return
        self._detector_status = status
        self._emit_model_status()

    def _emit_model_status(self):
        self._bus.emit(Events.STATUS_CHANGED,
                       StatusChanged(kind="model", status=self.model_status.value))

    @property
    def model_status(self) -> ModelStatus:
        if self._camera_failed:
            return ModelStatus.CAMERA_ERROR
        return self._detector_status

    @property
    def api_status(self):
        return self._dispatcher.status

    @property
    def hand_confidence(self) -> int:
        return HAND_PRESENT_CONFIDENCE if self._hand_present else 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def detection_errors(self) -> int:
        return self._detection_errors
