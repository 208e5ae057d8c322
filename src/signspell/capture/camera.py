"""
Camera Capture Module
======================

Frame source for the detection loop. Keeps only the latest frame: in
threaded mode a background reader overwrites a single slot, so frames the
loop is too slow to look at are dropped rather than queued.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from ..core.exceptions import CameraError

logger = logging.getLogger(__name__)

READ_RETRY_DELAY_S = 0.05


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    device_id: int = 0
    width: int = 1280
    height: int = 720
    fps: int = 30
    buffer_size: int = 1  # Minimal buffering for low latency
    threaded: bool = True
    flip_horizontal: bool = True
    warmup_frames: int = 5

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            device_id=config.get("device_id", 0),
            width=config.get("width", 1280),
            height=config.get("height", 720),
            fps=config.get("fps", 30),
            buffer_size=config.get("buffer_size", 1),
            warmup_frames=config.get("warmup_frames", 5),
            flip_horizontal=config.get("flip_horizontal", True),
            threaded=config.get("threaded", True),
        )


@dataclass
class Frame:
    """Container for captured frame with metadata."""
    image: np.ndarray
    timestamp_ms: float  # monotonic clock
    frame_number: int

    @property
    def rgb(self) -> np.ndarray:
        """Convert BGR to RGB."""
        return cv2.cvtColor(self.image, cv2.COLOR_BGR2RGB)

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        return (self.image.shape[1], self.image.shape[0])


class Camera:
    """
    Camera capture with optional threading.

    Example:
        >>> camera = Camera(CameraConfig())
        >>> if camera.start():
        ...     frame = camera.read()
        >>> camera.stop()
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._frame_number = 0
        self._read_failures = 0
        self._running = False

        # Threading components
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._latest_frame: Optional[Frame] = None

    def start(self) -> bool:
        """
        Open the device and start capture.

        Returns:
            True if camera started successfully
        """
        logger.info("Starting camera (device=%d, %dx%d@%dfps)",
                    self.config.device_id, self.config.width,
                    self.config.height, self.config.fps)

        self._cap = cv2.VideoCapture(self.config.device_id)
        if not self._cap.isOpened():
            logger.error("Failed to open camera device %d", self.config.device_id)
            self._cap.release()
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self._cap.set(cv2.CAP_PROP_FPS, self.config.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

        ok, _ = self._cap.read()
        if not ok:
            logger.error("Camera %d opened but returned no frames", self.config.device_id)
            self._cap.release()
            self._cap = None
            return False

        actual_width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info("Camera initialized: %dx%d", actual_width, actual_height)

        # Warm up camera
        for _ in range(self.config.warmup_frames):
            self._cap.read()

        self._running = True
        self._frame_number = 0
        self._read_failures = 0

        if self.config.threaded:
            self._thread = threading.Thread(target=self._capture_loop, daemon=True)
            self._thread.start()
            logger.info("Started threaded capture")

        return True

    def stop(self) -> None:
        """Stop capture and release the device. Safe to call twice."""
        if not self._running and self._cap is None:
            return
        logger.info("Stopping camera...")
        self._running = False

        if self._thread:
            self._thread.join(timeout=1.0)
            self._thread = None

        if self._cap:
            self._cap.release()
            self._cap = None

        with self._lock:
            self._latest_frame = None
        logger.info("Camera stopped")

    def read(self) -> Optional[Frame]:
        """
        Read the latest frame.

        In threaded mode returns the most recent captured frame (possibly
        the same one as last call). In synchronous mode captures a new one.

        Returns:
            Frame or None if no frame is available
        """
        if not self._running:
            return None

        if self.config.threaded:
            with self._lock:
                return self._latest_frame
        return self._capture_frame()

    def _capture_frame(self) -> Optional[Frame]:
        """Capture a single frame from the camera."""
        if not self._cap:
            return None

        ret, image = self._cap.read()

        if not ret or image is None:
            self._read_failures += 1
            if self._read_failures == 1:
                logger.warning("Camera %d stopped delivering frames", self.config.device_id)
            return None

        if self._read_failures:
            logger.info("Camera %d recovered after %d failed reads",
                        self.config.device_id, self._read_failures)
            self._read_failures = 0

        # Mirror so the user's right hand appears on the right
        if self.config.flip_horizontal:
            image = cv2.flip(image, 1)

        self._frame_number += 1

        return Frame(
            image=image,
            timestamp_ms=time.monotonic() * 1000,
            frame_number=self._frame_number,
        )

    def _capture_loop(self) -> None:
        """Background thread for continuous frame capture."""
        while self._running:
            frame = self._capture_frame()
            if frame:
                with self._lock:
                    self._latest_frame = frame
            else:
                time.sleep(READ_RETRY_DELAY_S)

    @property
    def read_failures(self) -> int:
        """Consecutive failed reads since the last good frame."""
        return self._read_failures

    @property
    def is_running(self) -> bool:
        """Check if camera is currently running."""
        return self._running

    @property
    def resolution(self) -> Tuple[int, int]:
        """Get configured camera resolution."""
        return (self.config.width, self.config.height)

    def __enter__(self):
        if not self.start():
            raise CameraError(f"Could not open camera device {self.config.device_id}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
