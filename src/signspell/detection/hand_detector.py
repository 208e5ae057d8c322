"""
Hand Detection Module - MediaPipe Tasks API
============================================

Wraps the MediaPipe HandLandmarker in VIDEO running mode and turns its
output into a single ``Pose`` (or None when no hand is visible).

Start-up walks through the readiness states

    INITIALIZING -> LOADING_RUNTIME -> LOADING_MODEL -> READY | ERROR

and reports each step to an optional status listener. A failed start is
terminal until start() is called again.
"""

import logging
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import mediapipe as mp
import numpy as np
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from ..core.exceptions import DetectorError
from ..core.types import ModelStatus, Pose

logger = logging.getLogger(__name__)

# Model download URL
HAND_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)
DEFAULT_MODEL_PATH = Path.home() / ".cache" / "signspell" / "hand_landmarker.task"


@dataclass
class HandDetectorConfig:
    """Configuration for hand detector."""
    model_path: str = ""
    model_url: str = HAND_LANDMARKER_MODEL_URL
    delegate: str = "CPU"  # CPU or GPU
    max_num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    min_presence_confidence: float = 0.5

    @classmethod
    def from_dict(cls, d: dict) -> "HandDetectorConfig":
        """Create config from dictionary."""
        return cls(
            model_path=d.get("model_path", ""),
            model_url=d.get("model_url", HAND_LANDMARKER_MODEL_URL),
            delegate=d.get("delegate", "CPU"),
            max_num_hands=d.get("max_num_hands", 1),
            min_detection_confidence=d.get("min_detection_confidence", 0.5),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.5),
            min_presence_confidence=d.get("min_presence_confidence", 0.5),
        )


def download_model(url: str, save_path: Path) -> None:
    """Download the hand landmarker model if not present.

    The file is fetched next to ``save_path`` and moved into place only once
    complete, so an interrupted download is retried on the next start.

    Raises:
        DetectorError: if the download fails
    """
    if save_path.exists():
        logger.info("Model already exists at %s", save_path)
        return

    partial_path = save_path.with_suffix(save_path.suffix + ".part")
    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading hand landmarker model to %s...", save_path)
        urllib.request.urlretrieve(url, str(partial_path))
        partial_path.replace(save_path)
        logger.info("Model download complete!")
    except OSError as e:
        partial_path.unlink(missing_ok=True)
        raise DetectorError(f"Failed to download model: {e}") from e


class HandDetector:
    """
    Landmark detector capability: ``detect(frame, timestamp_ms) -> Pose | None``.

    Example:
        >>> detector = HandDetector(HandDetectorConfig())
        >>> detector.start()
        True
        >>> pose = detector.detect(rgb_image, timestamp_ms)
        >>> detector.stop()
    """

    def __init__(
        self,
        config: Optional[HandDetectorConfig] = None,
        status_listener: Optional[Callable[[ModelStatus], None]] = None,
    ):
        self.config = config or HandDetectorConfig()
        self._status_listener = status_listener
        self._landmarker: Optional[vision.HandLandmarker] = None
        self._last_timestamp_ms = -1
        self._status = ModelStatus.INITIALIZING

    def start(self) -> bool:
        """Load the runtime and model.

        Returns:
            True when the detector is READY
        """
        try:
            self._set_status(ModelStatus.LOADING_RUNTIME)
            delegate = (python.BaseOptions.Delegate.GPU
                        if self.config.delegate.upper() == "GPU"
                        else python.BaseOptions.Delegate.CPU)

            self._set_status(ModelStatus.LOADING_MODEL)
            model_path = Path(self.config.model_path or DEFAULT_MODEL_PATH)
            download_model(self.config.model_url, model_path)

            options = vision.HandLandmarkerOptions(
                base_options=python.BaseOptions(
                    model_asset_path=str(model_path), delegate=delegate),
                running_mode=vision.RunningMode.VIDEO,
                num_hands=self.config.max_num_hands,
                min_hand_detection_confidence=self.config.min_detection_confidence,
                min_hand_presence_confidence=self.config.min_presence_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
            )
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except Exception as e:
            logger.error("Failed to initialize HandLandmarker: %s", e)
            self._landmarker = None
            self._set_status(ModelStatus.ERROR)
            return False

        self._last_timestamp_ms = -1
        logger.info("HandLandmarker initialized with model: %s (%s)",
                    model_path, self.config.delegate)
        self._set_status(ModelStatus.READY)
        return True

    def stop(self) -> None:
        """Release resources."""
        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker stopped")

    def detect(self, image: np.ndarray, timestamp_ms: float) -> Optional[Pose]:
        """
        Detect the primary hand in an RGB image.

        Args:
            image: RGB image as numpy array (H, W, 3)
            timestamp_ms: Frame time; forced strictly increasing

        Returns:
            Pose of the first detected hand, or None
        """
        if self._landmarker is None:
            return None

        # VIDEO mode rejects timestamps that do not increase
        ts = int(timestamp_ms)
        if ts <= self._last_timestamp_ms:
            ts = self._last_timestamp_ms + 1
        self._last_timestamp_ms = ts

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=image)
        result = self._landmarker.detect_for_video(mp_image, ts)

        if not result.hand_landmarks:
            return None

        handedness, confidence = "Right", 0.0
        if result.handedness:
            handedness = result.handedness[0][0].category_name
            confidence = result.handedness[0][0].score

        return Pose.from_points(
            result.hand_landmarks[0],
            handedness=handedness,
            confidence=confidence,
        )

    def set_status_listener(self, listener: Optional[Callable[[ModelStatus], None]]):
        self._status_listener = listener

    def _set_status(self, status: ModelStatus):
        self._status = status
        logger.debug("Detector status: %s", status.value)
        if self._status_listener:
            self._status_listener(status)

    @property
    def status(self) -> ModelStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status is ModelStatus.READY and self._landmarker is not None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
