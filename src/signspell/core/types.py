"""
Shared domain types for the SignSpell pipeline.

Centralizes enums, landmark containers, and result types used across
modules to eliminate circular imports and keep the wire format in one place.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, NamedTuple, Optional, Sequence, Tuple


NUM_LANDMARKS = 21


# =============================================================================
# Lifecycle Status
# =============================================================================

class ModelStatus(Enum):
    """Detector / frame supply readiness."""
    INITIALIZING = "INITIALIZING"
    LOADING_RUNTIME = "LOADING_RUNTIME"
    LOADING_MODEL = "LOADING_MODEL"
    READY = "READY"
    ERROR = "ERROR"
    CAMERA_ERROR = "CAMERA_ERROR"

    @property
    def is_terminal_failure(self) -> bool:
        return self in (ModelStatus.ERROR, ModelStatus.CAMERA_ERROR)


class ApiStatus(Enum):
    """Classification dispatcher health."""
    IDLE = "IDLE"
    SENDING = "SENDING"
    SUCCESS = "SUCCESS"
    OFFLINE = "API_OFFLINE"


# =============================================================================
# Landmarks
# =============================================================================

class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


FINGERTIPS = (
    LandmarkIndex.THUMB_TIP,
    LandmarkIndex.INDEX_TIP,
    LandmarkIndex.MIDDLE_TIP,
    LandmarkIndex.RING_TIP,
    LandmarkIndex.PINKY_TIP,
)

# Skeleton topology shared by the overlay and anything else that draws a hand.
HAND_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1), (1, 2), (2, 3), (3, 4),         # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),         # Index
    (5, 9), (9, 10), (10, 11), (11, 12),    # Middle
    (9, 13), (13, 14), (14, 15), (15, 16),  # Ring
    (13, 17), (17, 18), (18, 19), (19, 20), # Pinky
    (0, 17),                                # Palm base
)


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: Optional[float] = None  # Depth relative to wrist, if the detector gives one

    def to_pixel(self, width: int, height: int) -> Tuple[int, int]:
        """Convert normalized coordinates to pixel coordinates."""
        return (int(self.x * width), int(self.y * height))

    def to_dict(self) -> dict:
        point = {"x": float(self.x), "y": float(self.y)}
        if self.z is not None:
            point["z"] = float(self.z)
        return point


@dataclass(frozen=True)
class Pose:
    """One frame's 21 hand landmarks. Never mutated, only replaced."""
    landmarks: Tuple[Landmark, ...]
    handedness: str = "Right"
    confidence: float = 0.0

    def __post_init__(self):
        if len(self.landmarks) != NUM_LANDMARKS:
            raise ValueError(
                f"Pose needs {NUM_LANDMARKS} landmarks, got {len(self.landmarks)}")
        object.__setattr__(self, "landmarks", tuple(self.landmarks))

    @classmethod
    def from_points(cls, points: Sequence, **kwargs) -> "Pose":
        """Build a Pose from (x, y[, z]) sequences or objects with x/y/z attributes."""
        landmarks = []
        for p in points:
            if hasattr(p, "x"):
                landmarks.append(Landmark(p.x, p.y, getattr(p, "z", None)))
            else:
                landmarks.append(Landmark(*p))
        return cls(landmarks=tuple(landmarks), **kwargs)

    def get(self, index: LandmarkIndex) -> Landmark:
        """Get landmark by index."""
        return self.landmarks[index]

    def to_payload(self) -> List[dict]:
        """Landmarks in the classification service wire format."""
        return [lm.to_dict() for lm in self.landmarks]


# =============================================================================
# Per-frame and per-request containers
# =============================================================================

@dataclass(frozen=True)
class DetectionFrame:
    """Output of one loop iteration. Transient."""
    pose: Optional[Pose]
    timestamp_ms: float

    @property
    def has_hand(self) -> bool:
        return self.pose is not None


@dataclass(frozen=True)
class ClassificationResult:
    """A classifier answer for one dispatched Pose."""
    label: Optional[str]
    request_timestamp: float
    generation: int = 0
