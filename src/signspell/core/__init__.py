"""Core types, exceptions, event bus and pipeline."""
from .events import EventBus, Events, SignDetected, StatusChanged, SymbolCommitted, get_bus
from .exceptions import CameraError, ClassificationError, DetectorError, SignSpellError
from .types import (
    HAND_CONNECTIONS,
    ApiStatus,
    ClassificationResult,
    DetectionFrame,
    Landmark,
    LandmarkIndex,
    ModelStatus,
    Pose,
)

__all__ = [
    "EventBus", "Events", "SignDetected", "StatusChanged", "SymbolCommitted", "get_bus",
    "CameraError", "ClassificationError", "DetectorError", "SignSpellError",
    "HAND_CONNECTIONS", "ApiStatus", "ClassificationResult", "DetectionFrame",
    "Landmark", "LandmarkIndex", "ModelStatus", "Pose",
]
