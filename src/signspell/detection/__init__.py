"""Hand landmark detection and overlay drawing."""
from .hand_detector import HandDetector, HandDetectorConfig
from .overlay import OverlayConfig, OverlayRenderer

__all__ = ["HandDetector", "HandDetectorConfig", "OverlayConfig", "OverlayRenderer"]
