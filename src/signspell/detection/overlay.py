"""
Overlay Renderer
=================

Draws the detected hand skeleton and a small HUD on camera frames.
Purely presentational: reads a Pose and status values, mutates only the
image it is given.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from ..core.types import FINGERTIPS, HAND_CONNECTIONS, ApiStatus, ModelStatus, Pose


@dataclass
class OverlayConfig:
    """Overlay settings. Colors are BGR."""
    show_landmarks: bool = True
    show_hud: bool = True
    connection_color: Tuple[int, int, int] = (241, 102, 99)  # Indigo
    landmark_color: Tuple[int, int, int] = (255, 255, 255)
    fingertip_color: Tuple[int, int, int] = (0, 0, 255)
    ready_color: Tuple[int, int, int] = (94, 197, 34)        # Green
    pending_color: Tuple[int, int, int] = (11, 158, 245)     # Amber
    error_color: Tuple[int, int, int] = (68, 68, 239)        # Red
    connection_thickness: int = 3
    landmark_radius: int = 4
    font_scale: float = 0.6

    @classmethod
    def from_dict(cls, config: dict) -> "OverlayConfig":
        """Create config from dictionary."""
        colors = config.get("colors", {})
        return cls(
            show_landmarks=config.get("show_landmarks", True),
            show_hud=config.get("show_hud", True),
            connection_color=tuple(colors.get("connections", [241, 102, 99])),
            landmark_color=tuple(colors.get("landmarks", [255, 255, 255])),
            fingertip_color=tuple(colors.get("fingertips", [0, 0, 255])),
            connection_thickness=config.get("connection_thickness", 3),
            landmark_radius=config.get("landmark_radius", 4),
            font_scale=config.get("font_scale", 0.6),
        )


class OverlayRenderer:
    """
    Skeleton and HUD overlay.

    Example:
        >>> overlay = OverlayRenderer()
        >>> overlay.draw_pose(frame.image, pose)
        >>> overlay.draw_hud(frame.image, ModelStatus.READY, ApiStatus.SUCCESS, "A", "HELLO")
    """

    def __init__(self, config: Optional[OverlayConfig] = None):
        self.config = config or OverlayConfig()
        self._font = cv2.FONT_HERSHEY_SIMPLEX

    def draw_pose(self, image: np.ndarray, pose: Optional[Pose]) -> np.ndarray:
        """Draw the skeleton; a None pose leaves the image untouched."""
        if pose is None or not self.config.show_landmarks:
            return image

        height, width = image.shape[:2]
        points = [lm.to_pixel(width, height) for lm in pose.landmarks]

        for start_idx, end_idx in HAND_CONNECTIONS:
            cv2.line(image, points[start_idx], points[end_idx],
                     self.config.connection_color, self.config.connection_thickness)

        for i, pos in enumerate(points):
            color = self.config.fingertip_color if i in FINGERTIPS else self.config.landmark_color
            cv2.circle(image, pos, self.config.landmark_radius, color, -1)

        return image

    def draw_hud(
        self,
        image: np.ndarray,
        model_status: ModelStatus,
        api_status: ApiStatus,
        detected: Optional[str] = None,
        spelled: str = "",
        hand_confidence: int = 0,
    ) -> np.ndarray:
        """Status line, detected letter, spelled word and confidence bar."""
        if not self.config.show_hud:
            return image

        height, width = image.shape[:2]
        scale = self.config.font_scale

        status_color = self.status_color(model_status)
        status_text = f"STATUS: {model_status.value} | API: {api_status.value}"
        self._draw_label(image, status_text, (20, 30), scale, status_color)

        # Detected letter, bottom right
        letter = detected or "-"
        (tw, th), _ = cv2.getTextSize(letter, self._font, scale * 3, 3)
        x, y = width - tw - 40, height - 30
        cv2.rectangle(image, (x - 15, y - th - 35), (x + tw + 15, y + 15), (0, 0, 0), -1)
        cv2.putText(image, "DETECTED", (x - 10, y - th - 15), self._font,
                    scale * 0.6, self.config.connection_color, 1, cv2.LINE_AA)
        cv2.putText(image, letter, (x, y), self._font, scale * 3,
                    (255, 255, 255), 3, cv2.LINE_AA)

        # Spelled word, bottom left
        self._draw_label(image, f"SPELLING: {spelled or '-'}", (20, height - 30),
                         scale * 1.4, (255, 255, 255))

        # Hand confidence bar under the status line
        bar_w = 200
        cv2.rectangle(image, (20, 45), (20 + bar_w, 53), (60, 60, 60), -1)
        filled = int(bar_w * max(0, min(hand_confidence, 100)) / 100)
        if filled:
            cv2.rectangle(image, (20, 45), (20 + filled, 53), self.config.connection_color, -1)

        return image

    def status_color(self, model_status: ModelStatus) -> Tuple[int, int, int]:
        if model_status.is_terminal_failure:
            return self.config.error_color
        if model_status is ModelStatus.READY:
            return self.config.ready_color
        return self.config.pending_color

    def _draw_label(self, image, text, org, scale, color):
        (tw, th), baseline = cv2.getTextSize(text, self._font, scale, 1)
        x, y = org
        cv2.rectangle(image, (x - 6, y - th - 6), (x + tw + 6, y + baseline + 4), (0, 0, 0), -1)
        cv2.putText(image, text, org, self._font, scale, color, 1, cv2.LINE_AA)
