"""
SignSpell - Main Application
=============================

Entry point for the fingerspelling recognizer.
Wires camera, detector, dispatcher, event bus and speller together and
drives the frame loop from the OpenCV window refresh.
"""

import argparse
import logging
import signal
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from .capture.camera import Camera, CameraConfig
from .core.events import EventBus, Events, get_bus
from .core.pipeline import Pipeline
from .detection.hand_detector import HandDetector, HandDetectorConfig
from .detection.overlay import OverlayConfig, OverlayRenderer
from .recognition.classifier_client import ClassificationClient, ClassifierConfig
from .recognition.dispatcher import ClassificationDispatcher
from .recognition.stability import Speller, StabilityConfig
from .utils.config import Config
from .utils.logger import SpellingLogger, setup_logging

logger = logging.getLogger(__name__)

KEY_ESC = 27
KEY_BACKSPACE = 8


@dataclass
class AppConfig:
    """Application configuration container."""
    camera: CameraConfig
    mediapipe: HandDetectorConfig
    classifier: ClassifierConfig
    stability: StabilityConfig
    overlay: OverlayConfig
    window_name: str = "SignSpell"


def create_app_config(config: Config) -> AppConfig:
    """Create AppConfig from the loaded configuration."""
    return AppConfig(
        camera=CameraConfig.from_dict(config.camera),
        mediapipe=HandDetectorConfig.from_dict(config.mediapipe),
        classifier=ClassifierConfig.from_dict(config.classifier),
        stability=StabilityConfig.from_dict(config.stability),
        overlay=OverlayConfig.from_dict(config.visualization),
        window_name=config.get("visualization.window_name", "SignSpell"),
    )


class SignSpellApplication:
    """
    Main application class.

    Keyboard Controls:
        q / ESC       quit
        c             clear the spelled text
        u / Backspace undo the last letter
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self.bus = get_bus()

        self.camera = Camera(config.camera)
        self.detector = HandDetector(config.mediapipe)
        self.client = ClassificationClient(config.classifier)
        self.dispatcher = ClassificationDispatcher(self.client, config.classifier, self.bus)
        self.overlay = OverlayRenderer(config.overlay)
        self.pipeline = Pipeline(
            self.camera, self.detector, self.dispatcher,
            overlay=self.overlay, event_bus=self.bus,
        )
        self.speller = Speller(config.stability, event_bus=self.bus)
        self.spelling_log = SpellingLogger()

        self._running = False
        self._blank = np.zeros((config.camera.height, config.camera.width, 3), dtype=np.uint8)

    def start(self) -> bool:
        """Attach consumers and start the pipeline.

        A failed start is not fatal: the window still opens and shows the
        failure status until the user quits.
        """
        logger.info("Starting SignSpell...")
        self.speller.attach()
        self.bus.subscribe(Events.SYMBOL_COMMITTED, self.spelling_log.on_symbol_committed)
        self.bus.subscribe(Events.STATUS_CHANGED, self.spelling_log.on_status_changed)

        ok = self.pipeline.start()
        self._running = True
        if ok:
            logger.info("SignSpell started successfully")
        else:
            logger.error("Pipeline degraded: %s", self.pipeline.model_status.value)
        return ok

    def stop(self) -> None:
        """Tear everything down."""
        logger.info("Stopping SignSpell...")
        self._running = False
        self.pipeline.stop()
        self.speller.detach()
        EventBus.reset()
        self.client.close()
        cv2.destroyAllWindows()
        logger.info("SignSpell stopped")

    def run(self) -> None:
        """Run the main loop until quit."""
        self.start()

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        try:
            self._main_loop()
        finally:
            self.stop()
            print(f"\nSpelled: {self.speller.text or '-'}")

    def _main_loop(self) -> None:
        while self._running:
            result = self.pipeline.tick()
            display = result.display if result is not None else self._blank.copy()

            self.overlay.draw_hud(
                display,
                self.pipeline.model_status,
                self.pipeline.api_status,
                detected=self.speller.current_label,
                spelled=self.speller.text,
                hand_confidence=self.pipeline.hand_confidence,
            )
            cv2.imshow(self.config.window_name, display)

            # Display refresh; also schedules the next tick
            self._handle_key(cv2.waitKey(1) & 0xFF)

    def _handle_key(self, key: int) -> None:
        if key in (ord("q"), KEY_ESC):
            self._running = False
        elif key == ord("c"):
            self.speller.clear()
            logger.info("Cleared spelled text")
        elif key in (ord("u"), KEY_BACKSPACE):
            removed = self.speller.undo()
            if removed:
                logger.info("Removed '%s'", removed)

    def _signal_handler(self, signum, frame) -> None:
        logger.info("Received signal %d, shutting down...", signum)
        self._running = False


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="SignSpell - fingerspelling to text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Keyboard Controls:
  q/ESC         - Quit
  c             - Clear spelled text
  u/Backspace   - Undo last letter

Examples:
  signspell
  signspell --config config/config.yaml --debug
  signspell --endpoint http://localhost:8000/predict
        """,
    )
    parser.add_argument("--config", "-c", default=None,
                        help="Path to configuration file (default: config/config.yaml)")
    parser.add_argument("--debug", "-d", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--log-file", default=None,
                        help="Also log to this rotating file")
    parser.add_argument("--endpoint", default=None,
                        help="Classifier URL, overrides classifier.endpoint")
    parser.add_argument("--camera", type=int, default=None,
                        help="Camera device id, overrides camera.device_id")
    return parser.parse_args(argv)


def main(argv: Optional[list] = None):
    """Main entry point."""
    args = parse_args(argv)

    config = Config().load(args.config)
    overrides = {}
    if args.endpoint:
        overrides.setdefault("classifier", {})["endpoint"] = args.endpoint
    if args.camera is not None:
        overrides.setdefault("camera", {})["device_id"] = args.camera
    if overrides:
        config.update(overrides)

    log_cfg = config.log_settings
    setup_logging(
        level="DEBUG" if args.debug else log_cfg.get("level", "INFO"),
        log_file=args.log_file or log_cfg.get("file"),
    )

    app = SignSpellApplication(create_app_config(config))
    app.run()


if __name__ == "__main__":
    main()
