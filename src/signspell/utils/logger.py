"""
Logging setup and the spelling event log.
"""

import logging
import logging.handlers
import os
import time
from collections import deque


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console (and optional rotating file) logging."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-32s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return root_logger


class SpellingLogger:
    """Records committed symbols and status changes from the event bus."""

    def __init__(self, max_history=1000):
        self.logger = logging.getLogger("spelling_events")
        self._history = deque(maxlen=max_history)
        self._total_symbols = 0

    def on_symbol_committed(self, event):
        """Bus listener for Events.SYMBOL_COMMITTED."""
        self._history.append({
            "timestamp": time.time(),
            "symbol": event.symbol,
            "text": event.text,
        })
        self._total_symbols += 1
        self.logger.info("Symbol: %-3s | Text: %s", event.symbol, event.text)

    def on_status_changed(self, event):
        """Bus listener for Events.STATUS_CHANGED."""
        self.logger.info("Status [%s]: %s", event.kind, event.status)

    def get_history(self, last_n=None):
        """Get recent commit history."""
        if last_n:
            return list(self._history)[-last_n:]
        return list(self._history)

    @property
    def total_symbols(self):
        return self._total_symbols
