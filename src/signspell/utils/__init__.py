"""Configuration and logging utilities."""
from .config import Config
from .logger import SpellingLogger, setup_logging

__all__ = ["Config", "SpellingLogger", "setup_logging"]
