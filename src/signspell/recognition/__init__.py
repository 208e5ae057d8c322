"""Classification dispatch and stability consensus."""
from .classifier_client import ClassificationClient, ClassifierConfig
from .dispatcher import ClassificationDispatcher
from .stability import OutputBuffer, Speller, StabilityConfig, StabilityState, advance

__all__ = [
    "ClassificationClient",
    "ClassifierConfig",
    "ClassificationDispatcher",
    "OutputBuffer",
    "Speller",
    "StabilityConfig",
    "StabilityState",
    "advance",
]
