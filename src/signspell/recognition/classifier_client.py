"""
Classification Client
======================

Thin HTTP client for the remote alphabet classifier.

Request:  POST {"landmarks": [{"x": .., "y": .., "z": ..}, ... 21 entries]}
Response: {"alphabet": "A"}   (key absent = nothing recognized)
"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from ..core.exceptions import ClassificationError
from ..core.types import Pose

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://brianmabunda00-alphabet-classifier.hf.space/predict"


@dataclass
class ClassifierConfig:
    """Remote classifier and dispatch settings."""
    endpoint: str = DEFAULT_ENDPOINT
    timeout_s: float = 5.0
    dispatch_cooldown_ms: float = 200.0
    max_workers: int = 2

    @classmethod
    def from_dict(cls, config: dict) -> "ClassifierConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            endpoint=config.get("endpoint", DEFAULT_ENDPOINT),
            timeout_s=config.get("timeout_s", 5.0),
            dispatch_cooldown_ms=config.get("dispatch_cooldown_ms", 200.0),
            max_workers=config.get("max_workers", 2),
        )


class ClassificationClient:
    """
    Blocking request/response client. Safe to call from worker threads.

    Example:
        >>> client = ClassificationClient(ClassifierConfig())
        >>> client.classify(pose)
        'A'
    """

    def __init__(self, config: Optional[ClassifierConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config or ClassifierConfig()
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    def classify(self, pose: Pose) -> Optional[str]:
        """Send one Pose to the classifier.

        Returns:
            The recognized symbol, or None if the response has no ``alphabet``

        Raises:
            ClassificationError: on connection errors, timeouts, non-2xx
                responses or a body that is not a JSON object
        """
        try:
            response = self._session.post(
                self.config.endpoint,
                json={"landmarks": pose.to_payload()},
                timeout=self.config.timeout_s,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ClassificationError(f"Classifier returned HTTP {status}", status) from e
        except requests.exceptions.RequestException as e:
            raise ClassificationError(f"Classifier unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ClassificationError(f"Classifier sent invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ClassificationError(
                f"Classifier sent {type(data).__name__}, expected an object")

        alphabet = data.get("alphabet")
        return str(alphabet) if alphabet else None

    def close(self):
        self._session.close()
