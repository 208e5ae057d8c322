"""Exception hierarchy for the SignSpell pipeline."""


class SignSpellError(Exception):
    """Base class for all project errors."""


class CameraError(SignSpellError):
    """The frame source could not be opened or stopped delivering frames."""


class DetectorError(SignSpellError):
    """The landmark runtime or model failed to load."""


class ClassificationError(SignSpellError):
    """Transport or service failure talking to the remote classifier."""

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code
