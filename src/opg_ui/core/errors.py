"""Exception types raised by the capture pipeline."""


class OpgError(Exception):
    """Base class for all pipeline errors."""


class DetectionUnavailable(OpgError):
    """The frame is too small or malformed for boundary detection."""


class CaptureError(OpgError):
    """The capture device could not be opened or returned no frame."""


class ClassificationRejected(OpgError):
    """
    The classification service did not return a usable result.

    Parameters
    ----------
    message : str
        Raw error message, shown unchanged when no friendlier text applies
    status : int, optional
        HTTP status code when the service answered with an error status
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    @property
    def user_message(self) -> str:
        msg = str(self)
        if "argmin" in msg.lower():
            return (
                "AI could not identify the dental arch. "
                "Please centre the OPG and ensure it is well-lit."
            )
        return msg
