from typing import Optional


class TroveError(Exception):
    """Base error. `status_code` is set on errors that map to an HTTP response."""

    status_code: Optional[int] = None

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(TroveError):
    status_code = 400


class MissingDeviceError(TroveError):
    status_code = 400

    def __init__(self, message: str = "Missing x-device-id header"):
        super().__init__(message)


class NotFoundError(TroveError):
    status_code = 404


class QueueItemNotFoundError(TroveError):
    """The job references a QueueItem that does not exist. Not retried."""


class InvalidTransitionError(TroveError):
    pass


class TranscriptError(TroveError):
    status_code = 502


class ExtractionError(TroveError):
    status_code = 502


class ShoppingLookupError(TroveError):
    status_code = 502
