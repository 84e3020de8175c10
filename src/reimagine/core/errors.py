"""Exception hierarchy for the image-edit pipeline.

=====================  ==========================================  ==========
Exception              Raised when                                 HTTP
=====================  ==========================================  ==========
ValidationError        The upload or prompt is unusable             400
DispatchFailure        Every candidate model failed to edit         500
TransportError         One call to the image service raised         (internal)
AnalysisFailure        The optional describe pre-pass failed        (swallowed)
RecordNotFoundError    A generation id does not exist               404
RecordStateError       A record transition breaks its lifecycle     500
=====================  ==========================================  ==========
"""


class ReimagineError(Exception):
    """Base class for all Reimagine errors."""

    pass


class ValidationError(ReimagineError):
    """User-friendly validation error.

    The message is intended to be displayed directly to the user.  ``reason``
    is a short machine-readable code (``"no file"``, ``"bad mime"``, ...).
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason
        self.message = message or reason


class DispatchFailure(ReimagineError):
    """No candidate model produced an image."""

    pass


class TransportError(ReimagineError):
    """A call to the external image service raised.

    Attributes:
        model: Model identifier the failed call targeted, if known.
    """

    def __init__(self, message: str, model: str | None = None) -> None:
        super().__init__(message)
        self.model = model


class AnalysisFailure(ReimagineError):
    """The best-effort image description could not be obtained."""

    pass


class RecordNotFoundError(ReimagineError):
    """No generation record exists for the requested id."""

    pass


class RecordStateError(ReimagineError):
    """A record update would break the pending -> terminal lifecycle."""

    pass
