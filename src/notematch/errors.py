"""
Exception types raised by the classifier core.
"""


class NoteMatchError(Exception):
    """
    Base class for errors surfaced to callers of the classifier.
    """


class StoreNotReadyError(NoteMatchError):
    """
    Raised when classification is requested before any template was loaded.
    """

    def __init__(self, message: str = "templates not loaded") -> None:
        super().__init__(message)


class DimensionMismatchError(NoteMatchError, ValueError):
    """
    Raised when a probe does not have the template dimensions.
    """


class ConfigurationError(NoteMatchError, ValueError):
    pass


__all__ = [
    "ConfigurationError",
    "DimensionMismatchError",
    "NoteMatchError",
    "StoreNotReadyError",
]
