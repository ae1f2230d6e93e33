"""
Exception types for the prototype generation pipeline.

Library modules raise these; the session boundary converts them into
user-facing notifications.
"""


class PrototypeError(RuntimeError):
    """Base class for pipeline errors."""


class ValidationError(PrototypeError):
    """Raised when an action is rejected before any external call is made."""


class EmptySequenceError(ValidationError):
    """Raised when generation is requested for an empty screen sequence."""

    def __init__(self, message: str = "Add at least one screenshot before generating."):
        super().__init__(message)


class EmptyResultError(ValidationError):
    """Raised when there is no generated file set to package."""

    def __init__(self, message: str = "There is no generated codebase to download yet."):
        super().__init__(message)


class DuplicateImageError(ValidationError):
    """Raised when an image id is already part of the sequence."""


class ArchiveIngestionError(PrototypeError):
    """Raised when an uploaded zip archive cannot be opened or decompressed."""


class SynthesisServiceError(PrototypeError):
    """Raised when the code synthesis service fails or returns an unusable reply."""


class GenerationInProgressError(PrototypeError):
    """Raised when a generation is requested while another one is pending."""

    def __init__(self, message: str = "A generation is already in progress."):
        super().__init__(message)
