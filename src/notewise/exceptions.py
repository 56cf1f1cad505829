"""Exception hierarchy for notewise.

Transport and driver exceptions never leave the package unwrapped; they are
chained onto one of the errors below.
"""


class NotewiseError(Exception):
    """Base exception for all notewise errors."""


class StorageUnavailableError(NotewiseError):
    """Raised when the embedding database cannot be reached or opened."""


class EmbeddingGenerationError(NotewiseError):
    """Raised when embedding a document chunk fails.

    The whole regeneration pass is aborted; nothing is written.
    """

    def __init__(self, message: str, *, chunk_index: int, document_id: str | None = None) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index
        self.document_id = document_id


class MalformedRecordError(NotewiseError):
    """Raised when a stored record fails shape validation."""


class MalformedOutputError(MalformedRecordError):
    """Raised when model output cannot be parsed into the expected shape."""


class DocumentNotFoundError(NotewiseError):
    """Raised when a document path does not resolve."""


class ModelProviderError(NotewiseError):
    """Raised when the model backend fails or returns an unusable payload."""


class ConfigurationError(NotewiseError):
    """Raised on invalid settings values."""


class DocumentExistsError(NotewiseError):
    """Raised when creating or renaming onto a path that already exists."""
