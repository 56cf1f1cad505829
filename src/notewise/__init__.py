"""notewise: a note assistant with semantic search.

Chunked embeddings of Markdown notes, a read-through embedding cache and
cosine-similarity search, plus model-backed title, tag and cleanup helpers.
"""

__version__ = "0.1.0"

from notewise._assistant import Assistant
from notewise.config import NotePathRule, Settings, load_settings, save_settings
from notewise.documents import DocumentStore, LocalDocumentStore
from notewise.events import DocumentEvent, EventBus, EventType
from notewise.exceptions import (
    ConfigurationError,
    DocumentExistsError,
    DocumentNotFoundError,
    EmbeddingGenerationError,
    MalformedOutputError,
    MalformedRecordError,
    ModelProviderError,
    NotewiseError,
    StorageUnavailableError,
)
from notewise.models import EmbeddingRecord
from notewise.providers import ModelProvider, OllamaProvider, OpenAIProvider, create_provider
from notewise.ref import DocumentRef
from notewise.search import (
    EmbeddingCacheManager,
    SearchHit,
    SimilarityQueryEngine,
    chunk_content,
    cosine_similarity,
)
from notewise.store import EmbeddingStore

__all__ = [
    "Assistant",
    "ConfigurationError",
    "DocumentEvent",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "DocumentRef",
    "DocumentStore",
    "EmbeddingCacheManager",
    "EmbeddingGenerationError",
    "EmbeddingRecord",
    "EmbeddingStore",
    "EventBus",
    "EventType",
    "LocalDocumentStore",
    "MalformedOutputError",
    "MalformedRecordError",
    "ModelProvider",
    "ModelProviderError",
    "NotePathRule",
    "NotewiseError",
    "OllamaProvider",
    "OpenAIProvider",
    "SearchHit",
    "Settings",
    "SimilarityQueryEngine",
    "StorageUnavailableError",
    "__version__",
    "create_provider",
    "chunk_content",
    "cosine_similarity",
    "load_settings",
    "save_settings",
]
