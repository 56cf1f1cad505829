"""Document collection access — protocol and on-disk implementation."""

from notewise.documents.local import LocalDocumentStore
from notewise.documents.protocol import DocumentStore

__all__ = [
    "DocumentStore",
    "LocalDocumentStore",
]
