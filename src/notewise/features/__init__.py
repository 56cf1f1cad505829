"""Assistant features built on the model provider and semantic search."""

from notewise.features.atomizer import AtomicNote, Atomizer
from notewise.features.chat import ChatMessage, ChatSession
from notewise.features.cleaner import TextCleaner
from notewise.features.nlp import NLPManager
from notewise.features.paths import NotePathManager, resolve_destination
from notewise.features.tags import TagSuggester, add_tags, split_frontmatter
from notewise.features.titles import TitleSuggester, sanitize_title

__all__ = [
    "AtomicNote",
    "Atomizer",
    "ChatMessage",
    "ChatSession",
    "NLPManager",
    "NotePathManager",
    "TagSuggester",
    "TextCleaner",
    "TitleSuggester",
    "add_tags",
    "resolve_destination",
    "sanitize_title",
    "split_frontmatter",
]
