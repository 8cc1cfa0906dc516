"""Directory module: roster merge, membership matching and resolution."""

from .directory import (
    ConversationDirectory,
    FilterType,
    SearchDebouncer,
    active_employees,
    build_directory,
    combine_conversations,
    search_conversations,
    unread_only,
    virtual_conversation,
)
from .membership import extract_evidence, find_private_conversation, match_evidence
from .resolver import resolve

__all__ = [
    "ConversationDirectory",
    "FilterType",
    "SearchDebouncer",
    "active_employees",
    "build_directory",
    "combine_conversations",
    "search_conversations",
    "unread_only",
    "virtual_conversation",
    "extract_evidence",
    "find_private_conversation",
    "match_evidence",
    "resolve",
]
