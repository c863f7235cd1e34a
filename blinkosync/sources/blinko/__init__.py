"""Blinko server source."""

from .client import BlinkoClient
from .models import (
    BlinkoAttachment,
    BlinkoNote,
    BlinkoTag,
    JournalEntry,
    NoteType,
    SavedNote,
    SyncResult,
)

__all__ = [
    "BlinkoAttachment",
    "BlinkoClient",
    "BlinkoNote",
    "BlinkoTag",
    "JournalEntry",
    "NoteType",
    "SavedNote",
    "SyncResult",
]
