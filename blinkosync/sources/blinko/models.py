"""Data models for notes served by a Blinko instance."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class NoteType(IntEnum):
    """Blinko note type codes. Unknown codes are treated as flash notes."""

    FLASH = 0
    NOTE = 1
    TODO = 2

    @classmethod
    def from_code(cls, value: Any) -> "NoteType":
        if value == 1:
            return cls.NOTE
        if value == 2:
            return cls.TODO
        return cls.FLASH

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def folder(self) -> str:
        return self.name.capitalize()


@dataclass
class BlinkoTag:
    """A tag node; tags form a forest through ``parent`` pointers."""

    name: str
    id: int | None = None
    parent: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlinkoTag":
        # Note/tag join rows wrap the real tag under a "tag" key
        inner = data.get("tag")
        if isinstance(inner, dict):
            data = inner
        parent = data.get("parent")
        return cls(
            name=str(data.get("name") or ""),
            id=data.get("id") if isinstance(data.get("id"), int) else None,
            parent=parent if isinstance(parent, int) else None,
        )


@dataclass
class BlinkoAttachment:
    """
    Attachment metadata as returned by the note endpoints.

    Attributes:
        id: Attachment ID
        name: Original file name (may be empty)
        path: Remote path, relative (``/api/file/..``) or absolute URL
        type: MIME type reported by the server
        size: Size as reported by the server
    """

    id: int | None = None
    name: str = ""
    path: str = ""
    type: str = ""
    size: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlinkoAttachment":
        return cls(
            id=data.get("id"),
            name=str(data.get("name") or ""),
            path=str(data.get("path") or ""),
            type=str(data.get("type") or ""),
            size=str(data.get("size") or ""),
        )


@dataclass
class BlinkoNote:
    """
    A note as served by Blinko.

    Attributes:
        id: Stable integer primary key
        content: Markdown content, possibly empty
        type: Raw type code (see NoteType)
        created_at: ISO-8601 creation instant
        updated_at: ISO-8601 last-update instant
        is_recycle: True while the note sits in the recycle bin
        tags: Tags attached to the note
        attachments: Attachments referenced by the note
        title: Explicit title, rarely set by the server
    """

    id: int
    content: str = ""
    type: int | None = None
    created_at: str = ""
    updated_at: str = ""
    is_recycle: bool = False
    tags: list[BlinkoTag] = field(default_factory=list)
    attachments: list[BlinkoAttachment] = field(default_factory=list)
    title: str | None = None

    @property
    def note_type(self) -> NoteType:
        return NoteType.from_code(self.type)

    @property
    def type_code(self) -> int:
        return self.type if isinstance(self.type, int) else 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlinkoNote":
        return cls(
            id=int(data["id"]),
            content=data.get("content") or "",
            type=data.get("type") if isinstance(data.get("type"), int) else None,
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt") or "",
            is_recycle=bool(data.get("isRecycle")),
            tags=[BlinkoTag.from_dict(t) for t in data.get("tags") or [] if isinstance(t, dict)],
            attachments=[
                BlinkoAttachment.from_dict(a) for a in data.get("attachments") or [] if isinstance(a, dict)
            ],
            title=data.get("title"),
        )


@dataclass
class SavedNote:
    """Result of materializing one note."""

    attachments: list[str]
    file_path: str


@dataclass
class JournalEntry:
    """Snapshot of a newly synced flash note, handed to the daily note journal."""

    id: int
    created_at: str
    file_path: str
    type: int | None = None


@dataclass
class SyncResult:
    """Outcome of one sync pass."""

    new_count: int = 0
    journal_entries: list[JournalEntry] = field(default_factory=list)
