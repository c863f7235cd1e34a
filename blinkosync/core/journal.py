"""Daily note integration: list each day's flash notes in the daily note."""

import logging
from datetime import datetime

from blinkosync.core.config import JournalConfig
from blinkosync.core.note_index import NoteIndex
from blinkosync.sources.blinko.models import JournalEntry, NoteType
from blinkosync.sources.vault.markdown import VaultAdapter
from blinkosync.utils.converters import normalize_folder
from blinkosync.utils.time import DEFAULT_DATE_FORMAT, instant_to_epoch_ms, local_day

logger = logging.getLogger(__name__)

DEFAULT_START_MARKER = "<!-- start of flash-notes -->"
DEFAULT_END_MARKER = "<!-- end of flash-notes -->"
SECTION_TITLE = "Blinko Notes"
DAY_KEY_FORMAT = "YYYYMMDD"


def find_marker(lines: list[str], marker: str) -> int | None:
    """Index of the line holding marker: exact trimmed match first, then ignoring whitespace."""
    wanted = marker.strip()
    for i, line in enumerate(lines):
        if line.strip() == wanted:
            return i

    collapsed = "".join(wanted.split())
    for i, line in enumerate(lines):
        if "".join(line.split()) == collapsed:
            logger.debug(f"Marker {wanted!r} matched ignoring whitespace on line {i + 1}")
            return i
    return None


class DailyNoteJournal:
    """
    Keeps a "Blinko Notes" section in daily notes up to date.

    The daily note must already exist and contain both markers; the region
    between them is owned by this class and rewritten on every update.
    """

    def __init__(self, vault: VaultAdapter, index: NoteIndex, config: JournalConfig):
        self.vault = vault
        self.index = index
        self.config = config

    def update_config(self, config: JournalConfig) -> None:
        self.config = config

    async def insert(self, entries: list[JournalEntry]) -> int:
        """
        Add references to newly synced flash notes to their daily notes.

        Returns:
            Number of daily notes rewritten
        """
        if not self.config.enabled:
            logger.debug("Daily note insertion disabled")
            return 0

        days = {}
        for entry in entries:
            day = local_day(entry.created_at)
            if day is not None:
                days.setdefault(day.format(DAY_KEY_FORMAT), day)
        if not days:
            return 0

        snapshots = await self._flash_notes_in_vault()
        updated = 0
        for key in sorted(days):
            try:
                if await self._update_day(days[key], key, entries, snapshots):
                    updated += 1
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Failed to update daily note for {key}: {e}")
        return updated

    def daily_note_path(self, day) -> str | None:
        fmt = (self.config.date_format or "").strip() or DEFAULT_DATE_FORMAT
        file_name = day.format(fmt).strip()
        if not file_name:
            logger.warning(f"Daily note format {fmt!r} produced an empty file name")
            return None
        folder = normalize_folder(self.config.location)
        return f"{folder}/{file_name}.md" if folder else f"{file_name}.md"

    async def _update_day(
        self,
        day,
        key: str,
        entries: list[JournalEntry],
        snapshots: list[JournalEntry],
    ) -> bool:
        path = self.daily_note_path(day)
        if not path:
            return False
        if not await self.vault.exists(path):
            logger.info(f"Daily note not found for {day.format(DEFAULT_DATE_FORMAT)} at {path}, skipping")
            return False

        collected: dict[int, JournalEntry] = {}
        for entry in [*entries, *snapshots]:
            created = local_day(entry.created_at)
            if created is not None and created.format(DAY_KEY_FORMAT) == key:
                collected[entry.id] = entry

        notes = sorted(
            (entry for entry in collected.values() if entry.file_path),
            key=lambda entry: instant_to_epoch_ms(entry.created_at) or 0,
        )
        if not notes:
            return False

        content = await self.vault.read_text(path)
        updated = self.replace_region(path, content, self.render_section(notes))
        if updated is None or updated == content:
            logger.debug(f"No daily note changes for {path}")
            return False

        await self.vault.write_text(path, updated)
        logger.info(f"Inserted {len(notes)} Blinko notes into {path}")
        return True

    def render_section(self, notes: list[JournalEntry]) -> str:
        prefix = "> ![[" if self.config.embed_content else "> [["
        lines = [f"### {SECTION_TITLE}"]
        for note in notes:
            target = note.file_path[:-3] if note.file_path.lower().endswith(".md") else note.file_path
            lines.append(f"{prefix}{target}]]")
        return "\n" + "\n".join(lines) + "\n"

    def replace_region(self, path: str, content: str, payload: str) -> str | None:
        """
        Replace everything between the start and end marker lines.

        Returns:
            New content, or None when a marker is missing
        """
        start_marker = (self.config.insert_after or "").strip() or DEFAULT_START_MARKER
        end_marker = (self.config.insert_before or "").strip() or DEFAULT_END_MARKER

        lines = content.replace("\r\n", "\n").split("\n")
        start = find_marker(lines, start_marker)
        if start is None:
            logger.warning(f"Daily note start marker {start_marker!r} not found in {path}")
            return None

        end = find_marker(lines[start + 1:], end_marker)
        if end is None:
            logger.warning(f"Daily note end marker {end_marker!r} not found in {path}")
            return None
        end += start + 1

        merged = [*lines[: start + 1], *payload.split("\n"), *lines[end:]]
        return "\n".join(merged)

    async def _flash_notes_in_vault(self) -> list[JournalEntry]:
        """Flash notes materialized by earlier passes, rebuilt from their frontmatter."""
        snapshots = []
        for vault_file in await self.vault.iter_markdown_with_frontmatter():
            entry = self.index.entry_for(vault_file)
            if entry is None:
                continue

            frontmatter = vault_file.frontmatter
            if str(frontmatter.get("type", "")).strip().lower() != NoteType.FLASH.label:
                continue

            created = frontmatter.get("date")
            if isinstance(created, datetime):
                created = created.isoformat()
            if not isinstance(created, str) or not created.strip():
                continue

            snapshots.append(
                JournalEntry(
                    id=entry.id,
                    created_at=created.strip(),
                    file_path=vault_file.path,
                    type=NoteType.FLASH,
                )
            )
        return snapshots
