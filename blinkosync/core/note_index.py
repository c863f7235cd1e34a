"""Reverse index from Blinko note id to the file currently holding it."""

import asyncio
import logging
import re
from dataclasses import dataclass

from blinkosync.sources.vault.markdown import VaultAdapter, VaultFile
from blinkosync.utils.converters import normalize_folder, path_within_folder
from blinkosync.utils.frontmatter import identity_from_frontmatter, is_blinko_source

logger = logging.getLogger(__name__)

_ID_FILENAME = re.compile(r"(?:^|-)blinko-(\d+)\.md$", re.IGNORECASE)


@dataclass
class NoteFileEntry:
    id: int
    path: str


def note_id_from_filename(path: str) -> int | None:
    match = _ID_FILENAME.search(path.rsplit("/", 1)[-1])
    return int(match.group(1)) if match else None


class NoteIndex:
    """
    Lazily built mapping of note id -> vault-relative path.

    The index is versioned by an epoch counter. Changing the vault root or
    the note folder bumps the epoch and drops the cached map; the next
    lookup rebuilds it from the files' frontmatter. A build that finishes
    after the epoch moved on is discarded.
    """

    def __init__(self, vault: VaultAdapter, note_folder: str):
        self.vault = vault
        self.note_folder = normalize_folder(note_folder)
        self.epoch = 0
        self._paths: dict[int, str] | None = None
        self._build_lock = asyncio.Lock()

    def update_config(self, note_folder: str, root_changed: bool = False) -> None:
        folder = normalize_folder(note_folder)
        if root_changed or folder != self.note_folder:
            self.note_folder = folder
            self.invalidate()

    def invalidate(self) -> None:
        self.epoch += 1
        self._paths = None
        logger.debug(f"Note index invalidated (epoch {self.epoch})")

    def register(self, note_id: int, path: str) -> None:
        if self._paths is not None:
            self._paths[note_id] = path

    def forget(self, note_id: int) -> None:
        if self._paths is not None:
            self._paths.pop(note_id, None)

    async def lookup(self, note_id: int) -> str | None:
        """
        Find the file currently holding a note.

        An id missing from the built map is simply unknown. Only a cached
        path whose file vanished invalidates the map, which is then rebuilt
        once to find where the file went.
        """
        paths = await self._ensure_built()
        cached = paths.get(note_id)
        if not cached:
            return None
        if await self.vault.exists(cached):
            return cached

        logger.debug(f"Cached path for note {note_id} vanished: {cached}")
        self.invalidate()
        return (await self._ensure_built()).get(note_id)

    def should_inspect(self, path: str, source: str | None) -> bool:
        """
        Decide whether a vault file may hold a mirrored note.

        Files inside the note folder always qualify. Outside it, a file must
        carry the blinko source marker, unless no note folder is configured.
        """
        if self.note_folder and path_within_folder(path, self.note_folder):
            return True
        if source:
            return is_blinko_source(source)
        return not self.note_folder

    def entry_for(self, vault_file: VaultFile) -> NoteFileEntry | None:
        identity = identity_from_frontmatter(vault_file.frontmatter)
        source = identity.source if identity else None
        if not self.should_inspect(vault_file.path, source):
            return None

        note_id = identity.id if identity and identity.id is not None else None
        if note_id is None:
            note_id = note_id_from_filename(vault_file.path)
        if note_id is None:
            return None
        return NoteFileEntry(id=note_id, path=vault_file.path)

    async def collect_entries(self) -> list[NoteFileEntry]:
        """Enumerate every materialized note file in the vault."""
        entries = []
        for vault_file in await self.vault.iter_markdown_with_frontmatter():
            entry = self.entry_for(vault_file)
            if entry:
                entries.append(entry)
        return entries

    async def _ensure_built(self) -> dict[int, str]:
        if self._paths is not None:
            return self._paths

        async with self._build_lock:
            if self._paths is not None:
                return self._paths

            epoch = self.epoch
            paths: dict[int, str] = {}
            for entry in await self.collect_entries():
                # First file found wins; duplicates are left to reconciliation
                paths.setdefault(entry.id, entry.path)

            if epoch != self.epoch:
                logger.debug(f"Discarding note index built for stale epoch {epoch}")
                return paths

            self._paths = paths
            logger.debug(f"Note index built with {len(paths)} entries")
            return paths
