"""Deletion reconciliation: remove local notes that are gone from Blinko."""

import logging

from blinkosync.core.config import SyncConfig, VaultConfig
from blinkosync.core.note_index import NoteIndex
from blinkosync.sources.blinko.client import BlinkoClient
from blinkosync.sources.vault.markdown import VaultAdapter
from blinkosync.utils.converters import extract_wiki_embeds, normalize_folder
from blinkosync.utils.db import SyncStateDB
from blinkosync.utils.frontmatter import attachments_from_frontmatter, split_frontmatter

logger = logging.getLogger(__name__)

CHUNK_SIZE = 50


class ReconciliationEngine:
    """
    Detects notes deleted (or recycled) on the server and removes their files.

    For every materialized note file the server is asked, in chunks of 50
    ids, which notes still exist. A note is removed when it is missing, or
    when it sits in the recycle bin and ``delete_recycled`` is enabled.
    Removing a note deletes its file, its attachment files and its manifest.
    """

    def __init__(
        self,
        db: SyncStateDB,
        client: BlinkoClient,
        vault: VaultAdapter,
        index: NoteIndex,
        vault_config: VaultConfig,
        sync_config: SyncConfig,
    ):
        self.db = db
        self.client = client
        self.vault = vault
        self.index = index
        self.vault_config = vault_config
        self.sync_config = sync_config
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def update_config(self, vault_config: VaultConfig, sync_config: SyncConfig) -> None:
        self.vault_config = vault_config
        self.sync_config = sync_config

    async def reconcile(self) -> int:
        """
        Run one reconciliation pass.

        Returns:
            Number of note files removed; 0 when a pass is already running

        Raises:
            RemoteError: The id lookup failed; deletions of earlier chunks stay
        """
        if self._running:
            logger.info("Deletion check already running, skipping")
            return 0

        self._running = True
        try:
            return await self._run()
        finally:
            self._running = False

    async def _run(self) -> int:
        files_by_id: dict[int, list[str]] = {}
        for entry in await self.index.collect_entries():
            files_by_id.setdefault(entry.id, []).append(entry.path)

        if not files_by_id:
            logger.debug("No materialized notes found, nothing to reconcile")
            return 0

        ids = list(files_by_id)
        removed = 0
        for start in range(0, len(ids), CHUNK_SIZE):
            chunk = ids[start:start + CHUNK_SIZE]
            to_remove = await self.find_removable(chunk)
            if not to_remove:
                continue

            try:
                for note_id in to_remove:
                    for path in files_by_id[note_id]:
                        if await self.delete_note(note_id, path):
                            removed += 1
            except OSError as e:
                logger.error(f"Deletion aborted for chunk starting at note {chunk[0]}: {e}")

        logger.info(f"Deletion check complete: {removed} notes removed")
        return removed

    async def find_removable(self, ids: list[int]) -> list[int]:
        """Return the ids of the chunk that should be removed locally, in chunk order."""
        notes = await self.client.fetch_by_ids(ids)
        present = {note.id for note in notes}
        recycled = {note.id for note in notes if note.is_recycle}

        remove = {note_id for note_id in ids if note_id not in present}
        if self.sync_config.delete_recycled:
            remove |= recycled
        return [note_id for note_id in ids if note_id in remove]

    async def delete_note(self, note_id: int, path: str) -> bool:
        """
        Delete one note file together with its attachments and manifest.

        Attachment failures are logged and skipped; a failure deleting the
        note file itself propagates.
        """
        attachments = await self.resolve_attachments(note_id, path)
        logger.info(f"Removing local note {path} because it no longer exists in Blinko")
        deleted = await self.vault.delete(path)

        for name in attachments:
            attachment_path = self._attachment_path(name)
            try:
                await self.vault.delete(attachment_path)
            except OSError as e:
                logger.warning(f"Failed to delete attachment {attachment_path}: {e}")

        await self.db.delete_manifest(note_id)
        self.index.forget(note_id)
        return deleted

    async def resolve_attachments(self, note_id: int, path: str) -> list[str]:
        """
        Work out which attachment files belong to a note.

        Fallback chain: stored manifest, frontmatter ``attachments``, then
        ``![[...]]`` embeds that exist in the attachment folder.
        """
        manifest = await self.db.get_manifest(note_id)
        if manifest:
            return manifest

        try:
            content = await self.vault.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {path} to infer attachments: {e}")
            return []

        frontmatter, body = split_frontmatter(content)
        from_frontmatter = attachments_from_frontmatter(frontmatter)
        if from_frontmatter:
            return from_frontmatter

        inferred = []
        for name in extract_wiki_embeds(body):
            if await self.vault.exists(self._attachment_path(name)):
                inferred.append(name)
        return inferred

    def _attachment_path(self, name: str) -> str:
        folder = normalize_folder(self.vault_config.attachment_folder)
        return f"{folder}/{name}" if folder else name
