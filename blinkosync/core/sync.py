"""Core incremental sync logic for Blinko → Markdown vault."""

import logging
from collections.abc import Callable

from blinkosync.core.config import ServerConfig
from blinkosync.core.errors import ConfigurationError
from blinkosync.core.materializer import NoteMaterializer
from blinkosync.sources.blinko.client import BlinkoClient
from blinkosync.sources.blinko.models import JournalEntry, NoteType, SyncResult
from blinkosync.utils.db import SyncStateDB
from blinkosync.utils.time import instant_to_epoch_ms, now_ms

logger = logging.getLogger(__name__)

PAGE_SIZE = 50


class SyncEngine:
    """
    Pulls new and updated notes from Blinko and materializes them.

    Sync Algorithm:
    1. Remember the pass start time and read the stored cursor
    2. Walk the note list newest-first, page by page
    3. Stop at the first note not updated since the cursor
    4. Materialize every note before that point
    5. Commit cursor = pass start time together with the attachment manifests

    The cursor only moves on a completely successful pass, so a failed pass
    is simply retried from the old cursor next time. Materialization is
    idempotent, which makes the re-run harmless.
    """

    def __init__(
        self,
        db: SyncStateDB,
        client: BlinkoClient,
        materializer: NoteMaterializer,
        server: ServerConfig,
        clock: Callable[[], int] = now_ms,
    ):
        self.db = db
        self.client = client
        self.materializer = materializer
        self.server = server
        self.clock = clock
        self._running = False

    @property
    def syncing(self) -> bool:
        return self._running

    def update_config(self, server: ServerConfig) -> None:
        self.server = server

    async def start(self) -> SyncResult:
        """
        Run one sync pass.

        A call made while a pass is already running returns an empty result
        immediately instead of queueing.

        Returns:
            Number of materialized notes and journal entries for new flash notes

        Raises:
            ConfigurationError: Server URL or access token missing
            RemoteError: The server failed or returned garbage
        """
        if self._running:
            logger.info("Sync already running, skipping")
            return SyncResult()

        self._running = True
        try:
            return await self._run()
        finally:
            self._running = False

    async def _run(self) -> SyncResult:
        if not self.server.is_configured:
            raise ConfigurationError("Blinko server URL and access token must be configured")

        sync_start = self.clock()
        cursor = await self.db.get_cursor()
        logger.info(f"Starting sync (cursor={cursor})")

        result = SyncResult()
        manifests: dict[int, list[str]] = {}
        page = 1
        reached_known = False

        try:
            while not reached_known:
                notes = await self.client.fetch_page(cursor, page, PAGE_SIZE)
                logger.debug(f"Fetched page {page} with {len(notes)} notes")
                if not notes:
                    break

                for note in notes:
                    updated_ms = instant_to_epoch_ms(note.updated_at)
                    if cursor > 0 and updated_ms is not None and updated_ms <= cursor:
                        reached_known = True
                        break

                    saved = await self.materializer.save_note(note)
                    manifests[note.id] = saved.attachments
                    result.new_count += 1

                    if note.note_type is NoteType.FLASH:
                        result.journal_entries.append(
                            JournalEntry(
                                id=note.id,
                                created_at=note.created_at,
                                file_path=saved.file_path,
                                type=note.type,
                            )
                        )

                if len(notes) < PAGE_SIZE:
                    break
                page += 1

            await self.db.commit_sync_pass(sync_start, manifests)
        except Exception:
            logger.exception(f"Sync failed, cursor left at {cursor}")
            raise

        logger.info(f"Sync complete: {result.new_count} notes materialized")
        return result
