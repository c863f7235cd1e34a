"""Wiring of the sync components behind one service object."""

import logging
from dataclasses import dataclass, field

import httpx

from blinkosync.core.config import AppConfig
from blinkosync.core.errors import BlinkoSyncError
from blinkosync.core.journal import DailyNoteJournal
from blinkosync.core.materializer import NoteMaterializer
from blinkosync.core.note_index import NoteIndex
from blinkosync.core.reconcile import ReconciliationEngine
from blinkosync.core.sync import SyncEngine
from blinkosync.core.titles import TitleService
from blinkosync.sources.blinko.client import BlinkoClient
from blinkosync.sources.blinko.models import JournalEntry
from blinkosync.sources.vault.markdown import VaultAdapter
from blinkosync.utils.db import SyncStateDB

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """What one ``sync_now`` call did."""

    new_count: int = 0
    journal_entries: list[JournalEntry] = field(default_factory=list)
    daily_notes_updated: int = 0
    removed_count: int = 0


class BlinkoSyncService:
    """
    Owns every component and keeps them on the same configuration.

    Components never read global settings: they get their section of the
    config at construction and through ``update_config`` afterwards.
    """

    def __init__(
        self,
        config: AppConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        title_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.db = SyncStateDB(config.state_db_path)
        self.client = BlinkoClient(config.server, transport=transport)
        self.vault = VaultAdapter(config.vault.root)
        self.index = NoteIndex(self.vault, config.vault.note_folder)
        self.titles = TitleService(config.titles, transport=title_transport)
        self.materializer = NoteMaterializer(config.vault, self.vault, self.client, self.index, self.titles)
        self.sync_engine = SyncEngine(self.db, self.client, self.materializer, config.server)
        self.reconciler = ReconciliationEngine(
            self.db, self.client, self.vault, self.index, config.vault, config.sync
        )
        self.journal = DailyNoteJournal(self.vault, self.index, config.journal)
        self._initialized = False

    async def initialize(self) -> None:
        """Create the state database schema."""
        await self.db.initialize()
        self._initialized = True
        logger.debug(f"Service initialized (vault={self.vault.root})")

    async def reconfigure(self, config: AppConfig) -> None:
        """Push a new configuration to every component."""
        root_changed = config.vault.root.expanduser().resolve() != self.vault.root
        db_changed = config.state_db_path != self.db.db_path

        self.config = config
        self.client.update_config(config.server)
        self.vault.update_root(config.vault.root)
        self.index.update_config(config.vault.note_folder, root_changed=root_changed)
        self.titles.update_config(config.titles)
        self.materializer.update_config(config.vault)
        self.sync_engine.update_config(config.server)
        self.reconciler.update_config(config.vault, config.sync)
        self.journal.update_config(config.journal)

        if db_changed:
            self.db.update_path(config.state_db_path)
            await self.initialize()
        logger.info("Configuration updated")

    async def sync_now(self) -> SyncReport:
        """
        Run a sync pass, update daily notes, then check for deletions if enabled.

        Raises:
            ConfigurationError: Server URL or access token missing
            RemoteError: The server failed during the sync pass
        """
        await self._ensure_initialized()
        result = await self.sync_engine.start()
        report = SyncReport(new_count=result.new_count, journal_entries=result.journal_entries)

        if result.journal_entries:
            try:
                report.daily_notes_updated = await self.journal.insert(result.journal_entries)
            except (BlinkoSyncError, OSError) as e:
                logger.warning(f"Daily note update failed: {e}")

        if self.config.sync.delete_check_enabled:
            report.removed_count = await self.check_deleted()
        return report

    async def check_deleted(self) -> int:
        await self._ensure_initialized()
        return await self.reconciler.reconcile()

    async def reset_cursor(self) -> None:
        """Forget the cursor and manifests; the next sync re-materializes everything."""
        await self._ensure_initialized()
        await self.db.reset()
        self.index.invalidate()

    async def status(self) -> dict:
        await self._ensure_initialized()
        manifests = await self.db.get_all_manifests()
        return {
            "configured": self.config.server.is_configured,
            "server": self.config.server.url,
            "vault": str(self.vault.root),
            "cursor": await self.db.get_cursor(),
            "tracked_notes": len(manifests),
            "syncing": self.sync_engine.syncing,
            "reconciling": self.reconciler.running,
        }

    async def close(self) -> None:
        await self.client.close()
        await self.titles.close()

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()
