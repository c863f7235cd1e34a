"""Database utilities for tracking Blinko synchronization state."""

import json
import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

LAST_SYNC_KEY = "last_sync_time"


class SyncStateDB:
    """
    Manages the SQLite database holding the sync cursor and attachment manifests.

    - ``sync_state``: key/value pairs, currently only the cursor (epoch ms)
    - ``attachment_manifest``: note id (as string) -> JSON list of local
      attachment file names, in materialization order
    """

    def __init__(self, db_path: Path):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def update_path(self, db_path: Path) -> None:
        self.db_path = db_path

    async def initialize(self) -> None:
        """Create the schema if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS attachment_manifest (
                    note_id TEXT PRIMARY KEY,
                    attachments TEXT NOT NULL
                )
                """
            )
            await db.commit()
            logger.debug(f"Database initialized at {self.db_path}")

    async def get_cursor(self) -> int:
        """Return the stored sync cursor, 0 if never synced."""
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                "SELECT value FROM sync_state WHERE key = ?",
                (LAST_SYNC_KEY,),
            ) as cursor:
                row = await cursor.fetchone()

        if not row:
            return 0
        try:
            return int(row[0])
        except ValueError:
            logger.warning(f"Ignoring corrupt sync cursor: {row[0]!r}")
            return 0

    async def set_cursor(self, value: int) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await self._write_cursor(db, value)
            await db.commit()

    async def commit_sync_pass(self, cursor_value: int, manifests: dict[int, list[str]]) -> None:
        """
        Persist the result of a successful sync pass in one transaction.

        Args:
            cursor_value: New cursor (the pass start time, epoch ms)
            manifests: Attachment manifests of the notes materialized in the pass
        """
        async with aiosqlite.connect(self.db_path) as db:
            for note_id, attachments in manifests.items():
                await self._write_manifest(db, note_id, attachments)
            await self._write_cursor(db, cursor_value)
            await db.commit()
        logger.debug(f"Committed cursor {cursor_value} with {len(manifests)} manifests")

    async def get_manifest(self, note_id: int) -> list[str] | None:
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                "SELECT attachments FROM attachment_manifest WHERE note_id = ?",
                (str(note_id),),
            ) as cursor:
                row = await cursor.fetchone()

        if not row:
            return None
        try:
            value = json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning(f"Ignoring corrupt manifest for note {note_id}")
            return None
        return [str(item) for item in value] if isinstance(value, list) else None

    async def set_manifest(self, note_id: int, attachments: list[str]) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await self._write_manifest(db, note_id, attachments)
            await db.commit()

    async def delete_manifest(self, note_id: int) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "DELETE FROM attachment_manifest WHERE note_id = ?",
                (str(note_id),),
            )
            await db.commit()
            logger.debug(f"Deleted manifest for note {note_id}")

    async def get_all_manifests(self) -> dict[str, list[str]]:
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute("SELECT note_id, attachments FROM attachment_manifest") as cursor:
                rows = await cursor.fetchall()
        manifests = {}
        for note_id, raw in rows:
            try:
                manifests[note_id] = json.loads(raw)
            except json.JSONDecodeError:
                continue
        return manifests

    async def reset(self) -> None:
        """
        Clear the cursor and all manifests.

        This does NOT delete any notes - the next sync re-materializes everything.
        """
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM sync_state")
            await db.execute("DELETE FROM attachment_manifest")
            await db.commit()
            logger.info("Sync state cleared from database")

    @staticmethod
    async def _write_cursor(db: aiosqlite.Connection, value: int) -> None:
        await db.execute(
            "INSERT OR REPLACE INTO sync_state (key, value) VALUES (?, ?)",
            (LAST_SYNC_KEY, str(int(value))),
        )

    @staticmethod
    async def _write_manifest(db: aiosqlite.Connection, note_id: int, attachments: list[str]) -> None:
        await db.execute(
            "INSERT OR REPLACE INTO attachment_manifest (note_id, attachments) VALUES (?, ?)",
            (str(note_id), json.dumps(list(attachments), ensure_ascii=False)),
        )
