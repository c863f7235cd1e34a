"""Tests for the sync state database."""

import pytest

from blinkosync.utils.db import SyncStateDB


class TestCursor:
    @pytest.mark.asyncio
    async def test_defaults_to_zero(self, state_db: SyncStateDB):
        assert await state_db.get_cursor() == 0

    @pytest.mark.asyncio
    async def test_set_and_get(self, state_db: SyncStateDB):
        await state_db.set_cursor(1_700_000_000_000)
        assert await state_db.get_cursor() == 1_700_000_000_000

    @pytest.mark.asyncio
    async def test_commit_sync_pass(self, state_db: SyncStateDB):
        await state_db.commit_sync_pass(123, {1: ["a.png", "b.pdf"], 2: []})

        assert await state_db.get_cursor() == 123
        assert await state_db.get_manifest(1) == ["a.png", "b.pdf"]
        assert await state_db.get_manifest(2) == []
        assert await state_db.get_all_manifests() == {"1": ["a.png", "b.pdf"], "2": []}


class TestManifests:
    @pytest.mark.asyncio
    async def test_missing_manifest_is_none(self, state_db: SyncStateDB):
        assert await state_db.get_manifest(99) is None

    @pytest.mark.asyncio
    async def test_overwrite_and_delete(self, state_db: SyncStateDB):
        await state_db.set_manifest(1, ["old.png"])
        await state_db.set_manifest(1, ["new.png"])
        assert await state_db.get_manifest(1) == ["new.png"]

        await state_db.delete_manifest(1)
        assert await state_db.get_manifest(1) is None

    @pytest.mark.asyncio
    async def test_unicode_names(self, state_db: SyncStateDB):
        await state_db.set_manifest(3, ["照片.jpg"])
        assert await state_db.get_manifest(3) == ["照片.jpg"]

    @pytest.mark.asyncio
    async def test_reset_clears_everything(self, state_db: SyncStateDB):
        await state_db.commit_sync_pass(5, {1: ["a.png"]})

        await state_db.reset()

        assert await state_db.get_cursor() == 0
        assert await state_db.get_all_manifests() == {}
