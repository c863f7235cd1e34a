"""Tests for the watch-mode scheduler."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from blinkosync.core.config import SyncConfig
from blinkosync.core.errors import RemoteError
from blinkosync.core.scheduler import DELETE_CHECK_JOB_ID, SYNC_JOB_ID, SchedulerManager


@pytest.fixture
def manager() -> SchedulerManager:
    return SchedulerManager(MagicMock())


class TestJobs:
    def test_auto_sync_only(self, manager: SchedulerManager):
        manager.apply_config(SyncConfig(auto_sync_interval=30, delete_check_enabled=False))
        assert manager.job_ids() == [SYNC_JOB_ID]

    def test_both_jobs(self, manager: SchedulerManager):
        manager.apply_config(SyncConfig(auto_sync_interval=15, delete_check_enabled=True, delete_check_interval=60))
        assert sorted(manager.job_ids()) == sorted([SYNC_JOB_ID, DELETE_CHECK_JOB_ID])

    def test_zero_interval_disables(self, manager: SchedulerManager):
        manager.apply_config(SyncConfig(auto_sync_interval=0, delete_check_enabled=True, delete_check_interval=0))
        assert manager.job_ids() == []

    def test_reapply_replaces_jobs(self, manager: SchedulerManager):
        manager.apply_config(SyncConfig(auto_sync_interval=15, delete_check_enabled=True, delete_check_interval=60))
        manager.apply_config(SyncConfig(auto_sync_interval=15, delete_check_enabled=False))
        assert manager.job_ids() == [SYNC_JOB_ID]


class TestJobErrors:
    """Job failures are logged, never raised into the scheduler."""

    @pytest.mark.asyncio
    async def test_sync_error_swallowed(self, manager: SchedulerManager):
        manager.service.sync_now = AsyncMock(side_effect=RemoteError(500, "boom"))
        await manager._run_sync()
        manager.service.sync_now.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unexpected_error_swallowed(self, manager: SchedulerManager):
        manager.service.check_deleted = AsyncMock(side_effect=RuntimeError("bug"))
        await manager._run_delete_check()
        manager.service.check_deleted.assert_awaited_once()
