"""Tests for the service facade."""

from pathlib import Path

import pendulum
import pytest

from blinkosync.core.errors import ConfigurationError


def _write_daily(root: Path, name: str) -> Path:
    target = root / "Daily" / name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text("<!-- start of flash-notes -->\n<!-- end of flash-notes -->\n", encoding="utf-8")
    return target


class TestSyncNow:
    """sync -> journal -> deletion check."""

    @pytest.mark.asyncio
    async def test_report(self, service, fake_blinko):
        fake_blinko.add(1, "flash")
        fake_blinko.add(2, "note", type=1)

        report = await service.sync_now()

        assert report.new_count == 2
        assert [entry.id for entry in report.journal_entries] == [1]
        assert report.daily_notes_updated == 0
        assert report.removed_count == 0

    @pytest.mark.asyncio
    async def test_deletion_check_runs_when_enabled(self, service, fake_blinko, app_config, vault_root: Path):
        fake_blinko.add(1, "keep")
        fake_blinko.add(2, "drop")
        await service.sync_now()
        del fake_blinko.notes[2]

        config = app_config.model_copy(
            update={"sync": app_config.sync.model_copy(update={"delete_check_enabled": True})}
        )
        await service.reconfigure(config)
        report = await service.sync_now()

        assert report.removed_count == 1
        assert not (vault_root / "Blinko/Notes/Flash/blinko-2.md").exists()

    @pytest.mark.asyncio
    async def test_daily_notes_updated(self, service, fake_blinko, app_config, vault_root: Path):
        created = "2024-03-01T12:00:00.000Z"
        daily = _write_daily(vault_root, pendulum.parse(created).in_tz("local").format("YYYY-MM-DD") + ".md")
        fake_blinko.add(1, "flash", created=created)
        config = app_config.model_copy(
            update={"journal": app_config.journal.model_copy(update={"enabled": True, "location": "Daily"})}
        )
        await service.reconfigure(config)

        report = await service.sync_now()

        assert report.daily_notes_updated == 1
        assert "> [[Blinko/Notes/Flash/blinko-1]]" in daily.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_unconfigured(self, service, app_config):
        config = app_config.model_copy(
            update={"server": app_config.server.model_copy(update={"access_token": ""})}
        )
        await service.reconfigure(config)

        with pytest.raises(ConfigurationError):
            await service.sync_now()


class TestStateManagement:
    @pytest.mark.asyncio
    async def test_status(self, service, fake_blinko, vault_root: Path):
        fake_blinko.add(1, "x")
        await service.sync_now()

        status = await service.status()

        assert status["configured"] is True
        assert status["cursor"] > 0
        assert status["tracked_notes"] == 1
        assert status["vault"] == str(vault_root.resolve())
        assert status["syncing"] is False

    @pytest.mark.asyncio
    async def test_reset_cursor_resyncs_everything(self, service, fake_blinko):
        fake_blinko.add(1, "x")
        await service.sync_now()
        assert (await service.sync_now()).new_count == 0

        await service.reset_cursor()

        assert await service.db.get_cursor() == 0
        assert (await service.sync_now()).new_count == 1


class TestReconfigure:
    @pytest.mark.asyncio
    async def test_root_change_invalidates_index(self, service, app_config, tmp_path: Path, fake_blinko):
        epoch = service.index.epoch
        new_root = tmp_path / "other-vault"
        config = app_config.model_copy(
            update={"vault": app_config.vault.model_copy(update={"root": new_root})}
        )

        await service.reconfigure(config)
        fake_blinko.add(1, "x")
        await service.sync_now()

        assert service.index.epoch == epoch + 1
        assert (new_root / "Blinko/Notes/Flash/blinko-1.md").exists()

    @pytest.mark.asyncio
    async def test_same_layout_keeps_index(self, service, app_config):
        epoch = service.index.epoch

        await service.reconfigure(app_config.model_copy())

        assert service.index.epoch == epoch
