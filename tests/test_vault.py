"""Tests for the vault file adapter."""

from pathlib import Path

import aiofiles.os
import pytest

from blinkosync.sources.vault.markdown import VaultAdapter


@pytest.fixture
def vault(vault_root: Path) -> VaultAdapter:
    return VaultAdapter(vault_root)


class TestWriteBinary:
    """Attachments only ever appear complete."""

    @pytest.mark.asyncio
    async def test_written_without_leftovers(self, vault: VaultAdapter, vault_root: Path):
        await vault.write_binary("Blinko/Attachments/a.png", b"\x89PNG")

        folder = vault_root / "Blinko/Attachments"
        assert (folder / "a.png").read_bytes() == b"\x89PNG"
        assert sorted(p.name for p in folder.iterdir()) == ["a.png"]

    @pytest.mark.asyncio
    async def test_interrupted_write_leaves_nothing(self, vault: VaultAdapter, vault_root: Path, monkeypatch):
        async def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(aiofiles.os, "replace", failing_replace)

        with pytest.raises(OSError):
            await vault.write_binary("Blinko/Attachments/a.png", b"\x89PNG")

        folder = vault_root / "Blinko/Attachments"
        assert list(folder.iterdir()) == []
        assert not await vault.exists("Blinko/Attachments/a.png")

    @pytest.mark.asyncio
    async def test_existing_file_replaced(self, vault: VaultAdapter, vault_root: Path):
        await vault.write_binary("a.bin", b"old")
        await vault.write_binary("a.bin", b"new")

        assert (vault_root / "a.bin").read_bytes() == b"new"
