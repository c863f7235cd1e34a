"""Markdown vault adapter for the Blinko mirror.

All paths handled by this adapter are vault-relative POSIX strings
(e.g. ``Blinko/Notes/Flash/blinko-12.md``); the adapter is the only place
that turns them into real filesystem paths.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from blinkosync.core.errors import FilesystemConflictError
from blinkosync.utils.converters import normalize_folder
from blinkosync.utils.frontmatter import split_frontmatter

logger = logging.getLogger(__name__)


@dataclass
class VaultFile:
    """A Markdown file in the vault together with its parsed frontmatter."""

    path: str
    frontmatter: dict[str, Any]


class VaultAdapter:
    """
    Adapter for reading/writing files inside the vault root.

    Design: this class only does FILE OPERATIONS. It knows nothing about
    Blinko, templates or sync state, which keeps the engines testable
    against a temporary directory.
    """

    def __init__(self, root: Path):
        """
        Initialize the vault adapter.

        Args:
            root: Root folder of the vault (e.g. ~/Obsidian/Main)
        """
        self.root = Path(root).expanduser().resolve()

    def update_root(self, root: Path) -> None:
        self.root = Path(root).expanduser().resolve()

    def resolve(self, relative: str) -> Path:
        """Map a vault-relative path to an absolute path inside the vault."""
        normalized = normalize_folder(relative)
        target = (self.root / normalized).resolve() if normalized else self.root
        if not target.is_relative_to(self.root):
            raise RuntimeError(f"Path {relative} escapes vault root {self.root}")
        return target

    async def exists(self, relative: str) -> bool:
        return await aiofiles.os.path.exists(self.resolve(relative))

    async def ensure_folder(self, folder: str) -> None:
        """
        Ensure a folder exists, create it (and its parents) if it doesn't.

        Concurrent creation by another process is tolerated. A file sitting
        where a folder is needed is a conflict the caller must resolve.
        """
        normalized = normalize_folder(folder)
        target = self.resolve(normalized)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except FileExistsError as e:
            raise FilesystemConflictError(normalized) from e
        logger.debug(f"Ensured folder exists: {target}")

    async def ensure_folder_for_file(self, relative: str) -> None:
        normalized = normalize_folder(relative)
        if "/" not in normalized:
            return
        await self.ensure_folder(normalized.rsplit("/", 1)[0])

    async def read_text(self, relative: str) -> str:
        async with aiofiles.open(self.resolve(relative), "r", encoding="utf-8") as f:
            return await f.read()

    async def write_text(self, relative: str, content: str) -> Path:
        """
        Write a text file, creating parent folders as needed.

        An existing file is overwritten (last write wins). A folder occupying
        the target path is removed first.

        Returns:
            Absolute path of the written file
        """
        await self.ensure_folder_for_file(relative)
        target = self.resolve(relative)
        await self._clear_conflicting_folder(relative, target)

        async with aiofiles.open(target, "w", encoding="utf-8", newline="") as f:
            await f.write(content)
        return target

    async def write_binary(self, relative: str, data: bytes) -> Path:
        """
        Write a binary file through a hidden sibling temp file.

        The target only ever appears complete, so an interrupted download
        never leaves a partial file that later passes would keep.
        """
        await self.ensure_folder_for_file(relative)
        target = self.resolve(relative)
        await self._clear_conflicting_folder(relative, target)

        partial = target.with_name(f".{target.name}.part")
        try:
            async with aiofiles.open(partial, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(partial, target)
        except BaseException:
            if await aiofiles.os.path.exists(partial):
                await aiofiles.os.remove(partial)
            raise
        return target

    async def rename(self, source: str, destination: str) -> None:
        """Move a file to a new vault-relative path, replacing what is there."""
        await self.ensure_folder_for_file(destination)
        target = self.resolve(destination)
        await self._clear_conflicting_folder(destination, target)
        await aiofiles.os.replace(self.resolve(source), target)
        logger.info(f"Renamed {source} -> {destination}")

    async def delete(self, relative: str) -> bool:
        """
        Delete a file.

        Returns:
            True if a file was removed, False if it was already gone
        """
        target = self.resolve(relative)
        if not await aiofiles.os.path.exists(target):
            logger.warning(f"File already deleted: {relative}")
            return False

        await aiofiles.os.remove(target)
        logger.info(f"Deleted file: {relative}")
        return True

    async def list_markdown_files(self) -> list[str]:
        """
        List every Markdown file in the vault, skipping hidden folders.

        Returns:
            Sorted vault-relative paths
        """
        if not self.root.exists():
            logger.debug(f"Vault root does not exist: {self.root}")
            return []

        files = []
        for path in self.root.rglob("*.md"):
            relative = path.relative_to(self.root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if path.is_file():
                files.append(relative.as_posix())
        return sorted(files)

    async def read_frontmatter(self, relative: str) -> dict[str, Any]:
        """Return the parsed frontmatter of a file, or {} when unreadable."""
        try:
            content = await self.read_text(relative)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Failed to read {relative} for metadata: {e}")
            return {}
        frontmatter, _ = split_frontmatter(content)
        return frontmatter

    async def iter_markdown_with_frontmatter(self) -> list[VaultFile]:
        files = []
        for relative in await self.list_markdown_files():
            files.append(VaultFile(path=relative, frontmatter=await self.read_frontmatter(relative)))
        return files

    async def _clear_conflicting_folder(self, relative: str, target: Path) -> None:
        if target.is_dir():
            logger.warning(f"Removing folder that conflicts with note path: {relative}")
            shutil.rmtree(target)
