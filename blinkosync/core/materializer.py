"""Turns one Blinko note into one Markdown file in the vault."""

import logging
import re
from dataclasses import dataclass, field

import httpx

from blinkosync.core.config import VaultConfig
from blinkosync.core.errors import AttachmentError, BlinkoSyncError, TemplateError
from blinkosync.core.note_index import NoteIndex
from blinkosync.core.titles import TitleService
from blinkosync.sources.blinko.client import BlinkoClient
from blinkosync.sources.blinko.models import BlinkoAttachment, BlinkoNote, BlinkoTag, SavedNote
from blinkosync.sources.vault.markdown import VaultAdapter
from blinkosync.utils.converters import (
    ensure_trailing_newline,
    first_content_line,
    normalize_folder,
    sanitize_filename,
    sanitize_path_segment,
)
from blinkosync.utils.frontmatter import SOURCE_MARKER, quote_attachment, quote_tag, render_frontmatter
from blinkosync.utils.time import format_local_date, to_local_timestamp

logger = logging.getLogger(__name__)

DEFAULT_PATH_TEMPLATE = "{{typeFolder}}/blinko-{{id}}"

_TEMPLATE_TOKEN = re.compile(r"{{\s*([^}]+?)\s*}}")
_ID_TOKEN = re.compile(r"{{\s*id\s*}}", re.IGNORECASE)
_TITLE_TOKEN = re.compile(r"{{\s*(?:title|aiTitle)\s*}}")


@dataclass
class ProcessedAttachments:
    """Content after link rewriting plus what has to be appended to it."""

    content: str
    stored: list[str] = field(default_factory=list)
    references: list[str] = field(default_factory=list)


class NoteMaterializer:
    """
    Deterministic, idempotent transformation of a BlinkoNote into a file.

    Materializing an unchanged note twice produces byte-identical output:
    attachments already on disk are not downloaded again, and the file is
    rewritten in full every time.

    Pipeline (sequential awaits, one note at a time):
    1. Download attachments and rewrite inline references to local embeds
    2. Resolve the title (explicit, AI, first content line)
    3. Render the templated path and rename an existing file if it moved
    4. Write frontmatter + body
    """

    def __init__(
        self,
        config: VaultConfig,
        vault: VaultAdapter,
        client: BlinkoClient,
        index: NoteIndex,
        titles: TitleService | None = None,
    ):
        self.config = config
        self.vault = vault
        self.client = client
        self.index = index
        self.titles = titles

    def update_config(self, config: VaultConfig) -> None:
        self.config = config

    async def save_note(self, note: BlinkoNote) -> SavedNote:
        """
        Materialize a note.

        Attachment problems are contained in the note as warning lines; any
        other error propagates to the caller.

        Returns:
            The local attachment names and the final vault-relative file path
        """
        processed = await self.process_attachments(note)
        title = await self.resolve_title(note, processed.content)
        markdown = self.render_markdown(note, processed)
        file_path = self.build_note_path(note, processed.content, title)

        existing = await self.index.lookup(note.id)
        if existing and existing != file_path:
            logger.info(f"Note {note.id} moved: {existing} -> {file_path}")
            await self.vault.rename(existing, file_path)

        await self.vault.write_text(file_path, markdown)
        self.index.register(note.id, file_path)
        logger.debug(f"Saved note {file_path}")
        return SavedNote(attachments=processed.stored, file_path=file_path)

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    async def process_attachments(self, note: BlinkoNote) -> ProcessedAttachments:
        processed = ProcessedAttachments(content=note.content or "")

        for attachment in note.attachments:
            name = sanitize_filename(attachment.name or f"attachment-{attachment.id}")
            if not attachment.path:
                processed.references.append(f"> [!warning] Attachment missing path: {name}")
                continue

            try:
                await self._ensure_attachment(attachment, name)
            except AttachmentError as e:
                logger.warning(f"Note {note.id}: {e}")
                processed.references.append(f"> [!warning] Attachment download failed: {name}")
                continue

            remote_url = self.client.resolve_url(attachment.path, absolute_from_origin=True)
            content = self.replace_attachment_reference(processed.content, remote_url, name)
            content = self.replace_attachment_reference(content, attachment.path, name)
            processed.content = content

            processed.stored.append(name)
            if name not in content:
                processed.references.append(f"![[{name}]]")

        return processed

    async def _ensure_attachment(self, attachment: BlinkoAttachment, name: str) -> None:
        """Download an attachment unless a file with the same name is already there."""
        attachment_path = self.attachment_path(name)
        try:
            if await self.vault.exists(attachment_path):
                logger.debug(f"Attachment exists, skipping {attachment_path}")
                return

            data = await self.client.fetch_attachment_bytes(attachment.path)
            await self.vault.write_binary(attachment_path, data)
            logger.info(f"Downloaded attachment {attachment_path}")
        except (BlinkoSyncError, httpx.HTTPError, OSError) as e:
            raise AttachmentError(name, str(e)) from e

    def attachment_path(self, name: str) -> str:
        folder = normalize_folder(self.config.attachment_folder)
        return f"{folder}/{name}" if folder else name

    @staticmethod
    def replace_attachment_reference(content: str, target: str, local_name: str) -> str:
        """
        Rewrite Markdown image/link syntax pointing at target into wiki embeds/links.

        Plain substring matching on the URL: two remote paths rendering to the
        same text are indistinguishable.
        """
        if not target or target not in content:
            return content

        escaped = re.escape(target)
        result = re.sub(rf"!\[[^\]]*\]\({escaped}\)", lambda _m: f"![[{local_name}]]", content)

        def link(match: re.Match) -> str:
            alias = (match.group(1) or "").strip()
            return f"[[{local_name}|{alias}]]" if alias else f"[[{local_name}]]"

        return re.sub(rf"\[([^\]]*)\]\({escaped}\)", link, result)

    # ------------------------------------------------------------------
    # Title and path
    # ------------------------------------------------------------------

    async def resolve_title(self, note: BlinkoNote, content: str) -> str:
        existing = (note.title or "").strip()
        if existing:
            return existing

        # Unlike a plain enabled check, the service is only asked when the
        # path template renders a title; nothing else writes it out
        if self.titles and self.titles.is_enabled() and self._template_uses_title():
            generated = await self.titles.get_title(note, content)
            if generated and generated.strip():
                logger.debug(f"AI generated title for note {note.id}: {generated}")
                return generated.strip()

        return first_content_line(content)

    def build_note_path(self, note: BlinkoNote, content: str, title: str | None = None) -> str:
        template = (self.config.note_path_template or DEFAULT_PATH_TEMPLATE).strip()
        rendered = self.render_template(template, note, content, title)
        try:
            relative = self.sanitize_template_output(rendered)
            if not _ID_TOKEN.search(template):
                relative = self.append_id_suffix(relative, note.id)
        except TemplateError as e:
            logger.debug(f"Note {note.id}: {e}, using id-based name")
            relative = f"blinko-{note.id}"

        folder = normalize_folder(self.config.note_folder)
        full_path = f"{folder}/{relative}" if folder else relative
        return f"{full_path}.md"

    def render_template(self, template: str, note: BlinkoNote, content: str, title: str | None = None) -> str:
        if not template:
            return f"blinko-{note.id}"
        return _TEMPLATE_TOKEN.sub(
            lambda match: self._resolve_token(match.group(1), note, content, title),
            template,
        )

    def _resolve_token(self, token: str, note: BlinkoNote, content: str, title: str | None) -> str:
        name, _, fmt = token.partition(":")
        name = name.strip()
        fmt = fmt.strip()

        if name == "id":
            return str(note.id)
        if name == "type":
            return note.note_type.label
        if name == "typeFolder":
            return note.note_type.folder
        if name in ("title", "aiTitle"):
            resolved = (title or "").strip()
            return resolved or first_content_line(content)
        if name == "created":
            return format_local_date(note.created_at, fmt or None)
        if name == "updated":
            return format_local_date(note.updated_at, fmt or None)
        return ""

    @staticmethod
    def sanitize_template_output(raw: str) -> str:
        trimmed = (raw or "").strip()
        if trimmed.lower().endswith(".md"):
            trimmed = trimmed[:-3]

        segments = []
        for segment in trimmed.split("/"):
            cleaned = sanitize_path_segment(segment)
            if cleaned and cleaned.strip("."):
                segments.append(cleaned)

        if not segments:
            raise TemplateError(f"Path template rendered no usable segment: {raw!r}")
        return "/".join(segments)

    @staticmethod
    def append_id_suffix(path: str, note_id: int) -> str:
        head, _, last = path.rpartition("/")
        suffix = f"blinko-{note_id}"
        last = f"{last}-{suffix}" if last else suffix
        return f"{head}/{last}" if head else last

    def _template_uses_title(self) -> bool:
        return bool(_TITLE_TOKEN.search(self.config.note_path_template or DEFAULT_PATH_TEMPLATE))

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def render_markdown(self, note: BlinkoNote, processed: ProcessedAttachments) -> str:
        fields = [
            ("id", str(note.id)),
            ("date", to_local_timestamp(note.created_at)),
            ("updated", to_local_timestamp(note.updated_at)),
            ("source", SOURCE_MARKER),
            ("type", note.note_type.label),
            ("typeCode", str(note.type_code)),
            ("attachments", f"[{', '.join(quote_attachment(name) for name in processed.stored)}]"),
        ]
        if self.config.include_frontmatter_tags:
            tags = self.collect_tags(note.tags)
            fields.append(("tags", f"[{', '.join(quote_tag(tag) for tag in tags)}]"))

        body = processed.content
        if processed.references:
            body = f"{body}\n\n" + "\n".join(processed.references)
        return f"{render_frontmatter(fields)}\n{ensure_trailing_newline(body)}"

    @staticmethod
    def collect_tags(tags: list[BlinkoTag]) -> list[str]:
        """
        Flatten the note's tag forest into leaf paths.

        A tag that is the parent of another tag on the same note is skipped,
        so ``projects`` + ``projects/work`` yields only ``projects/work``.
        """
        by_id = {tag.id: tag for tag in tags if tag.id is not None}
        parents = {tag.parent for tag in tags if tag.parent is not None}

        paths: list[str] = []
        for tag in tags:
            if tag.id is not None and tag.id in parents:
                continue
            path = NoteMaterializer._tag_path(tag, by_id)
            if path and path not in paths:
                paths.append(path)
        return paths

    @staticmethod
    def _tag_path(tag: BlinkoTag, by_id: dict[int, BlinkoTag]) -> str:
        segments: list[str] = []
        visited: set[int] = set()
        current: BlinkoTag | None = tag
        while current:
            name = current.name.strip()
            if name:
                segments.insert(0, name)
            parent = current.parent
            if parent and parent in by_id and parent not in visited:
                visited.add(parent)
                current = by_id[parent]
            else:
                break
        return "/".join(segments)
