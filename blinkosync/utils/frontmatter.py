"""Helpers for reading and writing the YAML frontmatter of mirrored notes."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import yaml

logger = logging.getLogger(__name__)

SOURCE_MARKER = "blinko"

_FRONTMATTER_BLOCK = re.compile(r"^---\s*[\r\n]+([\s\S]*?)\r?\n---[ \t]*(?:\r?\n|$)")
_NEEDS_QUOTES = re.compile(r"[\s,\[\]{}:#'\"]")


@dataclass
class NoteIdentity:
    """The id/source pair that makes a Markdown file self-describing."""

    id: int | None
    source: str | None

    @property
    def is_blinko(self) -> bool:
        return is_blinko_source(self.source)


def split_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split a note into its parsed frontmatter and the remaining body.

    Content without a frontmatter block, or with one that is not valid YAML,
    yields an empty mapping.
    """
    working = (content or "").lstrip("\ufeff")
    match = _FRONTMATTER_BLOCK.match(working)
    if not match:
        return {}, content or ""

    body = working[match.end():]
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        logger.debug(f"Ignoring unparsable frontmatter: {e}")
        return {}, body

    if not isinstance(data, dict):
        return {}, body
    return data, body


def is_blinko_source(source: str | None) -> bool:
    return bool(source) and source.strip().lower() == SOURCE_MARKER


def _parse_numeric(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        normalized = value.strip().strip("'\"")
        if normalized.isdigit():
            return int(normalized)
    return None


def _parse_string(value: Any) -> str | None:
    if isinstance(value, str):
        normalized = value.strip().strip("'\"")
        return normalized or None
    return None


def identity_from_frontmatter(data: dict[str, Any]) -> NoteIdentity | None:
    note_id = _parse_numeric(data.get("id", data.get("blinkoId")))
    source = _parse_string(data.get("source"))
    if note_id is None and not source:
        return None
    return NoteIdentity(id=note_id, source=source)


def attachments_from_frontmatter(data: dict[str, Any]) -> list[str]:
    """Read the attachment list, accepting both YAML lists and comma strings."""
    value = data.get("attachments", data.get("blinkoAttachments"))
    if isinstance(value, list):
        items = [str(item if item is not None else "").strip() for item in value]
    elif isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    else:
        return []
    return [item for item in items if item]


def quote_attachment(name: str) -> str:
    return json.dumps(name, ensure_ascii=False)


def quote_tag(tag: str) -> str:
    if not tag:
        return ""
    return json.dumps(tag, ensure_ascii=False) if _NEEDS_QUOTES.search(tag) else tag


def render_frontmatter(fields: list[tuple[str, str]]) -> str:
    """Render pre-formatted key/value pairs, keeping their order."""
    lines = ["---"]
    lines.extend(f"{key}: {value}" for key, value in fields)
    lines.append("---")
    return "\n".join(lines) + "\n"
