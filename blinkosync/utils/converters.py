"""Filename and Markdown helpers shared by the vault writer and the engines."""

import re

_ILLEGAL_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')
_HEADING_PREFIX = re.compile(r"^#+\s*")
_WIKI_EMBED = re.compile(r"!\[\[([^\]|]+)(?:\|[^\]]+)?\]\]")


def sanitize_filename(name: str) -> str:
    """Replace characters that are illegal in file names with '-'."""
    return _ILLEGAL_FILENAME_CHARS.sub("-", name or "")


def sanitize_path_segment(segment: str) -> str:
    """Sanitize one path segment: illegal chars replaced, whitespace collapsed."""
    trimmed = (segment or "").strip()
    if not trimmed:
        return ""
    return re.sub(r"\s+", " ", sanitize_filename(trimmed)).strip()


def normalize_folder(value: str | None) -> str:
    """Normalize a vault-relative folder setting; the vault root becomes ''."""
    trimmed = (value or "").strip().replace("\\", "/")
    parts = [part for part in trimmed.split("/") if part and part != "."]
    return "/".join(parts)


def path_within_folder(file_path: str, folder: str) -> bool:
    if not folder:
        return True
    return file_path == folder or file_path.startswith(f"{folder}/")


def first_content_line(content: str) -> str:
    """Return the first non-empty line of content with heading markers stripped."""
    for line in (content or "").replace("\r\n", "\n").split("\n"):
        cleaned = _HEADING_PREFIX.sub("", line).strip()
        if cleaned:
            return cleaned
    return ""


def extract_wiki_embeds(content: str) -> list[str]:
    """Return the file names of ``![[...]]`` embeds, in order, without folders."""
    names: list[str] = []
    for match in _WIKI_EMBED.finditer(content or ""):
        raw = match.group(1).strip()
        if not raw:
            continue
        name = raw.split("/")[-1]
        if name not in names:
            names.append(name)
    return names


def ensure_trailing_newline(content: str) -> str:
    """Normalize line endings; a blank body becomes a single newline."""
    normalized = (content or "").replace("\r\n", "\n")
    if not normalized.strip():
        return "\n"
    return normalized if normalized.endswith("\n") else f"{normalized}\n"
