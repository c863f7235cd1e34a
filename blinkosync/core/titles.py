"""AI title generation for notes that come without a title."""

import asyncio
import logging
import re

import httpx

from blinkosync.core.config import DEFAULT_TITLE_PROMPT, TitleConfig
from blinkosync.sources.blinko.models import BlinkoNote

logger = logging.getLogger(__name__)

MAX_PROMPT_CONTENT = 3000


class TitleService:
    """
    Generates short titles through an OpenAI-compatible chat completions API.

    Requests are bounded by a semaphore sized from the configured concurrency;
    waiters are released in FIFO order. Every failure degrades to ``None`` so
    the caller can fall back to a title taken from the content.
    """

    def __init__(self, config: TitleConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._limit = config.concurrency
        self._semaphore = asyncio.Semaphore(self._limit)
        self._client = httpx.AsyncClient(timeout=30.0, transport=transport)

    def update_config(self, config: TitleConfig) -> None:
        self.config = config
        if config.concurrency != self._limit:
            # Requests already holding the old semaphore finish against it
            self._limit = config.concurrency
            self._semaphore = asyncio.Semaphore(self._limit)

    def is_enabled(self) -> bool:
        return bool(self.config.enabled and self.config.base_url and self.config.api_key)

    async def get_title(self, note: BlinkoNote, content: str) -> str | None:
        """
        Ask the model for a title.

        Returns:
            A sanitized title, or None if disabled, empty or failed
        """
        if not self.is_enabled():
            return None

        async with self._semaphore:
            try:
                return await self._generate(note, content)
            except Exception as e:
                logger.warning(f"AI title generation failed for note {note.id}: {e}")
                return None

    async def close(self) -> None:
        await self._client.aclose()

    async def _generate(self, note: BlinkoNote, content: str) -> str | None:
        url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        body = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": (self.config.system_prompt or DEFAULT_TITLE_PROMPT).strip()},
                {"role": "user", "content": self.build_user_prompt(note, content)},
            ],
            "max_tokens": self.config.max_tokens or 50,
            "temperature": 0.7,
        }
        response = await self._client.post(
            url,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            json=body,
        )
        response.raise_for_status()

        data = response.json()
        try:
            title = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
        if not isinstance(title, str) or not title.strip():
            return None
        return self.sanitize_title(title)

    @staticmethod
    def sanitize_title(title: str) -> str:
        clean = re.sub(r"^[\"']|[\"']$", "", title.strip())
        clean = re.sub(r'[\\/:*?"<>|]', "-", clean)
        return re.sub(r"[\r\n]+", " ", clean).strip()

    @staticmethod
    def build_user_prompt(note: BlinkoNote, content: str) -> str:
        lines = [
            f"Note ID: {note.id}",
            f"Type: {note.note_type.folder}",
        ]
        if note.created_at:
            lines.append(f"Created at: {note.created_at}")
        if note.updated_at and note.updated_at != note.created_at:
            lines.append(f"Updated at: {note.updated_at}")

        tags = [tag.name.strip() for tag in note.tags if tag.name.strip()]
        if tags:
            lines.append(f"Tags: {', '.join(tags)}")

        lines.extend(["", "Content:"])
        normalized = (content or "").replace("\r\n", "\n")
        if len(normalized) > MAX_PROMPT_CONTENT:
            normalized = f"{normalized[:MAX_PROMPT_CONTENT]}..."
        lines.append(normalized or "(empty)")
        return "\n".join(lines)
