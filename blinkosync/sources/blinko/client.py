"""Blinko API client for incremental note synchronization."""

import logging
from typing import Any
from urllib.parse import urlsplit

import httpx

from blinkosync.core.config import ServerConfig
from blinkosync.core.errors import ConfigurationError, RemoteError

from .models import BlinkoNote

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200


class BlinkoClient:
    """
    Async client for the Blinko note API.

    Stateless apart from the HTTP connection pool: every call is a single
    request with no retry. Failures surface as RemoteError carrying the
    status code and a truncated body snippet.
    """

    def __init__(
        self,
        server: ServerConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Blinko client.

        Args:
            server: Server URL and access token
            transport: Optional httpx transport (used by tests)
        """
        self.server = server
        self._client = httpx.AsyncClient(timeout=30.0, follow_redirects=True, transport=transport)

    def update_config(self, server: ServerConfig) -> None:
        self.server = server

    async def fetch_page(self, cursor: int, page: int, page_size: int) -> list[BlinkoNote]:
        """
        Fetch one page of non-recycled notes, newest first.

        The cursor is not sent to the server; the caller applies the
        early-stop rule against it.

        Args:
            cursor: Current sync cursor (epoch ms), informational only
            page: 1-based page number
            page_size: Notes per page

        Returns:
            Notes in the order served by Blinko
        """
        body = {
            "page": page,
            "size": page_size,
            "orderBy": "desc",
            "isRecycle": False,
            "type": -1,
        }
        logger.debug(f"Fetching note page {page} (size={page_size}, cursor={cursor})")
        payload = await self._post_json("note/list", body)
        return self._parse_notes(payload)

    async def fetch_by_ids(self, ids: list[int]) -> list[BlinkoNote]:
        """
        Fetch notes by ID, including notes in the recycle bin.

        Args:
            ids: Note IDs to look up

        Returns:
            The notes that still exist on the server
        """
        if not ids:
            return []

        payload = await self._post_json("note/list-by-ids", {"ids": list(ids)})
        return self._parse_notes(payload)

    async def fetch_attachment_bytes(self, path: str) -> bytes:
        """
        Download the raw bytes of an attachment.

        Args:
            path: Attachment path as reported by the note

        Returns:
            File content

        Raises:
            RemoteError: If the server is unreachable or answers with an error status
        """
        url = self.resolve_url(path, absolute_from_origin=True)
        try:
            response = await self._client.get(url, headers=self._build_headers(include_json=False))
        except httpx.TransportError as e:
            raise RemoteError(0, message=f"Attachment download failed for {url}: {e}") from e
        if response.status_code >= 400:
            raise RemoteError(
                response.status_code,
                message=f"Blinko attachment download failed: {response.status_code}",
            )
        return response.content

    def resolve_url(self, path: str, absolute_from_origin: bool = False) -> str:
        """
        Build a full URL for an API or attachment path.

        Absolute http(s) URLs are returned untouched. With absolute_from_origin,
        a path starting with "/" resolves against the scheme and host of the
        base URL; everything else is appended to the base URL.
        """
        base = (self.server.url or "").strip().rstrip("/")
        if not base:
            raise ConfigurationError("Blinko server URL is not configured.")

        clean_path = (path or "").strip()
        if not clean_path:
            return base

        if clean_path.startswith(("http://", "https://")):
            return clean_path

        if absolute_from_origin and clean_path.startswith("/"):
            return f"{self._origin(base)}{clean_path}"

        return f"{base}/{clean_path.lstrip('/')}"

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _post_json(self, path: str, body: dict[str, Any]) -> Any:
        url = self.resolve_url(path)
        try:
            response = await self._client.post(url, headers=self._build_headers(include_json=True), json=body)
        except httpx.TransportError as e:
            logger.error(f"Blinko API unreachable at {url}: {e}")
            raise RemoteError(0, message=f"Blinko server unreachable: {e}") from e

        if response.status_code >= 400:
            snippet = response.text[:SNIPPET_LENGTH]
            logger.error(f"Blinko API error: HTTP {response.status_code} for {url}")
            raise RemoteError(response.status_code, snippet)

        try:
            return response.json()
        except ValueError as e:
            snippet = response.text[:SNIPPET_LENGTH]
            raise RemoteError(
                response.status_code,
                snippet,
                message=(
                    "Blinko API response is not valid JSON. Check your server URL or proxy "
                    f"configuration. Response snippet: {snippet}"
                ),
            ) from e

    def _build_headers(self, include_json: bool) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self.server.access_token}"}
        if include_json:
            headers["Content-Type"] = "application/json"
        return headers

    @staticmethod
    def _origin(base: str) -> str:
        parts = urlsplit(base)
        if not parts.scheme or not parts.netloc:
            return base.rstrip("/")
        return f"{parts.scheme}://{parts.netloc}"

    @staticmethod
    def _extract_list(payload: Any) -> list[Any]:
        if not payload:
            return []

        if isinstance(payload, list):
            return payload

        if not isinstance(payload, dict):
            return []

        data = payload.get("data")
        candidates = [
            data.get("list") if isinstance(data, dict) else None,
            data.get("records") if isinstance(data, dict) else None,
            data,
            payload.get("list"),
        ]
        for candidate in candidates:
            if isinstance(candidate, list):
                return candidate

        return []

    def _parse_notes(self, payload: Any) -> list[BlinkoNote]:
        notes = []
        for item in self._extract_list(payload):
            if not isinstance(item, dict) or item.get("id") is None:
                logger.debug(f"Skipping malformed note entry: {item!r}")
                continue
            notes.append(BlinkoNote.from_dict(item))
        return notes
