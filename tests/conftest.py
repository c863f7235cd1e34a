"""Shared fixtures: a temporary vault, app config and an in-memory Blinko server."""

import json
import logging
from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from blinkosync.core.config import AppConfig, GeneralConfig, ServerConfig, SyncConfig, VaultConfig
from blinkosync.core.service import BlinkoSyncService
from blinkosync.utils.db import SyncStateDB

BASE_URL = "https://blinko.test/api/v1"


def note_payload(
    note_id: int,
    content: str = "",
    *,
    type: int = 0,
    created: str = "2024-03-01T12:00:00.000Z",
    updated: str | None = None,
    attachments: list[dict] | None = None,
    tags: list[dict] | None = None,
    is_recycle: bool = False,
) -> dict:
    """Build a note the way the Blinko API serializes it."""
    return {
        "id": note_id,
        "content": content,
        "type": type,
        "createdAt": created,
        "updatedAt": updated or created,
        "isRecycle": is_recycle,
        "attachments": attachments or [],
        "tags": [{"tag": tag} for tag in tags or []],
    }


class FakeBlinko:
    """In-memory Blinko server behind an httpx.MockTransport."""

    def __init__(self):
        self.notes: dict[int, dict] = {}
        self.files: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.fail_on_page: int | None = None

    def add(self, note_id: int, content: str = "", **kwargs) -> dict:
        payload = note_payload(note_id, content, **kwargs)
        self.notes[note_id] = payload
        return payload

    def requests_to(self, suffix: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith(suffix)]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path.endswith("/note/list"):
            body = json.loads(request.content)
            if self.fail_on_page == body["page"]:
                return httpx.Response(500, text="internal error")
            visible = [note for note in self.notes.values() if not note["isRecycle"]]
            visible.sort(key=lambda note: note["updatedAt"], reverse=True)
            start = (body["page"] - 1) * body["size"]
            return httpx.Response(200, json={"data": visible[start:start + body["size"]]})

        if request.method == "POST" and path.endswith("/note/list-by-ids"):
            body = json.loads(request.content)
            found = [self.notes[note_id] for note_id in body["ids"] if note_id in self.notes]
            return httpx.Response(200, json=found)

        if request.method == "GET" and path in self.files:
            return httpx.Response(200, content=self.files[path])

        return httpx.Response(404, text="not found")


@pytest.fixture
def fake_blinko() -> FakeBlinko:
    return FakeBlinko()


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def app_config(tmp_path: Path, vault_root: Path) -> AppConfig:
    return AppConfig(
        general=GeneralConfig(data_dir=tmp_path / "data", debug=False, log_level="INFO"),
        server=ServerConfig(url=BASE_URL, access_token="secret-token"),
        vault=VaultConfig(root=vault_root),
        sync=SyncConfig(delete_check_enabled=False, delete_recycled=False),
    )


@pytest_asyncio.fixture
async def state_db(tmp_path: Path) -> SyncStateDB:
    db = SyncStateDB(tmp_path / "state" / "blinkosync.db")
    await db.initialize()
    return db


@pytest_asyncio.fixture
async def service(app_config: AppConfig, fake_blinko: FakeBlinko) -> AsyncGenerator[BlinkoSyncService, None]:
    """A fully wired service talking to the fake server."""
    svc = BlinkoSyncService(app_config, transport=fake_blinko.transport)
    await svc.initialize()
    yield svc
    await svc.close()


@pytest.fixture
def restore_root_logger():
    """Put back the root handlers that setup_logging replaces."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
