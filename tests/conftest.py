import asyncio
import os

import pytest

from embedres.errors.exceptions import ResourceNotFoundError
from embedres.types import ResourceMetadata

ID_A = "a" * 32
ID_B = "b" * 32
ID_C = "c" * 32
ID_D = "d" * 32


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class StubResourceClient:
    """In-memory stand-in for JoplinResourceClient.

    Unknown ids answer 404. ``errors`` maps an id to the exception raised by
    ``get_metadata``; ``byte_errors`` does the same for ``get_bytes``.
    """

    def __init__(self) -> None:
        self.resources: dict[str, ResourceMetadata] = {}
        self.contents: dict[str, bytes] = {}
        self.errors: dict[str, Exception] = {}
        self.byte_errors: dict[str, Exception] = {}
        self.metadata_calls: list[str] = []
        self.bytes_calls: list[str] = []
        self.yields = 0
        self.in_flight = 0
        self.peak_in_flight = 0

    def add(
        self,
        resource_id: str,
        mime: str = "image/png",
        content: bytes = b"\x89PNG-fake",
        filename: str = "",
        title: str = "",
    ) -> None:
        self.resources[resource_id] = ResourceMetadata(
            id=resource_id, mime=mime, filename=filename, title=title, size=len(content)
        )
        self.contents[resource_id] = content

    async def _pause(self) -> None:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            for _ in range(self.yields):
                await asyncio.sleep(0)
        finally:
            self.in_flight -= 1

    async def get_metadata(self, resource_id: str) -> ResourceMetadata:
        self.metadata_calls.append(resource_id)
        await self._pause()
        if resource_id in self.errors:
            raise self.errors[resource_id]
        if resource_id not in self.resources:
            raise ResourceNotFoundError(resource_id=resource_id)
        return self.resources[resource_id]

    async def get_bytes(self, resource_id: str) -> bytes:
        self.bytes_calls.append(resource_id)
        await self._pause()
        if resource_id in self.byte_errors:
            raise self.byte_errors[resource_id]
        return self.contents[resource_id]

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def stub_client():
    return StubResourceClient()


@pytest.fixture
def project_config_dir(tmp_path):
    """Write a minimal project config and return its directory."""
    content = """
server_url: http://127.0.0.1:41184
token: file-token
max_concurrency: 5
cache_ttl_minutes: 10
"""
    path = tmp_path / "embedres.yaml"
    path.write_text(content)
    return tmp_path


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the developer's own config files and env vars out of tests."""
    for name in list(os.environ):
        if name.startswith(("JOPLIN_", "EMBEDRES_")):
            monkeypatch.delenv(name)
    monkeypatch.setattr(
        "embedres.config.hierarchy._GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml"
    )
    monkeypatch.chdir(tmp_path)
