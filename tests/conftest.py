"""Pytest configuration providing store, HTTP and archive fixtures."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest
import redis

from zipfeed.config import ConfigLocator, ConfigRepository, CrawlConfig, PipelineConfig, RedisConfig
from zipfeed.errors import LedgerError

LISTING_URL = "http://x/feed"


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the ledger uses."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, bytes]] = {}
        self.lists: dict[str, list[bytes]] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.fail_on: set[str] = set()
        self.closed = False

    def _record(self, command: str, *args: Any) -> None:
        self.calls.append((command, args))
        if command in self.fail_on:
            raise redis.ConnectionError(f"{command} unavailable")

    @staticmethod
    def _encode(value: Any) -> bytes:
        return value if isinstance(value, bytes) else str(value).encode("utf-8")

    def hget(self, name: str, key: str) -> bytes | None:
        self._record("hget", name, key)
        return self.hashes.get(name, {}).get(key)

    def hset(self, name: str, key: str, value: Any) -> int:
        self._record("hset", name, key, value)
        bucket = self.hashes.setdefault(name, {})
        created = key not in bucket
        bucket[key] = self._encode(value)
        return int(created)

    def hlen(self, name: str) -> int:
        self._record("hlen", name)
        return len(self.hashes.get(name, {}))

    def lpush(self, name: str, *values: Any) -> int:
        self._record("lpush", name, *values)
        items = self.lists.setdefault(name, [])
        for value in values:
            items.insert(0, self._encode(value))
        return len(items)

    def llen(self, name: str) -> int:
        self._record("llen", name)
        return len(self.lists.get(name, []))

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        self.closed = True

    def writes(self, command: str, name: str) -> list[tuple[Any, ...]]:
        return [args for cmd, args in self.calls if cmd == command and args[0] == name]

    def pushed(self, queue: str) -> list[bytes]:
        """Payloads in push order (the list itself is newest-first)."""

        return list(reversed(self.lists.get(queue, [])))


class FakePipeline:
    def __init__(self, client: FakeRedis) -> None:
        self.client = client
        self.commands: list[tuple[str, tuple[Any, ...]]] = []

    def lpush(self, *args: Any) -> "FakePipeline":
        self.commands.append(("lpush", args))
        return self

    def hset(self, *args: Any) -> "FakePipeline":
        self.commands.append(("hset", args))
        return self

    def execute(self) -> list[Any]:
        self.client._record("multi")
        return [getattr(self.client, name)(*args) for name, args in self.commands]


class FakeRedisManager:
    """Hands the same in-memory store to every worker."""

    def __init__(self, client: FakeRedis) -> None:
        self.store = client
        self.released: list[FakeRedis] = []

    def client(self) -> FakeRedis:
        return self.store

    def dedicated_client(self) -> FakeRedis:
        return self.store

    def release(self, client: FakeRedis) -> None:
        self.released.append(client)

    def ping(self) -> bool:
        if "ping" in self.store.fail_on:
            raise LedgerError("redis at fake:6379/0 is unreachable")
        return True

    def close_all(self) -> None:
        return


class ArchiveServer:
    """httpx transport serving a listing page and zip archives from memory."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requested: list[str] = []

    def add(self, url: str, content: bytes | str, status_code: int = 200) -> None:
        body = content.encode("utf-8") if isinstance(content, str) else content
        self.routes[url] = lambda request: httpx.Response(status_code, content=body, request=request)

    def add_handler(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[url] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        handler = self.routes.get(url)
        if handler is None:
            return httpx.Response(404, content=b"not found", request=request)
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def build_zip(entries: Iterable[tuple[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, payload in entries:
            archive.writestr(name, payload)
    return buffer.getvalue()


def listing_page(hrefs: Iterable[str]) -> str:
    anchors = "\n".join(f'<li><a href="{href}">{href}</a></li>' for href in hrefs)
    return f"<html><body><ul>{anchors}</ul></body></html>"


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_config() -> RedisConfig:
    return RedisConfig()


@pytest.fixture
def archive_server() -> ArchiveServer:
    return ArchiveServer()


@pytest.fixture
def pipeline_config(tmp_path: Path) -> Callable[..., PipelineConfig]:
    def _builder(**overrides: Any) -> PipelineConfig:
        crawl_overrides = overrides.pop("crawl", {})
        base: dict[str, Any] = {
            "crawl": CrawlConfig(listing_url=LISTING_URL, **crawl_overrides),
            "workers": 2,
            "poll_interval": 0.05,
            "scratch_dir": tmp_path / "scratch",
        }
        base.update(overrides)
        return PipelineConfig(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("ZIPFEED_HOME", str(tmp_path))
    for variable in ("ZIPFEED_LISTING_URL", "ZIPFEED_REDIS_HOST", "ZIPFEED_REDIS_PORT"):
        monkeypatch.delenv(variable, raising=False)
    return ConfigRepository(ConfigLocator(project_root=tmp_path))


@pytest.fixture
def zip_builder() -> Callable[[Iterable[tuple[str, bytes]]], bytes]:
    return build_zip


@pytest.fixture
def listing_builder() -> Callable[[Iterable[str]], str]:
    return listing_page


@pytest.fixture
def fake_storage(fake_redis: FakeRedis) -> FakeRedisManager:
    return FakeRedisManager(fake_redis)
