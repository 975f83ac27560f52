from __future__ import annotations

import pytest

from zipfeed.config import CrawlConfig
from zipfeed.engine.fetcher import Fetcher, resolve_link
from zipfeed.errors import CrawlError, DownloadError


@pytest.mark.parametrize(
    ("base", "link", "expected"),
    [
        ("http://x/feed", "a.zip", "http://x/feed/a.zip"),
        ("http://x/feed/", "/a.zip", "http://x/feed/a.zip"),
        ("http://x/feed", "sub/a.zip", "http://x/feed/sub/a.zip"),
        ("http://x/feed", "http://cdn/a.zip", "http://cdn/a.zip"),
    ],
)
def test_resolve_link(base: str, link: str, expected: str) -> None:
    assert resolve_link(base, link) == expected


def test_download_streams_body_into_file(archive_server, tmp_path) -> None:
    payload = bytes(range(256)) * 50
    archive_server.add("http://x/feed/a.zip", payload)
    fetcher = Fetcher(CrawlConfig(listing_url="http://x/feed", chunk_size=100), transport=archive_server.transport)
    destination = tmp_path / "a.zip"

    written = fetcher.download("a.zip", destination)
    fetcher.close()

    assert written == len(payload)
    assert destination.read_bytes() == payload
    assert archive_server.requested == ["http://x/feed/a.zip"]


def test_download_uses_archive_base_url(archive_server, tmp_path) -> None:
    archive_server.add("http://cdn.x/files/a.zip", b"zip")
    config = CrawlConfig(listing_url="http://x/feed", archive_base_url="http://cdn.x/files")
    fetcher = Fetcher(config, transport=archive_server.transport)
    fetcher.download("a.zip", tmp_path / "a.zip")
    assert archive_server.requested == ["http://cdn.x/files/a.zip"]


def test_download_error_status(archive_server, tmp_path) -> None:
    fetcher = Fetcher(CrawlConfig(listing_url="http://x/feed"), transport=archive_server.transport)
    with pytest.raises(DownloadError) as excinfo:
        fetcher.download("missing.zip", tmp_path / "missing.zip")
    assert excinfo.value.link == "missing.zip"
    assert excinfo.value.kind == "download"


def test_download_error_on_unwritable_destination(archive_server, tmp_path) -> None:
    archive_server.add("http://x/feed/a.zip", b"zip")
    fetcher = Fetcher(CrawlConfig(listing_url="http://x/feed"), transport=archive_server.transport)
    with pytest.raises(DownloadError):
        fetcher.download("a.zip", tmp_path / "no-such-dir" / "a.zip")


def test_stream_listing_yields_text_chunks(archive_server) -> None:
    archive_server.add("http://x/feed", "<html>" + "x" * 30 + "</html>")
    fetcher = Fetcher(CrawlConfig(listing_url="http://x/feed", chunk_size=10), transport=archive_server.transport)
    chunks = list(fetcher.stream_listing())
    assert len(chunks) > 1
    assert "".join(chunks) == "<html>" + "x" * 30 + "</html>"


def test_stream_listing_error(archive_server) -> None:
    fetcher = Fetcher(CrawlConfig(listing_url="http://x/feed"), transport=archive_server.transport)
    with pytest.raises(CrawlError):
        list(fetcher.stream_listing("http://x/other"))
