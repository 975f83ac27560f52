"""Streaming HTTP access to the listing page and the archives it links to."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import httpx
import structlog

from ..config import CrawlConfig
from ..errors import CrawlError, DownloadError
from ..logging_conf import component_logger


def resolve_link(base_url: str, link: str) -> str:
    """Join ``link`` onto ``base_url`` as ``base + "/" + link``.

    Absolute links are returned unchanged.
    """

    if "://" in link:
        return link
    return base_url.rstrip("/") + "/" + link.lstrip("/")


class Fetcher:
    """Shared HTTP client; safe to use from every worker thread."""

    def __init__(
        self,
        config: CrawlConfig,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or component_logger("fetcher")
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=config.request_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def archive_url(self, link: str) -> str:
        return resolve_link(self.config.resolved_base_url, link)

    def stream_listing(self, url: str | None = None) -> Iterator[str]:
        """Yield the listing body as decoded text chunks, as they arrive."""

        target = url or self.config.listing_url
        try:
            with self._client.stream("GET", target) as response:
                response.raise_for_status()
                self.logger.info("listing_connected", url=target, status=response.status_code)
                yield from response.iter_text(self.config.chunk_size)
        except httpx.HTTPError as exc:
            raise CrawlError(f"cannot process url {target}: {exc}") from exc

    def download(self, link: str, destination: Path) -> int:
        """Copy the archive behind ``link`` into ``destination`` chunk by chunk.

        Returns the number of bytes written.
        """

        url = self.archive_url(link)
        written = 0
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                with destination.open("wb") as sink:
                    for chunk in response.iter_bytes(self.config.chunk_size):
                        sink.write(chunk)
                        written += len(chunk)
        except httpx.HTTPError as exc:
            raise DownloadError(f"cannot download archive {url}: {exc}", link=link) from exc
        except OSError as exc:
            raise DownloadError(
                f"cannot copy response body from {url} into {destination}: {exc}", link=link
            ) from exc
        return written


__all__ = ["Fetcher", "resolve_link"]
