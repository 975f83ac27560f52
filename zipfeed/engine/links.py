"""Archive link discovery: markup tokens -> hrefs -> filtered links."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from html.parser import HTMLParser
from threading import Event
from typing import Iterable, Iterator

import structlog

from ..config import CrawlConfig
from ..errors import CrawlError, PipelineError
from ..logging_conf import component_logger
from .channels import LinkChannel, SignalChannel
from .fetcher import Fetcher

HREF_ATTR = "href"
ANCHOR_TAG = "a"


class TokenKind(str, Enum):
    START_TAG = "start_tag"
    END_TAG = "end_tag"
    TEXT = "text"


@dataclass(slots=True)
class Token:
    kind: TokenKind
    name: str = ""
    attrs: list[tuple[str, str | None]] = field(default_factory=list)


class _TokenCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.pending: list[Token] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.pending.append(Token(TokenKind.START_TAG, tag, attrs))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.pending.append(Token(TokenKind.START_TAG, tag, attrs))

    def handle_endtag(self, tag: str) -> None:
        self.pending.append(Token(TokenKind.END_TAG, tag))

    def handle_data(self, data: str) -> None:
        self.pending.append(Token(TokenKind.TEXT, data))


def tokenize(chunks: Iterable[str]) -> Iterator[Token]:
    """Lazily tokenize HTML fed one text chunk at a time."""

    collector = _TokenCollector()
    for chunk in chunks:
        collector.feed(chunk)
        if collector.pending:
            yield from collector.pending
            collector.pending = []
    collector.close()
    yield from collector.pending
    collector.pending = []


def extract_link(attrs: Iterable[tuple[str, str | None]]) -> str:
    """Return the ``href`` attribute value, or an empty string."""

    for key, value in attrs:
        if key == HREF_ATTR:
            return value or ""
    return ""


def extract_links(tokens: Iterable[Token]) -> Iterator[str]:
    """Yield the href of every anchor start tag in ``tokens``."""

    for token in tokens:
        if token.kind is TokenKind.START_TAG and token.name == ANCHOR_TAG:
            yield extract_link(token.attrs)


@dataclass(slots=True)
class LinkFilter:
    """Keep links long enough to carry a scheme and ending in the archive suffix."""

    suffix: str = ".zip"
    min_length: int = len("http://")

    @classmethod
    def from_config(cls, config: CrawlConfig) -> "LinkFilter":
        return cls(suffix=config.archive_suffix, min_length=config.min_link_length)

    def accept(self, link: str) -> bool:
        if len(link) < self.min_length:
            return False
        return link.endswith(self.suffix)


class LinkCrawler:
    """Fetch the listing page once and feed matching archive links to workers."""

    def __init__(
        self,
        fetcher: Fetcher,
        link_filter: LinkFilter,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.link_filter = link_filter
        self.logger = logger or component_logger("crawler")
        self.discovered = 0

    def discover(self, url: str | None = None) -> Iterator[str]:
        """Lazy one-shot sequence of archive links found on the listing page."""

        for link in extract_links(tokenize(self.fetcher.stream_listing(url))):
            if not self.link_filter.accept(link):
                self.logger.debug("link_rejected", link=link)
                continue
            yield link

    def run(
        self,
        links: LinkChannel,
        signals: SignalChannel,
        stop: Event,
        url: str | None = None,
    ) -> None:
        """Emit links until end of stream, then signal done; signal failure on error."""

        self.logger.info("crawl_started", url=url or self.fetcher.config.listing_url)
        discovered = self.discover(url)
        try:
            for link in discovered:
                self.logger.info("link_discovered", link=link)
                if not links.put(link):
                    self.logger.info("crawl_stopped", discovered=self.discovered)
                    return
                self.discovered += 1
        except PipelineError as exc:
            signals.fail(exc)
            return
        except Exception as exc:  # noqa: BLE001
            error = CrawlError(f"listing tokenization failed: {exc}")
            error.__cause__ = exc
            signals.fail(error)
            return
        finally:
            discovered.close()
        if stop.is_set():
            return
        self.logger.info("crawl_complete", discovered=self.discovered)
        signals.done()


__all__ = [
    "LinkCrawler",
    "LinkFilter",
    "Token",
    "TokenKind",
    "extract_link",
    "extract_links",
    "tokenize",
]
