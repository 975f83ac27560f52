"""Engine components orchestrating crawl → download → unpack → dedup → publish."""

from .archive import ArchiveProcessor, ArchiveSummary
from .channels import LinkChannel, Signal, SignalChannel, SignalKind
from .dedup import Ledger, LedgerStats
from .fetcher import Fetcher, resolve_link
from .links import LinkCrawler, LinkFilter, extract_links, tokenize
from .thread_pool import ThreadPoolManager
from .worker import DownloadWorker, LinkResult

__all__ = [
    "ArchiveProcessor",
    "ArchiveSummary",
    "DownloadWorker",
    "Fetcher",
    "Ledger",
    "LedgerStats",
    "LinkChannel",
    "LinkCrawler",
    "LinkFilter",
    "LinkResult",
    "Signal",
    "SignalChannel",
    "SignalKind",
    "ThreadPoolManager",
    "extract_links",
    "resolve_link",
    "tokenize",
]
