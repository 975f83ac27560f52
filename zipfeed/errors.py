"""Exception hierarchy shared by the crawl, download and archive stages.

Every failure the pipeline can report is a :class:`PipelineError`. Each
subclass names one error class so the orchestrator can decide whether a
failure halts the run or is skipped, and each carries the link that was being
handled when it happened (``None`` for failures outside a single link).
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "PipelineError",
    "CrawlError",
    "DownloadError",
    "ScratchError",
    "ArchiveError",
    "LedgerError",
]


class PipelineError(RuntimeError):
    """Base exception for failures reported through the signal channel."""

    kind = "pipeline"

    def __init__(self, message: str, *, link: Optional[str] = None) -> None:
        super().__init__(message)
        self.link = link

    def __str__(self) -> str:
        message = super().__str__()
        if self.link:
            return f"{message} [link={self.link}]"
        return message


class CrawlError(PipelineError):
    """Raised when the listing page cannot be fetched or streamed."""

    kind = "crawl"


class DownloadError(PipelineError):
    """Raised when an archive GET or the copy into the scratch file fails."""

    kind = "download"


class ScratchError(PipelineError):
    """Raised when a scratch file cannot be created or removed."""

    kind = "scratch"


class ArchiveError(PipelineError):
    """Raised when a downloaded archive is malformed or an entry is unreadable."""

    kind = "archive"


class LedgerError(PipelineError):
    """Raised for any key-value store failure other than an absent key."""

    kind = "ledger"
