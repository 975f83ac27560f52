"""Download workers: dedup a link, fetch its archive, process it, mark it."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from threading import Event

import structlog

from ..errors import PipelineError
from ..infra.scratch import scratch_file
from ..logging_conf import component_logger
from .archive import ArchiveProcessor
from .channels import LinkChannel, SignalChannel
from .dedup import Ledger
from .fetcher import Fetcher


@dataclass(slots=True)
class LinkResult:
    status: str
    link: str
    published: int = 0
    skipped: int = 0


class DownloadWorker:
    """Handle one link at a time until the stop token is set."""

    def __init__(
        self,
        name: str,
        fetcher: Fetcher,
        processor: ArchiveProcessor,
        ledger: Ledger,
        scratch_dir: Path | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.name = name
        self.fetcher = fetcher
        self.processor = processor
        self.ledger = ledger
        self.scratch_dir = scratch_dir
        self.logger = logger or component_logger("worker").bind(worker=name)

    def handle(self, link: str) -> LinkResult:
        if self.ledger.is_downloaded(link):
            self.logger.info("link_skipped", link=link, reason="already_downloaded")
            return LinkResult(status="skipped", link=link)

        with scratch_file(self.scratch_dir, link=link) as path:
            self.logger.info("archive_download_started", link=link, url=self.fetcher.archive_url(link))
            size = self.fetcher.download(link, path)
            self.logger.info("archive_downloaded", link=link, bytes=size)
            summary = self.processor.process(path, link, self.ledger)
            # Marked only after every entry was handled; see ArchiveProcessor.process.
            self.ledger.mark_downloaded(link)
        return LinkResult(
            status="processed",
            link=link,
            published=summary.published,
            skipped=summary.skipped,
        )

    def run(self, links: LinkChannel, signals: SignalChannel, stop: Event) -> None:
        """Consume links, reporting each failure and moving on to the next link."""

        self.logger.debug("worker_started")
        while not stop.is_set():
            link = links.get()
            if link is None:
                break
            try:
                result = self.handle(link)
                self.logger.debug("link_handled", link=link, status=result.status)
            except PipelineError as exc:
                self.logger.error("worker_error", link=link, kind=exc.kind, error=str(exc))
                signals.fail(exc)
            except Exception as exc:  # noqa: BLE001
                self.logger.error("worker_error", link=link, kind="unexpected", error=str(exc))
                error = PipelineError(f"unexpected failure: {exc}", link=link)
                error.__cause__ = exc
                signals.fail(error)
            finally:
                links.task_done()
        self.logger.debug("worker_stopped")


__all__ = ["DownloadWorker", "LinkResult"]
