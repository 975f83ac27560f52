"""Run orchestrator wiring the crawler, the worker pool and the signal channel."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Event

import structlog

from .config import ErrorPolicy, PipelineConfig
from .engine import (
    ArchiveProcessor,
    DownloadWorker,
    Fetcher,
    Ledger,
    LinkChannel,
    LinkCrawler,
    LinkFilter,
    SignalChannel,
    SignalKind,
    ThreadPoolManager,
)
from .errors import ArchiveError, DownloadError, LedgerError, PipelineError, ScratchError
from .infra import RedisManager
from .logging_conf import component_logger

# Failures confined to one link. Crawl and ledger failures always halt.
SKIPPABLE_ERRORS: tuple[type[PipelineError], ...] = (DownloadError, ArchiveError, ScratchError)


@dataclass(slots=True)
class RunResult:
    """Outcome of one pipeline run."""

    outcome: str
    discovered: int = 0
    error: PipelineError | None = None
    skipped_errors: list[PipelineError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome == "completed"


class Orchestrator:
    """Start N workers and one crawler, then wait for the first decisive signal."""

    def __init__(
        self,
        config: PipelineConfig,
        storage: RedisManager,
        fetcher: Fetcher | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.storage = storage
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or Fetcher(config.crawl)
        self.logger = logger or component_logger("orchestrator")

    def should_halt(self, error: PipelineError) -> bool:
        """Decide whether ``error`` ends the run under the configured policy."""

        if self.config.on_error is ErrorPolicy.HALT:
            return True
        return not isinstance(error, SKIPPABLE_ERRORS)

    def run(self) -> RunResult:
        stop = Event()
        links = LinkChannel(stop, maxsize=self.config.link_queue_size, poll_interval=self.config.poll_interval)
        signals = SignalChannel()
        pool: ThreadPoolManager | None = None
        clients = []
        crawler = LinkCrawler(self.fetcher, LinkFilter.from_config(self.config.crawl))
        processor = ArchiveProcessor()
        try:
            try:
                self.storage.ping()
                for _ in range(self.config.workers):
                    clients.append(self.storage.dedicated_client())
            except LedgerError as exc:
                self.logger.error("store_unavailable", kind=exc.kind, error=str(exc))
                return RunResult(outcome="failed", error=exc)
            pool = ThreadPoolManager(self.config.workers + 1)
            for index, client in enumerate(clients):
                worker = DownloadWorker(
                    name=f"worker-{index}",
                    fetcher=self.fetcher,
                    processor=processor,
                    ledger=Ledger(client, self.config.redis, atomic_publish=self.config.atomic_publish),
                    scratch_dir=self.config.scratch_dir,
                )
                pool.submit(worker.name, worker.run, links, signals, stop)
            pool.submit("crawler", crawler.run, links, signals, stop)
            result = self._await(links, signals, pool)
        finally:
            stop.set()
            if pool is not None:
                # Queued links are abandoned; a worker mid-link finishes that link first.
                pool.shutdown(wait=True)
            for client in clients:
                self.storage.release(client)
            if self._owns_fetcher:
                self.fetcher.close()
        result.discovered = crawler.discovered
        return result

    def _await(self, links: LinkChannel, signals: SignalChannel, pool: ThreadPoolManager) -> RunResult:
        skipped: list[PipelineError] = []
        crawl_done = False
        while True:
            # Workers report a failure before marking the link handled, so a
            # snapshot taken ahead of the poll cannot miss a late failure.
            drained = crawl_done and links.pending == 0
            signal = signals.get(timeout=self.config.poll_interval)
            if signal is None:
                crashed = pool.failures()
                if crashed:
                    name, exc = crashed[0]
                    error = PipelineError(f"task {name} died: {exc!r}")
                    error.__cause__ = exc
                    self.logger.error("pipeline_failed", kind=error.kind, task=name, error=str(error))
                    return RunResult(outcome="failed", error=error, skipped_errors=skipped)
                if drained:
                    self.logger.info("pipeline_drained")
                    return RunResult(outcome="completed", skipped_errors=skipped)
                continue
            if signal.kind is SignalKind.DONE:
                self.logger.info("crawl_complete", drain=self.config.drain_on_complete)
                if not self.config.drain_on_complete:
                    return RunResult(outcome="completed", skipped_errors=skipped)
                crawl_done = True
                continue
            error = signal.error or PipelineError("failure reported without detail")
            if self.should_halt(error):
                self.logger.error("pipeline_failed", kind=error.kind, link=error.link, error=str(error))
                return RunResult(outcome="failed", error=error, skipped_errors=skipped)
            self.logger.warning("link_failed_skipped", kind=error.kind, link=error.link, error=str(error))
            skipped.append(error)


__all__ = ["Orchestrator", "RunResult", "SKIPPABLE_ERRORS"]
