"""Two-namespace deduplication ledger backed by Redis hashes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import redis

from ..config import RedisConfig
from ..errors import LedgerError


@dataclass(slots=True)
class LedgerStats:
    downloaded: int
    processed: int
    queued: int


class Ledger:
    """Archive-level and record-level markers plus the output queue.

    A hash field holding a non-empty value means "already handled"; an absent
    field means "pending". Markers are only ever written, never removed.
    """

    def __init__(self, client: Any, config: RedisConfig, atomic_publish: bool = False) -> None:
        self.client = client
        self.config = config
        self.atomic_publish = atomic_publish

    # ------------------------------------------------------------------
    # Archive namespace
    # ------------------------------------------------------------------
    def is_downloaded(self, link: str) -> bool:
        return self._is_marked(self.config.downloaded_key, link, "downloaded", link=link)

    def mark_downloaded(self, link: str) -> None:
        self._mark(self.config.downloaded_key, link, "downloaded", link=link)

    # ------------------------------------------------------------------
    # Record namespace
    # ------------------------------------------------------------------
    def is_processed(self, entry_name: str, *, link: str | None = None) -> bool:
        return self._is_marked(self.config.processed_key, entry_name, "processed", link=link)

    def mark_processed(self, entry_name: str, *, link: str | None = None) -> None:
        self._mark(self.config.processed_key, entry_name, "processed", link=link)

    def publish(self, entry_name: str, payload: bytes, *, link: str | None = None) -> None:
        """Push ``payload`` to the output queue and mark ``entry_name`` processed.

        Without ``atomic_publish`` the push and the mark are two round-trips, so
        a crash in between re-pushes the entry on the next run (at-least-once).
        """

        if self.atomic_publish:
            try:
                pipe = self.client.pipeline(transaction=True)
                pipe.lpush(self.config.output_queue, payload)
                pipe.hset(self.config.processed_key, entry_name, entry_name)
                pipe.execute()
            except redis.RedisError as exc:
                raise LedgerError(f"cannot publish {entry_name!r} atomically: {exc}", link=link) from exc
            return
        try:
            self.client.lpush(self.config.output_queue, payload)
        except redis.RedisError as exc:
            raise LedgerError(f"cannot push {entry_name!r} to output queue: {exc}", link=link) from exc
        self.mark_processed(entry_name, link=link)

    def stats(self) -> LedgerStats:
        try:
            return LedgerStats(
                downloaded=int(self.client.hlen(self.config.downloaded_key)),
                processed=int(self.client.hlen(self.config.processed_key)),
                queued=int(self.client.llen(self.config.output_queue)),
            )
        except redis.RedisError as exc:
            raise LedgerError(f"cannot read ledger sizes: {exc}") from exc

    # ------------------------------------------------------------------
    def _is_marked(self, namespace: str, key: str, label: str, *, link: str | None = None) -> bool:
        try:
            reply = self.client.hget(namespace, key)
        except redis.RedisError as exc:
            raise LedgerError(f"cannot check {label} ledger for {key!r}: {exc}", link=link) from exc
        return bool(reply)

    def _mark(self, namespace: str, key: str, label: str, *, link: str | None = None) -> None:
        try:
            self.client.hset(namespace, key, key)
        except redis.RedisError as exc:
            raise LedgerError(f"cannot set {label} ledger for {key!r}: {exc}", link=link) from exc


__all__ = ["Ledger", "LedgerStats"]
