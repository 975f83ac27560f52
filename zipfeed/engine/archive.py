"""Unpack a downloaded archive and publish its unseen entries."""

from __future__ import annotations

import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import structlog

from ..errors import ArchiveError
from ..logging_conf import component_logger
from .dedup import Ledger


@dataclass(slots=True)
class ArchiveSummary:
    name: str
    published: int = 0
    skipped: int = 0


def iter_entries(archive: zipfile.ZipFile) -> Iterator[zipfile.ZipInfo]:
    """Yield file entries in the archive's central-directory order."""

    for info in archive.infolist():
        if info.is_dir():
            continue
        yield info


class ArchiveProcessor:
    """Forward every entry not yet in the record ledger to the output queue."""

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or component_logger("archive")

    def process(self, local_path: Path, display_name: str, ledger: Ledger) -> ArchiveSummary:
        """Publish new entries of ``local_path``; raise on the first fatal error.

        Ledger errors abort the whole archive. The caller leaves the archive
        unmarked in that case, so the next run retries it and the record
        ledger filters out entries that were already published.
        """

        self.logger.info("archive_processing", archive=display_name)
        summary = ArchiveSummary(name=display_name)
        try:
            archive = zipfile.ZipFile(local_path)
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveError(f"cannot open zip file {local_path}: {exc}", link=display_name) from exc
        with archive:
            for info in iter_entries(archive):
                if ledger.is_processed(info.filename, link=display_name):
                    self.logger.debug("entry_skipped", archive=display_name, entry=info.filename)
                    summary.skipped += 1
                    continue
                payload = self._read_entry(archive, info, display_name)
                ledger.publish(info.filename, payload, link=display_name)
                self.logger.info(
                    "entry_pushed", archive=display_name, entry=info.filename, size=len(payload)
                )
                summary.published += 1
        return summary

    @staticmethod
    def _read_entry(archive: zipfile.ZipFile, info: zipfile.ZipInfo, display_name: str) -> bytes:
        try:
            with archive.open(info) as stream:
                return stream.read()
        except (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, OSError) as exc:
            raise ArchiveError(
                f"cannot read entry {info.filename!r} in archive: {exc}", link=display_name
            ) from exc


__all__ = ["ArchiveProcessor", "ArchiveSummary", "iter_entries"]
