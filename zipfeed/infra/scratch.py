"""Scratch files holding one downloaded archive at a time."""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..errors import ScratchError
from ..logging_conf import component_logger

SCRATCH_PREFIX = "zipfeed-"
SCRATCH_SUFFIX = ".zip"

logger = component_logger("scratch")


@contextmanager
def scratch_file(directory: Path | None = None, *, link: str | None = None) -> Iterator[Path]:
    """Create an empty scratch file and remove it on every exit path.

    A removal failure raises :class:`ScratchError` only when the body
    succeeded; otherwise it is logged and the body's exception propagates.
    """

    try:
        if directory is not None:
            directory.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=SCRATCH_PREFIX, suffix=SCRATCH_SUFFIX, dir=directory)
    except OSError as exc:
        raise ScratchError(f"cannot create scratch file: {exc}", link=link) from exc
    os.close(fd)
    path = Path(name)
    try:
        yield path
    except BaseException:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("scratch_cleanup_failed", path=str(path), link=link, error=str(exc))
        raise
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        raise ScratchError(f"cannot remove scratch file {path}: {exc}", link=link) from exc


__all__ = ["scratch_file"]
