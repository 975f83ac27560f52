from __future__ import annotations

import pytest

from zipfeed.engine.archive import ArchiveProcessor
from zipfeed.engine.dedup import Ledger
from zipfeed.errors import ArchiveError, LedgerError


@pytest.fixture
def archive_path(tmp_path, zip_builder):
    path = tmp_path / "a.zip"
    path.write_bytes(zip_builder([("r1.xml", b"<r1/>"), ("r2.xml", b"<r2/>"), ("r3.xml", b"<r3/>")]))
    return path


def test_process_publishes_entries_in_listing_order(archive_path, fake_redis, redis_config) -> None:
    summary = ArchiveProcessor().process(archive_path, "a.zip", Ledger(fake_redis, redis_config))

    assert (summary.published, summary.skipped) == (3, 0)
    assert fake_redis.pushed("NEWS_XML") == [b"<r1/>", b"<r2/>", b"<r3/>"]
    assert set(fake_redis.hashes["xmls"]) == {"r1.xml", "r2.xml", "r3.xml"}


def test_process_skips_entries_already_processed(archive_path, fake_redis, redis_config) -> None:
    fake_redis.hashes["xmls"] = {"r2.xml": b"r2.xml"}

    summary = ArchiveProcessor().process(archive_path, "a.zip", Ledger(fake_redis, redis_config))

    assert (summary.published, summary.skipped) == (2, 1)
    assert fake_redis.pushed("NEWS_XML") == [b"<r1/>", b"<r3/>"]


def test_second_pass_pushes_nothing(archive_path, fake_redis, redis_config) -> None:
    ledger = Ledger(fake_redis, redis_config)
    ArchiveProcessor().process(archive_path, "a.zip", ledger)
    summary = ArchiveProcessor().process(archive_path, "a.zip", ledger)
    assert summary.published == 0
    assert len(fake_redis.pushed("NEWS_XML")) == 3


def test_directories_are_not_entries(tmp_path, zip_builder, fake_redis, redis_config) -> None:
    path = tmp_path / "dirs.zip"
    path.write_bytes(zip_builder([("docs/", b""), ("docs/r1.xml", b"<r1/>")]))
    ArchiveProcessor().process(path, "dirs.zip", Ledger(fake_redis, redis_config))
    assert list(fake_redis.hashes["xmls"]) == ["docs/r1.xml"]


def test_malformed_archive(tmp_path, fake_redis, redis_config) -> None:
    path = tmp_path / "bad.zip"
    path.write_bytes(b"<html>not a zip</html>")
    with pytest.raises(ArchiveError) as excinfo:
        ArchiveProcessor().process(path, "bad.zip", Ledger(fake_redis, redis_config))
    assert excinfo.value.link == "bad.zip"
    assert "cannot open zip file" in str(excinfo.value)
    assert fake_redis.calls == []


def test_ledger_error_aborts_remaining_entries(archive_path, fake_redis, redis_config) -> None:
    ledger = Ledger(fake_redis, redis_config)
    original_hget = fake_redis.hget

    def flaky_hget(name, key):
        if key == "r2.xml":
            fake_redis.fail_on = {"hget"}
        try:
            return original_hget(name, key)
        finally:
            fake_redis.fail_on = set()

    fake_redis.hget = flaky_hget

    with pytest.raises(LedgerError):
        ArchiveProcessor().process(archive_path, "a.zip", ledger)

    assert fake_redis.pushed("NEWS_XML") == [b"<r1/>"]
    assert "r3.xml" not in fake_redis.hashes["xmls"]
