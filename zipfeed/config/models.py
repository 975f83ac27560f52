"""Pydantic models describing a zipfeed pipeline run."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_MIN_LINK_LENGTH = len("http://")


class ErrorPolicy(str, Enum):
    """How worker failures affect the rest of the run."""

    HALT = "halt"
    SKIP = "skip"


class RedisConfig(BaseModel):
    """Connection and key layout of the ledger store."""

    host: str = "127.0.0.1"
    port: int = 6379
    db: int = 0
    password: str | None = None
    max_connections: int = 3
    # Seconds a pooled connection may sit idle before it is PINGed on borrow.
    health_check_interval: int = 60
    downloaded_key: str = "zips"
    processed_key: str = "xmls"
    output_queue: str = "NEWS_XML"

    @model_validator(mode="after")
    def _validate_layout(self) -> "RedisConfig":
        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")
        if self.max_connections < 1:
            raise ValueError("max_connections must be >= 1")
        if self.health_check_interval < 0:
            raise ValueError("health_check_interval must be >= 0")
        keys = (self.downloaded_key, self.processed_key, self.output_queue)
        if not all(key.strip() for key in keys):
            raise ValueError("ledger key names cannot be empty")
        if len(set(keys)) != len(keys):
            raise ValueError("downloaded_key, processed_key and output_queue must differ")
        return self


class CrawlConfig(BaseModel):
    """Where archives are discovered and how links are filtered."""

    listing_url: str
    archive_base_url: str | None = None
    archive_suffix: str = ".zip"
    min_link_length: int = DEFAULT_MIN_LINK_LENGTH
    request_timeout: float | None = None
    chunk_size: int = 64 * 1024

    @field_validator("listing_url", "archive_base_url")
    @classmethod
    def _check_http_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Expected an http(s) URL, got {value!r}")
        return value

    @model_validator(mode="after")
    def _validate_filters(self) -> "CrawlConfig":
        if not self.archive_suffix:
            raise ValueError("archive_suffix cannot be empty")
        if self.min_link_length < 0:
            raise ValueError("min_link_length must be >= 0")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive when set")
        return self

    @property
    def resolved_base_url(self) -> str:
        """Base URL archive links are resolved against."""

        return self.archive_base_url or self.listing_url


class PipelineConfig(BaseModel):
    """Full definition of one pipeline run."""

    crawl: CrawlConfig
    redis: RedisConfig = Field(default_factory=RedisConfig)
    workers: int = 3
    # 0 makes the link channel an unbuffered hand-off.
    link_queue_size: int = 0
    poll_interval: float = 0.5
    scratch_dir: Path | None = None
    on_error: ErrorPolicy = ErrorPolicy.HALT
    drain_on_complete: bool = False
    atomic_publish: bool = False

    @field_validator("scratch_dir", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)

    @model_validator(mode="after")
    def _validate_pool(self) -> "PipelineConfig":
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.link_queue_size < 0:
            raise ValueError("link_queue_size must be >= 0")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        return self


__all__ = [
    "CrawlConfig",
    "DEFAULT_MIN_LINK_LENGTH",
    "ErrorPolicy",
    "PipelineConfig",
    "RedisConfig",
]
