"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    DEFAULT_MIN_LINK_LENGTH,
    CrawlConfig,
    ErrorPolicy,
    PipelineConfig,
    RedisConfig,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "CrawlConfig",
    "DEFAULT_MIN_LINK_LENGTH",
    "ErrorPolicy",
    "PipelineConfig",
    "RedisConfig",
]
