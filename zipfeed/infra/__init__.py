"""Infra layer utilities (store connections, scratch storage)."""

from .scratch import scratch_file
from .storage import RedisManager

__all__ = ["RedisManager", "scratch_file"]
