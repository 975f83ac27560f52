"""Redis connection management for the ledger and output queue."""

from __future__ import annotations

from threading import Lock

import redis

from ..config import RedisConfig
from ..errors import LedgerError


class RedisManager:
    """Own the shared connection pool and hand out per-worker clients.

    ``min_connections`` raises the pool cap so that every worker can pin its
    own connection even when ``max_connections`` is configured lower.
    """

    def __init__(self, config: RedisConfig, min_connections: int = 1) -> None:
        self.config = config
        self.min_connections = min_connections
        self._pool: redis.ConnectionPool | None = None
        self._clients: list[redis.Redis] = []
        self._lock = Lock()

    @property
    def pool(self) -> redis.ConnectionPool:
        with self._lock:
            if self._pool is None:
                self._pool = redis.ConnectionPool(
                    host=self.config.host,
                    port=self.config.port,
                    db=self.config.db,
                    password=self.config.password,
                    max_connections=max(self.config.max_connections, self.min_connections),
                    health_check_interval=self.config.health_check_interval,
                )
            return self._pool

    @property
    def address(self) -> str:
        return f"{self.config.host}:{self.config.port}/{self.config.db}"

    def client(self) -> redis.Redis:
        """Return a client sharing the pool, checking out a connection per command."""

        return redis.Redis(connection_pool=self.pool)

    def dedicated_client(self) -> redis.Redis:
        """Return a client pinned to one pooled connection for its lifetime."""

        try:
            client = redis.Redis(connection_pool=self.pool, single_connection_client=True)
        except redis.RedisError as exc:
            raise LedgerError(f"cannot borrow a connection to redis at {self.address}: {exc}") from exc
        with self._lock:
            self._clients.append(client)
        return client

    def release(self, client: redis.Redis) -> None:
        with self._lock:
            if client in self._clients:
                self._clients.remove(client)
        client.close()

    def ping(self) -> bool:
        """Check the store answers before any work is handed out."""

        try:
            return bool(self.client().ping())
        except redis.RedisError as exc:
            raise LedgerError(f"redis at {self.address} is unreachable: {exc}") from exc

    def close_all(self) -> None:
        with self._lock:
            clients, self._clients = self._clients, []
            pool, self._pool = self._pool, None
        for client in clients:
            client.close()
        if pool is not None:
            pool.disconnect()


__all__ = ["RedisManager"]
