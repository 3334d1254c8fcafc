from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class AsyncRedisManager:
    """Lazily connects to Redis and reconnects with backoff on command failure.

    Client construction never awaits, so no lock is needed to keep a single
    client per manager.
    """

    def __init__(
        self,
        url: str,
        *,
        max_retries: int = 3,
        base_delay_seconds: float = 0.2,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self._url = url
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds
        self._client_factory = client_factory
        self._client: Any | None = None

    def get_client(self) -> Any:
        if self._client is None:
            self._client = self._new_client()
        return self._client

    async def reconnect(self) -> Any:
        stale, self._client = self._client, self._new_client()
        if stale is not None:
            try:
                await stale.close()
            except Exception as exc:
                logger.warning("redis_close_failed", extra={"component": "devkit", "error": str(exc)})
        return self._client

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.close()

    async def execute(self, operation: str, *args, **kwargs):
        attempt = 0
        while True:
            method = getattr(self.get_client(), operation)
            try:
                return await method(*args, **kwargs)
            except Exception:
                attempt += 1
                if attempt >= self._max_retries:
                    raise
                logger.warning(
                    "redis_command_retry",
                    extra={"component": "devkit", "operation": operation, "attempt": attempt},
                )
                await self.reconnect()
                await asyncio.sleep(self._base_delay_seconds * (2 ** (attempt - 1)))

    def _new_client(self) -> Any:
        if self._client_factory is not None:
            return self._client_factory(self._url)
        import redis.asyncio as redis

        return redis.from_url(
            self._url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        async def _call(*args, **kwargs):
            return await self.execute(name, *args, **kwargs)

        return _call


def create_redis_client(url: str | None) -> AsyncRedisManager | None:
    if not url:
        return None
    return AsyncRedisManager(url)
