"""Factory do cliente Redis assíncrono."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)


def create_async_redis_client(redis_url: str | None = None) -> AsyncRedis:
    """Cria cliente Redis assíncrono.

    Args:
        redis_url: URL explícita (usa REDIS_URL da env se None)

    Returns:
        Cliente Redis assíncrono

    Raises:
        ValueError: Se REDIS_URL não configurado
    """
    from redis.asyncio import Redis as AsyncRedis

    url = redis_url or os.getenv("REDIS_URL")
    if not url:
        msg = "REDIS_URL não configurado"
        raise ValueError(msg)

    client: AsyncRedis = AsyncRedis.from_url(
        url,
        decode_responses=False,
        socket_timeout=5.0,
        socket_connect_timeout=5.0,
        retry_on_timeout=True,
    )

    host = client.connection_pool.connection_kwargs.get("host", "unknown")
    logger.info("async_redis_client_created", extra={"host": host})
    return client


async def close_redis_client(client: AsyncRedis | None) -> None:
    """Fecha o cliente (aclose nas versões novas, close nas antigas)."""
    if client is None:
        return
    close_async = getattr(client, "aclose", None)
    if callable(close_async):
        await close_async()
    else:
        await client.close()
