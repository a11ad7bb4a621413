"""
Shared aiohttp session factory.

Every outbound request in the pipeline goes through ``http_session`` so that
TLS verification (certifi bundle), the User-Agent and an explicit total
timeout are applied uniformly.
"""

import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import aiohttp
import certifi

_ssl_context: Optional[ssl.SSLContext] = None


def get_ssl_context() -> ssl.SSLContext:
    global _ssl_context
    if _ssl_context is None:
        _ssl_context = ssl.create_default_context(cafile=certifi.where())
    return _ssl_context


@asynccontextmanager
async def http_session(
    timeout: float,
    headers: Optional[Dict[str, str]] = None,
    limit: int = 10,
) -> AsyncIterator[aiohttp.ClientSession]:
    """Get a configured aiohttp session.

    Args:
        timeout: Total request timeout in seconds
        headers: Default headers for every request
        limit: Connection pool size
    """
    connector = aiohttp.TCPConnector(
        ssl=get_ssl_context(),
        limit=limit,
        limit_per_host=5,
        enable_cleanup_closed=True,
    )

    async with aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers=headers or {},
    ) as session:
        yield session
