"""Network reachability precheck for the remote responder."""

from __future__ import annotations

import asyncio
import contextlib
import logging

import httpx

logger = logging.getLogger(__name__)


async def check_connectivity(base_url: str, timeout: float = 3.0) -> bool:
    """Return True if a TCP connection to the API host can be opened.

    Only reachability is tested; no HTTP request is made.
    """
    try:
        url = httpx.URL(base_url)
    except httpx.InvalidURL:
        logger.warning("Invalid API base URL: %s", base_url)
        return False

    host = url.host
    if not host:
        return False
    port = url.port or (443 if url.scheme == "https" else 80)

    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except (OSError, TimeoutError):
        logger.debug("No connectivity to %s:%d", host, port)
        return False

    writer.close()
    with contextlib.suppress(OSError):
        await writer.wait_closed()
    return True
