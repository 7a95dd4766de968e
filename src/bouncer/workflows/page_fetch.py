"""Single-page HTTP GET used by the roster crawler."""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from .errors import PageFetchError

logger = logging.getLogger(__name__)


async def fetch_page(session: aiohttp.ClientSession, url: str, *, timeout: float) -> str:
    """Return the body of ``url`` decoded as text.

    Transport errors, timeouts and body read failures raise
    :class:`PageFetchError`. Status codes are not checked: an error page just
    fails to match whatever pattern the caller applies to it.
    """

    try:
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
            if resp.status != 200:
                logger.debug("GET %s returned HTTP %d", url, resp.status)
            return await resp.text(errors="replace")
    except asyncio.TimeoutError:
        raise PageFetchError(url, f"timed out after {timeout:.1f}s") from None
    except aiohttp.ClientError as exc:
        raise PageFetchError(url, str(exc) or exc.__class__.__name__) from exc
