"""Build the character roster from the wiki.

The index page lists active characters; each character page names the
in-game identity ("on MUSH as ..."). Character pages are fetched in batches so
only a bounded number of requests are ever in flight, and every match is
handed to a single collector task that owns the roster dict.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

import aiohttp

from .errors import PageFetchError
from .page_fetch import fetch_page
from .settings import Settings

logger = logging.getLogger(__name__)

Roster = Dict[str, str]
RosterItem = Tuple[str, str]


class RosterCrawler:
    """Crawl the wiki index and character pages into a name -> URL roster."""

    def __init__(self, settings: Settings, *, soft_fail: bool = False) -> None:
        self.settings = settings
        self.soft_fail = soft_fail
        self.failures: List[Tuple[str, str]] = []

    async def list_wiki_pages(self, session: aiohttp.ClientSession) -> List[str]:
        """Return absolute character page URLs linked from the index, in page order."""

        index_url = self.settings.index_url
        logger.info("Fetching character index %s", index_url)
        text = await fetch_page(session, index_url, timeout=self.settings.timing.http_timeout)
        pages = [
            self.settings.wiki_base + match.group(1)
            for match in self.settings.active_character_pattern.finditer(text)
            if match.group(1) is not None
        ]
        logger.info("Index lists %d character page(s)", len(pages))
        return pages

    def extract_name(self, text: str) -> Optional[str]:
        match = self.settings.on_mush_as_pattern.search(text)
        if not match or not match.group(1):
            return None
        return match.group(1)

    async def _fetch_entry(
        self,
        session: aiohttp.ClientSession,
        url: str,
        queue: "asyncio.Queue[Optional[RosterItem]]",
    ) -> None:
        try:
            text = await fetch_page(session, url, timeout=self.settings.timing.http_timeout)
        except PageFetchError as exc:
            if not self.soft_fail:
                raise
            logger.warning("Skipping %s: %s", url, exc.reason)
            self.failures.append((url, exc.reason))
            return
        name = self.extract_name(text)
        if name is None:
            logger.debug("No in-game name on %s", url)
            return
        await queue.put((name, url))

    @staticmethod
    async def _collect(queue: "asyncio.Queue[Optional[RosterItem]]", roster: Roster) -> None:
        # Sole writer of ``roster`` while the crawl is running.
        while True:
            item = await queue.get()
            if item is None:
                return
            name, url = item
            roster[name] = url

    async def _fetch_batch(
        self,
        session: aiohttp.ClientSession,
        batch: List[str],
        queue: "asyncio.Queue[Optional[RosterItem]]",
    ) -> None:
        tasks = [asyncio.create_task(self._fetch_entry(session, url, queue)) for url in batch]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def build_roster(self, session: Optional[aiohttp.ClientSession] = None) -> Roster:
        """Fetch the index and every character page; return the roster."""

        if session is None:
            async with aiohttp.ClientSession() as owned:
                return await self.build_roster(owned)

        self.failures = []
        pages = await self.list_wiki_pages(session)
        roster: Roster = {}
        queue: "asyncio.Queue[Optional[RosterItem]]" = asyncio.Queue()
        collector = asyncio.create_task(self._collect(queue, roster))
        batch_size = self.settings.timing.batch_size
        try:
            for start in range(0, len(pages), batch_size):
                batch = pages[start : start + batch_size]
                logger.debug(
                    "Fetching batch %d of %d (size: %d)",
                    (start // batch_size) + 1,
                    (len(pages) + batch_size - 1) // batch_size,
                    len(batch),
                )
                await self._fetch_batch(session, batch, queue)
            await queue.put(None)
            await collector
        finally:
            if not collector.done():
                collector.cancel()
                await asyncio.gather(collector, return_exceptions=True)

        logger.info(
            "Roster has %d character(s) from %d page(s) (%d failed)",
            len(roster),
            len(pages),
            len(self.failures),
        )
        return roster


def build_roster(settings: Settings, *, soft_fail: bool = False) -> Roster:
    """Synchronous wrapper around :meth:`RosterCrawler.build_roster`."""

    return asyncio.run(RosterCrawler(settings, soft_fail=soft_fail).build_roster())


__all__ = ["Roster", "RosterCrawler", "build_roster"]
