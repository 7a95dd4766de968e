"""Drive one login/finger session against the MUSH and capture its output.

The server does not frame its responses, so a background task drains the
socket into a transcript for the whole session while the main coroutine
sends commands. Reads use a short timeout so the drain task notices the stop
event promptly; stopping waits for the drain task to exit, which makes the
transcript complete before it is returned.
"""

from __future__ import annotations

import asyncio
import codecs
import io
import logging
from typing import Awaitable, Callable, Iterable, Optional, Tuple

from .bouncer_config import LINE_ENDING, LOGIN_VERB, QUIT_COMMAND
from .errors import SessionError
from .settings import Settings

logger = logging.getLogger(__name__)

OpenConnection = Callable[..., Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]]]


class MushSession:
    """One TCP session: connect, log in, finger each name, log out."""

    def __init__(
        self,
        settings: Settings,
        *,
        open_connection: Optional[OpenConnection] = None,
    ) -> None:
        self.settings = settings
        self._open_connection = open_connection or asyncio.open_connection
        self._transcript = io.StringIO()
        self._decoder = codecs.getincrementaldecoder(settings.encoding)(errors="replace")
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._stop = asyncio.Event()
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def transcript(self) -> str:
        return self._transcript.getvalue()

    async def _drain(self) -> None:
        assert self._reader is not None
        timing = self.settings.timing
        while not self._stop.is_set():
            try:
                chunk = await asyncio.wait_for(
                    self._reader.read(timing.read_chunk_size),
                    timeout=timing.poll_interval,
                )
            except asyncio.TimeoutError:
                continue
            except (ConnectionError, OSError) as exc:
                raise SessionError(f"Read from {self.settings.endpoint} failed: {exc}") from exc
            if not chunk:
                raise SessionError(f"Connection to {self.settings.endpoint} closed by remote")
            self._transcript.write(self._decoder.decode(chunk))
        self._transcript.write(self._decoder.decode(b"", final=True))

    def _check_drain(self) -> None:
        task = self._drain_task
        if task is not None and task.done() and not task.cancelled():
            exc = task.exception()
            if exc is not None:
                raise exc

    async def _pause(self, delay: float) -> None:
        """Sleep for ``delay`` but wake early if the drain task fails."""

        if self._drain_task is None:
            await asyncio.sleep(delay)
            return
        await asyncio.wait({self._drain_task}, timeout=delay)
        self._check_drain()

    async def _send(self, line: str) -> None:
        assert self._writer is not None
        self._check_drain()
        try:
            self._writer.write((line + LINE_ENDING).encode(self.settings.encoding, errors="replace"))
            await self._writer.drain()
        except (ConnectionError, OSError) as exc:
            raise SessionError(f"Write to {self.settings.endpoint} failed: {exc}") from exc

    async def _connect(self) -> None:
        logger.info("Connecting to %s", self.settings.endpoint)
        try:
            self._reader, self._writer = await self._open_connection(
                self.settings.host, self.settings.port
            )
        except (ConnectionError, OSError) as exc:
            raise SessionError(f"Unable to connect to {self.settings.endpoint}: {exc}") from exc

    async def _stop_draining(self) -> None:
        task = self._drain_task
        if task is None:
            return
        self._stop.set()
        await asyncio.gather(task, return_exceptions=True)
        self._check_drain()

    async def _close(self) -> None:
        """Log out politely and close the socket; failures here are only logged."""

        task = self._drain_task
        if task is not None and not task.done():
            self._stop.set()
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        writer = self._writer
        if writer is None:
            return
        for line in (self.settings.on_disconnect, QUIT_COMMAND):
            try:
                writer.write((line + LINE_ENDING).encode(self.settings.encoding, errors="replace"))
                await writer.drain()
            except (ConnectionError, OSError) as exc:
                logger.debug("Ignoring error while sending %r on close: %s", line, exc)
                break
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError) as exc:
            logger.debug("Ignoring error while closing connection: %s", exc)
        logger.info("Disconnected from %s", self.settings.endpoint)

    async def run(self, names: Iterable[str]) -> str:
        """Finger every name and return everything the server sent."""

        timing = self.settings.timing
        await self._connect()
        try:
            self._drain_task = asyncio.create_task(self._drain())

            await self._send(f"{LOGIN_VERB} {self.settings.login} {self.settings.password}")
            logger.debug("Sent login for %s; settling for %.2fs", self.settings.login, timing.settle_delay)
            await self._pause(timing.settle_delay)

            await self._send(self.settings.on_connect)

            count = 0
            for name in names:
                await self._send(f"{self.settings.finger_command} {name}")
                await self._pause(timing.query_delay)
                count += 1
            logger.info("Sent %d finger quer%s", count, "y" if count == 1 else "ies")

            await self._stop_draining()
        finally:
            await self._close()

        transcript = self.transcript
        logger.debug("Captured %d characters of session output", len(transcript))
        return transcript


def run_session(settings: Settings, names: Iterable[str]) -> str:
    """Synchronous wrapper around :meth:`MushSession.run`."""

    async def _run() -> str:
        return await MushSession(settings).run(names)

    return asyncio.run(_run())


__all__ = ["MushSession", "run_session"]
